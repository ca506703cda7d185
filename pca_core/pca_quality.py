"""
Quality metrics: contributions and cosine-squared (cos²).

For a variable j and component a (unit loading vectors p_a):
    contribution  = 100 * p_ja² / Σ_j p_ja²          (= 100 * p_ja²)
    cos²          = p_ja²

For an observation i and component a (scores t_ia):
    contribution  = 100 * t_ia² / Σ_i t_ia²
    cos²          = t_ia² / Σ_a t_ia²   (squared distance in full component space)

Variable contributions sum to 100 per component, variable cos² sum to 1 per
variable across a full basis. All functions are pure and recompute on every
call.
"""

from typing import Union

import numpy as np
import pandas as pd

from .exceptions import InvalidComponentCount
from .pca_results import PCAResult

VARIABLE = 'variable'
OBSERVATION = 'observation'


def _normalize_columns(squared: np.ndarray) -> np.ndarray:
    totals = squared.sum(axis=0)
    out = np.zeros_like(squared)
    nonzero = totals > 0
    out[:, nonzero] = squared[:, nonzero] / totals[nonzero] * 100
    return out


def variable_contributions(result: PCAResult) -> pd.DataFrame:
    """Percentage contribution of each variable to each component (columns sum to 100)."""
    squared = result.loading_matrix ** 2
    return pd.DataFrame(
        _normalize_columns(squared),
        index=result.variable_names,
        columns=result.component_names
    )


def observation_contributions(result: PCAResult) -> pd.DataFrame:
    """
    Percentage contribution of each observation to each component.

    A component with zero explained variance (null direction) gets 0 for
    every observation.
    """
    squared = np.asarray(result.score_values) ** 2
    # Scores on null components are rounding noise
    squared[:, result.eigenvalues <= 0] = 0.0
    return pd.DataFrame(
        _normalize_columns(squared),
        index=result.observation_names,
        columns=result.component_names
    )


def variable_cos2(result: PCAResult) -> pd.DataFrame:
    """Squared loadings; each lies in [0, 1]."""
    squared = np.clip(result.loading_matrix ** 2, 0.0, 1.0)
    return pd.DataFrame(
        squared,
        index=result.variable_names,
        columns=result.component_names
    )


def observation_cos2(result: PCAResult) -> pd.DataFrame:
    """
    Squared cosine between each observation and each component axis.

    The denominator is the squared distance of the centered observation
    from the origin, which equals its squared norm in full component space.
    An observation sitting at the origin gets 0 everywhere.
    """
    scores = np.asarray(result.score_values)
    squared = scores ** 2
    distances = np.sum(np.asarray(result.centered.values) ** 2, axis=1)
    out = np.zeros_like(squared)
    nonzero = distances > 0
    out[nonzero] = squared[nonzero] / distances[nonzero, None]
    return pd.DataFrame(
        np.clip(out, 0.0, 1.0),
        index=result.observation_names,
        columns=result.component_names
    )


def _table(result: PCAResult, metric: str, axis: str) -> pd.DataFrame:
    if axis == VARIABLE:
        return variable_contributions(result) if metric == 'contribution' else variable_cos2(result)
    if axis == OBSERVATION:
        return observation_contributions(result) if metric == 'contribution' else observation_cos2(result)
    raise ValueError(f"axis must be '{VARIABLE}' or '{OBSERVATION}', got '{axis}'")


def _locate(table: pd.DataFrame, entity: Union[str, int], component: Union[str, int]) -> float:
    n_components = table.shape[1]

    if isinstance(component, str):
        if component not in table.columns:
            raise InvalidComponentCount(
                component, n_components,
                message=f"Unknown component '{component}'; available PC1..PC{n_components}"
            )
        col = table.columns.get_loc(component)
    elif isinstance(component, (int, np.integer)) and not isinstance(component, bool):
        if not 0 <= component < n_components:
            raise InvalidComponentCount(
                component, n_components,
                message=f"Component index {component} out of range for {n_components} components"
            )
        col = int(component)
    else:
        raise InvalidComponentCount(component, n_components)

    if isinstance(entity, str) and entity in table.index:
        matches = np.flatnonzero(table.index == entity)
        if len(matches) > 1:
            raise KeyError(
                f"Ambiguous entity {entity!r}: {len(matches)} rows share that name; "
                f"use its position instead"
            )
        row = int(matches[0])
    elif isinstance(entity, (int, np.integer)) and not isinstance(entity, bool) \
            and 0 <= entity < table.shape[0]:
        row = int(entity)
    else:
        raise KeyError(f"Unknown entity {entity!r}")

    return float(table.iat[row, col])


def contribution(
    result: PCAResult,
    entity: Union[str, int],
    component: Union[str, int],
    axis: str = VARIABLE
) -> float:
    """
    Contribution (%) of one variable or observation to one component.

    Parameters
    ----------
    result : PCAResult
    entity : str or int
        Variable/observation name, or zero-based position.
    component : str or int
        Component name ('PC1') or zero-based position.
    axis : str
        'variable' (default) or 'observation'.

    Raises
    ------
    InvalidComponentCount
        Component out of range.
    KeyError
        Unknown entity, or a name shared by several rows.
    ValueError
        Unknown axis.
    """
    return _locate(_table(result, 'contribution', axis), entity, component)


def cos2(
    result: PCAResult,
    entity: Union[str, int],
    component: Union[str, int],
    axis: str = VARIABLE
) -> float:
    """Cosine-squared of one variable or observation on one component. See contribution()."""
    return _locate(_table(result, 'cos2', axis), entity, component)
