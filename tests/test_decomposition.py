"""
Tests for the decomposition engine and the compute_pca() pipeline.
"""

import warnings

import numpy as np
import pandas as pd
import pytest
from sklearn.decomposition import PCA as SklearnPCA

from pca_core import compute_pca, SIGN_CONVENTION
from pca_core.exceptions import (
    DegenerateColumn, InvalidComponentCount, NumericalDivergence, RankDeficient
)
from pca_core.pca_calculations import clamp_eigenvalues, decompose, nipals, numerical_rank
from pca_core.pca_preprocessing import prepare
from pca_core.pca_results import calculate_variance_metrics

METHODS = ['svd', 'eigh', 'nipals']


class TestComponentProperties:
    """Invariants every decomposition must satisfy."""

    @pytest.mark.parametrize('method', METHODS)
    @pytest.mark.parametrize('scale', [False, True])
    def test_orthonormal_loadings(self, correlated_array, method, scale):
        result = compute_pca(correlated_array, scale=scale, method=method)
        P = result.loading_matrix
        np.testing.assert_allclose(P.T @ P, np.eye(P.shape[1]), atol=1e-8)

    @pytest.mark.parametrize('method', METHODS)
    def test_variances_non_negative_non_increasing(self, correlated_array, method):
        result = compute_pca(correlated_array, scale=False, method=method)
        eig = result.eigenvalues
        assert np.all(eig >= 0)
        assert np.all(np.diff(eig) <= 1e-12)

    @pytest.mark.parametrize('method', METHODS)
    def test_eigenvalues_sum_to_total_variance(self, correlated_array, method):
        result = compute_pca(correlated_array, scale=False, method=method)
        total = np.var(correlated_array, axis=0, ddof=1).sum()
        assert result.eigenvalues.sum() == pytest.approx(total, rel=1e-9)
        assert result.cumulative_variance[-1] == pytest.approx(1.0)

    def test_scores_are_projections(self, correlated_array):
        result = compute_pca(correlated_array, scale=True)
        expected = np.asarray(result.centered.values) @ result.loading_matrix
        np.testing.assert_allclose(result.scores.to_numpy(), expected)

    def test_score_variance_equals_eigenvalue(self, correlated_array):
        result = compute_pca(correlated_array, scale=False)
        np.testing.assert_allclose(
            result.scores.var(axis=0, ddof=1).to_numpy(), result.eigenvalues, rtol=1e-9
        )


class TestMethodAgreement:
    """All routes give the same normalized components."""

    @pytest.mark.parametrize('method', ['eigh', 'nipals'])
    def test_same_as_svd(self, correlated_array, method):
        reference = compute_pca(correlated_array, scale=True, method='svd')
        other = compute_pca(correlated_array, scale=True, method=method)
        np.testing.assert_allclose(other.eigenvalues, reference.eigenvalues, rtol=1e-8)
        np.testing.assert_allclose(other.loading_matrix, reference.loading_matrix, atol=1e-6)
        np.testing.assert_allclose(other.score_values, reference.score_values, atol=1e-5)

    def test_matches_sklearn(self, correlated_array):
        result = compute_pca(correlated_array, scale=False)
        reference = SklearnPCA().fit(correlated_array)
        np.testing.assert_allclose(result.eigenvalues, reference.explained_variance_, rtol=1e-8)
        np.testing.assert_allclose(
            result.explained_variance_ratio, reference.explained_variance_ratio_, rtol=1e-8
        )
        # Same axes up to sign
        dots = np.abs(np.sum(result.loading_matrix * reference.components_.T, axis=0))
        np.testing.assert_allclose(dots, 1.0, atol=1e-8)

    def test_deterministic(self, correlated_array):
        first = compute_pca(correlated_array, scale=True)
        second = compute_pca(correlated_array.copy(), scale=True)
        np.testing.assert_array_equal(first.loading_matrix, second.loading_matrix)
        assert first.sign_convention == SIGN_CONVENTION

    def test_dominant_loading_positive(self, correlated_array):
        result = compute_pca(correlated_array, scale=False)
        for column in result.loading_matrix.T:
            assert column[np.argmax(np.abs(column))] > 0


class TestDiagonalScenario:
    """(0,0), (2,2), (4,4): one informative direction."""

    @pytest.mark.parametrize('method', METHODS)
    def test_one_nonzero_component(self, diagonal_points, method):
        with pytest.warns(RankDeficient):
            result = compute_pca(diagonal_points, scale=False, method=method)

        assert result.n_components == 2
        assert result.eigenvalues[0] == pytest.approx(8.0)
        assert result.eigenvalues[1] == pytest.approx(0.0, abs=1e-12)
        np.testing.assert_allclose(result.loading_matrix[:, 0], np.array([1.0, 1.0]) / np.sqrt(2))
        np.testing.assert_allclose(result.loading_matrix[:, 1], np.array([1.0, -1.0]) / np.sqrt(2))
        assert result.rank == 1
        assert result.rank_deficient

    def test_drop_null_components(self, diagonal_points):
        with pytest.warns(RankDeficient):
            result = compute_pca(diagonal_points, scale=False, drop_null_components=True)
        assert result.n_components == 1
        assert result.scores.shape == (3, 1)


class TestRankDeficiency:

    def test_more_variables_than_observations(self):
        rng = np.random.default_rng(1)
        data = rng.normal(size=(4, 6))
        with pytest.warns(RankDeficient):
            result = compute_pca(data, scale=False)
        assert result.n_components == 6
        assert result.rank == 3
        np.testing.assert_allclose(result.eigenvalues[3:], 0.0)
        P = result.loading_matrix
        np.testing.assert_allclose(P.T @ P, np.eye(6), atol=1e-10)

    @pytest.mark.parametrize('method', METHODS)
    def test_constant_column_unscaled(self, method):
        data = [[1.0, 5.0, 2.0], [2.0, 5.0, 1.0], [3.0, 5.0, 4.0], [4.0, 5.0, 3.0]]
        with pytest.warns(RankDeficient):
            result = compute_pca(data, scale=False, method=method)
        assert result.rank == 2
        assert result.n_components == 3

    def test_full_rank_no_warning(self, correlated_array):
        with warnings.catch_warnings():
            warnings.simplefilter('error', RankDeficient)
            result = compute_pca(correlated_array, scale=True)
        assert not result.rank_deficient

    def test_all_constant(self):
        with pytest.warns(RankDeficient):
            result = compute_pca([[1.0, 2.0], [1.0, 2.0]], scale=False, drop_null_components=True)
        assert result.n_components == 0
        assert result.rank == 0


class TestErrors:

    def test_degenerate_column(self):
        data = [[1.0, 3.0], [2.0, 3.0], [3.0, 3.0]]
        with pytest.raises(DegenerateColumn):
            compute_pca(data, scale=True)

    def test_tiny_scale_column_is_analysed(self, correlated_array):
        data = correlated_array.copy()
        data[:, 2] *= 1e-13
        result = compute_pca(data, scale=True)
        reference = compute_pca(correlated_array, scale=True)
        np.testing.assert_allclose(result.eigenvalues, reference.eigenvalues, rtol=1e-8)

    def test_nipals_divergence_is_reported(self, correlated_array):
        centered = prepare(correlated_array, scale=False)
        with pytest.raises(NumericalDivergence) as excinfo:
            decompose(centered, method='nipals', max_iter=1)
        assert excinfo.value.iterations == 1
        assert excinfo.value.component == 1

    def test_unknown_method(self, correlated_array):
        with pytest.raises(ValueError, match='Unknown decomposition method'):
            compute_pca(correlated_array, scale=False, method='qr')

    @pytest.mark.parametrize('k', [0, 5, -1, 2.5, True])
    def test_invalid_n_components(self, correlated_array, k):
        with pytest.raises(InvalidComponentCount):
            compute_pca(correlated_array, scale=False, n_components=k)

    def test_truncated_n_components(self, correlated_frame):
        result = compute_pca(correlated_frame, scale=True, n_components=2)
        assert list(result.loadings.columns) == ['PC1', 'PC2']
        assert list(result.loadings.index) == list(correlated_frame.columns)
        assert result.scores.shape == (200, 2)


class TestSpectrumHelpers:

    def test_clamp_small_negative(self):
        np.testing.assert_array_equal(clamp_eigenvalues([4.0, -1e-14]), [4.0, 0.0])

    def test_clamp_large_negative(self):
        with pytest.raises(NumericalDivergence):
            clamp_eigenvalues([4.0, -0.5])

    def test_clamp_non_finite(self):
        with pytest.raises(NumericalDivergence):
            clamp_eigenvalues([np.nan, 1.0])

    def test_numerical_rank(self):
        assert numerical_rank([5.0, 1.0, 1e-14]) == 2
        assert numerical_rank([0.0, 0.0]) == 0

    def test_nipals_direct(self, correlated_array):
        X = correlated_array - correlated_array.mean(axis=0)
        eigenvalues, loadings, iterations = nipals(X, n_components=2)
        assert loadings.shape == (4, 2)
        assert len(iterations) == 2
        np.testing.assert_allclose(np.linalg.norm(loadings, axis=0), 1.0)
        reference = np.sort(np.linalg.eigvalsh(np.cov(X, rowvar=False)))[::-1][:2]
        np.testing.assert_allclose(eigenvalues, reference, rtol=1e-8)

    def test_variance_metrics(self):
        metrics = calculate_variance_metrics([3.0, 1.0])
        np.testing.assert_allclose(metrics['explained_variance_ratio'], [0.75, 0.25])
        np.testing.assert_allclose(metrics['cumulative_variance'], [0.75, 1.0])
        assert metrics['total_variance'] == pytest.approx(4.0)

    def test_variance_metrics_against_data_total(self):
        metrics = calculate_variance_metrics([3.0, 1.0], total_variance=8.0)
        np.testing.assert_allclose(metrics['explained_variance_ratio'], [0.375, 0.125])
        np.testing.assert_allclose(metrics['cumulative_variance'], [0.375, 0.5])

    def test_variance_metrics_zero_total(self):
        metrics = calculate_variance_metrics([0.0, 0.0])
        np.testing.assert_array_equal(metrics['explained_variance_ratio'], [0.0, 0.0])



class TestResultObject:

    def test_immutable(self, correlated_array):
        result = compute_pca(correlated_array, scale=False)
        with pytest.raises(AttributeError):
            result.method = 'eigh'
        with pytest.raises(ValueError):
            result.score_values[0, 0] = 0.0
        scores = result.scores
        scores.iloc[0, 0] = 1e6
        assert result.scores.iloc[0, 0] != 1e6

    def test_summary(self, correlated_frame):
        result = compute_pca(correlated_frame, scale=True)
        summary = result.summary()
        assert list(summary.index) == ['PC1', 'PC2', 'PC3', 'PC4']
        assert summary['Cumulative_%'].iloc[-1] == pytest.approx(100.0)
        assert summary['Variance_%'].sum() == pytest.approx(100.0)

    def test_truncated_summary_uses_data_variance(self, correlated_frame):
        result = compute_pca(correlated_frame, scale=True, n_components=2)
        full = compute_pca(correlated_frame, scale=True)
        summary = result.summary()
        assert summary['Cumulative_%'].iloc[-1] < 100.0
        np.testing.assert_allclose(
            summary['Variance_%'].to_numpy(), full.summary()['Variance_%'].to_numpy()[:2]
        )
        np.testing.assert_allclose(
            result.cumulative_variance,
            result.variance_metrics()['cumulative_variance']
        )


    def test_to_dict(self, correlated_array):
        result = compute_pca(correlated_array, scale=True, method='nipals')
        as_dict = result.to_dict()
        assert as_dict['algorithm'] == 'nipals'
        assert as_dict['n_samples'] == 200
        assert as_dict['n_features'] == 4
        assert len(as_dict['n_iterations']) == 4
        assert isinstance(as_dict['loadings'], pd.DataFrame)
