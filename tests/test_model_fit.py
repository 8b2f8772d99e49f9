"""Tests for the native model fit and its variance stabilizing transform."""

import numpy as np
import pandas as pd
import patsy
import pytest

import dittobulk as db
from dittobulk.model_fit import fit_dispersion_trend, moment_dispersions


class TestSizeFactors:
    """median_ratio_size_factors."""

    def test_doubled_library(self):
        base = np.array([10.0, 20.0, 30.0, 40.0])
        counts = np.column_stack([base, 2 * base])
        sf = db.median_ratio_size_factors(counts)
        assert np.allclose(sf, [1 / np.sqrt(2), np.sqrt(2)])

    def test_genes_with_zero_ignored(self):
        counts = np.array([[10.0, 10.0], [0.0, 50.0], [5.0, 5.0]])
        assert np.allclose(db.median_ratio_size_factors(counts), [1.0, 1.0])

    def test_all_genes_have_zero(self):
        with pytest.raises(ValueError):
            db.median_ratio_size_factors(np.array([[0.0, 1.0], [1.0, 0.0]]))


class TestFitModel:
    """fit_model construction and validation."""

    def test_components(self, de_fit, nb_counts, sample_info):
        assert isinstance(de_fit, db.DEFit)
        assert de_fit.counts.equals(nb_counts)
        assert de_fit.design == '~ condition'
        assert list(de_fit.sample_metadata.index) == list(nb_counts.columns)
        assert list(de_fit.size_factors.index) == list(nb_counts.columns)
        assert de_fit.shape == (200, 6)

    def test_array_counts_get_names(self, nb_counts, sample_info):
        fit = db.fit_model(nb_counts.values, sample_info, '~ condition')
        assert list(fit.counts.columns) == [f"Sample{j}" for j in range(1, 7)]
        assert list(fit.counts.index)[:2] == ['1', '2']

    def test_metadata_rows(self, nb_counts, sample_info):
        with pytest.raises(ValueError):
            db.fit_model(nb_counts, sample_info.iloc[:5], '~ condition')

    def test_negative_counts(self, nb_counts, sample_info):
        bad = nb_counts.copy()
        bad.iloc[3, 2] = -5
        with pytest.raises(ValueError, match="Negative"):
            db.fit_model(bad, sample_info, '~ condition')

    def test_bad_formula(self, nb_counts, sample_info):
        with pytest.raises(patsy.PatsyError):
            db.fit_model(nb_counts, sample_info, '~ not_a_column')


class TestTransform:
    """DEFit.transform variance stabilization."""

    def test_shape_and_labels(self, de_fit, nb_counts):
        expr = de_fit.transform()
        assert expr.index.equals(nb_counts.index)
        assert expr.columns.equals(nb_counts.columns)
        assert np.all(np.isfinite(expr.values))

    @pytest.mark.parametrize('blind', [False, True])
    def test_monotone_in_normalized_counts(self, de_fit, blind):
        expr = de_fit.transform(blind=blind)
        q = de_fit.normalized_counts()
        for sample in q.columns:
            order = np.argsort(q[sample].values, kind='stable')
            assert np.all(np.diff(expr[sample].values[order]) >= -1e-12)

    def test_log2_like_at_high_counts(self, de_fit):
        expr = de_fit.transform()
        q = de_fit.normalized_counts()
        high = q.values > 500
        diff = expr.values[high] - np.log2(q.values[high])
        # an offset that barely moves at high counts
        assert np.ptp(diff) < 0.5

    def test_does_not_modify_fit(self, de_fit):
        counts = de_fit.counts.copy()
        sf = de_fit.size_factors.copy()
        de_fit.transform(blind=True)
        de_fit.transform(blind=False)
        assert de_fit.counts.equals(counts)
        assert de_fit.size_factors.equals(sf)


class TestDispersion:
    """Moment dispersions and the parametric trend."""

    def test_moment_estimate(self, rng):
        mu = 200.0
        size = 5.0
        counts = rng.negative_binomial(size, size / (size + mu), size=(50, 400)).astype(float)
        disp = moment_dispersions(counts, np.ones(400), np.ones((400, 1)))
        assert np.median(disp) == pytest.approx(1 / size, rel=0.2)

    def test_floor(self):
        counts = np.full((3, 4), 10.0)
        disp = moment_dispersions(counts, np.ones(4), np.ones((4, 1)))
        assert np.all(disp == db.defaults.MIN_DISPERSION)

    def test_no_residual_df(self):
        with pytest.raises(ValueError):
            moment_dispersions(np.ones((3, 2)), np.ones(2), np.eye(2))

    def test_trend_recovers_coefficients(self, rng):
        mu = np.exp(rng.uniform(np.log(5), np.log(5000), size=500))
        disp = (0.05 + 2.0 / mu) * np.exp(rng.normal(0, 0.1, size=500))
        a0, a1 = fit_dispersion_trend(mu, disp)
        assert a0 == pytest.approx(0.05, rel=0.1)
        assert a1 == pytest.approx(2.0, rel=0.1)

    def test_trend_fallback(self):
        with pytest.warns(UserWarning, match="mean dispersion"):
            a0, a1 = fit_dispersion_trend(np.array([10.0, 20.0]), np.array([0.1, 0.3]))
        assert a0 == pytest.approx(0.2)
        assert a1 == 0.0


class TestVST:
    """vst closed form."""

    def test_zero(self):
        assert db.vst(np.array([0.0]), 0.1, 0.0)[0] == pytest.approx(np.log2(1 / 0.4))

    def test_dataframe_roundtrip_labels(self):
        q = pd.DataFrame([[0.0, 10.0], [100.0, 1000.0]], index=['a', 'b'], columns=['x', 'y'])
        out = db.vst(q, 0.1, 1.0)
        assert list(out.index) == ['a', 'b']
        assert list(out.columns) == ['x', 'y']

    def test_invalid_dispersion(self):
        with pytest.raises(ValueError):
            db.vst(np.array([1.0]), 0.0)
