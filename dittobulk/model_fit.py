"""
A minimal negative binomial model fit for bulk RNA-seq counts.

Provides what RNAseq construction needs from a differential expression fit:
raw counts, sample covariates, the design formula and a variance
stabilizing transform (DESeq2's parametric VST) that can be blind to the
design or use it.
"""

import warnings

import numpy as np
import pandas as pd

from .classes import _BulkBase
from .defaults import MIN_DISPERSION
from .design import model_matrix


class DEFit(_BulkBase):
    """Fitted model for a genes x samples count matrix.

    Attributes
    ----------
    counts : DataFrame
        Raw counts (genes x samples).
    sample_metadata : DataFrame
        Covariates, one row per sample.
    design : str
        Design formula, e.g. ``'~ condition'``.
    size_factors : Series
        Median-of-ratios size factor of each sample.
    """

    @property
    def shape(self):
        return self['counts'].shape

    def normalized_counts(self):
        """Counts divided by the sample size factors."""
        return self['counts'] / self['size_factors']

    def transform(self, blind=False):
        """Variance stabilized expression (genes x samples, log2-like scale).

        Parameters
        ----------
        blind : bool
            Estimate the dispersion trend ignoring the design (``~ 1``).
        """
        design = '~ 1' if blind else self['design']
        X = model_matrix(design, self['sample_metadata'])
        q = self.normalized_counts()
        disp = moment_dispersions(q.to_numpy(), self['size_factors'].to_numpy(), X)
        mu = q.to_numpy().mean(axis=1)
        asympt_disp, extra_pois = fit_dispersion_trend(mu, disp)
        return vst(q, asympt_disp, extra_pois)


def fit_model(counts, sample_metadata, design):
    """Fit a DEFit to a count matrix.

    Parameters
    ----------
    counts : DataFrame or array-like
        Raw counts (genes x samples).
    sample_metadata : DataFrame
        Per-sample covariates referenced by ``design``. Its rows follow
        the columns of ``counts``.
    design : str
        Design formula.

    Returns
    -------
    DEFit
    """
    if not isinstance(counts, pd.DataFrame):
        counts = np.asarray(counts, dtype=np.float64)
        if counts.ndim != 2:
            raise ValueError("'counts' must be a 2-d genes x samples matrix")
        counts = pd.DataFrame(
            counts,
            index=[str(i + 1) for i in range(counts.shape[0])],
            columns=[f"Sample{j + 1}" for j in range(counts.shape[1])])
    values = counts.to_numpy(dtype=np.float64)
    if values.size == 0:
        raise ValueError("'counts' must contain at least one value")
    if np.isnan(values).any():
        raise ValueError("NA counts not allowed")
    if values.min() < 0:
        raise ValueError("Negative counts not allowed")
    if not np.isfinite(values).all():
        raise ValueError("Infinite counts not allowed")

    sample_metadata = pd.DataFrame(sample_metadata).copy()
    if len(sample_metadata) != counts.shape[1]:
        raise ValueError("Number of rows in 'sample_metadata' must equal number of "
                         "columns in 'counts'")
    sample_metadata.index = counts.columns

    # fail early on a formula that does not evaluate against the metadata
    model_matrix(design, sample_metadata)

    size_factors = pd.Series(median_ratio_size_factors(values), index=counts.columns,
                             name='size_factors')
    return DEFit(counts=counts, sample_metadata=sample_metadata, design=design,
                 size_factors=size_factors)


def median_ratio_size_factors(counts):
    """Size factors as in Anders et al (2010)."""
    counts = np.asarray(counts, dtype=np.float64)
    with np.errstate(divide='ignore'):
        log_gm = np.mean(np.log(counts), axis=1)
    pos = np.isfinite(log_gm)
    if not np.any(pos):
        raise ValueError("every gene contains at least one zero, cannot compute "
                         "median-of-ratios size factors")
    result = np.zeros(counts.shape[1])
    for j in range(counts.shape[1]):
        result[j] = np.exp(np.median(np.log(counts[pos, j]) - log_gm[pos]))
    return result


def moment_dispersions(normalized, size_factors, design):
    """Per-gene method of moments dispersion estimates.

    The variance is the residual variance of the normalized counts after
    regressing them on ``design``.
    """
    q = np.asarray(normalized, dtype=np.float64)
    X = np.asarray(design, dtype=np.float64)
    n = q.shape[1]
    rank = np.linalg.matrix_rank(X)
    if n - rank < 1:
        raise ValueError("the design leaves no residual degrees of freedom")

    coef, _, _, _ = np.linalg.lstsq(X, q.T, rcond=None)
    resid = q.T - X @ coef
    s2 = np.sum(resid ** 2, axis=0) / (n - rank)

    mu = q.mean(axis=1)
    xim = np.mean(1.0 / np.asarray(size_factors, dtype=np.float64))
    disp = np.full(q.shape[0], MIN_DISPERSION)
    pos = mu > 0
    disp[pos] = (s2[pos] - xim * mu[pos]) / mu[pos] ** 2
    return np.maximum(disp, MIN_DISPERSION)


def fit_dispersion_trend(mu, disp, maxit=10):
    """Fit ``disp = asymptDisp + extraPois / mu`` with a Gamma GLM.

    Port of DESeq2's parametric dispersion fit. Falls back to the mean
    dispersion (``extraPois = 0``) when the fit fails.

    Returns
    -------
    (float, float)
        ``asympt_disp`` and ``extra_pois``.
    """
    import statsmodels.api as sm

    mu = np.asarray(mu, dtype=np.float64)
    disp = np.asarray(disp, dtype=np.float64)
    use = (mu > 0) & (disp > 100 * MIN_DISPERSION)
    mu, disp = mu[use], disp[use]

    coefs = np.array([0.1, 1.0])
    failure = None
    if len(disp) < 3:
        failure = "too few genes with a positive dispersion estimate"
    else:
        family = sm.families.Gamma(link=sm.families.links.Identity())
        for _ in range(maxit + 1):
            residuals = disp / (coefs[0] + coefs[1] / mu)
            good = (residuals > 1e-4) & (residuals < 15)
            if good.sum() < 3:
                failure = "too few genes close to the trend"
                break
            exog = np.column_stack([np.ones(good.sum()), 1.0 / mu[good]])
            try:
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore")
                    res = sm.GLM(disp[good], exog, family=family).fit(start_params=coefs)
            except (ValueError, np.linalg.LinAlgError) as err:
                failure = f"GLM fit failed ({err})"
                break
            old, coefs = coefs, np.asarray(res.params, dtype=np.float64)
            if not np.all(coefs > 0) or not np.all(np.isfinite(coefs)):
                failure = "non-positive trend coefficients"
                break
            if np.sum(np.log(coefs / old) ** 2) < 1e-6 and res.converged:
                return float(coefs[0]), float(coefs[1])
        else:
            failure = "the fit did not converge"

    warnings.warn(f"parametric dispersion trend fit failed: {failure}; "
                  "using the mean dispersion instead", stacklevel=3)
    if len(disp) == 0:
        return MIN_DISPERSION, 0.0
    return float(max(np.mean(disp), MIN_DISPERSION)), 0.0


def vst(normalized, asympt_disp, extra_pois=0.0):
    """Variance stabilizing transform for a parametric dispersion trend.

    Parameters
    ----------
    normalized : DataFrame or array-like
        Size-factor normalized counts (genes x samples).
    asympt_disp, extra_pois : float
        Trend coefficients, ``disp = asympt_disp + extra_pois / mean``.

    Returns
    -------
    Same type as ``normalized``.
    """
    if asympt_disp <= 0:
        raise ValueError("'asympt_disp' must be positive")
    q = np.asarray(normalized, dtype=np.float64)
    a0, a1 = asympt_disp, extra_pois
    out = np.log2((1 + a1 + 2 * a0 * q + 2 * np.sqrt(a0 * q * (1 + a1 + a0 * q)))
                  / (4 * a0))
    if isinstance(normalized, pd.DataFrame):
        return pd.DataFrame(out, index=normalized.index, columns=normalized.columns)
    return out
