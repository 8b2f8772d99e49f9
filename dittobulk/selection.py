"""
Gene variability and selection of the genes used for PCA.
"""

import warnings

import numpy as np
import pandas as pd

from .defaults import N_GENES
from .errors import EmptySelectionError


def coefficient_of_variation(expression, stacklevel=2):
    """Per-gene coefficient of variation, sd / mean, across samples.

    The sample standard deviation (ddof=1) is used. Genes with a zero mean
    get NaN.

    Parameters
    ----------
    expression : array-like or DataFrame
        Expression values (genes x samples).
    stacklevel : int
        Passed to :func:`warnings.warn` for the zero-mean warning.

    Returns
    -------
    Series indexed by gene for DataFrame input, ndarray otherwise.
    """
    index = expression.index if isinstance(expression, pd.DataFrame) else None
    x = np.asarray(expression, dtype=np.float64)
    if x.ndim == 1:
        x = x.reshape(-1, 1)
    if x.shape[1] < 2:
        raise ValueError("at least two samples are needed to compute a standard deviation")

    mean = x.mean(axis=1)
    sd = x.std(axis=1, ddof=1)
    zero_mean = mean == 0
    if np.any(zero_mean):
        warnings.warn(f"{int(zero_mean.sum())} gene(s) have zero mean expression; "
                      "their coefficient of variation is undefined", stacklevel=stacklevel)
    with np.errstate(divide='ignore', invalid='ignore'):
        cv = np.where(zero_mean, np.nan, sd / mean)

    if index is not None:
        return pd.Series(cv, index=index, name='CV')
    return cv


def select_variable_genes(cvs, keep=None, n_genes=N_GENES, stacklevel=2):
    """Rank candidate genes by decreasing CV and keep the top ``n_genes``.

    Parameters
    ----------
    cvs : Series
        Coefficient of variation per gene.
    keep : Series or array of bool, optional
        Candidate mask (e.g. from :func:`expression_filter`). Defaults to
        all genes.
    n_genes : int
        Maximum number of genes returned.
    stacklevel : int
        Passed to :func:`warnings.warn` when fewer genes than ``n_genes``
        are available.

    Returns
    -------
    list
        Gene ids, highest CV first. Ties keep the original gene order and
        genes with an undefined CV come last.
    """
    if n_genes < 1:
        raise ValueError("'n_genes' must be at least 1")
    cvs = pd.Series(cvs)
    if keep is None:
        keep = np.ones(len(cvs), dtype=bool)
    keep = np.asarray(keep, dtype=bool)
    if len(keep) != len(cvs):
        raise ValueError("Length of 'keep' must equal the number of genes")

    candidates = cvs[keep]
    if len(candidates) == 0:
        raise EmptySelectionError("no gene passed the expression filter")
    if len(candidates) < n_genes:
        warnings.warn(f"only {len(candidates)} gene(s) passed the expression filter; "
                      f"using all of them instead of {n_genes}", stacklevel=stacklevel)

    values = candidates.to_numpy(dtype=np.float64)
    # stable sort on -cv puts NaN last and keeps ties in gene order
    order = np.argsort(np.where(np.isnan(values), np.inf, -values), kind='stable')
    return list(candidates.index[order[:n_genes]])
