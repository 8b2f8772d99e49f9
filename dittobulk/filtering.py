"""
Per-condition expression filtering for dittobulk.
"""

import numpy as np
import pandas as pd

from .defaults import PERCENT_SAMPLES


def expression_filter(counts, groups, percent_samples=PERCENT_SAMPLES):
    """Flag genes expressed in enough samples of every condition.

    A gene passes when, for every distinct value of ``groups``, the number
    of samples of that group with a count above zero is at least
    ``n_group * percent_samples / 100``.

    Parameters
    ----------
    counts : array-like or DataFrame
        Raw counts (genes x samples).
    groups : array-like
        Condition of each sample, in column order.
    percent_samples : float
        Percent (0-100) of samples per condition that must express the gene.

    Returns
    -------
    Series of bool (indexed by gene) for DataFrame input, ndarray of bool
    otherwise.
    """
    if not 0 <= percent_samples <= 100:
        raise ValueError("'percent_samples' must be between 0 and 100")
    cutoff = percent_samples / 100

    index = counts.index if isinstance(counts, pd.DataFrame) else None
    x = np.asarray(counts, dtype=np.float64)
    if x.ndim == 1:
        x = x.reshape(-1, 1)

    groups = np.asarray(groups)
    if len(groups) != x.shape[1]:
        raise ValueError("Length of 'groups' must equal number of columns in 'counts'")

    expressed = x > 0
    keep = np.ones(x.shape[0], dtype=bool)
    for level in pd.unique(groups):
        in_group = groups == level
        n_expressed = expressed[:, in_group].sum(axis=1)
        keep &= n_expressed >= in_group.sum() * cutoff

    if index is not None:
        return pd.Series(keep, index=index, name='expression_filter')
    return keep
