"""
Adapters for model fits produced by other packages.
"""

from copy import deepcopy

import numpy as np
import pandas as pd

from .errors import DesignParseError


class PyDESeq2Fit:
    """Expose a fitted ``pydeseq2.dds.DeseqDataSet`` as a dittobulk model fit.

    pydeseq2 stores counts as samples x genes; ``counts`` and
    ``transform`` return genes x samples like the rest of dittobulk.
    The wrapped dataset is never modified.
    """

    def __init__(self, dds):
        self.dds = dds

    def __repr__(self):
        n_obs, n_vars = self.dds.shape
        return f"PyDESeq2Fit with {n_vars} genes and {n_obs} samples\nDesign: {self.design}"

    @property
    def counts(self):
        X = self.dds.X
        if hasattr(X, 'toarray'):
            X = X.toarray()
        return pd.DataFrame(np.asarray(X).T, index=list(self.dds.var_names),
                            columns=list(self.dds.obs_names))

    @property
    def sample_metadata(self):
        return pd.DataFrame(self.dds.obs).copy()

    @property
    def design(self):
        design = getattr(self.dds, 'design', None)
        if isinstance(design, str):
            return design
        factors = getattr(self.dds, 'design_factors', None)
        if isinstance(factors, str):
            factors = [factors]
        if factors:
            return "~ " + " + ".join(factors)
        raise DesignParseError("the DeseqDataSet has no design formula")

    def transform(self, blind=False):
        """Variance stabilized counts (genes x samples).

        The VST is computed on a copy of the dataset so the wrapped one
        keeps its layers untouched.
        """
        dds = deepcopy(self.dds)
        dds.vst(use_design=not blind)
        return pd.DataFrame(np.asarray(dds.layers['vst_counts']).T,
                            index=list(self.dds.var_names),
                            columns=list(self.dds.obs_names))


def from_pydeseq2(dds):
    """Wrap a fitted pydeseq2 DeseqDataSet for :func:`import_fit`.

    Parameters
    ----------
    dds : pydeseq2.dds.DeseqDataSet

    Returns
    -------
    PyDESeq2Fit
    """
    try:
        from pydeseq2.dds import DeseqDataSet
    except ImportError:
        raise ImportError(
            "pydeseq2 package required for DeseqDataSet input. "
            "Install with: pip install pydeseq2"
        )
    if not isinstance(dds, DeseqDataSet):
        raise TypeError(f"expected a DeseqDataSet, got {type(dds).__name__}")
    return PyDESeq2Fit(dds)
