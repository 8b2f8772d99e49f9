"""
Core data classes for dittobulk.

RNAseq (the bulk container read by plotting code) and Embedding (one named
principal component result), both dicts with attribute access.
"""

import numpy as np
import pandas as pd


class _BulkBase(dict):
    """Base class providing dict-like access with attribute sugar and display."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        try:
            del self[name]
        except KeyError:
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

    def __repr__(self):
        cls = type(self).__name__
        components = [k for k, v in self.items() if v is not None]
        s = self.shape
        if s is not None:
            return f"{cls} with {s[0]} rows and {s[1]} columns\nComponents: {', '.join(components)}"
        return f"{cls}\nComponents: {', '.join(components)}"


class RNAseq(_BulkBase):
    """Bulk RNA-seq data arranged like a single-cell object.

    Attributes
    ----------
    counts : DataFrame
        Raw counts (genes x samples).
    model_fit : object
        The differential expression fit the object was built from. Shared
        with the caller, never modified.
    expression : DataFrame
        Variance-stabilized expression (genes x samples), same index and
        columns as ``counts``.
    sample_metadata : DataFrame
        One row per sample: Samples, Nreads, then the fit's covariates.
    embeddings : dict
        Name -> Embedding.
    selected_features : list or None
        Genes used by the last automatic PCA, highest CV first.
    sample_names : list
    expression_filter : Series of bool or None
        Per-gene result of the per-condition expression filter.
    coefficients_of_variation : Series or None
        Per-gene sd / mean of ``expression``.
    extensions : dict
        Free storage for the caller. Not used by dittobulk.
    """

    _FIELDS = ('counts', 'model_fit', 'expression', 'sample_metadata',
               'embeddings', 'selected_features', 'sample_names',
               'expression_filter', 'coefficients_of_variation', 'extensions')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for k in self._FIELDS:
            self.setdefault(k, None)
        if self['embeddings'] is None:
            self['embeddings'] = {}
        if self['extensions'] is None:
            self['extensions'] = {}

    @property
    def shape(self):
        if self.get('counts') is not None:
            return self['counts'].shape
        return None

    @property
    def nrow(self):
        return self.shape[0]

    @property
    def ncol(self):
        return self.shape[1]

    def head(self, n=5):
        """Show the first n genes of the expression matrix."""
        if self.get('expression') is not None:
            return self['expression'].head(n)
        if self.get('counts') is not None:
            return self['counts'].head(n)
        return None


class Embedding(_BulkBase):
    """A principal component result.

    Attributes
    ----------
    scores : DataFrame
        Observation (sample) coordinates, columns PC1..PCk.
    loadings : DataFrame
        Variable (gene) loadings, columns PC1..PCk.
    sdev : ndarray
        Standard deviation of each component.
    centered, scaled : bool
    features : list
        Genes the embedding was computed on, in working-matrix order.
    """

    @property
    def shape(self):
        if self.get('scores') is not None:
            return self['scores'].shape
        return None

    @property
    def variance_explained(self):
        """Fraction of total variance carried by each component."""
        var = np.asarray(self['sdev'], dtype=np.float64) ** 2
        total = var.sum()
        if total <= 0:
            return pd.Series(np.zeros(len(var)), index=self['scores'].columns)
        return pd.Series(var / total, index=self['scores'].columns)
