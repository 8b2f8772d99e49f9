"""
Read-only accessors used by plotting code to pull data out of an RNAseq
object by name.
"""

import numpy as np
import pandas as pd


def get_samples(obj):
    """Sample names, in column order."""
    return list(obj['sample_names'])


def get_metas(obj, names_only=True):
    """Names of the sample metadata columns, or the whole table."""
    if names_only:
        return list(obj['sample_metadata'].columns)
    return obj['sample_metadata']


def is_meta(test, obj):
    """Whether ``test`` names a metadata column. Lists are checked element-wise."""
    cols = set(obj['sample_metadata'].columns)
    if isinstance(test, (list, tuple, np.ndarray, pd.Index)):
        return [t in cols for t in test]
    return test in cols


def meta(name, obj):
    """Values of metadata column ``name``, in sample order."""
    if not is_meta(name, obj):
        raise KeyError(f"'{name}' is not a metadata column")
    return obj['sample_metadata'][name].loc[obj['sample_names']].to_numpy()


def meta_levels(name, obj):
    """Distinct values of metadata column ``name``.

    Categorical columns keep their category order (categories no sample
    has are dropped); other columns are sorted.
    """
    if not is_meta(name, obj):
        raise KeyError(f"'{name}' is not a metadata column")
    values = obj['sample_metadata'][name].loc[obj['sample_names']]
    if isinstance(values.dtype, pd.CategoricalDtype):
        present = set(values.dropna())
        return [c for c in values.cat.categories if c in present]
    return sorted(values.dropna().unique().tolist())


def get_genes(obj):
    """Gene names, in row order."""
    return list(obj['expression'].index)


def is_gene(test, obj):
    """Whether ``test`` names a gene. Lists are checked element-wise."""
    genes = set(obj['expression'].index)
    if isinstance(test, (list, tuple, np.ndarray, pd.Index)):
        return [t in genes for t in test]
    return test in genes


def gene(name, obj, data_type='expression'):
    """Values of one gene across samples.

    Parameters
    ----------
    name : str
        Gene id.
    obj : RNAseq
    data_type : {'expression', 'counts'}
        Variance stabilized expression or raw counts.
    """
    if data_type not in ('expression', 'counts'):
        raise ValueError("data_type must be 'expression' or 'counts'")
    if not is_gene(name, obj):
        raise KeyError(f"'{name}' is not a gene of this object")
    return obj[data_type].loc[name, obj['sample_names']].to_numpy()


def get_reductions(obj):
    """Names of the stored embeddings."""
    return list(obj['embeddings'].keys())
