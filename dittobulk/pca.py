"""
Principal component analysis of RNAseq objects.

``prcomp`` is the solver; ``pca_calc`` picks the genes (per-condition
expression filter + coefficient of variation ranking, or an explicit list)
and stores the result in the object.
"""

import warnings

import numpy as np
import pandas as pd
from scipy import linalg

from .classes import Embedding
from .defaults import N_GENES, PERCENT_SAMPLES, REDUCTION_NAME
from .design import grouping_variable
from .errors import ConstantFeatureError, EmptySelectionError, UnknownFeatureError
from .filtering import expression_filter
from .rnaseq import valid_rnaseq
from .selection import coefficient_of_variation, select_variable_genes


def prcomp(x, center=True, scale=True):
    """Principal components of an observations x variables matrix.

    Follows R's ``prcomp``: variables are optionally centered and scaled
    to unit (sample) variance, then decomposed by SVD.

    Parameters
    ----------
    x : array-like or DataFrame
        Observations x variables.
    center : bool
        Subtract each variable's mean.
    scale : bool
        Divide each variable by its standard deviation (ddof=1).

    Returns
    -------
    Embedding
        ``scores`` (observations x k), ``loadings`` (variables x k),
        ``sdev``, ``centered``, ``scaled``, ``features``, with
        k = min(n_observations, n_variables).
    """
    if isinstance(x, pd.DataFrame):
        obs_names = list(x.index)
        var_names = list(x.columns)
    else:
        obs_names = None
        var_names = None
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 2:
        raise ValueError("'x' must be a 2-d observations x variables matrix")
    n, p = x.shape
    if n < 2:
        raise ValueError("at least two observations are required")
    if p < 1:
        raise ValueError("at least one variable is required")
    if not np.all(np.isfinite(x)):
        raise ValueError("infinite or missing values in 'x'")
    if obs_names is None:
        obs_names = [str(i + 1) for i in range(n)]
    if var_names is None:
        var_names = [f"V{j + 1}" for j in range(p)]

    constant = np.all(x == x[0], axis=0)
    if center:
        x = x - x.mean(axis=0)
    if scale:
        if center:
            sd = x.std(axis=0, ddof=1)
        else:
            sd = np.sqrt(np.sum(x ** 2, axis=0) / (n - 1))
        constant |= sd == 0
        if np.any(constant):
            bad = [var_names[j] for j in np.where(constant)[0]]
            raise ValueError(
                "cannot rescale a constant/zero column to unit variance: "
                + ", ".join(map(str, bad)))
        x = x / sd

    u, s, vt = linalg.svd(x, full_matrices=False)
    k = min(n, p)
    u, s, vt = u[:, :k], s[:k], vt[:k]

    # make the largest loading of each component positive
    signs = np.sign(vt[np.arange(k), np.argmax(np.abs(vt), axis=1)])
    signs[signs == 0] = 1
    u = u * signs
    vt = vt * signs[:, np.newaxis]

    pcs = [f"PC{i + 1}" for i in range(k)]
    return Embedding(
        scores=pd.DataFrame(u * s, index=obs_names, columns=pcs),
        loadings=pd.DataFrame(vt.T, index=var_names, columns=pcs),
        sdev=s / np.sqrt(n - 1),
        centered=bool(center),
        scaled=bool(scale),
        features=list(var_names),
    )


def pca_calc(obj, genes_use=None, n_genes=N_GENES, percent_samples=PERCENT_SAMPLES,
             name=REDUCTION_NAME, _stacklevel=2):
    """Run PCA on an RNAseq object and store it under ``obj['embeddings'][name]``.

    Without ``genes_use``, genes are chosen by a per-condition expression
    filter (the condition is the grouping covariate of the fit's design)
    followed by a ranking on coefficient of variation; the filter, the CVs
    and the selected genes are stored in the object. Selected genes whose
    expression is the same in every sample cannot be scaled and are left
    out of the PCA with a warning. With ``genes_use`` those genes are used
    as given and nothing else is touched.

    Parameters
    ----------
    obj : RNAseq
        Object created by :func:`import_fit`. Modified in place.
    genes_use : list, optional
        Explicit genes to run the PCA on. ``n_genes`` and
        ``percent_samples`` are then ignored.
    n_genes : int
        How many of the most variable genes to use.
    percent_samples : float
        Percent (0-100) of samples within each condition that must have a
        nonzero count for a gene to be considered.
    name : str
        Key of the result in ``obj['embeddings']``. An existing entry of
        the same name is replaced.

    Returns
    -------
    RNAseq
        ``obj``.

    Raises
    ------
    ConstantFeatureError
        When a gene in ``genes_use`` has the same expression in every
        sample.
    """
    valid_rnaseq(obj)
    expression = obj['expression']

    if genes_use is None:
        _, groups = grouping_variable(obj['model_fit'].design,
                                      obj['sample_metadata'].loc[obj['sample_names']])
        keep = expression_filter(obj['counts'], groups, percent_samples)
        cvs = coefficient_of_variation(expression, stacklevel=_stacklevel + 1)
        selected = select_variable_genes(cvs, keep.to_numpy(), n_genes,
                                         stacklevel=_stacklevel + 1)
        working = expression.loc[selected]
        flat = _constant_genes(working)
        if flat:
            warnings.warn(f"{len(flat)} selected gene(s) have constant expression and are "
                          f"left out of the PCA: {', '.join(map(str, flat))}",
                          stacklevel=_stacklevel)
            working = working.drop(index=flat)
            if working.shape[0] == 0:
                raise EmptySelectionError("no selected gene varies across samples")
        embedding = prcomp(working.T, center=True, scale=True)

        obj['embeddings'][name] = embedding
        obj['expression_filter'] = keep
        obj['coefficients_of_variation'] = cvs
        obj['selected_features'] = selected
    else:
        genes_use = list(genes_use)
        if len(genes_use) == 0:
            raise EmptySelectionError("'genes_use' is empty")
        present = set(expression.index)
        missing = [g for g in genes_use if g not in present]
        if missing:
            raise UnknownFeatureError(missing)
        flat = _constant_genes(expression.loc[genes_use])
        if flat:
            raise ConstantFeatureError(flat)
        embedding = prcomp(expression.loc[genes_use].T, center=True, scale=True)
        obj['embeddings'][name] = embedding

    valid_rnaseq(obj)
    return obj


def _constant_genes(working):
    """Genes (rows) whose values are identical across samples."""
    values = working.to_numpy(dtype=np.float64)
    flat = np.all(values == values[:, :1], axis=1)
    return list(dict.fromkeys(working.index[flat]))
