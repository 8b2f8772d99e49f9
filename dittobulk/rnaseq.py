"""
RNAseq construction from a differential expression fit, and validation.
"""

import warnings

import numpy as np
import pandas as pd

from .classes import RNAseq
from .defaults import N_GENES, PERCENT_SAMPLES, REDUCTION_NAME
from .errors import MissingDataError, ShapeMismatchError


def import_fit(fit, run_pca=False, pc_genes=None, n_genes=N_GENES, blind=False,
               counts=None, percent_samples=PERCENT_SAMPLES, name=REDUCTION_NAME):
    """Create an RNAseq object from a fitted differential expression model.

    Parameters
    ----------
    fit : DEFit, PyDESeq2Fit or compatible
        Fitted model exposing ``counts`` (genes x samples),
        ``sample_metadata``, ``design`` and ``transform(blind)``.
    run_pca : bool
        Also run :func:`pca_calc`, filling ``embeddings[name]``,
        ``expression_filter``, ``coefficients_of_variation`` and
        ``selected_features``.
    pc_genes : list, optional
        Explicit genes for the PCA instead of the automatic selection.
    n_genes : int
        How many of the most variable genes the PCA uses.
    blind : bool
        Whether the variance-stabilizing transform ignores the sample
        grouping. Defaults to False, which is not right for every
        experiment.
    counts : DataFrame or array-like, optional
        Raw counts (genes x samples). Taken from ``fit`` when omitted.
    percent_samples : float
        Percent (0-100) of samples within each condition that must express
        a gene for it to be used in the PCA.
    name : str
        Embedding name used when ``run_pca`` is True.

    Returns
    -------
    RNAseq
    """
    counts = _resolve_counts(fit, counts)
    samples = list(counts.columns)

    meta = pd.DataFrame({
        'Samples': samples,
        'Nreads': counts.sum(axis=0).to_numpy(),
    }, index=pd.Index(samples))
    covariates = _align_covariates(getattr(fit, 'sample_metadata', None), samples)
    if covariates is not None:
        for col in covariates.columns:
            # first occurrence wins; Samples and Nreads are never overwritten
            if col not in meta.columns:
                meta[col] = covariates[col].set_axis(meta.index)

    expression = pd.DataFrame(fit.transform(blind=blind))
    if (set(expression.index) != set(counts.index)
            or set(expression.columns) != set(counts.columns)):
        raise ShapeMismatchError(
            "transformed expression and counts do not have the same genes and samples")
    expression = expression.loc[counts.index, counts.columns]

    obj = RNAseq(
        counts=counts,
        model_fit=fit,
        expression=expression,
        sample_metadata=meta,
        sample_names=samples,
    )
    valid_rnaseq(obj)

    if run_pca:
        from .pca import pca_calc
        obj = pca_calc(obj, genes_use=pc_genes, n_genes=n_genes,
                       percent_samples=percent_samples, name=name, _stacklevel=3)
    return obj


# Name of the entry point in the R dittoSeq API.
import_deseq2 = import_fit


def _resolve_counts(fit, counts):
    """Counts given explicitly win over the fit's counts."""
    fit_counts = getattr(fit, 'counts', None)
    if counts is None:
        counts = fit_counts
    if counts is None:
        raise MissingDataError("No count matrix: pass 'counts' or a fit that provides one")

    # Handle scipy sparse matrices
    if hasattr(counts, 'toarray') and hasattr(counts, 'nnz'):
        shape = counts.shape
        warnings.warn(
            f"Densifying sparse count matrix ({shape[0]} x {shape[1]}). "
            f"dittobulk stores counts as dense arrays.",
            stacklevel=3,
        )
        counts = counts.toarray()

    if isinstance(counts, pd.DataFrame):
        counts = counts.copy()
    else:
        counts = np.asarray(counts)
        if counts.ndim != 2:
            raise ValueError("'counts' must be a 2-d genes x samples matrix")
        if fit_counts is not None:
            if counts.shape != fit_counts.shape:
                raise ShapeMismatchError(
                    f"'counts' has shape {counts.shape} but the fit has {fit_counts.shape}")
            counts = pd.DataFrame(counts, index=fit_counts.index, columns=fit_counts.columns)
        else:
            counts = pd.DataFrame(
                counts,
                index=[str(i + 1) for i in range(counts.shape[0])],
                columns=[f"Sample{j + 1}" for j in range(counts.shape[1])])

    if counts.size == 0:
        raise MissingDataError("'counts' must contain at least one value")
    values = counts.to_numpy(dtype=np.float64)
    if np.isnan(values).any():
        raise ValueError("NA counts not allowed")
    if not np.isfinite(values).all():
        raise ValueError("Infinite counts not allowed")
    if values.min() < 0:
        raise ValueError("Negative counts not allowed")
    if counts.columns.has_duplicates:
        raise ValueError("sample names in 'counts' must be unique")
    return counts


def _align_covariates(covariates, samples):
    """Per-sample covariates in ``samples`` order."""
    if covariates is None:
        return None
    covariates = pd.DataFrame(covariates)
    if set(map(str, covariates.index)) == set(map(str, samples)) and len(covariates) == len(samples):
        covariates = covariates.copy()
        covariates.index = covariates.index.map(str)
        return covariates.loc[[str(s) for s in samples]]
    if len(covariates) != len(samples):
        raise ShapeMismatchError(
            f"sample metadata has {len(covariates)} rows for {len(samples)} samples")
    return covariates


def valid_rnaseq(obj):
    """Check that the components of an RNAseq object agree.

    Raises
    ------
    ShapeMismatchError
        When counts, expression, metadata, the sample names or the stored
        per-gene vectors and embeddings disagree.
    """
    counts = obj.get('counts')
    expression = obj.get('expression')
    if counts is None or expression is None:
        raise ShapeMismatchError("RNAseq object has no counts or expression")
    samples = list(obj.get('sample_names') or [])

    if list(counts.columns) != samples:
        raise ShapeMismatchError("counts columns differ from sample_names")
    if not counts.index.equals(expression.index) or not counts.columns.equals(expression.columns):
        raise ShapeMismatchError("counts and expression have different genes or samples")

    meta = obj.get('sample_metadata')
    if meta is not None and list(meta.index) != samples:
        raise ShapeMismatchError("sample_metadata rows differ from sample_names")

    for key in ('expression_filter', 'coefficients_of_variation'):
        vec = obj.get(key)
        if vec is not None and len(vec) != expression.shape[0]:
            raise ShapeMismatchError(f"'{key}' has {len(vec)} entries for "
                                     f"{expression.shape[0]} genes")

    for name, emb in obj.get('embeddings', {}).items():
        if list(emb['scores'].index) != samples:
            raise ShapeMismatchError(f"embedding '{name}' scores do not follow sample_names")
    return obj
