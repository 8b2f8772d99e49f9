"""
dittobulk: bulk RNA-seq objects for dittoSeq-style plotting.

Collects counts, sample metadata and variance stabilized expression from a
differential expression fit into one RNAseq object, and computes a PCA on
the most variable, well expressed genes.
"""

__version__ = "0.1.0"

# --- Classes ---
from .classes import RNAseq, Embedding

# --- Errors ---
from .errors import (
    DittoBulkError,
    MissingDataError,
    DesignParseError,
    EmptySelectionError,
    UnknownFeatureError,
    ShapeMismatchError,
    ConstantFeatureError,
)

# --- Model fits ---
from .model_fit import DEFit, fit_model, median_ratio_size_factors, vst
from .io import PyDESeq2Fit, from_pydeseq2

# --- RNAseq construction ---
from .rnaseq import import_fit, import_deseq2, valid_rnaseq

# --- Design ---
from .design import model_matrix, design_terms, grouping_variable

# --- Gene selection ---
from .filtering import expression_filter
from .selection import coefficient_of_variation, select_variable_genes

# --- PCA ---
from .pca import prcomp, pca_calc

# --- Accessors ---
from .accessors import (
    get_samples,
    get_metas,
    is_meta,
    meta,
    meta_levels,
    get_genes,
    is_gene,
    gene,
    get_reductions,
)
