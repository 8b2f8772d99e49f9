"""
Design formulas: building design matrices and extracting the grouping
covariate used by the per-condition expression filter.
"""

import re

import numpy as np
import pandas as pd

from .errors import DesignParseError


_CATEGORICAL_WRAPPER = re.compile(r'^C\(\s*([A-Za-z_][A-Za-z0-9_.]*)\s*(?:,.*)?\)$')


def model_matrix(formula, data=None):
    """Create a design matrix from an R-style formula.

    Uses patsy to parse the formula and build the design matrix,
    matching R's ``model.matrix(formula, data)`` behaviour.

    Parameters
    ----------
    formula : str
        R-style formula, e.g. ``'~ condition'`` or ``'~ 1'``.
    data : DataFrame or dict
        Sample-level data. Column names are used as variables in the
        formula.

    Returns
    -------
    ndarray
        Design matrix (samples x coefficients), dtype float64.

    Examples
    --------
    >>> import pandas as pd
    >>> df = pd.DataFrame({'condition': ['A', 'A', 'B', 'B']})
    >>> model_matrix('~ condition', df)
    array([[1., 0.],
           [1., 0.],
           [1., 1.],
           [1., 1.]])
    """
    try:
        import patsy
    except ImportError:
        raise ImportError(
            "patsy package required for formula interface. "
            "Install with: pip install patsy"
        )

    if data is None:
        raise ValueError("data must be provided for formula-based design")
    if isinstance(data, dict):
        data = pd.DataFrame(data)

    design_info = patsy.dmatrix(formula, data=data, return_type='dataframe')
    return np.asarray(design_info, dtype=np.float64)


def design_terms(formula):
    """Return the covariate names of each right-hand side term of a formula.

    The intercept is dropped. ``C(x)`` is reported as ``x``; every other
    factor is reported by its code.

    >>> design_terms('~ batch + condition')
    [['batch'], ['condition']]
    >>> design_terms('~ a:b')
    [['a', 'b']]
    """
    try:
        import patsy
    except ImportError:
        raise ImportError(
            "patsy package required for formula interface. "
            "Install with: pip install patsy"
        )

    if not isinstance(formula, str):
        raise DesignParseError(f"design must be a formula string, got {type(formula).__name__}")
    try:
        desc = patsy.ModelDesc.from_formula(formula)
    except patsy.PatsyError as err:
        raise DesignParseError(f"could not parse design '{formula}': {err}") from err

    terms = []
    for term in desc.rhs_termlist:
        if not term.factors:
            continue
        names = []
        for factor in term.factors:
            code = factor.name().strip()
            m = _CATEGORICAL_WRAPPER.match(code)
            names.append(m.group(1) if m else code)
        terms.append(names)
    return terms


def grouping_variable(design, sample_metadata):
    """Find the single grouping covariate of a design and its values.

    Parameters
    ----------
    design : str
        Design formula of the model fit, e.g. ``'~ condition'``.
    sample_metadata : DataFrame
        Per-sample table that holds the covariate.

    Returns
    -------
    (str, ndarray)
        The covariate name and its per-sample values, in metadata row order.

    Raises
    ------
    DesignParseError
        If the design has zero or several terms, an interaction term, or
        names a covariate that is absent, continuous or incomplete.
    """
    terms = design_terms(design)
    if len(terms) == 0:
        raise DesignParseError(f"design '{design}' has no grouping covariate")
    if len(terms) > 1:
        raise DesignParseError(
            f"design '{design}' has {len(terms)} terms; only a single grouping "
            "covariate is supported")
    if len(terms[0]) > 1:
        raise DesignParseError(
            f"design '{design}' uses an interaction term; only a single grouping "
            "covariate is supported")

    name = terms[0][0]
    if name not in sample_metadata.columns:
        raise DesignParseError(f"grouping covariate '{name}' not found in sample metadata")

    values = sample_metadata[name]
    if pd.api.types.is_float_dtype(values.dtype):
        raise DesignParseError(
            f"grouping covariate '{name}' is continuous; a categorical covariate is required")
    if values.isna().any():
        raise DesignParseError(f"grouping covariate '{name}' has missing values")

    return name, np.asarray(values)
