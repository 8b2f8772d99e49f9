"""
Exceptions raised by dittobulk.

Each error also derives from the builtin it specializes, so callers that
already catch ``ValueError`` / ``KeyError`` keep working.
"""


class DittoBulkError(Exception):
    """Base class for all dittobulk errors."""


class MissingDataError(DittoBulkError, ValueError):
    """No count matrix could be obtained."""


class DesignParseError(DittoBulkError, ValueError):
    """The design formula does not name exactly one usable grouping covariate."""


class EmptySelectionError(DittoBulkError, ValueError):
    """No gene is left to run the principal component analysis on."""


class ShapeMismatchError(DittoBulkError, ValueError):
    """Counts, expression and metadata disagree on genes or samples."""


class UnknownFeatureError(DittoBulkError, KeyError):
    """Requested genes are not rows of the expression matrix."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(
            f"Genes not found in expression data: {', '.join(map(str, self.missing))}"
        )

    def __str__(self):
        return self.args[0]


class ConstantFeatureError(DittoBulkError, ValueError):
    """Requested genes have the same expression in every sample."""

    def __init__(self, features):
        self.features = list(features)
        super().__init__(
            "Genes with constant expression cannot be scaled to unit variance: "
            f"{', '.join(map(str, self.features))}"
        )
