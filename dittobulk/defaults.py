"""Default parameter values shared across dittobulk."""

# Number of most variable genes used for the automatic PCA.
N_GENES = 2500

# Percent of samples per condition that must have a nonzero count.
PERCENT_SAMPLES = 75

REDUCTION_NAME = 'pca'

MIN_DISPERSION = 1e-8
