"""Shared fixtures for dittobulk tests."""

import numpy as np
import pandas as pd
import pytest


class StubFit:
    """Model fit with a fixed expression matrix, recording transform calls."""

    def __init__(self, counts, sample_metadata, design='~ condition', expression=None):
        self.counts = counts
        self.sample_metadata = sample_metadata
        self.design = design
        self.expression = expression
        self.blind_calls = []

    def transform(self, blind=False):
        self.blind_calls.append(blind)
        if self.expression is not None:
            return self.expression.copy()
        return np.log2(self.counts + 1)


@pytest.fixture
def rng():
    """Seeded random number generator for reproducibility."""
    return np.random.RandomState(42)


@pytest.fixture
def nb_counts(rng):
    """Negative binomial counts: 200 genes x 6 samples, dispersion 0.1.

    Genes 0-19 are lowly expressed, genes 20-29 are up 4x in condition B.
    """
    mu = np.exp(rng.uniform(np.log(20), np.log(2000), size=200))
    mu[:20] = 0.5
    means = np.tile(mu[:, None], (1, 6))
    means[20:30, 3:] *= 4
    size = 10.0
    counts = rng.negative_binomial(size, size / (size + means)).astype(np.float64)
    # keep median-of-ratios defined
    counts[20:, :] = np.maximum(counts[20:, :], 1)
    return pd.DataFrame(counts,
                        index=[f"gene{i}" for i in range(200)],
                        columns=[f"S{j + 1}" for j in range(6)])


@pytest.fixture
def sample_info():
    """Condition and batch for 6 samples (3+3)."""
    return pd.DataFrame({
        'condition': ['A', 'A', 'A', 'B', 'B', 'B'],
        'batch': ['x', 'y', 'x', 'y', 'x', 'y'],
    }, index=[f"S{j + 1}" for j in range(6)])


@pytest.fixture
def de_fit(nb_counts, sample_info):
    """DEFit with a single-factor design."""
    import dittobulk as db
    return db.fit_model(nb_counts, sample_info, '~ condition')


@pytest.fixture
def rnaseq(de_fit):
    """RNAseq object without embeddings."""
    import dittobulk as db
    return db.import_fit(de_fit)


@pytest.fixture
def toy_counts():
    """4 genes x 6 samples with known expression patterns.

    g_all: expressed everywhere
    g_two_thirds_b: 3/3 in A, 2/3 in B
    g_half: 3/3 in A, 1/3 in B
    g_none_b: 3/3 in A, 0/3 in B
    """
    return pd.DataFrame(
        [[5, 8, 6, 9, 7, 4],
         [3, 2, 4, 5, 0, 6],
         [1, 2, 3, 0, 0, 4],
         [9, 9, 9, 0, 0, 0]],
        index=['g_all', 'g_two_thirds_b', 'g_half', 'g_none_b'],
        columns=[f"S{j + 1}" for j in range(6)],
        dtype=np.float64)


@pytest.fixture
def toy_fit(toy_counts, sample_info):
    """StubFit over toy_counts with log2(count + 1) expression."""
    return StubFit(toy_counts, sample_info)


@pytest.fixture
def make_stub_fit():
    """Factory for StubFit model fits."""
    return StubFit
