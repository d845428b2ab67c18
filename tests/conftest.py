"""
Pytest configuration and shared fixtures for alcstream tests.

Provides:
- Labeled instances on a small grid and two separated blobs
- Recording / stub sub-models
"""

import numpy as np
import pytest

from alcstream.streaming import make_instance

from .stubs import RecordingClassifier, StubClusterer


@pytest.fixture
def grid_instances():
    """Ten labeled instances at (i, 0), label i % 2."""
    return [make_instance([float(i), 0.0], i % 2) for i in range(10)]


@pytest.fixture
def blobs():
    """Two tight, well separated 2-D blobs: label 0 near (0, 0), label 1 near (10, 10)."""
    rng = np.random.default_rng(42)
    X0 = rng.normal(0.0, 0.05, size=(100, 2))
    X1 = rng.normal(10.0, 0.05, size=(100, 2))
    X = np.vstack([X0, X1])
    y = np.array([0] * 100 + [1] * 100)
    order = rng.permutation(len(X))
    return X[order], y[order]


@pytest.fixture
def recording_classifier():
    return RecordingClassifier()


@pytest.fixture
def stub_clusterer():
    return StubClusterer()
