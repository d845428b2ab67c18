"""
Instances and stream factory helpers for alcstream.

An instance is one labeled example (x, y) where x is a 1-D np.ndarray of
features. A stream factory is a callable that returns an iterator of
Instance objects, so the same stream can be replayed after a reset.

The user defines how raw data is loaded (files, API, database) and optionally
provides a preprocess_fn to convert raw data into (X, y) numpy arrays.
"""

from dataclasses import dataclass
import numpy as np
from typing import Callable, List, Any, Optional, Tuple, Iterator


@dataclass(frozen=True, eq=False)
class Instance:
    """
    One stream example. Instances compare by identity.

    Attributes:
        x: np.ndarray (n_features,) feature vector.
        y: Class label, or None for an unlabeled instance.
    """

    x: np.ndarray
    y: Optional[Any] = None

    @property
    def has_label(self) -> bool:
        return self.y is not None


def make_instance(x, y=None) -> Instance:
    """Build an Instance, coercing x to a 1-D float array."""
    return Instance(np.asarray(x, dtype=np.float64).ravel(), y)


def strip_label(instance: Instance) -> Instance:
    """
    Returns an unlabeled copy of an instance.

    The feature vector is copied, so the labeled original is never touched
    by whatever consumes the unlabeled view (e.g. a clusterer).
    """
    return Instance(instance.x.copy(), None)


def generator_from_args(
    loader_func: Callable[[Any], Any],
    args_list: List[Any],
    preprocess_fn: Optional[Callable[[Any], Tuple[np.ndarray, np.ndarray]]] = None,
) -> Callable[[], Iterator[Instance]]:
    """
    Creates a stream factory by mapping a loader function over a list of arguments.

    Each loaded batch is flattened into single instances, so chunking is left
    to the learner.

    Args:
        loader_func: Callable that takes one argument and returns raw data.
                     Examples: np.load, pd.read_csv, custom API fetcher.
        args_list: List of arguments to map over (file paths, URLs, etc.).
                   Must be a list (not a generator) so the factory can be
                   called multiple times.
        preprocess_fn: Optional callable(raw_data) -> (X, y).
                       If None, loader_func must directly return (X, y) tuples.

    Returns:
        A callable that returns a fresh iterator of Instance objects each time
        it is called.

    Example:
        factory = generator_from_args(
            pd.read_csv,
            ["part_0.csv", "part_1.csv"],
            preprocess_fn=lambda df: (df.drop(columns="label").values, df["label"].values),
        )
        for inst in factory():
            learner.train(inst)
    """
    def factory():
        for arg in args_list:
            raw = loader_func(arg)
            X, y = preprocess_fn(raw) if preprocess_fn is not None else raw
            for xi, yi in zip(X, y):
                yield make_instance(xi, yi)

    return factory


def from_numpy(
    X: np.ndarray,
    y: np.ndarray,
) -> Callable[[], Iterator[Instance]]:
    """
    Factory that streams single instances from in-memory numpy arrays.
    Useful for testing or small datasets.

    Args:
        X: np.ndarray (n_samples, n_features) — full feature matrix.
        y: np.ndarray (n_samples,) — full label array.

    Returns:
        A callable that returns a fresh iterator of Instance objects.

    Example:
        factory = from_numpy(X_train, y_train)
        learner.train_many(factory())
    """
    if len(X) != len(y):
        raise ValueError(f"X and y lengths differ: {len(X)} != {len(y)}")

    def factory():
        for i in range(len(X)):
            yield make_instance(X[i], y[i])

    return factory
