"""
Configuration for ALCClassifier.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ALCConfig:
    """
    Settings of one active-learning-with-clustering learner.

    Registry learners are incremental and must know every class up front, so
    a tagged base_learner requires base_learner_args["classes"].

    Args:
        base_learner: Registry tag from alcstream.classifiers.CLASSIFIERS, or
                      a classifier object used as prototype. Default "naive_bayes".
        base_learner_args: Constructor kwargs when base_learner is a tag
                           (e.g. {"classes": [0, 1, 2]}).
        clusterer: Registry tag from alcstream.clusterers.CLUSTERERS, or a
                   clusterer object used as prototype. Default "birch".
        clusterer_args: Constructor kwargs when clusterer is a tag.
        budget: Fraction of every cluster's points used for training, in [0, 1].
        chunk_size: Number of instances per chunk (>= 0).
        include_outside: Also train on points outside every cluster.
        compute_distances: Weight the budget by intra-cluster cohesion distance.
        seed: Seed of the shuffle random source. None draws fresh entropy.
    """

    base_learner: Any = "naive_bayes"
    base_learner_args: Dict[str, Any] = field(default_factory=dict)
    clusterer: Any = "birch"
    clusterer_args: Dict[str, Any] = field(default_factory=dict)
    budget: float = 0.3
    chunk_size: int = 1000
    include_outside: bool = False
    compute_distances: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        if not 0.0 <= self.budget <= 1.0:
            raise ValueError(f"budget must be in [0, 1], got {self.budget}")
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int):
            raise ValueError(f"chunk_size must be an integer, got {self.chunk_size!r}")
        if self.chunk_size < 0:
            raise ValueError(f"chunk_size must be >= 0, got {self.chunk_size}")
        if isinstance(self.base_learner, str) and "classes" not in self.base_learner_args:
            raise ValueError(
                f"base_learner '{self.base_learner}' needs the stream's class labels: "
                f"pass base_learner_args={{'classes': [...]}}"
            )
