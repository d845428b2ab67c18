"""
alcstream — Active Learning with Clustering for data streams.

Classify an evolving stream while paying for only a fraction of the labels.
Instances are buffered into chunks and clustered incrementally; at every
chunk boundary the labeling budget is spread over the clusters, optionally
favouring loose clusters, and only the selected instances reach the base
classifier.

Quick start:
    from alcstream import ALCClassifier
    from alcstream.streaming import from_numpy

    learner = ALCClassifier(
        base_learner="naive_bayes",
        base_learner_args={"classes": [0, 1]},
        clusterer="birch",
        budget=0.3,
        chunk_size=500,
        seed=0,
    )
    learner.train_many(from_numpy(X, y)())
    scores = learner.predict(instance)
"""

__version__ = "0.1.0"

from .core import ALCClassifier
from .config import ALCConfig
from .streaming import Instance, make_instance, strip_label, from_numpy, generator_from_args
from .clustering import (
    Clustering,
    SphereCluster,
    ClusteringUnavailableError,
    extract_clustering,
    assign_points,
    merge_micro_clusters,
)
from .selection import (
    cohesion_distance,
    cluster_weights,
    bucket_budget,
    train_budgeted,
)
from .classifiers import (
    NaiveBayesClassifier,
    SGDLinearClassifier,
    TorchClassifier,
    auto_detect_device,
)
from .clusterers import SphereClusterer, BirchClusterer
from .measurements import Measurement, MeasurementReport
from .tracking import ChunkTracker
from .evaluation import evaluate_prequential, make_eval_fn
