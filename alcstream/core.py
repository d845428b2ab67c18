"""
ALCClassifier — the main engine of alcstream.

Active learning with clustering over a data stream:
    instance → cluster (unlabeled) + buffer → chunk full → cluster snapshot
    → assign points to clusters → weight clusters → train on budget → repeat

Only a budgeted fraction of every chunk reaches the base classifier; the
clustering decides how that budget is spread over the feature space.
"""

import copy
import logging
import numpy as np
from typing import Optional, Callable, Dict, Any, Iterable, List

from .classifiers import make_classifier
from .clusterers import make_clusterer
from .clustering import extract_clustering, assign_points
from .config import ALCConfig
from .measurements import Measurement, MeasurementReport, aggregate_measurements
from .selection import cluster_weights, train_budgeted
from .streaming import Instance, strip_label

logger = logging.getLogger(__name__)


class ALCClassifier:
    """
    Budgeted active-learning classifier for evolving data streams.

    Pipeline per instance:
        1. Append the labeled instance to the current chunk.
        2. Train the clusterer on the unlabeled copy.
        3. When the chunk holds chunk_size instances:
           a. Read a clustering snapshot (micro or macro view).
           b. Split the chunk into one bucket per cluster plus an outside bucket.
           c. Weight buckets (uniform, or by cohesion distance).
           d. Shuffle every bucket and train the base classifier on
              floor(size * budget * weight) of its instances.
           e. Clear the chunk.

    Prediction is always delegated to the base classifier, whatever the
    chunk state.

    Args:
        config: ALCConfig. If None, one is built from **kwargs.
        on_chunk_end: Optional callback after each processed chunk.
                      Signature: (chunk_index, report) -> None, where report
                      has "n_clusters", "buckets", "weights" and "trained".
        **kwargs: ALCConfig fields (budget, chunk_size, ...) when config is None.

    Example:
        from alcstream import ALCClassifier
        from alcstream.streaming import from_numpy

        learner = ALCClassifier(
            base_learner="naive_bayes",
            base_learner_args={"classes": [0, 1, 2]},
            clusterer="birch",
            clusterer_args={"threshold": 0.8},
            budget=0.3,
            chunk_size=500,
            compute_distances=True,
            seed=7,
        )
        learner.train_many(from_numpy(X_train, y_train)())
        scores = learner.predict(instance)
    """

    def __init__(
        self,
        config: Optional[ALCConfig] = None,
        on_chunk_end: Optional[Callable[[int, Dict[str, Any]], None]] = None,
        **kwargs,
    ):
        if config is None:
            config = ALCConfig(**kwargs)
        elif kwargs:
            raise ValueError("Pass either config or keyword settings, not both.")
        self.config = config
        self.on_chunk_end = on_chunk_end

        # Prototypes; reset() hands out fresh copies
        self._classifier_prototype = make_classifier(
            config.base_learner, **config.base_learner_args
        )
        self._clusterer_prototype = make_clusterer(
            config.clusterer, **config.clusterer_args
        )

        self.classifier = None
        self.clusterer = None
        self.rng = None
        self.n_chunks_processed = 0
        self._chunk: List[Instance] = []

        self.reset()

    def reset(self):
        """Fresh classifier, clusterer and random source; empty chunk."""
        self.classifier = copy.deepcopy(self._classifier_prototype)
        self.classifier.reset()
        self.clusterer = copy.deepcopy(self._clusterer_prototype)
        self.clusterer.reset()
        self.rng = np.random.default_rng(self.config.seed)
        self.n_chunks_processed = 0
        self._chunk = []

    @property
    def chunk(self) -> tuple:
        """Instances buffered since the last chunk boundary."""
        return tuple(self._chunk)

    def train(self, instance: Instance):
        """
        Feed one labeled instance from the stream.

        Raises:
            ClusteringUnavailableError: If the clusterer yields no clustering
                                        at a chunk boundary. The chunk is
                                        dropped, so the learner stays usable.
        """
        self._chunk.append(instance)
        self.clusterer.train(strip_label(instance))

        if len(self._chunk) >= self.config.chunk_size:
            try:
                self._process_chunk()
            finally:
                self._chunk = []

    def train_many(self, instances: Iterable[Instance]):
        for instance in instances:
            self.train(instance)

    def _process_chunk(self):
        clustering = extract_clustering(self.clusterer, self._chunk)
        buckets = assign_points(clustering, self._chunk)
        weights = cluster_weights(buckets, self.config.compute_distances)
        trained = train_budgeted(
            self.classifier,
            buckets,
            weights,
            self.config.budget,
            self.rng,
            include_outside=self.config.include_outside,
        )

        logger.debug(
            "Chunk %d: %d clusters, bucket sizes %s, trained %s",
            self.n_chunks_processed,
            len(clustering),
            [len(b) for b in buckets],
            [len(t) for t in trained],
        )

        if self.on_chunk_end is not None:
            report = {
                "n_clusters": len(clustering),
                "buckets": buckets,
                "weights": weights,
                "trained": trained,
            }
            self.on_chunk_end(self.n_chunks_processed, report)

        self.n_chunks_processed += 1

    def predict(self, instance: Instance) -> np.ndarray:
        """Class scores from the base classifier."""
        return self.classifier.predict(instance)

    def describe(self) -> str:
        """Textual description of the base classifier."""
        describe = getattr(self.classifier, "describe", None)
        if describe is None:
            return repr(self.classifier)
        return describe()

    def measurements(self) -> List[Measurement]:
        """
        Measurements of the classifier, then of the clusterer.
        Sub-models without measurement support contribute nothing.
        """
        return aggregate_measurements(
            _report_of(model) for model in (self.classifier, self.clusterer)
        )


def _report_of(model) -> MeasurementReport:
    measurements = getattr(model, "measurements", None)
    if measurements is None:
        return MeasurementReport.unsupported()
    try:
        return measurements()
    except NotImplementedError:
        logger.debug("%s does not support measurements", type(model).__name__)
        return MeasurementReport.unsupported()
