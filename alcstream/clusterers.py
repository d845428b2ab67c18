"""
Incremental clusterers for alcstream.

A clusterer is anything with:
    train(instance)                -- one update on an unlabeled instance
    reset()                        -- forget everything learned
    supports_micro_clustering()    -- True if it keeps a finer micro view
    macro_clustering()             -- Clustering or None
    micro_clustering()             -- Clustering or None
    evaluate_micro                 -- prefer the micro view at chunk boundaries
    measurements()                 -- MeasurementReport (optional)
"""

import numpy as np
from typing import List, Optional, Protocol

from sklearn.cluster import AgglomerativeClustering, Birch

from .clustering import Clustering, SphereCluster
from .measurements import Measurement, MeasurementReport
from .streaming import Instance


class Clusterer(Protocol):
    evaluate_micro: bool

    def train(self, instance: Instance) -> None:
        ...

    def reset(self) -> None:
        ...

    def supports_micro_clustering(self) -> bool:
        ...

    def macro_clustering(self) -> Optional[Clustering]:
        ...

    def micro_clustering(self) -> Optional[Clustering]:
        ...


class SphereClusterer:
    """
    Baseline clusterer: remembers every instance and reports one sphere
    covering all of them. Has no micro view.

    Useful as a control: every point lands in the same place, so selection
    degenerates to plain random sampling at the budget rate.
    """

    def __init__(self):
        self.evaluate_micro = False
        self._points: List[np.ndarray] = []

    def train(self, instance: Instance) -> None:
        self._points.append(instance.x)

    def reset(self) -> None:
        self._points = []

    def supports_micro_clustering(self) -> bool:
        return False

    def macro_clustering(self) -> Optional[Clustering]:
        if not self._points:
            return Clustering()
        return Clustering([SphereCluster.from_points(np.vstack(self._points))])

    def micro_clustering(self) -> Optional[Clustering]:
        return None

    def measurements(self) -> MeasurementReport:
        return MeasurementReport.of([])


class BirchClusterer:
    """
    CF-tree clusterer built on scikit-learn's Birch, fed one instance at a time.

    Micro view: one sphere per CF subcluster, with radius `threshold` and
    weight equal to the subcluster's sample count.
    Macro view: subclusters grouped into `n_clusters` by agglomerative
    clustering of their centroids. With n_clusters=None there is no macro
    view, and the learner derives one from the micro view instead.

    Args:
        threshold: Birch merge threshold (max subcluster radius).
        branching_factor: Birch branching factor.
        n_clusters: Number of macro clusters, or None.
        evaluate_micro: Use the micro view at chunk boundaries.
    """

    def __init__(
        self,
        threshold: float = 0.5,
        branching_factor: int = 50,
        n_clusters: Optional[int] = None,
        evaluate_micro: bool = False,
    ):
        if n_clusters is not None and n_clusters < 1:
            raise ValueError(f"n_clusters must be >= 1 or None, got {n_clusters}")
        self.threshold = threshold
        self.branching_factor = branching_factor
        self.n_clusters = n_clusters
        self.evaluate_micro = evaluate_micro
        self.n_seen = 0
        self.estimator = self._make_estimator()

    def _make_estimator(self) -> Birch:
        return Birch(
            threshold=self.threshold,
            branching_factor=self.branching_factor,
            n_clusters=None,
            compute_labels=False,
        )

    def train(self, instance: Instance) -> None:
        self.estimator.partial_fit(instance.x.reshape(1, -1))
        self.n_seen += 1

    def reset(self) -> None:
        self.estimator = self._make_estimator()
        self.n_seen = 0

    def supports_micro_clustering(self) -> bool:
        return True

    def _subclusters(self):
        """(centroid, n_samples) of every leaf subcluster, in tree order."""
        if self.n_seen == 0:
            return []
        result = []
        leaf = self.estimator.dummy_leaf_.next_leaf_
        while leaf is not None:
            for sub in leaf.subclusters_:
                result.append((np.asarray(sub.centroid_), sub.n_samples_))
            leaf = leaf.next_leaf_
        return result

    def micro_clustering(self) -> Optional[Clustering]:
        return Clustering([
            SphereCluster(center, self.threshold, weight=n)
            for center, n in self._subclusters()
        ])

    def macro_clustering(self) -> Optional[Clustering]:
        if self.n_clusters is None:
            return None

        subclusters = self._subclusters()
        if len(subclusters) <= self.n_clusters:
            return self.micro_clustering()

        centers = np.vstack([c for c, _ in subclusters])
        weights = np.array([n for _, n in subclusters], dtype=np.float64)
        if self.n_clusters == 1:
            labels = np.zeros(len(centers), dtype=int)
        else:
            labels = AgglomerativeClustering(n_clusters=self.n_clusters).fit_predict(centers)

        macro = []
        for label in np.unique(labels):
            members = labels == label
            center = np.average(centers[members], axis=0, weights=weights[members])
            radius = np.linalg.norm(centers[members] - center, axis=1).max() + self.threshold
            macro.append(SphereCluster(center, radius, weight=weights[members].sum()))
        return Clustering(macro)

    def measurements(self) -> MeasurementReport:
        return MeasurementReport.of([
            Measurement("clustered instances", self.n_seen),
            Measurement("micro clusters", len(self._subclusters())),
        ])


CLUSTERERS = {
    "sphere": SphereClusterer,
    "birch": BirchClusterer,
}


def make_clusterer(spec, **kwargs) -> Clusterer:
    """
    Resolve a clusterer from a registry tag or return a ready object as is.

    Args:
        spec: A key of CLUSTERERS (e.g. "birch") or a clusterer object.
        **kwargs: Constructor arguments when spec is a tag.

    Raises:
        ValueError: If the tag is unknown.
    """
    if not isinstance(spec, str):
        return spec
    if spec not in CLUSTERERS:
        raise ValueError(
            f"Unknown clusterer '{spec}'. Options: {sorted(CLUSTERERS)}"
        )
    return CLUSTERERS[spec](**kwargs)
