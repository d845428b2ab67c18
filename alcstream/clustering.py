"""
Clustering snapshots and chunk-to-cluster assignment for alcstream.

Per chunk boundary:
    clusterer -> extract_clustering -> assign_points -> buckets

A clustering snapshot is an ordered list of clusters. The only thing the
pipeline asks of a cluster is inclusion_probability(x) in [0, 1], so any
object with that method can be used. SphereCluster is the concrete cluster
produced by the bundled clusterers.
"""

import logging
import warnings
import numpy as np
from collections import defaultdict
from typing import List, Protocol, Sequence, Iterator

from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning

from .streaming import Instance, strip_label

logger = logging.getLogger(__name__)

INCLUSION_THRESHOLD = 0.8


class ClusteringUnavailableError(RuntimeError):
    """The clusterer could not produce a clustering for the current chunk."""


class Cluster(Protocol):
    def inclusion_probability(self, x: np.ndarray) -> float:
        ...


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.sqrt(((a - b) ** 2).sum()))


class SphereCluster:
    """
    Hard spherical cluster: a point belongs (probability 1.0) when it lies
    within `radius` of `center`, and does not (0.0) otherwise.

    Args:
        center: (n_features,) cluster centre.
        radius: Non-negative radius.
        weight: Number of points (or total weight) summarized by the cluster.
    """

    def __init__(self, center, radius: float, weight: float = 1.0):
        self.center = np.asarray(center, dtype=np.float64)
        self.radius = float(radius)
        self.weight = float(weight)

    @classmethod
    def from_points(cls, points: np.ndarray) -> "SphereCluster":
        """Smallest sphere around the points' mean that covers all of them."""
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        center = points.mean(axis=0)
        radius = max(_distance(p, center) for p in points)
        return cls(center, radius, weight=len(points))

    def inclusion_probability(self, x: np.ndarray) -> float:
        distance = _distance(np.asarray(x, dtype=np.float64), self.center)
        return 1.0 if distance <= self.radius else 0.0

    def __repr__(self):
        return (
            f"SphereCluster(center={self.center.tolist()}, "
            f"radius={self.radius:.4g}, weight={self.weight:g})"
        )


class Clustering:
    """Ordered, immutable sequence of clusters (one snapshot)."""

    def __init__(self, clusters: Sequence[Cluster] = ()):
        self._clusters = list(clusters)

    def __len__(self) -> int:
        return len(self._clusters)

    def __getitem__(self, i: int) -> Cluster:
        return self._clusters[i]

    def __iter__(self) -> Iterator[Cluster]:
        return iter(self._clusters)

    def __repr__(self):
        return f"Clustering({self._clusters!r})"


# ---------------------------------------------------------------------------
# Macro clustering derived from a micro clustering
# ---------------------------------------------------------------------------


def _ground_truth_centers(chunk: List[Instance]) -> np.ndarray:
    """One centre per class label present in the chunk (labels in sorted order)."""
    groups = defaultdict(list)
    for inst in chunk:
        groups[inst.y].append(inst.x)
    labels = sorted(groups.keys(), key=lambda x: str(x))
    return np.vstack([np.mean(groups[label], axis=0) for label in labels])


def merge_micro_clusters(chunk: List[Instance], micro: Clustering) -> Clustering:
    """
    Gaussian-means style merge of micro clusters into a macro clustering.

    The chunk's labeled points act as ground truth: one seed centre per class.
    k-means (k = number of classes) is run over the micro-cluster centres,
    weighted by micro-cluster weight and seeded with the class centres, and
    every group of micro clusters is merged into one sphere covering all of
    its members.

    Args:
        chunk: Labeled instances of the current chunk.
        micro: Micro clustering. Only clusters with a `center` take part.

    Returns:
        Clustering of merged SphereClusters. Empty when there are no
        labeled points or fewer usable micro clusters than classes.
    """
    spheres = [c for c in micro if hasattr(c, "center")]
    if len(spheres) < len(micro):
        logger.warning(
            "Ignoring %d micro clusters without a centre during merge",
            len(micro) - len(spheres),
        )

    labeled = [inst for inst in chunk if inst.has_label]
    if not labeled or not spheres:
        return Clustering()

    seeds = _ground_truth_centers(labeled)
    k = len(seeds)
    if len(spheres) < k:
        return Clustering()

    centers = np.vstack([s.center for s in spheres])
    weights = np.array([getattr(s, "weight", 1.0) for s in spheres])

    with warnings.catch_warnings():
        # Identical micro centres are expected on tiny chunks
        warnings.simplefilter("ignore", category=ConvergenceWarning)
        kmeans = KMeans(n_clusters=k, init=seeds, n_init=1)
        assignment = kmeans.fit_predict(centers, sample_weight=weights)

    merged = []
    for group in range(k):
        members = np.where(assignment == group)[0]
        if len(members) == 0:
            continue
        group_weights = weights[members]
        center = np.average(centers[members], axis=0, weights=group_weights)
        radius = max(
            np.linalg.norm(spheres[i].center - center) + getattr(spheres[i], "radius", 0.0)
            for i in members
        )
        merged.append(SphereCluster(center, radius, weight=group_weights.sum()))

    return Clustering(merged)


# ---------------------------------------------------------------------------
# Snapshot extraction and point assignment
# ---------------------------------------------------------------------------


def extract_clustering(clusterer, chunk: List[Instance]) -> Clustering:
    """
    Read the clustering to use for this chunk from the clusterer.

    Clusterers without micro support must provide a macro clustering.
    Clusterers with micro support provide both views; a missing macro view
    is derived from the micro view and the chunk via merge_micro_clusters.
    `clusterer.evaluate_micro` then decides which view is returned.

    Raises:
        ClusteringUnavailableError: If no clustering could be obtained.
    """
    macro = clusterer.macro_clustering()
    clustering = macro

    if clusterer.supports_micro_clustering():
        micro = clusterer.micro_clustering()
        if macro is None and micro is not None:
            macro = merge_micro_clusters(chunk, micro)
        clustering = micro if clusterer.evaluate_micro else macro

    if clustering is None:
        raise ClusteringUnavailableError(
            f"{type(clusterer).__name__} returned no clustering "
            f"(micro support: {clusterer.supports_micro_clustering()})"
        )
    return clustering


def assign_points(
    clustering: Clustering,
    chunk: List[Instance],
    threshold: float = INCLUSION_THRESHOLD,
) -> List[List[Instance]]:
    """
    Partition a chunk into len(clustering) + 1 buckets.

    Each instance goes to the first cluster among 0 .. k-2 whose inclusion
    probability for the unlabeled point exceeds `threshold`. The last cluster
    (k-1) is never tested, so its points fall into the outside bucket (k)
    together with every point no cluster claims.

    Args:
        clustering: Snapshot with k clusters.
        chunk: Labeled instances.
        threshold: Inclusion probability a cluster must exceed.

    Returns:
        List of k + 1 lists of the original (labeled) instances.
    """
    k = len(clustering)
    buckets = [[] for _ in range(k + 1)]

    for inst in chunk:
        x = strip_label(inst).x
        target = k
        for i in range(k - 1):
            if clustering[i].inclusion_probability(x) > threshold:
                target = i
                break
        buckets[target].append(inst)

    return buckets
