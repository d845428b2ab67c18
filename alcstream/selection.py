"""
Budgeted instance selection for alcstream.

After a chunk has been split into cluster buckets, the selector decides which
instances are worth a training step:

    buckets -> cluster_weights -> train_budgeted -> classifier.train(...)

Each bucket gets a share of the labeling budget proportional to its size,
scaled by a per-bucket weight. With cohesion weighting enabled, loose
clusters (large mean pairwise distance) keep more of their share than tight
ones. The outside bucket is always at full weight.
"""

import numpy as np
from typing import List

from .streaming import Instance, strip_label


# ---------------------------------------------------------------------------
# Cohesion scoring
# ---------------------------------------------------------------------------


def cohesion_distance(instances: List[Instance]) -> float:
    """
    Mean Euclidean distance over all distinct unordered pairs of the
    instances' unlabeled feature vectors.

    Args:
        instances: Members of one bucket.

    Returns:
        Mean pairwise distance, 0.0 when there are fewer than two instances.
    """
    n = len(instances)
    if n < 2:
        return 0.0

    X = np.vstack([strip_label(inst).x for inst in instances])
    diffs = X[:, None, :] - X[None, :, :]
    dists = np.sqrt((diffs ** 2).sum(axis=-1))

    # Upper triangle (i < j) holds each unordered pair exactly once
    iu = np.triu_indices(n, k=1)
    return float(dists[iu].sum() / len(iu[0]))


def cohesion_distances(buckets: List[List[Instance]]) -> List[float]:
    """Cohesion distance of every real cluster bucket (all but the last)."""
    return [cohesion_distance(bucket) for bucket in buckets[:-1]]


def normalize_distances(distances: List[float]) -> List[float]:
    """
    Scale distances into [0, 1] by dividing by the largest one.
    All-zero (or empty) input stays at 0.0.
    """
    if not distances:
        return []
    max_distance = max(distances)
    if max_distance <= 0:
        return [0.0 for _ in distances]
    return [d / max_distance for d in distances]


def equal_weights(n: int) -> List[float]:
    return [1.0] * n


def cluster_weights(buckets: List[List[Instance]], compute_distances: bool = False) -> List[float]:
    """
    Weight vector parallel to `buckets`.

    Args:
        buckets: k + 1 buckets, the last one being the outside bucket.
        compute_distances: If True, weight real clusters by normalized
                           cohesion distance. If False, every weight is 1.0.

    Returns:
        List of k + 1 weights. The outside bucket always gets 1.0.
    """
    if not compute_distances:
        return equal_weights(len(buckets))
    weights = normalize_distances(cohesion_distances(buckets))
    weights.append(1.0)
    return weights


# ---------------------------------------------------------------------------
# Budgeted training
# ---------------------------------------------------------------------------


def bucket_budget(bucket_size: int, budget: float, weight: float) -> int:
    """
    Number of instances to train on from one bucket:
    floor(bucket_size * budget * weight), clamped to [0, bucket_size].
    The product is rounded to 9 decimals first, so 100 * 0.29 gives 29
    rather than 28.
    """
    if bucket_size <= 0:
        return 0
    count = int(np.floor(round(bucket_size * budget * weight, 9)))
    return min(max(count, 0), bucket_size)


def train_budgeted(
    classifier,
    buckets: List[List[Instance]],
    weights: List[float],
    budget: float,
    rng: np.random.Generator,
    include_outside: bool = False,
) -> List[List[Instance]]:
    """
    Train the classifier on a random, budgeted subset of every bucket.

    Buckets are processed in ascending order. Each one is shuffled with `rng`
    and the classifier is trained, in order, on the first
    bucket_budget(len(bucket), budget, weight) instances. The rest of the
    bucket is dropped. The outside bucket (last) is only used when
    `include_outside` is set.

    Args:
        classifier: Anything with train(instance).
        buckets: k + 1 buckets from assign_points.
        weights: Parallel weight vector from cluster_weights.
        budget: Fraction of each bucket that may be spent, in [0, 1].
        rng: Random source for the shuffles.
        include_outside: Train on points outside every cluster too.

    Returns:
        Per bucket, the instances trained on (in training order). Skipped
        buckets are reported as empty lists.
    """
    if len(weights) != len(buckets):
        raise ValueError(
            f"Got {len(weights)} weights for {len(buckets)} buckets."
        )

    outside = len(buckets) - 1
    trained = [[] for _ in buckets]

    for i, (bucket, weight) in enumerate(zip(buckets, weights)):
        if i == outside and not include_outside:
            break

        order = rng.permutation(len(bucket))
        shuffled = [bucket[j] for j in order]

        n_train = bucket_budget(len(shuffled), budget, weight)
        for inst in shuffled[:n_train]:
            classifier.train(inst)
        trained[i] = shuffled[:n_train]

    return trained
