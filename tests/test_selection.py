"""
Tests for cohesion weighting and budgeted training.
"""

import numpy as np
import pytest

from alcstream.selection import (
    bucket_budget,
    cluster_weights,
    cohesion_distance,
    cohesion_distances,
    normalize_distances,
    train_budgeted,
)
from alcstream.streaming import make_instance

from .stubs import RecordingClassifier


def _instances(points, label=0):
    return [make_instance(p, label) for p in points]


# Cohesion

def test_cohesion_distance_is_mean_pairwise_distance():
    # pairwise distances 3, 4, 5
    bucket = _instances([[0, 0], [3, 0], [0, 4]])
    assert cohesion_distance(bucket) == pytest.approx(4.0)


def test_cohesion_distance_ignores_labels():
    bucket = [make_instance([0, 0], 0), make_instance([0, 2], 1)]
    assert cohesion_distance(bucket) == pytest.approx(2.0)


@pytest.mark.parametrize("size", [0, 1])
def test_cohesion_distance_of_tiny_bucket_is_zero(size):
    bucket = _instances([[1.0, 1.0]] * size)
    distance = cohesion_distance(bucket)
    assert distance == 0.0
    assert not np.isnan(distance)


def test_cohesion_distances_skip_outside_bucket():
    buckets = [
        _instances([[0, 0], [2, 0]]),
        _instances([[5, 5]]),
        _instances([[0, 0], [100, 0]]),
    ]
    assert cohesion_distances(buckets) == [pytest.approx(2.0), 0.0]


def test_normalize_distances():
    assert normalize_distances([1.0, 4.0, 2.0]) == [0.25, 1.0, 0.5]
    assert normalize_distances([0.0, 0.0]) == [0.0, 0.0]
    assert normalize_distances([]) == []


def test_cluster_weights_disabled_are_all_one():
    buckets = [_instances([[0, 0], [9, 9]]), [], _instances([[1, 1]])]
    assert cluster_weights(buckets, compute_distances=False) == [1.0, 1.0, 1.0]


def test_cluster_weights_enabled():
    buckets = [
        _instances([[0, 0], [1, 0]]),
        _instances([[0, 0], [4, 0]]),
        _instances([[7, 7]]),
        _instances([[0, 0], [50, 0]]),
    ]
    weights = cluster_weights(buckets, compute_distances=True)

    assert len(weights) == len(buckets)
    assert weights == [pytest.approx(0.25), pytest.approx(1.0), 0.0, 1.0]
    assert all(0.0 <= w <= 1.0 for w in weights)


def test_cluster_weights_enabled_without_clusters():
    buckets = [_instances([[0, 0], [1, 1]])]
    assert cluster_weights(buckets, compute_distances=True) == [1.0]


# bucket_budget

@pytest.mark.parametrize(
    "size, budget, weight, expected",
    [
        (3, 0.5, 1.0, 1),
        (1, 0.5, 1.0, 0),
        (10, 0.3, 1.0, 3),
        (10, 1.0, 1.0, 10),
        (10, 0.5, 0.5, 2),
        (10, 0.0, 1.0, 0),
        (0, 1.0, 1.0, 0),
        (4, 1.0, 0.0, 0),
        (100, 0.29, 1.0, 29),
        (100, 0.57, 1.0, 57),
    ],
)
def test_bucket_budget_floors(size, budget, weight, expected):
    assert bucket_budget(size, budget, weight) == expected


def test_bucket_budget_is_clamped():
    assert bucket_budget(5, 1.0, 3.0) == 5
    assert bucket_budget(5, 1.0, -1.0) == 0


# train_budgeted

def test_train_budgeted_scenario():
    a, b, c, d = _instances([[0, 0], [1, 0], [2, 0], [9, 9]])
    buckets = [[a, b, c], [], [d]]
    clf = RecordingClassifier()

    trained = train_budgeted(clf, buckets, [1.0, 1.0, 1.0], 0.5,
                             np.random.default_rng(0), include_outside=True)

    assert len(clf.calls) == 1
    assert clf.calls[0] in (a, b, c)
    assert [len(t) for t in trained] == [1, 0, 0]


def test_train_budgeted_skips_outside_bucket():
    inside = _instances([[0, 0], [1, 0]])
    outside = _instances([[5, 5], [6, 6], [7, 7]])
    clf = RecordingClassifier()

    trained = train_budgeted(clf, [inside, outside], [1.0, 1.0], 1.0,
                             np.random.default_rng(0), include_outside=False)

    assert len(clf.calls) == 2
    assert all(any(inst is o for o in inside) for inst in clf.calls)
    assert trained[1] == []


def test_train_budgeted_uses_outside_bucket_when_enabled():
    outside = _instances([[5, 5], [6, 6], [7, 7]])
    clf = RecordingClassifier()
    train_budgeted(clf, [[], outside], [1.0, 1.0], 1.0,
                   np.random.default_rng(0), include_outside=True)
    assert len(clf.calls) == 3


def test_train_budgeted_respects_weights():
    buckets = [_instances([[i, 0] for i in range(10)]), _instances([[i, 1] for i in range(10)]), []]
    clf = RecordingClassifier()
    trained = train_budgeted(clf, buckets, [0.2, 1.0, 1.0], 0.5, np.random.default_rng(1))
    assert [len(t) for t in trained] == [1, 5, 0]
    assert len(clf.calls) == 6


def test_train_budgeted_trains_in_shuffled_order_without_repeats():
    bucket = _instances([[i, 0] for i in range(20)])
    clf = RecordingClassifier()
    train_budgeted(clf, [bucket, []], [1.0, 1.0], 1.0, np.random.default_rng(3))

    xs = [inst.x[0] for inst in clf.calls]
    assert sorted(xs) == list(range(20))
    assert xs != list(range(20))


def test_train_budgeted_is_reproducible_with_same_seed():
    bucket = _instances([[i, 0] for i in range(30)])

    runs = []
    for _ in range(2):
        clf = RecordingClassifier()
        train_budgeted(clf, [bucket, []], [1.0, 1.0], 0.3, np.random.default_rng(11))
        runs.append([inst.x[0] for inst in clf.calls])

    assert runs[0] == runs[1]
    assert len(runs[0]) == 9


def test_train_budgeted_keeps_original_labels():
    bucket = [make_instance([i, 0], f"label-{i}") for i in range(5)]
    clf = RecordingClassifier()
    train_budgeted(clf, [bucket, []], [1.0, 1.0], 1.0, np.random.default_rng(0))
    assert {inst.y for inst in clf.calls} == {f"label-{i}" for i in range(5)}


def test_train_budgeted_rejects_mismatched_weights():
    with pytest.raises(ValueError):
        train_budgeted(RecordingClassifier(), [[], []], [1.0], 0.5, np.random.default_rng(0))
