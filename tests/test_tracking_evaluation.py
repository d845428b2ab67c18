"""
Tests for chunk tracking and the evaluation helpers.
"""

import numpy as np
import pytest

from alcstream import ALCClassifier, ChunkTracker
from alcstream.clusterers import SphereClusterer
from alcstream.clustering import Clustering
from alcstream.evaluation import evaluate_prequential, make_eval_fn, predict_label
from alcstream.measurements import Measurement, MeasurementReport, aggregate_measurements
from alcstream.streaming import from_numpy, make_instance

from .stubs import ConstantCluster, MemberCluster, RecordingClassifier, StubClusterer


# Measurements

def test_aggregate_measurements_skips_unsupported():
    reports = [
        MeasurementReport.of([Measurement("a", 1), Measurement("b", 2)]),
        MeasurementReport.unsupported(),
        MeasurementReport.of([Measurement("c", 3)]),
    ]
    assert [m.name for m in aggregate_measurements(reports)] == ["a", "b", "c"]


# ChunkTracker

def test_tracker_records_bucket_bookkeeping(grid_instances):
    tracker = ChunkTracker()
    snapshot = Clustering([MemberCluster([[0, 0], [1, 0], [5, 0], [6, 0]]), ConstantCluster(1.0)])
    learner = ALCClassifier(
        base_learner=RecordingClassifier(),
        clusterer=StubClusterer(macro=snapshot),
        budget=0.5,
        chunk_size=5,
        include_outside=True,
        on_chunk_end=tracker.record_report,
    )
    learner.train_many(grid_instances)

    assert len(tracker) == 2
    first = tracker.history[0]
    assert first["chunk"] == 0
    assert first["bucket_sizes"].tolist() == [2, 0, 3]
    assert first["trained"].tolist() == [1, 0, 1]
    assert first["extra"] == {"n_clusters": 2}

    assert tracker.total_seen() == 10
    assert tracker.total_trained() == len(learner.classifier.calls) == 4
    assert tracker.label_cost() == pytest.approx(0.4)


def test_tracker_empty():
    tracker = ChunkTracker()
    assert tracker.total_trained() == 0
    assert tracker.label_cost() == 0.0


def test_tracker_to_dataframe():
    pytest.importorskip("pandas")
    tracker = ChunkTracker()
    tracker.record(0, bucket_sizes=[3, 1], weights=[0.5, 1.0], trained_counts=[1, 0])
    tracker.record(1, bucket_sizes=[2, 2], weights=[1.0, 1.0], trained_counts=[1, 1])

    df = tracker.to_dataframe()
    assert len(df) == 4
    assert list(df.columns) == ["chunk", "bucket", "outside", "size", "weight", "trained"]
    assert df["outside"].tolist() == [False, True, False, True]
    assert df["trained"].sum() == 3


# Evaluation

def _blob_learner(chunk_size=50):
    return ALCClassifier(
        base_learner="naive_bayes",
        base_learner_args={"classes": [0, 1]},
        clusterer=SphereClusterer(),
        budget=1.0,
        chunk_size=chunk_size,
        include_outside=True,
        seed=0,
    )


def test_predict_label():
    learner = ALCClassifier(
        base_learner=RecordingClassifier(n_classes=3),
        clusterer=StubClusterer(macro=Clustering()),
    )
    assert predict_label(learner, make_instance([0.0]), ["x", "y", "z"]) == "x"


def test_evaluate_prequential_on_blobs(blobs):
    X, y = blobs
    result = evaluate_prequential(
        _blob_learner(), from_numpy(X, y)(), eval_every=50, progress=False
    )

    assert result["n_instances"] == 200
    assert len(result["windows"]) == 4
    assert [w["seen"] for w in result["windows"]] == [50, 100, 150, 200]
    # after the first chunk both blobs are known
    assert result["windows"][-1]["accuracy"] == 1.0
    assert result["accuracy"] > 0.8


def test_evaluate_prequential_stops_at_max_instances(blobs):
    X, y = blobs
    result = evaluate_prequential(
        _blob_learner(), from_numpy(X, y)(), eval_every=10, max_instances=30, progress=False
    )
    assert result["n_instances"] == 30
    assert len(result["windows"]) == 3


def test_evaluate_prequential_empty_stream():
    result = evaluate_prequential(_blob_learner(), iter([]), progress=False)
    assert result["n_instances"] == 0
    assert result["windows"] == []


def test_evaluate_prequential_rejects_bad_window():
    with pytest.raises(ValueError):
        evaluate_prequential(_blob_learner(), iter([]), eval_every=0)


def test_make_eval_fn(blobs):
    X, y = blobs
    learner = _blob_learner()
    learner.train_many(from_numpy(X[:100], y[:100])())

    eval_fn = make_eval_fn(X[100:], y[100:])
    result = eval_fn(learner)

    assert result["accuracy"] == 1.0
    assert result["f1_macro"] == 1.0
    assert set(result["f1_per_class"]) == {0, 1}

    only_accuracy = make_eval_fn(X[100:], y[100:], metrics=["accuracy"])(learner)
    assert set(only_accuracy) == {"accuracy"}
