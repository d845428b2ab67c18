"""
Evaluation helpers for alcstream.

Two ways to measure a streaming learner:
- prequential (test-then-train): every instance is first predicted, then
  used for training; metrics are reported over sliding windows.
- held-out: a callback scoring the learner on a fixed test set, e.g. from
  an on_chunk_end hook.
"""

import numpy as np
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
from sklearn.metrics import accuracy_score, f1_score
from tqdm import tqdm

from .streaming import Instance, make_instance


def predict_label(learner, instance: Instance, classes: Sequence[Any]):
    """Label with the highest score, or None when the learner has no scores yet."""
    scores = np.asarray(learner.predict(instance))
    if scores.size == 0:
        return None
    return classes[int(np.argmax(scores))]


def _classes_of(learner, classes):
    if classes is not None:
        return list(classes)
    found = getattr(learner.classifier, "classes", None)
    if found is None:
        raise ValueError("classes not given and the base classifier has no 'classes'.")
    return list(found)


def _score(y_true, y_pred, labels) -> Dict[str, float]:
    y_pred = [p if p is not None else labels[0] for p in y_pred]
    return {
        "accuracy": accuracy_score(y_true, y_pred),
        "f1_macro": f1_score(
            y_true, y_pred, average="macro", labels=labels, zero_division=0,
        ),
    }


def evaluate_prequential(
    learner,
    stream: Iterable[Instance],
    eval_every: int = 1000,
    classes: Optional[Sequence[Any]] = None,
    max_instances: Optional[int] = None,
    progress: bool = True,
) -> Dict[str, Any]:
    """
    Test-then-train evaluation over a stream.

    Args:
        learner: ALCClassifier (or anything with predict/train and a
                 `classifier` attribute exposing `classes`).
        stream: Iterable of labeled instances.
        eval_every: Window size for the per-window metrics.
        classes: Class labels in score order. Default: learner.classifier.classes.
        max_instances: Stop after this many instances.
        progress: Show a tqdm progress bar.

    Returns:
        dict with:
            "windows": list[dict] — accuracy and f1_macro per window, with
                       the number of instances seen at window end.
            "accuracy": float — accuracy over the whole stream.
            "f1_macro": float — macro F1 over the whole stream.
            "n_instances": int — instances processed.
    """
    if eval_every <= 0:
        raise ValueError(f"eval_every must be positive, got {eval_every}")

    labels = _classes_of(learner, classes)
    y_true: List[Any] = []
    y_pred: List[Any] = []
    windows = []

    for n, instance in enumerate(tqdm(stream, total=max_instances, disable=not progress), 1):
        y_pred.append(predict_label(learner, instance, labels))
        y_true.append(instance.y)
        learner.train(instance)

        if n % eval_every == 0:
            window = _score(y_true[-eval_every:], y_pred[-eval_every:], labels)
            window["seen"] = n
            windows.append(window)

        if max_instances is not None and n >= max_instances:
            break

    if not y_true:
        return {"windows": [], "accuracy": 0.0, "f1_macro": 0.0, "n_instances": 0}

    result = _score(y_true, y_pred, labels)
    result["windows"] = windows
    result["n_instances"] = len(y_true)
    return result


def make_eval_fn(
    X_test: np.ndarray,
    y_test: np.ndarray,
    classes: Optional[Sequence[Any]] = None,
    metrics: Optional[List[str]] = None,
) -> Callable[[Any], Dict[str, Any]]:
    """
    Creates a held-out evaluation callback.

    Args:
        X_test: (n_test, n_features) held-out test features.
        y_test: (n_test,) held-out test labels.
        classes: Class labels in score order. Default: learner.classifier.classes.
        metrics: List of metrics to compute. Options:
                 "accuracy", "f1_macro", "f1_per_class".
                 Default: all three.

    Returns:
        Callable[[learner], dict] — evaluation function.

    Example:
        eval_fn = make_eval_fn(X_test, y_test)
        history = []
        learner = ALCClassifier(
            ...,
            on_chunk_end=lambda i, report: history.append(eval_fn(learner)),
        )
    """
    if metrics is None:
        metrics = ["accuracy", "f1_macro", "f1_per_class"]

    test_instances = [make_instance(x, y) for x, y in zip(X_test, y_test)]
    y_numpy = np.asarray(y_test).copy()

    def eval_fn(learner) -> Dict[str, Any]:
        labels = _classes_of(learner, classes)
        preds = [predict_label(learner, inst, labels) for inst in test_instances]
        preds = [p if p is not None else labels[0] for p in preds]
        result = {}

        if "accuracy" in metrics:
            result["accuracy"] = accuracy_score(y_numpy, preds)

        if "f1_macro" in metrics:
            result["f1_macro"] = f1_score(
                y_numpy, preds, average="macro",
                labels=labels, zero_division=0,
            )

        if "f1_per_class" in metrics:
            f1_per = f1_score(
                y_numpy, preds, average=None,
                labels=labels, zero_division=0,
            )
            result["f1_per_class"] = {
                c: score for c, score in zip(labels, f1_per)
            }

        return result

    return eval_fn
