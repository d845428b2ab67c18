"""
Base classifiers for alcstream.

A base classifier is anything with:
    train(instance)            -- one incremental update on a labeled instance
    predict(instance) -> array -- class scores, aligned with `classes`
    reset()                    -- forget everything learned
    measurements()             -- MeasurementReport (optional)
    describe() -> str          -- textual model description (optional)

Bundled variants wrap scikit-learn partial_fit estimators and PyTorch
modules. They all need the list of classes up front, since a stream may not
show every class in its first instances.
"""

import copy
import numpy as np
import torch
import torch.nn as nn
from typing import Any, Dict, Optional, Protocol, Sequence

from sklearn.linear_model import SGDClassifier
from sklearn.naive_bayes import GaussianNB

from .measurements import Measurement, MeasurementReport
from .streaming import Instance


class Classifier(Protocol):
    def train(self, instance: Instance) -> None:
        ...

    def predict(self, instance: Instance) -> np.ndarray:
        ...

    def reset(self) -> None:
        ...


class _PartialFitClassifier:
    """Shared plumbing for scikit-learn estimators trained with partial_fit."""

    def __init__(self, classes: Sequence[Any]):
        self.classes = np.unique(np.asarray(classes))
        self.n_seen = 0
        self.estimator = self._make_estimator()

    def _make_estimator(self):
        raise NotImplementedError

    def train(self, instance: Instance) -> None:
        self.estimator.partial_fit(
            instance.x.reshape(1, -1), [instance.y], classes=self.classes
        )
        self.n_seen += 1

    def predict(self, instance: Instance) -> np.ndarray:
        """Class probabilities. All zeros before the first training step."""
        if self.n_seen == 0:
            return np.zeros(len(self.classes))
        return self.estimator.predict_proba(instance.x.reshape(1, -1))[0]

    def reset(self) -> None:
        self.estimator = self._make_estimator()
        self.n_seen = 0


class NaiveBayesClassifier(_PartialFitClassifier):
    """
    Incremental Gaussian naive Bayes (scikit-learn GaussianNB).

    Args:
        classes: All class labels the stream can produce.
        var_smoothing: Passed to GaussianNB.
    """

    def __init__(self, classes: Sequence[Any], var_smoothing: float = 1e-9):
        self.var_smoothing = var_smoothing
        super().__init__(classes)

    def _make_estimator(self):
        return GaussianNB(var_smoothing=self.var_smoothing)

    def predict(self, instance: Instance) -> np.ndarray:
        """Class probabilities. All zeros before the first training step."""
        if self.n_seen == 0:
            return np.zeros(len(self.classes))
        return self._smoothed_estimator().predict_proba(instance.x.reshape(1, -1))[0]

    def _smoothed_estimator(self) -> GaussianNB:
        """
        Copy of the estimator with every per-class variance floored.

        partial_fit on single rows leaves GaussianNB's epsilon_ at 0, so a
        feature that is constant within a class has zero variance and
        predict_proba returns NaN. The floor is the smoothing GaussianNB.fit
        would apply: var_smoothing times the largest feature variance over
        everything seen so far, recovered from the per-class statistics.
        """
        est = self.estimator
        counts = est.class_count_[:, None]
        n = counts.sum()
        mean = (counts * est.theta_).sum(axis=0) / n
        var = (counts * (est.var_ + est.theta_ ** 2)).sum(axis=0) / n - mean ** 2
        epsilon = self.var_smoothing * max(float(var.max()), 0.0)
        if epsilon <= 0.0:
            epsilon = self.var_smoothing

        smoothed = copy.copy(est)
        smoothed.var_ = np.maximum(est.var_, epsilon)
        return smoothed

    def measurements(self) -> MeasurementReport:
        report = [Measurement("training instances", self.n_seen)]
        if self.n_seen > 0:
            for cls, count in zip(self.estimator.classes_, self.estimator.class_count_):
                report.append(Measurement(f"class {cls} count", float(count)))
        return MeasurementReport.of(report)

    def describe(self) -> str:
        if self.n_seen == 0:
            return "GaussianNB (untrained)"
        lines = [f"GaussianNB trained on {self.n_seen} instances"]
        for cls, prior in zip(self.estimator.classes_, self.estimator.class_prior_):
            lines.append(f"  class {cls}: prior={prior:.4f}")
        return "\n".join(lines)


class SGDLinearClassifier(_PartialFitClassifier):
    """
    Incremental logistic regression (scikit-learn SGDClassifier, log loss).

    Args:
        classes: All class labels the stream can produce.
        alpha: L2 regularization strength.
        random_state: Seed for the estimator's own randomness.
    """

    def __init__(self, classes: Sequence[Any], alpha: float = 1e-4,
                 random_state: Optional[int] = None):
        self.alpha = alpha
        self.random_state = random_state
        super().__init__(classes)

    def _make_estimator(self):
        return SGDClassifier(loss="log_loss", alpha=self.alpha,
                             random_state=self.random_state)

    def measurements(self) -> MeasurementReport:
        return MeasurementReport.unsupported()

    def describe(self) -> str:
        return f"SGDClassifier(log_loss, alpha={self.alpha}) trained on {self.n_seen} instances"


# ---------------------------------------------------------------------------
# PyTorch
# ---------------------------------------------------------------------------


def auto_detect_device() -> torch.device:
    """
    Returns the best available device: CUDA > MPS > CPU.

    Returns:
        torch.device
    """
    if torch.cuda.is_available():
        return torch.device("cuda")
    elif hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        return torch.device("mps")
    return torch.device("cpu")


def train_one_batch(
    model: nn.Module,
    batch_X: torch.Tensor,
    batch_y: torch.Tensor,
    optimizer: torch.optim.Optimizer,
    criterion,
    device: torch.device,
) -> tuple:
    """
    Single forward + backward pass on one mini-batch.

    Args:
        model: PyTorch model.
        batch_X: Tensor (batch_size, n_features).
        batch_y: Tensor (batch_size,) integer labels.
        optimizer: Optimizer.
        criterion: Loss function.
        device: Device to use.

    Returns:
        logits: Tensor (batch_size, n_classes) — raw model output.
        loss_value: float — scalar loss.
    """
    batch_X = batch_X.to(device)
    batch_y = batch_y.to(device)

    optimizer.zero_grad()
    logits = model(batch_X)
    loss = criterion(logits, batch_y)
    loss.backward()
    optimizer.step()

    return logits, loss.item()


class TorchClassifier:
    """
    Wraps a PyTorch model so it can be trained one instance at a time.

    The model must map (batch, n_features) float tensors to
    (batch, n_classes) logits. Labels are translated to class indices via
    `classes`. reset() restores the weights the model had at construction,
    so replays after a reset are reproducible.

    Args:
        model: nn.Module producing logits.
        optimizer: Optimizer over model.parameters().
        criterion: Loss function (e.g., nn.CrossEntropyLoss()).
        classes: All class labels, in the order of the model's outputs.
        device: torch.device or None (auto-detect: CUDA > MPS > CPU).

    Example:
        model = nn.Sequential(nn.Linear(4, 16), nn.ReLU(), nn.Linear(16, 3))
        clf = TorchClassifier(
            model,
            torch.optim.SGD(model.parameters(), lr=0.05),
            nn.CrossEntropyLoss(),
            classes=[0, 1, 2],
        )
    """

    def __init__(
        self,
        model: nn.Module,
        optimizer: torch.optim.Optimizer,
        criterion,
        classes: Sequence[Any],
        device=None,
    ):
        self.model = model
        self.optimizer = optimizer
        self.criterion = criterion
        self.classes = list(classes)
        self.device = device if device is not None else auto_detect_device()
        self._class_index: Dict[Any, int] = {c: i for i, c in enumerate(self.classes)}
        self._initial_state = copy.deepcopy(model.state_dict())
        self.n_seen = 0
        self.loss_sum = 0.0
        self.model.to(self.device)

    def train(self, instance: Instance) -> None:
        batch_X = torch.tensor(instance.x.reshape(1, -1), dtype=torch.float32)
        batch_y = torch.tensor([self._class_index[instance.y]], dtype=torch.long)
        self.model.train()
        _, loss_val = train_one_batch(
            self.model, batch_X, batch_y, self.optimizer, self.criterion, self.device
        )
        self.n_seen += 1
        self.loss_sum += loss_val

    def predict(self, instance: Instance) -> np.ndarray:
        """Softmax class probabilities."""
        self.model.eval()
        with torch.no_grad():
            batch_X = torch.tensor(instance.x.reshape(1, -1), dtype=torch.float32)
            logits = self.model(batch_X.to(self.device))
            probs = torch.softmax(logits, dim=1)
        return probs.cpu().numpy()[0]

    def reset(self) -> None:
        self.model.load_state_dict(self._initial_state)
        self.optimizer.state.clear()
        self.n_seen = 0
        self.loss_sum = 0.0

    def measurements(self) -> MeasurementReport:
        avg_loss = self.loss_sum / self.n_seen if self.n_seen else 0.0
        return MeasurementReport.of([
            Measurement("training instances", self.n_seen),
            Measurement("average loss", avg_loss),
        ])

    def describe(self) -> str:
        return f"{self.model!r}\ntrained on {self.n_seen} instances"


CLASSIFIERS = {
    "naive_bayes": NaiveBayesClassifier,
    "sgd": SGDLinearClassifier,
}


def make_classifier(spec, **kwargs) -> Classifier:
    """
    Resolve a classifier from a registry tag or return a ready object as is.

    Args:
        spec: A key of CLASSIFIERS (e.g. "naive_bayes") or a classifier object.
        **kwargs: Constructor arguments when spec is a tag (e.g. classes=[0, 1]).

    Raises:
        ValueError: If the tag is unknown.
    """
    if not isinstance(spec, str):
        return spec
    if spec not in CLASSIFIERS:
        raise ValueError(
            f"Unknown base learner '{spec}'. Options: {sorted(CLASSIFIERS)}"
        )
    return CLASSIFIERS[spec](**kwargs)
