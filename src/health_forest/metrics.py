from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Sequence

import numpy as np
from sklearn.metrics import confusion_matrix

from .errors import UndefinedMetric
from .utils.logger import get_logger

METRIC_NAMES = ("accuracy", "sensitivity", "specificity", "precision", "f1")
SEARCH_METRICS = METRIC_NAMES + ("roc_auc",)

logger = get_logger("metrics")


def resolve_positive_label(labels: Sequence, positive_label: Optional[Any] = None) -> Any:
    """Configured positive label, or the second class level with a warning."""
    labels = list(labels)
    if positive_label is not None:
        if positive_label not in labels:
            raise ValueError(f"Positive label {positive_label!r} is not one of {labels}")
        return positive_label
    logger.warning(
        f"No positive label configured; treating {labels[1]!r} (second of {labels}) as positive"
    )
    return labels[1]


@dataclass(frozen=True)
class MetricRecord:
    """Confusion-matrix metrics for one (grid point, fold) or the test set.

    Metrics with a zero denominator hold 0.0 and are listed in ``undefined``
    so reports can tell them apart from a genuine zero.
    """

    values: dict[str, float]
    confusion: tuple[tuple[int, ...], ...]
    labels: tuple
    positive_label: Any = None
    undefined: frozenset = field(default_factory=frozenset)
    tag: str = ""

    def __getitem__(self, name: str) -> float:
        return self.values[name]

    def is_defined(self, name: str) -> bool:
        return name in self.values and name not in self.undefined

    def with_value(self, name: str, value: float, defined: bool = True) -> "MetricRecord":
        values = {**self.values, name: float(value)}
        undefined = self.undefined - {name} if defined else self.undefined | {name}
        return replace(self, values=values, undefined=frozenset(undefined))

    def _binary_cell(self, true_pos: bool, pred_pos: bool) -> int:
        if self.positive_label is None or len(self.labels) != 2:
            raise ValueError("Confusion counts are only defined for binary records")
        pos = self.labels.index(self.positive_label)
        neg = 1 - pos
        return self.confusion[pos if true_pos else neg][pos if pred_pos else neg]

    @property
    def tp(self) -> int:
        return self._binary_cell(True, True)

    @property
    def fp(self) -> int:
        return self._binary_cell(False, True)

    @property
    def tn(self) -> int:
        return self._binary_cell(False, False)

    @property
    def fn(self) -> int:
        return self._binary_cell(True, False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "metrics": {
                k: (None if k in self.undefined else v) for k, v in self.values.items()
            },
            "undefined": sorted(self.undefined),
            "labels": [str(label) for label in self.labels],
            "confusion_matrix": [list(row) for row in self.confusion],
        }


def _ratio(num: float, den: float, name: str) -> float:
    if den == 0:
        raise UndefinedMetric("Zero denominator", {"metric": name})
    return float(num) / float(den)


def _one_vs_rest(tp: int, fp: int, tn: int, fn: int) -> tuple[dict[str, float], set[str]]:
    values: dict[str, float] = {}
    undefined: set[str] = set()

    def safe(name: str, num: float, den: float) -> float:
        try:
            return _ratio(num, den, name)
        except UndefinedMetric:
            undefined.add(name)
            return 0.0

    values["sensitivity"] = safe("sensitivity", tp, tp + fn)
    values["specificity"] = safe("specificity", tn, tn + fp)
    values["precision"] = safe("precision", tp, tp + fp)

    p, r = values["precision"], values["sensitivity"]
    if "precision" in undefined or "sensitivity" in undefined:
        undefined.add("f1")
        values["f1"] = 0.0
    else:
        values["f1"] = safe("f1", 2 * p * r, p + r)
    return values, undefined


def compute_metrics(
    y_true: Sequence,
    y_pred: Sequence,
    labels: Sequence,
    positive_label: Optional[Any] = None,
    tag: str = "",
) -> MetricRecord:
    """
    Build a MetricRecord from true and predicted class labels.

    Binary outcomes use ``positive_label`` for sensitivity/precision; with more
    than two classes each metric is the macro average of its one-vs-rest
    values over the classes where it is defined.
    """
    labels = list(labels)
    cm = confusion_matrix(np.asarray(y_true, dtype=object), np.asarray(y_pred, dtype=object), labels=labels)
    n = int(cm.sum())
    undefined: set[str] = set()

    try:
        accuracy = _ratio(np.trace(cm), n, "accuracy")
    except UndefinedMetric:
        accuracy = 0.0
        undefined.add("accuracy")

    if len(labels) == 2:
        positive_label = resolve_positive_label(labels, positive_label)
        pos = labels.index(positive_label)
        neg = 1 - pos
        values, ovr_undefined = _one_vs_rest(
            tp=int(cm[pos, pos]), fp=int(cm[neg, pos]), tn=int(cm[neg, neg]), fn=int(cm[pos, neg])
        )
        undefined |= ovr_undefined
    else:
        per_class = []
        for i in range(len(labels)):
            tp = int(cm[i, i])
            fp = int(cm[:, i].sum()) - tp
            fn = int(cm[i, :].sum()) - tp
            tn = n - tp - fp - fn
            per_class.append(_one_vs_rest(tp, fp, tn, fn))

        values = {}
        for name in ("sensitivity", "specificity", "precision", "f1"):
            defined = [v[name] for v, und in per_class if name not in und]
            if defined:
                values[name] = float(np.mean(defined))
            else:
                values[name] = 0.0
                undefined.add(name)
        positive_label = None

    values = {"accuracy": accuracy, **values}
    return MetricRecord(
        values=values,
        confusion=tuple(tuple(int(c) for c in row) for row in cm),
        labels=tuple(labels),
        positive_label=positive_label,
        undefined=frozenset(undefined),
        tag=tag,
    )


def predict_labels(
    proba: np.ndarray,
    classes: Sequence,
    positive_label: Optional[Any] = None,
    threshold: float = 0.5,
) -> np.ndarray:
    """Threshold the positive-class column for binary outcomes, arg-max otherwise."""
    proba = np.asarray(proba, dtype=float)
    classes = np.asarray(list(classes), dtype=object)

    if len(classes) == 2:
        pos = list(classes).index(resolve_positive_label(classes, positive_label))
        neg = 1 - pos
        return np.where(proba[:, pos] >= threshold, classes[pos], classes[neg])

    return classes[np.argmax(proba, axis=1)]
