import os
from typing import Any, NamedTuple, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn import metrics as skm

from .errors import DegenerateLabels
from .metrics import METRIC_NAMES, MetricRecord, compute_metrics
from .utils.logger import get_logger


class RocPoint(NamedTuple):
    threshold: float
    tpr: float
    fpr: float


def _binarize(true_labels: Sequence, positive_label: Any) -> np.ndarray:
    y = (np.asarray(true_labels, dtype=object) == positive_label).astype(int)
    if y.min() == y.max():
        raise DegenerateLabels(
            "ROC needs both positive and negative labels",
            {"positive_label": positive_label, "n": len(y)},
        )
    return y


def roc_curve(
    probabilities: Sequence[float],
    true_labels: Sequence,
    positive_label: Any = "Yes",
) -> list[RocPoint]:
    """
    (threshold, TPR, FPR) at every unique predicted probability, descending.

    The first point is the ``inf`` anchor where nothing is predicted positive.
    """
    y = _binarize(true_labels, positive_label)
    fpr, tpr, thresholds = skm.roc_curve(
        y, np.asarray(probabilities, dtype=float), drop_intermediate=False
    )
    return [RocPoint(float(t), float(tp), float(fp)) for t, tp, fp in zip(thresholds, tpr, fpr)]


def roc_auc(curve: Sequence[RocPoint]) -> float:
    """Trapezoidal area under TPR over FPR."""
    fpr = [p.fpr for p in curve]
    tpr = [p.tpr for p in curve]
    return float(skm.auc(fpr, tpr))


def metrics_at(
    probabilities: Sequence[float],
    true_labels: Sequence,
    threshold: float,
    positive_label: Any = "Yes",
    negative_label: Any = "No",
) -> MetricRecord:
    """Metric record when everything at or above ``threshold`` is called positive."""
    proba = np.asarray(probabilities, dtype=float)
    y_pred = np.where(proba >= threshold, positive_label, negative_label)
    return compute_metrics(
        true_labels,
        y_pred,
        labels=[negative_label, positive_label],
        positive_label=positive_label,
        tag=f"threshold={threshold:g}",
    )


class ThresholdAnalyzer:
    """Sweep probability thresholds and (optionally) plot the metric trade-offs."""

    def __init__(
        self,
        output_dir: str = "artifacts",
        step: float = 0.01,
        metric: str = "f1",
        positive_label: Any = "Yes",
        negative_label: Any = "No",
        filename: str = "threshold_sweep.png",
        verbose: bool = True,
    ):
        if metric not in METRIC_NAMES:
            raise ValueError(f"Unknown metric '{metric}', expected one of {METRIC_NAMES}")
        self.output_dir = output_dir
        self.step = step
        self.metric = metric
        self.positive_label = positive_label
        self.negative_label = negative_label
        self.filename = filename
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def sweep(self, y_true, y_proba) -> pd.DataFrame:
        """One row per candidate threshold with every confusion-matrix metric."""
        thresholds = np.round(np.arange(self.step, 1.0, self.step), 6)
        rows = []
        for thr in thresholds:
            record = metrics_at(y_proba, y_true, thr, self.positive_label, self.negative_label)
            rows.append({"threshold": float(thr), **record.values})
        return pd.DataFrame(rows)

    def best_threshold(self, sweep: pd.DataFrame) -> float:
        # lowest threshold wins ties
        return float(sweep.loc[sweep[self.metric].idxmax(), "threshold"])

    def run(self, y_true, y_proba, plot: bool = True) -> float:
        sweep = self.sweep(y_true, y_proba)
        best_thr = self.best_threshold(sweep)
        best_value = float(sweep.loc[sweep["threshold"] == best_thr, self.metric].iloc[0])

        if plot:
            os.makedirs(self.output_dir, exist_ok=True)
            plt.figure(figsize=(7, 5))
            for name in ("sensitivity", "specificity", "precision", "f1"):
                sns.lineplot(x=sweep["threshold"], y=sweep[name], label=name.capitalize())
            plt.axvline(best_thr, linestyle="--", label=f"Best {self.metric} thr={best_thr:.2f}")
            plt.xlabel("Threshold")
            plt.ylabel("Score")
            plt.title("Threshold Sweep")
            plt.legend()

            path = os.path.join(self.output_dir, self.filename)
            plt.tight_layout()
            plt.savefig(path, dpi=200)
            plt.close()

            if self.verbose:
                self.logger.info(f"Saved threshold sweep plot: {path}")

        if self.verbose:
            self.logger.info(f"Best {self.metric} threshold: {best_thr:.3f} ({self.metric}={best_value:.3f})")

        return best_thr
