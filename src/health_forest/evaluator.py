import json
import os
from typing import Any, Optional

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from sklearn.metrics import roc_auc_score

from .dataset import Dataset
from .errors import DegenerateLabels, SchemaMismatch
from .metrics import MetricRecord, compute_metrics, predict_labels, resolve_positive_label
from .model_trainer import FittedModel
from .threshold_analyzer import roc_auc, roc_curve
from .utils.logger import get_logger


def positive_label_of(model: FittedModel, dataset: Dataset) -> Any:
    if len(dataset.classes) != 2:
        return None
    return resolve_positive_label(dataset.classes, model.positive_label)


def score_model(
    model: FittedModel,
    dataset: Dataset,
    threshold: float = 0.5,
    tag: str = "",
) -> tuple[MetricRecord, np.ndarray]:
    """Predict ``dataset`` and return its metric record plus the class probabilities."""
    proba = model.predict_proba(dataset)
    positive = positive_label_of(model, dataset)
    y_true = np.asarray(dataset.labels, dtype=object)
    y_pred = predict_labels(proba, model.classes, positive, threshold)

    record = compute_metrics(y_true, y_pred, labels=dataset.classes, positive_label=positive, tag=tag)

    try:
        if positive is not None:
            pos_idx = list(model.classes).index(positive)
            auc = roc_auc(roc_curve(proba[:, pos_idx], y_true, positive))
        else:
            auc = roc_auc_score(y_true, proba, multi_class="ovo", labels=list(model.classes))
        record = record.with_value("roc_auc", auc)
    except (DegenerateLabels, ValueError):
        record = record.with_value("roc_auc", 0.0, defined=False)

    return record, proba


def evaluate(
    model: FittedModel,
    test: Dataset,
    label_field: str,
    threshold: float = 0.5,
) -> MetricRecord:
    if label_field != test.schema.label:
        raise SchemaMismatch(
            "Evaluation label must be the dataset's label field",
            {"label_field": label_field, "schema_label": test.schema.label},
        )
    record, _ = score_model(model, test, threshold, tag="test")
    return record


class Evaluator:
    """Evaluate a fitted model on the held-out test set, save metrics and confusion matrix."""

    def __init__(self, metrics_path: str, figures_dir: str = "artifacts", verbose: bool = True):
        self.metrics_path = metrics_path
        self.figures_dir = figures_dir
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def evaluate(
        self,
        model: FittedModel,
        test: Dataset,
        threshold: float = 0.5,
        tag: str = "test",
    ) -> tuple[MetricRecord, np.ndarray]:
        record, proba = score_model(model, test, threshold, tag=tag)

        if self.verbose:
            shown = ", ".join(
                f"{k}={'undefined' if k in record.undefined else f'{v:.4f}'}"
                for k, v in record.values.items()
            )
            self.logger.info(f"[{tag}] threshold={threshold:g}: {shown}")

        return record, proba

    def plot_confusion_matrix(self, record: MetricRecord, normalize: bool = True) -> str:
        """Plot the record's confusion matrix and save to figures_dir. Returns saved path."""
        cm = np.asarray(record.confusion)

        if normalize:
            cm = cm.astype(float)
            row_sums = cm.sum(axis=1, keepdims=True)
            row_sums[row_sums == 0] = 1.0  # avoid division by zero
            cm = cm / row_sums

        names = [str(label) for label in record.labels]
        plt.figure(figsize=(6, 5))
        sns.heatmap(
            cm,
            annot=True,
            fmt=".2f" if normalize else "d",
            cmap="Blues",
            xticklabels=names,
            yticklabels=names,
        )
        plt.xlabel("Predicted")
        plt.ylabel("Actual")
        plt.title(f"Confusion Matrix ({record.tag})" + (" (Normalized)" if normalize else ""))

        os.makedirs(self.figures_dir, exist_ok=True)
        safe_tag = "".join(c if c.isalnum() else "_" for c in record.tag) or "model"
        path = os.path.join(self.figures_dir, f"confusion_matrix_{safe_tag}.png")

        plt.tight_layout()
        plt.savefig(path, dpi=200)
        plt.close()

        if self.verbose:
            self.logger.info(f"Saved confusion matrix: {path}")

        return path

    def save_metrics(self, payload: dict[str, Any], path: Optional[str] = None) -> str:
        path = path or self.metrics_path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w") as f:
            json.dump(payload, f, indent=4, default=str)

        if self.verbose:
            self.logger.info(f"Saved metrics: {path}")
        return path
