"""Figures consumed by the notebooks/report: class balance, ROC and metric comparisons."""

import os
from typing import Mapping, Sequence

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .dataset import Dataset
from .metrics import MetricRecord
from .threshold_analyzer import RocPoint, roc_auc


def _save(path: str) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()
    return path


def plot_class_balance(dataset: Dataset, path: str, title: str = "Outcome distribution") -> str:
    counts = dataset.class_counts()
    share = counts / counts.sum()

    plt.figure(figsize=(6, 4))
    ax = sns.barplot(x=[str(c) for c in counts.index], y=counts.values, color="#3B5BA5")
    for i, (n, p) in enumerate(zip(counts.values, share.values)):
        ax.text(i, n, f"{n:,}\n({p:.1%})", ha="center", va="bottom", fontsize=9)
    plt.xlabel(dataset.schema.label)
    plt.ylabel("Observations")
    plt.title(title)
    return _save(path)


def plot_roc_comparison(curves: Mapping[str, Sequence[RocPoint]], path: str) -> str:
    plt.figure(figsize=(6, 6))
    for name, curve in curves.items():
        fpr = [p.fpr for p in curve]
        tpr = [p.tpr for p in curve]
        plt.plot(fpr, tpr, label=f"{name} (AUC={roc_auc(curve):.3f})")
    plt.plot([0, 1], [0, 1], linestyle="--", color="grey", linewidth=1)
    plt.xlabel("False positive rate (1 - specificity)")
    plt.ylabel("True positive rate (sensitivity)")
    plt.title("ROC curve")
    plt.legend(loc="lower right")
    return _save(path)


def plot_metric_comparison(records: Mapping[str, MetricRecord], path: str) -> str:
    rows = [
        {"model": name, "metric": metric, "value": value}
        for name, record in records.items()
        for metric, value in record.values.items()
        if record.is_defined(metric)
    ]
    df = pd.DataFrame(rows)

    plt.figure(figsize=(8, 4.5))
    sns.barplot(data=df, x="metric", y="value", hue="model")
    plt.ylim(0, 1)
    plt.xlabel("")
    plt.ylabel("Score")
    plt.title("Default vs tuned model")
    plt.legend(loc="lower right")
    return _save(path)
