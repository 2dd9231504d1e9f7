import os
import warnings
from dataclasses import dataclass, field
from textwrap import indent
from typing import Any, Optional

from .balancer import Balancer
from .config import Config
from .data_loader import DataLoader
from .errors import UnknownMetric
from .evaluator import Evaluator, positive_label_of
from .grid import GridPoint, build_grid
from .hyper_tuner import HyperTuner, SearchResult
from .metrics import SEARCH_METRICS, MetricRecord, resolve_positive_label
from .model_trainer import ModelTrainer, default_point
from .reporting import plot_class_balance, plot_metric_comparison, plot_roc_comparison
from .selector import rank_results, select_best
from .splitter import DatasetSplitter
from .threshold_analyzer import RocPoint, ThresholdAnalyzer, metrics_at, roc_auc, roc_curve
from .utils.logger import get_logger


@dataclass
class PipelineReport:
    """Everything the run produced, for callers that want more than the saved files."""
    search_results: list[SearchResult]
    best_point: GridPoint
    records: dict[str, MetricRecord]
    roc_curves: dict[str, list[RocPoint]] = field(default_factory=dict)
    tuned_threshold: Optional[float] = None
    artifacts: dict[str, str] = field(default_factory=dict)


def _format_record(record: MetricRecord) -> str:
    return indent(
        "\n".join(
            f"{k}: {'undefined' if k in record.undefined else f'{v:.4f}'}"
            for k, v in record.values.items()
        ),
        " " * 4,
    )


class PipelineRunner:
    """End-to-end Random Forest model-selection pipeline.

    Steps:
      1. Load the imputed CSV, recode the outcome, validate the schema
      2. Plot the class distribution
      3. Stratified train/test split
      4. Baseline forest (default hyperparameters) on the SMOTE-balanced train split
      5. Grid search with stratified K-fold CV, balancing each fold complement
      6. Select the best grid point and fit it on the balanced train split
      7. Evaluate default and tuned models on the untouched test split
      8. Binary outcomes: ROC curves, adjusted decision threshold
      9. Save metrics JSON, figures and the tuned model"""

    def __init__(self, config_path: str, overrides: Optional[dict[str, dict[str, Any]]] = None):
        self.config = Config.from_yaml(config_path)
        for section, values in (overrides or {}).items():
            for key, value in values.items():
                self.config.override(section, key, value)
        self.logger = get_logger(self.__class__.__name__)
        warnings.filterwarnings(
            "ignore",
            message="X does not have valid feature names",
            category=UserWarning,
            module="sklearn",
        )

    def _balancer(self) -> Balancer:
        cfg = self.config.balancing
        return Balancer(
            strategy=cfg.get("strategy", "smote"),
            target_ratio=cfg.get("target_ratio", 0.9),
            k_neighbors=cfg.get("k_neighbors", 5),
            random_state=cfg.get("seed", 42),
        )

    def run(self) -> PipelineReport:
        cfg = self.config
        out_dir = cfg.output.get("dir", "artifacts")
        artifacts: dict[str, str] = {}
        target_metric = cfg.search.get("target_metric", "accuracy")
        if target_metric not in SEARCH_METRICS:
            raise UnknownMetric(
                f"Unknown target metric {target_metric!r}",
                {"metric": target_metric, "available": list(SEARCH_METRICS)},
            )
        self.logger.info("Starting Random Forest model-selection pipeline")

        dataset = DataLoader(
            path=cfg.data["path"],
            label_col=cfg.data["target_col"],
            recode=cfg.data.get("recode"),
            fields=cfg.data.get("fields"),
            columns=cfg.data.get("columns"),
            sample_size=cfg.data.get("sample_size"),
        ).load()
        artifacts["class_balance"] = plot_class_balance(
            dataset, os.path.join(out_dir, "class_balance.png")
        )

        train, test = DatasetSplitter(
            train_fraction=cfg.split.get("train_fraction", 0.8),
            seed=cfg.split.get("seed", 10),
        ).split(dataset)

        balancer = self._balancer()
        positive = None
        if len(dataset.classes) == 2:
            positive = resolve_positive_label(dataset.classes, cfg.data.get("positive_label"))
        trainer = ModelTrainer(
            balancer=balancer,
            positive_label=positive,
            random_state=cfg.search.get("seed", 42),
            n_jobs=cfg.search.get("n_jobs", 1),
            model_path=cfg.output.get("model_path"),
        )
        evaluator = Evaluator(cfg.output.get("metrics_path", "artifacts/metrics.json"), out_dir)
        threshold = cfg.evaluation.get("threshold", 0.5)

        # Baseline
        baseline_point = default_point(
            len(dataset.schema.fields), trees=cfg.search.get("baseline_trees", 500)
        )
        baseline = trainer.fit(balancer.balance(train), baseline_point)
        baseline_record, baseline_proba = evaluator.evaluate(baseline, test, threshold, tag="default")

        # Grid search
        grid = build_grid(
            cfg.search.get("mtry", [1, 5]),
            cfg.search.get("min_n", [5, 20]),
            cfg.search.get("trees", [50, 100]),
            n_features=len(dataset.schema.fields),
        )
        tuner = HyperTuner(
            balancer=balancer,
            k_folds=cfg.search.get("k_folds", 5),
            seed=cfg.search.get("seed", 42),
            n_jobs=cfg.search.get("n_jobs", 1),
            positive_label=positive,
            threshold=threshold,
        )
        results = tuner.search(train, grid)

        best_point = select_best(results, target_metric)
        for rank, result in enumerate(rank_results(results, target_metric), start=1):
            self.logger.info(f"#{rank} {result.point}: {target_metric}={result.mean[target_metric]:.4f}")
        self.logger.info(f"Selected grid point: {best_point}")

        # Final model
        final = trainer.fit_final(train, best_point)
        tuned_record, tuned_proba = evaluator.evaluate(final, test, threshold, tag="tuned")
        records = {"default": baseline_record, "tuned": tuned_record}
        self.logger.info(f"Tuned test metrics:\n{_format_record(tuned_record)}")

        curves: dict[str, list[RocPoint]] = {}
        tuned_threshold = None
        pos = positive_label_of(final, test)
        if pos is not None:
            neg = next(c for c in test.classes if c != pos)
            pos_idx = list(final.classes).index(pos)
            curves["default"] = roc_curve(baseline_proba[:, list(baseline.classes).index(pos)], test.labels, pos)
            curves["tuned"] = roc_curve(tuned_proba[:, pos_idx], test.labels, pos)
            artifacts["roc"] = plot_roc_comparison(curves, os.path.join(out_dir, "roc_comparison.png"))

            tuned_threshold = cfg.evaluation.get("tuned_threshold")
            if tuned_threshold is None:
                analyzer = ThresholdAnalyzer(
                    out_dir,
                    step=cfg.evaluation.get("sweep_step", 0.01),
                    metric=cfg.evaluation.get("sweep_metric", "f1"),
                    positive_label=pos,
                    negative_label=neg,
                )
                tuned_threshold = analyzer.run(test.labels, tuned_proba[:, pos_idx])

            adjusted = metrics_at(tuned_proba[:, pos_idx], test.labels, tuned_threshold, pos, neg)
            records["tuned_adjusted"] = adjusted.with_value("roc_auc", roc_auc(curves["tuned"]))
            self.logger.info(f"Tuned metrics at threshold {tuned_threshold:g}:\n{_format_record(adjusted)}")

        for name, record in records.items():
            artifacts[f"confusion_{name}"] = evaluator.plot_confusion_matrix(record)
        artifacts["metric_comparison"] = plot_metric_comparison(
            records, os.path.join(out_dir, "metric_comparison.png")
        )

        payload = {
            "best_point": best_point.as_dict(),
            "target_metric": target_metric,
            "search_results": [r.to_dict() for r in results],
            "test": {name: record.to_dict() for name, record in records.items()},
            "tuned_threshold": tuned_threshold,
            "roc": {
                name: [p._asdict() for p in curve] for name, curve in curves.items()
            },
        }
        artifacts["metrics"] = evaluator.save_metrics(payload)
        if trainer.model_path:
            artifacts["model"] = trainer.model_path

        self.logger.info("Pipeline finished")
        return PipelineReport(
            search_results=results,
            best_point=best_point,
            records=records,
            roc_curves=curves,
            tuned_threshold=tuned_threshold,
            artifacts=artifacts,
        )
