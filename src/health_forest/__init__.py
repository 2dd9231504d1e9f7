"""
Health survey Random Forest - model-selection workflow

This package trains Random Forest classifiers on a pre-imputed health
survey to predict diabetes status (or a 3-level general-health category),
with SMOTE balancing, cross-validated grid search and threshold tuning.

Modules:
    config              - Load YAML configuration safely.
    dataset             - Typed schema and immutable dataset value.
    data_loader         - Read CSV, recode the outcome, validate the schema.
    splitter            - Stratified, seeded train/test split.
    balancer            - SMOTE / SMOTENC / SMOTEN oversampling to a target ratio.
    preprocessor        - One-hot encode categorical fields, pass numerics through.
    model_trainer       - Build, fit and persist Random Forest pipelines.
    hyper_tuner         - Grid search with stratified K-fold CV in parallel.
    selector            - Pick the best grid point with a deterministic tie-break.
    evaluator           - Test-set metrics and confusion matrix.
    threshold_analyzer  - ROC curve, AUC, metrics at a cutoff, threshold sweep.
    reporting           - Class balance, ROC and metric comparison figures.
    pipeline            - Orchestrates all components.
    utils.logger        - Unified timestamped console logger.
"""

from .config import Config
from .dataset import Dataset, Schema
from .data_loader import DataLoader, load_dataset
from .splitter import DatasetSplitter, stratified_split
from .balancer import Balancer, balance
from .grid import GridPoint, build_grid
from .model_trainer import FittedModel, ModelTrainer
from .hyper_tuner import HyperTuner, SearchResult, search
from .selector import rank_results, select_best
from .metrics import MetricRecord, compute_metrics
from .evaluator import Evaluator, evaluate
from .threshold_analyzer import ThresholdAnalyzer, metrics_at, roc_auc, roc_curve
from .pipeline import PipelineRunner

__all__ = [
    "Config",
    "Dataset",
    "Schema",
    "DataLoader",
    "load_dataset",
    "DatasetSplitter",
    "stratified_split",
    "Balancer",
    "balance",
    "GridPoint",
    "build_grid",
    "FittedModel",
    "ModelTrainer",
    "HyperTuner",
    "SearchResult",
    "search",
    "rank_results",
    "select_best",
    "MetricRecord",
    "compute_metrics",
    "Evaluator",
    "evaluate",
    "ThresholdAnalyzer",
    "metrics_at",
    "roc_auc",
    "roc_curve",
    "PipelineRunner",
]
