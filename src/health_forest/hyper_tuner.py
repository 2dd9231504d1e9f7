from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import numpy as np
from joblib import Parallel, delayed
from sklearn.model_selection import StratifiedKFold

from .balancer import Balancer
from .dataset import Dataset
from .errors import InsufficientDataForBalancing, InsufficientNeighbors
from .evaluator import score_model
from .grid import GridPoint, check_grid
from .metrics import MetricRecord, resolve_positive_label
from .model_trainer import ModelTrainer
from .utils.logger import get_logger


def derive_seed(*parts: int) -> int:
    """Stable 32-bit seed from integer parts, independent of call order."""
    return int(np.random.SeedSequence([int(p) for p in parts]).generate_state(1)[0])


@dataclass(frozen=True)
class SearchResult:
    """Cross-validated metrics of one grid point."""

    point: GridPoint
    mean: dict[str, float]
    std_err: dict[str, float]
    fold_metrics: tuple[MetricRecord, ...]
    failed_folds: tuple[int, ...] = field(default_factory=tuple)

    @property
    def n_folds(self) -> int:
        return len(self.fold_metrics)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.point.as_dict(),
            "n_folds": self.n_folds,
            "failed_folds": list(self.failed_folds),
            "mean": self.mean,
            "std_err": self.std_err,
        }


def aggregate(records: Iterable[MetricRecord]) -> tuple[dict[str, float], dict[str, float]]:
    """Mean and standard error of every metric over the folds where it is defined."""
    records = list(records)
    mean: dict[str, float] = {}
    std_err: dict[str, float] = {}
    for name in records[0].values:
        vals = np.array([r[name] for r in records if r.is_defined(name)], dtype=float)
        mean[name] = float(vals.mean()) if len(vals) else float("nan")
        std_err[name] = float(vals.std(ddof=1) / np.sqrt(len(vals))) if len(vals) > 1 else float("nan")
    return mean, std_err


def _balance_fold(balancer: Balancer, train: Dataset, train_idx: np.ndarray, fold: int, seed: int):
    complement = train.take(train_idx)
    try:
        return fold, balancer.balance(complement, random_state=derive_seed(seed, fold)), None
    except InsufficientNeighbors as exc:
        exc.context["fold"] = fold
        return fold, None, exc


def _fit_and_score(
    point: GridPoint,
    fold: int,
    fit_set: Dataset,
    holdout: Dataset,
    seed: int,
    positive_label: Any,
    threshold: float,
) -> tuple[GridPoint, int, MetricRecord]:
    trainer = ModelTrainer(positive_label=positive_label, n_jobs=1)
    model = trainer.fit(fit_set, point, seed=derive_seed(seed, point.mtry, point.min_n, point.trees, fold))
    record, _ = score_model(model, holdout, threshold, tag=f"{point}; fold={fold}")
    return point, fold, record


class HyperTuner:
    """
    Grid search over Random Forest configurations with stratified K-fold CV.

    Each fold complement is balanced once (seeded by fold) and shared by every
    grid point; the held-out fold is never balanced. Fits are dispatched with
    joblib across (grid point, fold) pairs and aggregated only once all of
    them have finished.
    """

    def __init__(
        self,
        balancer: Optional[Balancer] = None,
        k_folds: int = 5,
        seed: int = 42,
        n_jobs: int = 1,
        backend: str = "loky",
        positive_label: Any = None,
        threshold: float = 0.5,
        verbose: bool = True,
    ):
        self.balancer = balancer or Balancer()
        self.k_folds = k_folds
        self.seed = seed
        self.n_jobs = n_jobs
        self.backend = backend
        self.positive_label = positive_label
        self.threshold = threshold
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)
        self.results_: Optional[list[SearchResult]] = None

    def make_folds(self, train: Dataset, k_folds: int, seed: int) -> list[tuple[np.ndarray, np.ndarray]]:
        if k_folds < 2:
            raise ValueError(f"k_folds must be at least 2, got {k_folds}")
        y = np.asarray(train.labels, dtype=object)
        skf = StratifiedKFold(n_splits=k_folds, shuffle=True, random_state=seed)
        return list(skf.split(np.zeros(len(y)), y))

    def search(
        self,
        train: Dataset,
        grid: Iterable[GridPoint],
        k_folds: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> list[SearchResult]:
        k_folds = self.k_folds if k_folds is None else k_folds
        seed = self.seed if seed is None else seed
        points = check_grid(grid, len(train.schema.fields))
        positive = self.positive_label
        if len(train.classes) == 2:
            positive = resolve_positive_label(train.classes, positive)

        folds = self.make_folds(train, k_folds, seed)
        if self.verbose:
            self.logger.info(
                f"Starting grid search ({len(points)} points x {k_folds}-fold CV, n_jobs={self.n_jobs})"
            )

        parallel = Parallel(n_jobs=self.n_jobs, backend=self.backend)

        balanced = parallel(
            delayed(_balance_fold)(self.balancer, train, train_idx, fold, seed)
            for fold, (train_idx, _) in enumerate(folds)
        )
        failures = {fold: exc for fold, _, exc in balanced if exc is not None}
        for fold, exc in sorted(failures.items()):
            self.logger.warning(f"Fold {fold} excluded: {exc}")

        if len(failures) > k_folds / 2:
            raise InsufficientDataForBalancing(
                "Balancing failed on the majority of folds",
                {"failed_folds": sorted(failures), "k_folds": k_folds, "first_error": str(next(iter(failures.values())))},
            )

        fit_sets = {fold: ds for fold, ds, exc in balanced if exc is None}
        holdouts = {fold: train.take(folds[fold][1]) for fold in fit_sets}

        scored = parallel(
            delayed(_fit_and_score)(
                point, fold, fit_sets[fold], holdouts[fold], seed, positive, self.threshold
            )
            for point in points
            for fold in sorted(fit_sets)
        )

        by_point: dict[GridPoint, dict[int, MetricRecord]] = defaultdict(dict)
        for point, fold, record in scored:
            by_point[point][fold] = record

        failed_folds = tuple(sorted(failures))
        results: list[SearchResult] = []
        for point in points:
            records = by_point.get(point, {})
            # a point missing any fit would be averaged over a partial fold set
            if set(records) != set(fit_sets):
                self.logger.warning(f"Discarding incomplete results for {point}")
                continue

            ordered = tuple(records[fold] for fold in sorted(records))
            mean, std_err = aggregate(ordered)
            results.append(SearchResult(point, mean, std_err, ordered, failed_folds))

            if self.verbose:
                self.logger.info(
                    f"{point}: accuracy={mean['accuracy']:.4f} (se={std_err['accuracy']:.4f}), "
                    f"roc_auc={mean.get('roc_auc', float('nan')):.4f}"
                )

        self.results_ = results
        return results


def search(
    train: Dataset,
    grid: Iterable[GridPoint],
    k_folds: int,
    seed: int,
    balancer: Optional[Balancer] = None,
    n_jobs: int = 1,
    positive_label: Any = None,
    threshold: float = 0.5,
) -> list[SearchResult]:
    return HyperTuner(
        balancer=balancer,
        k_folds=k_folds,
        seed=seed,
        n_jobs=n_jobs,
        positive_label=positive_label,
        threshold=threshold,
        verbose=False,
    ).search(train, grid)
