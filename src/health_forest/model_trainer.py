import os
from dataclasses import dataclass
from typing import Any, Optional

import joblib
import numpy as np
from sklearn.ensemble import RandomForestClassifier
from sklearn.pipeline import Pipeline

from .balancer import Balancer
from .dataset import Dataset, Schema
from .errors import SchemaMismatch
from .grid import GridPoint
from .preprocessor import Preprocessor
from .utils.logger import get_logger


def default_point(n_features: int, trees: int = 500) -> GridPoint:
    """Untuned forest: sqrt(p) features per split, grown to purity."""
    return GridPoint(mtry=max(1, int(np.sqrt(n_features))), min_n=1, trees=trees)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """A fitted encoder + forest pipeline and the schema it was trained on."""

    pipeline: Pipeline
    schema: Schema
    point: GridPoint
    classes: tuple
    positive_label: Any = None

    def check_schema(self, dataset: Dataset) -> None:
        if dataset.schema != self.schema:
            raise SchemaMismatch(
                "Dataset schema differs from the training schema",
                {"expected": self.schema.fields, "got": dataset.schema.fields},
            )

    def predict_proba(self, dataset: Dataset) -> np.ndarray:
        self.check_schema(dataset)
        return self.pipeline.predict_proba(dataset.features)


class ModelTrainer:
    """
    Fits Random Forest pipelines for grid points.

    Provides:
      - build_model: unfitted encoder + forest pipeline for a grid point
      - fit: fit on a dataset as given (already balanced or not)
      - fit_final: balance the full training split, fit once and save the model
    """

    def __init__(
        self,
        balancer: Optional[Balancer] = None,
        positive_label: Any = None,
        random_state: int = 42,
        n_jobs: int = 1,
        model_path: Optional[str] = None,
    ):
        self.balancer = balancer or Balancer()
        self.positive_label = positive_label
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.model_path = model_path
        self.logger = get_logger(self.__class__.__name__)
        self.final_model: Optional[FittedModel] = None

    @staticmethod
    def build_model(point: GridPoint, schema: Schema, seed: int, n_jobs: int = 1) -> Pipeline:
        forest = RandomForestClassifier(
            n_estimators=point.trees,
            max_features=point.mtry,
            # scikit-learn cannot split a node of one sample
            min_samples_split=max(2, point.min_n),
            random_state=seed,
            n_jobs=n_jobs,
        )
        return Pipeline(
            steps=[
                ("preprocess", Preprocessor().build(schema)),
                ("forest", forest),
            ]
        )

    def fit(self, train: Dataset, point: GridPoint, seed: Optional[int] = None) -> FittedModel:
        seed = self.random_state if seed is None else seed
        pipeline = self.build_model(point, train.schema, seed, n_jobs=self.n_jobs)
        pipeline.fit(train.features, np.asarray(train.labels, dtype=object))
        return FittedModel(
            pipeline=pipeline,
            schema=train.schema,
            point=point,
            classes=tuple(pipeline.classes_),
            positive_label=self.positive_label,
        )

    def fit_final(self, train: Dataset, point: GridPoint) -> FittedModel:
        """Balance the whole training split, fit the selected point and save the model."""
        balanced = self.balancer.balance(train)
        self.logger.info(
            f"Fitting final model ({point}) on {len(balanced):,} rows {dict(balanced.class_counts())}"
        )
        model = self.fit(balanced, point)
        self.final_model = model

        if self.model_path:
            self.save(model, self.model_path)
        return model

    def save(self, model: FittedModel, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        joblib.dump(model, path)
        self.logger.info(f"Saved model: {path}")

    @staticmethod
    def load(path: str) -> FittedModel:
        return joblib.load(path)
