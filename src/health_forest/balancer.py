from typing import Literal, Optional

import numpy as np
import pandas as pd
from imblearn.over_sampling import SMOTE, SMOTEN, SMOTENC

from .dataset import Dataset
from .errors import InsufficientNeighbors, InvalidFraction, SchemaMismatch
from .utils.logger import get_logger


class Balancer:
    """
    Oversamples minority classes of a training dataset with the SMOTE family.

    Every non-majority class is raised to ``floor(target_ratio * majority)``
    rows; classes already at that size are left alone and the majority class
    is never touched. The sampler is picked from the schema: SMOTE for
    all-numeric features, SMOTEN for all-categorical, SMOTENC for a mix.

    Example:
        balancer = Balancer(target_ratio=0.9, random_state=10)
        train_balanced = balancer.balance(train)
    """

    def __init__(
        self,
        strategy: Literal["none", "smote"] = "smote",
        target_ratio: float = 0.9,
        k_neighbors: int = 5,
        random_state: int = 42,
        verbose: bool = False,
    ):
        if strategy not in ("none", "smote"):
            raise ValueError(f"Unknown balancing strategy: {strategy}")
        if not 0 < target_ratio <= 1:
            raise InvalidFraction(
                "target_ratio must lie in (0, 1]", {"target_ratio": target_ratio}
            )
        self.strategy = strategy
        self.target_ratio = target_ratio
        self.k_neighbors = k_neighbors
        self.random_state = random_state
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def target_counts(self, counts: pd.Series) -> dict:
        """Return {class: desired count} for every class that needs new rows."""
        majority = counts.idxmax()
        target = int(np.floor(self.target_ratio * counts[majority] + 1e-9))
        return {
            cls: target
            for cls, n in counts.items()
            if cls != majority and n < target
        }

    def _make_sampler(self, dataset: Dataset, targets: dict, seed: int):
        schema = dataset.schema
        params = dict(sampling_strategy=targets, k_neighbors=self.k_neighbors, random_state=seed)

        if not schema.categorical_features:
            return SMOTE(**params)
        if not schema.numeric_features:
            return SMOTEN(**params)
        mask = [name in schema.categorical_features for name in schema.feature_names]
        return SMOTENC(categorical_features=mask, **params)

    def balance(
        self,
        train: Dataset,
        label_field: Optional[str] = None,
        random_state: Optional[int] = None,
    ) -> Dataset:
        if self.strategy == "none":
            return train

        schema = train.schema
        if label_field is not None and label_field != schema.label:
            raise SchemaMismatch(
                "Balance label must be the dataset's label field",
                {"label_field": label_field, "schema_label": schema.label},
            )

        counts = train.class_counts()
        targets = self.target_counts(counts)
        if not targets:
            if self.verbose:
                self.logger.info(f"Classes already balanced at ratio {self.target_ratio}: {dict(counts)}")
            return train

        for cls in targets:
            if counts[cls] < self.k_neighbors + 1:
                raise InsufficientNeighbors(
                    "Too few members to find nearest neighbours",
                    {"label": cls, "count": int(counts[cls]), "k_neighbors": self.k_neighbors},
                )

        seed = self.random_state if random_state is None else random_state
        sampler = self._make_sampler(train, targets, seed)

        X = train.features.copy()
        numeric = schema.numeric_features
        # interpolated values must not be truncated back to integer dtypes
        if numeric:
            X[numeric] = X[numeric].astype(float)
        y = np.asarray(train.labels, dtype=object)

        X_res, y_res = sampler.fit_resample(X, y)

        out = pd.DataFrame(X_res, columns=schema.feature_names).reset_index(drop=True)
        if numeric:
            out[numeric] = out[numeric].astype(float)
        for name in schema.categorical_features:
            out[name] = out[name].astype(train.frame[name].dtype)

        if isinstance(train.labels.dtype, pd.CategoricalDtype):
            out[schema.label] = pd.Categorical(y_res, categories=train.classes)
        else:
            out[schema.label] = np.asarray(y_res)

        balanced = train.with_frame(out)
        if self.verbose:
            self.logger.info(
                f"SMOTE ({type(sampler).__name__}) balanced {dict(counts)} -> {dict(balanced.class_counts())}"
            )
        return balanced


def balance(
    train: Dataset,
    label_field: str,
    target_ratio: float,
    k_neighbors: int = 5,
    seed: int = 42,
) -> Dataset:
    return Balancer("smote", target_ratio, k_neighbors, seed).balance(train, label_field)
