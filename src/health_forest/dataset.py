from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from .errors import SchemaMismatch

NUMERIC = "numeric"
CATEGORICAL = "categorical"
FIELD_KINDS = (NUMERIC, CATEGORICAL)


@dataclass(frozen=True)
class Schema:
    """Named, typed feature fields plus the designated label field."""

    label: str
    fields: tuple[tuple[str, str], ...]

    @classmethod
    def from_mapping(cls, label: str, fields: Mapping[str, str]) -> "Schema":
        pairs = []
        for name, kind in fields.items():
            if kind not in FIELD_KINDS:
                raise SchemaMismatch(
                    f"Unknown field kind '{kind}'", {"field": name, "allowed": FIELD_KINDS}
                )
            if name == label:
                raise SchemaMismatch("Label field cannot also be a feature", {"field": name})
            pairs.append((name, kind))
        return cls(label=label, fields=tuple(pairs))

    @classmethod
    def infer(
        cls,
        df: pd.DataFrame,
        label: str,
        columns: Optional[Sequence[str]] = None,
    ) -> "Schema":
        """Build a schema from dtypes: numbers are numeric, everything else categorical."""
        if label not in df.columns:
            raise SchemaMismatch("Label column not found", {"label": label})

        names = list(columns) if columns is not None else [c for c in df.columns if c != label]
        fields = {}
        for name in names:
            if name not in df.columns:
                raise SchemaMismatch("Column not found", {"field": name})
            dtype = df[name].dtype
            numeric = is_numeric_dtype(dtype) and not is_bool_dtype(dtype)
            fields[name] = NUMERIC if numeric else CATEGORICAL
        return cls.from_mapping(label, fields)

    @property
    def feature_names(self) -> list[str]:
        return [name for name, _ in self.fields]

    @property
    def numeric_features(self) -> list[str]:
        return [name for name, kind in self.fields if kind == NUMERIC]

    @property
    def categorical_features(self) -> list[str]:
        return [name for name, kind in self.fields if kind == CATEGORICAL]

    def kind(self, name: str) -> str:
        if name == self.label:
            return CATEGORICAL
        for field, kind in self.fields:
            if field == name:
                return kind
        raise SchemaMismatch("Field not in schema", {"field": name})

    def validate(self, df: pd.DataFrame) -> None:
        """Raise SchemaMismatch unless ``df`` holds every field, typed and complete."""
        missing = [c for c in [*self.feature_names, self.label] if c not in df.columns]
        if missing:
            raise SchemaMismatch("Columns missing from dataset", {"missing": missing})

        for name in self.numeric_features:
            dtype = df[name].dtype
            if not is_numeric_dtype(dtype) or is_bool_dtype(dtype):
                raise SchemaMismatch(
                    "Numeric field has non-numeric dtype", {"field": name, "dtype": str(dtype)}
                )

        # values are expected to be imputed upstream
        na_counts = df[[*self.feature_names, self.label]].isna().sum()
        with_na = na_counts[na_counts > 0]
        if not with_na.empty:
            raise SchemaMismatch(
                "Dataset contains missing values", {"fields": with_na.to_dict()}
            )


@dataclass(frozen=True, eq=False)
class Dataset:
    """An immutable frame of observations and the schema it follows.

    Row identity is the frame's index label; every derived dataset keeps the
    labels of the rows it came from (synthetic rows excepted).
    """

    frame: pd.DataFrame
    schema: Schema

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def features(self) -> pd.DataFrame:
        return self.frame[self.schema.feature_names]

    @property
    def labels(self) -> pd.Series:
        return self.frame[self.schema.label]

    @property
    def classes(self) -> list:
        """Declared label levels (categories if categorical, else sorted unique values)."""
        labels = self.labels
        if isinstance(labels.dtype, pd.CategoricalDtype):
            return list(labels.cat.categories)
        return sorted(pd.unique(labels), key=str)

    def class_counts(self) -> pd.Series:
        counts = self.labels.value_counts(sort=False)
        return counts.reindex(self.classes, fill_value=0)

    def take(self, positions: Iterable[int]) -> "Dataset":
        """Return a new dataset holding the rows at the given positions."""
        positions = np.asarray(list(positions), dtype=int)
        return Dataset(self.frame.iloc[positions].copy(), self.schema)

    def with_frame(self, frame: pd.DataFrame) -> "Dataset":
        return Dataset(frame, self.schema)
