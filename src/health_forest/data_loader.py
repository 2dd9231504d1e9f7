from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from .dataset import Dataset, Schema
from .errors import SchemaMismatch
from .utils.logger import get_logger


class DataLoader:
    """Loads the pre-imputed survey CSV, recodes the outcome and validates the schema."""

    def __init__(
        self,
        path: str,
        label_col: str,
        recode: Optional[Mapping[Any, str]] = None,
        fields: Optional[Mapping[str, str]] = None,
        columns: Optional[Sequence[str]] = None,
        sample_size: Optional[int] = None,
        random_state: int = 42,
        verbose: bool = True,
    ):
        self.path = path
        self.label_col = label_col
        self.recode = dict(recode) if recode else None
        self.fields = dict(fields) if fields else None
        self.columns = list(columns) if columns else None
        self.sample_size = sample_size
        self.random_state = random_state
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def recode_outcome(self, df: pd.DataFrame) -> pd.DataFrame:
        """Map raw outcome codes to labels; the result is an ordered-by-mapping categorical."""
        if self.label_col not in df.columns:
            raise SchemaMismatch("Label column not found", {"label": self.label_col})

        out = df.copy()
        if self.recode is None:
            out[self.label_col] = out[self.label_col].astype("category")
            return out

        raw = out[self.label_col]
        unknown = sorted(set(raw.dropna().unique()) - set(self.recode), key=str)
        if unknown:
            raise SchemaMismatch(
                "Outcome codes without a recode entry",
                {"label": self.label_col, "codes": unknown},
            )

        # several codes may collapse onto one label (e.g. prediabetes -> "Yes")
        levels = list(dict.fromkeys(self.recode.values()))
        out[self.label_col] = pd.Categorical(raw.map(self.recode), categories=levels)
        return out

    def load(self) -> Dataset:
        df = pd.read_csv(self.path)
        if self.sample_size:
            df = df.sample(self.sample_size, random_state=self.random_state)

        df = self.recode_outcome(df)

        if self.fields:
            schema = Schema.from_mapping(self.label_col, self.fields)
        else:
            schema = Schema.infer(df, self.label_col, columns=self.columns)

        schema.validate(df)
        df = df[[*schema.feature_names, schema.label]].copy()
        for name in schema.categorical_features:
            df[name] = df[name].astype("object")

        if self.verbose:
            counts = ", ".join(f"{k}={v:,}" for k, v in df[schema.label].value_counts(sort=False).items())
            self.logger.info(
                f"Loaded {self.path}: {len(df):,} rows x {len(schema.fields)} features ({counts})"
            )

        return Dataset(df, schema)


def load_dataset(
    path: str,
    label_col: str,
    recode: Optional[Mapping[Any, str]] = None,
    fields: Optional[Mapping[str, str]] = None,
    **kwargs: Any,
) -> Dataset:
    return DataLoader(path, label_col, recode=recode, fields=fields, **kwargs).load()
