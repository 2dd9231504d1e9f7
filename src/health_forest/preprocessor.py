from __future__ import annotations

from typing import Optional

from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder

from .dataset import Schema
from .utils.logger import get_logger


class Preprocessor:
    """Builds a ColumnTransformer routing schema fields to numeric/categorical handling."""

    def __init__(self, verbose: bool = False):
        """
        Parameters
        ----------
        verbose:
            If True, logs detected feature groups.

        Values are expected to be imputed upstream, so numeric fields pass
        through untouched (trees need no scaling) and categorical fields are
        one-hot encoded.
        """
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)
        self.transformer: Optional[ColumnTransformer] = None

    @staticmethod
    def _make_onehot() -> OneHotEncoder:
        # levels unseen during fit (rare categories in a small fold) encode as all zeros
        return OneHotEncoder(handle_unknown="ignore", sparse_output=False)

    def build(self, schema: Schema) -> ColumnTransformer:
        """Build (but do not fit) the preprocessing transformer."""
        numeric_cols = schema.numeric_features
        categorical_cols = schema.categorical_features

        self.transformer = ColumnTransformer(
            transformers=[
                ("num", "passthrough", numeric_cols),
                ("cat", self._make_onehot(), categorical_cols),
            ],
            remainder="drop",
        )

        if self.verbose:
            self.logger.info(
                f"Columns detected: numeric={len(numeric_cols)}, categorical={len(categorical_cols)}"
            )

        return self.transformer
