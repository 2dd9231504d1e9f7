import numpy as np
import pandas as pd

from health_forest.dataset import Schema
from health_forest.preprocessor import Preprocessor


def _make_small_X():
    return pd.DataFrame(
        {
            # numeric
            "BMI": [31.5, 22.0, 27.3],
            "Age": [9, 4, 12],

            # categorical
            "HighBP": ["yes", "no", "no"],
            "GenHlth": ["Good", "Fair", "Poor"],
        }
    )


SCHEMA = Schema.from_mapping(
    "Diabetes", {"BMI": "numeric", "Age": "numeric", "HighBP": "categorical", "GenHlth": "categorical"}
)


def test_preprocessor_build_returns_column_transformer():
    transformer = Preprocessor().build(SCHEMA)
    names = [name for name, _, _ in transformer.transformers]
    assert names == ["num", "cat"]


def test_preprocessor_fit_transform_preserves_rows_and_one_hot_encodes():
    X = _make_small_X()
    Xt = Preprocessor().build(SCHEMA).fit_transform(X)

    # 2 numeric + 2 HighBP levels + 3 GenHlth levels
    assert Xt.shape == (3, 7)
    assert np.isfinite(Xt).all()
    np.testing.assert_allclose(Xt[:, 0], X["BMI"].to_numpy())


def test_preprocessor_transform_handles_unseen_categories():
    X_train = _make_small_X()
    X_test = pd.DataFrame(
        {
            "BMI": [25.0],
            "Age": [7],
            "HighBP": ["unknown"],  # unseen category
            "GenHlth": ["Excellent"],  # unseen category
        }
    )

    transformer = Preprocessor().build(SCHEMA)
    transformer.fit(X_train)

    Xt_test = transformer.transform(X_test)
    assert Xt_test.shape == (1, 7)
    assert Xt_test[0, 2:].sum() == 0


def test_preprocessor_numeric_only_schema():
    schema = Schema.from_mapping("y", {"BMI": "numeric"})
    Xt = Preprocessor().build(schema).fit_transform(_make_small_X())
    assert Xt.shape == (3, 1)
