import numpy as np
import pandas as pd
import pytest

from health_forest.dataset import CATEGORICAL, NUMERIC, Dataset, Schema
from health_forest.errors import SchemaMismatch


def test_schema_infer_uses_dtypes(make_survey_frame):
    df = make_survey_frame(10, 5)
    schema = Schema.infer(df, "Diabetes")

    assert schema.kind("BMI") == NUMERIC
    assert schema.kind("Age") == NUMERIC
    assert schema.kind("HighBP") == CATEGORICAL
    assert schema.kind("Diabetes") == CATEGORICAL
    assert "Diabetes" not in schema.feature_names


def test_schema_infer_treats_bool_as_categorical():
    df = pd.DataFrame({"flag": [True, False], "y": ["a", "b"]})
    assert Schema.infer(df, "y").kind("flag") == CATEGORICAL


def test_schema_rejects_unknown_kind_and_label_as_feature():
    with pytest.raises(SchemaMismatch):
        Schema.from_mapping("y", {"x": "ordinal"})
    with pytest.raises(SchemaMismatch):
        Schema.from_mapping("y", {"y": "numeric"})


def test_schema_validate_flags_missing_columns_and_values(make_survey_frame):
    df = make_survey_frame(10, 5)
    schema = Schema.infer(df, "Diabetes")

    with pytest.raises(SchemaMismatch, match="missing"):
        schema.validate(df.drop(columns=["BMI"]))

    with_na = df.copy()
    with_na.loc[0, "BMI"] = np.nan
    with pytest.raises(SchemaMismatch, match="missing values"):
        schema.validate(with_na)


def test_schema_validate_flags_text_in_numeric_field(make_survey_frame):
    df = make_survey_frame(10, 5)
    schema = Schema.infer(df, "Diabetes")
    df["BMI"] = df["BMI"].astype(str)

    with pytest.raises(SchemaMismatch, match="non-numeric"):
        schema.validate(df)


def test_dataset_take_keeps_row_identity(survey_dataset):
    subset = survey_dataset.take([3, 1, 998])
    assert list(subset.frame.index) == [3, 1, 998]
    assert subset.schema == survey_dataset.schema
    # source untouched
    assert len(survey_dataset) == 1000


def test_dataset_class_counts_follow_declared_levels(survey_dataset):
    counts = survey_dataset.class_counts()
    assert list(counts.index) == ["No", "Yes"]
    assert counts.tolist() == [920, 80]


def test_dataset_classes_without_categorical_dtype():
    schema = Schema.from_mapping("y", {"x": "numeric"})
    ds = Dataset(pd.DataFrame({"x": [1.0, 2.0, 3.0], "y": ["b", "a", "b"]}), schema)
    assert ds.classes == ["a", "b"]
