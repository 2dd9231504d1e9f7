import pandas as pd
import pytest

from health_forest.data_loader import DataLoader, load_dataset
from health_forest.errors import SchemaMismatch


def _write_raw_csv(tmp_path, codes):
    df = pd.DataFrame(
        {
            "BMI": [22.5 + i for i in range(len(codes))],
            "Smoker": ["yes" if i % 2 else "no" for i in range(len(codes))],
            "Diabetes_012": codes,
        }
    )
    path = tmp_path / "survey.csv"
    df.to_csv(path, index=False)
    return path


def test_data_loader_recodes_outcome_to_ordered_categories(tmp_path):
    path = _write_raw_csv(tmp_path, [0, 1, 2, 0, 0, 2])
    ds = load_dataset(str(path), "Diabetes_012", recode={0: "No", 1: "Yes", 2: "Yes"})

    assert ds.classes == ["No", "Yes"]
    assert ds.labels.tolist() == ["No", "Yes", "Yes", "No", "No", "Yes"]
    assert ds.schema.numeric_features == ["BMI"]
    assert ds.schema.categorical_features == ["Smoker"]


def test_data_loader_rejects_codes_without_recode_entry(tmp_path):
    path = _write_raw_csv(tmp_path, [0, 1, 7])
    with pytest.raises(SchemaMismatch, match="recode"):
        load_dataset(str(path), "Diabetes_012", recode={0: "No", 1: "Yes"})


def test_data_loader_explicit_fields_restrict_and_type_columns(tmp_path):
    path = _write_raw_csv(tmp_path, [0, 1, 0, 1])
    ds = DataLoader(
        str(path),
        "Diabetes_012",
        recode={0: "No", 1: "Yes"},
        fields={"BMI": "numeric"},
        verbose=False,
    ).load()

    assert list(ds.frame.columns) == ["BMI", "Diabetes_012"]


def test_data_loader_missing_label_column(tmp_path):
    path = _write_raw_csv(tmp_path, [0, 1])
    with pytest.raises(SchemaMismatch):
        load_dataset(str(path), "Outcome")


def test_data_loader_sampling_is_deterministic(tmp_path):
    df = pd.DataFrame(
        {
            "ID": list(range(1, 101)),
            "X": [float(i) for i in range(100)],
            "Y": ["a", "b"] * 50,
        }
    )
    csv_path = tmp_path / "toy.csv"
    df.to_csv(csv_path, index=False)

    s1 = DataLoader(str(csv_path), "Y", sample_size=10, verbose=False).load()
    s2 = DataLoader(str(csv_path), "Y", sample_size=10, verbose=False).load()

    pd.testing.assert_frame_equal(
        s1.frame.sort_values("ID").reset_index(drop=True),
        s2.frame.sort_values("ID").reset_index(drop=True),
    )
