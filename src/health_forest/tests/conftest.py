import os

os.environ.setdefault("MPLBACKEND", "Agg")

import numpy as np
import pandas as pd
import pytest

from health_forest.dataset import Dataset, Schema

SURVEY_FIELDS = {
    "BMI": "numeric",
    "Age": "numeric",
    "MentHlth": "numeric",
    "Income": "numeric",
    "HighBP": "categorical",
    "Smoker": "categorical",
    "PhysActivity": "categorical",
}


def _make_survey_frame(n_no: int, n_yes: int, seed: int = 0) -> pd.DataFrame:
    """Toy survey where diabetics skew to higher BMI, age and blood pressure."""
    rng = np.random.RandomState(seed)
    n = n_no + n_yes
    label = np.array(["No"] * n_no + ["Yes"] * n_yes, dtype=object)
    yes = label == "Yes"

    return pd.DataFrame(
        {
            "BMI": np.round(rng.normal(27.0, 4.0, n) + 5.0 * yes, 1),
            "Age": rng.randint(1, 12, n) + 2 * yes,
            "MentHlth": rng.randint(0, 31, n),
            "Income": rng.randint(1, 9, n),
            "HighBP": np.where(rng.rand(n) < np.where(yes, 0.75, 0.3), "yes", "no").astype(object),
            "Smoker": np.where(rng.rand(n) < 0.45, "yes", "no").astype(object),
            "PhysActivity": np.where(rng.rand(n) < np.where(yes, 0.5, 0.75), "yes", "no").astype(object),
            "Diabetes": pd.Categorical(label, categories=["No", "Yes"]),
        }
    )


@pytest.fixture
def make_survey_frame():
    return _make_survey_frame


@pytest.fixture
def make_dataset():
    def _make(n_no: int, n_yes: int, seed: int = 0) -> Dataset:
        schema = Schema.from_mapping("Diabetes", SURVEY_FIELDS)
        return Dataset(_make_survey_frame(n_no, n_yes, seed), schema)

    return _make


@pytest.fixture
def survey_dataset(make_dataset):
    # 920 "No" / 80 "Yes", the imbalance of the diabetes outcome
    return make_dataset(920, 80)


@pytest.fixture
def small_dataset(make_dataset):
    return make_dataset(200, 50, seed=3)
