import pandas as pd
import pytest

from health_forest.dataset import Dataset, Schema
from health_forest.errors import EmptyStratum, InvalidFraction, SchemaMismatch
from health_forest.splitter import DatasetSplitter, stratified_split


def test_split_matches_imbalanced_survey_proportions(survey_dataset):
    train, test = stratified_split(survey_dataset, "Diabetes", 0.8, seed=10)

    assert train.class_counts().to_dict() == {"No": 736, "Yes": 64}
    assert test.class_counts().to_dict() == {"No": 184, "Yes": 16}


@pytest.mark.parametrize("fraction", [0.1, 0.33, 0.5, 0.8, 0.95])
@pytest.mark.parametrize("seed", [0, 1, 42])
def test_split_is_a_stratified_partition(survey_dataset, fraction, seed):
    train, test = stratified_split(survey_dataset, "Diabetes", fraction, seed)

    train_ids = set(train.frame.index)
    test_ids = set(test.frame.index)
    assert len(train) + len(test) == len(survey_dataset)
    assert train_ids.isdisjoint(test_ids)
    assert train_ids | test_ids == set(survey_dataset.frame.index)

    full = survey_dataset.class_counts()
    in_train = train.class_counts()
    for level in full.index:
        assert abs(in_train[level] - fraction * full[level]) <= 1


def test_split_is_reproducible_for_a_seed(survey_dataset):
    a, _ = stratified_split(survey_dataset, "Diabetes", 0.8, seed=10)
    b, _ = stratified_split(survey_dataset, "Diabetes", 0.8, seed=10)
    c, _ = stratified_split(survey_dataset, "Diabetes", 0.8, seed=11)

    assert list(a.frame.index) == list(b.frame.index)
    assert list(a.frame.index) != list(c.frame.index)


def test_split_does_not_mutate_source(survey_dataset):
    before = survey_dataset.frame.copy(deep=True)
    DatasetSplitter(0.7, seed=1, verbose=False).split(survey_dataset)
    pd.testing.assert_frame_equal(survey_dataset.frame, before)


@pytest.mark.parametrize("fraction", [0, 1, -0.2, 1.5])
def test_split_rejects_fraction_outside_unit_interval(survey_dataset, fraction):
    with pytest.raises(InvalidFraction):
        stratified_split(survey_dataset, "Diabetes", fraction, seed=1)


def test_split_rejects_empty_stratum():
    schema = Schema.from_mapping("y", {"x": "numeric"})
    frame = pd.DataFrame(
        {
            "x": [1.0, 2.0, 3.0, 4.0],
            "y": pd.Categorical(["Good", "Fair", "Good", "Fair"], categories=["Good", "Fair", "Poor"]),
        }
    )
    with pytest.raises(EmptyStratum) as err:
        stratified_split(Dataset(frame, schema), "y", 0.5, seed=1)
    assert err.value.context["label"] == "Poor"


def test_split_rejects_non_label_field(survey_dataset):
    with pytest.raises(SchemaMismatch):
        stratified_split(survey_dataset, "BMI", 0.8, seed=1)
