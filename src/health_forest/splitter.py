from typing import Optional

import numpy as np

from .dataset import CATEGORICAL, Dataset
from .errors import EmptyStratum, InvalidFraction, SchemaMismatch
from .utils.logger import get_logger


def _round_half_up(x: float) -> int:
    return int(np.floor(x + 0.5))


def stratified_split(
    dataset: Dataset,
    label_field: str,
    train_fraction: float,
    seed: int,
) -> tuple[Dataset, Dataset]:
    """
    Partition ``dataset`` into (train, test) keeping label proportions.

    Each label stratum is shuffled with a seeded generator and its first
    ``round_half_up(train_fraction * n)`` rows go to train. Row order within
    each output follows the source order.
    """
    if not 0 < train_fraction < 1:
        raise InvalidFraction(
            "train_fraction must lie strictly between 0 and 1",
            {"train_fraction": train_fraction},
        )
    if label_field != dataset.schema.label or dataset.schema.kind(label_field) != CATEGORICAL:
        raise SchemaMismatch(
            "Split label must be the dataset's categorical label field",
            {"label_field": label_field, "schema_label": dataset.schema.label},
        )

    labels = dataset.frame[label_field].to_numpy()
    rng = np.random.RandomState(seed)
    train_pos: list[np.ndarray] = []

    for level in dataset.classes:
        stratum = np.flatnonzero(labels == level)
        if len(stratum) == 0:
            raise EmptyStratum("Label value has no observations", {"label": level})
        n_train = _round_half_up(train_fraction * len(stratum))
        train_pos.append(rng.permutation(stratum)[:n_train])

    train_idx = np.sort(np.concatenate(train_pos))
    test_idx = np.setdiff1d(np.arange(len(dataset)), train_idx, assume_unique=True)

    return dataset.take(train_idx), dataset.take(test_idx)


class DatasetSplitter:
    """Stratified, seeded train/test splitter."""

    def __init__(self, train_fraction: float = 0.8, seed: int = 10, verbose: bool = True):
        self.train_fraction = train_fraction
        self.seed = seed
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def split(self, dataset: Dataset, label_field: Optional[str] = None) -> tuple[Dataset, Dataset]:
        label_field = label_field or dataset.schema.label
        train, test = stratified_split(dataset, label_field, self.train_fraction, self.seed)

        if self.verbose:
            self.logger.info(
                f"Split {len(dataset):,} rows -> train {len(train):,} "
                f"({dict(train.class_counts())}), test {len(test):,} ({dict(test.class_counts())})"
            )
        return train, test
