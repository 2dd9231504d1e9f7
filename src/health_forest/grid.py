import operator
from collections import Counter
from dataclasses import dataclass
from itertools import product
from typing import Iterable, Optional, Sequence

from .errors import EmptyGrid


@dataclass(frozen=True, order=True)
class GridPoint:
    """One Random Forest configuration: features tried per split, node size, forest size."""

    mtry: int
    min_n: int
    trees: int

    def __post_init__(self):
        for name in ("mtry", "min_n", "trees"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    def as_dict(self) -> dict[str, int]:
        return {"mtry": self.mtry, "min_n": self.min_n, "trees": self.trees}

    def __str__(self) -> str:
        return f"mtry={self.mtry}, min_n={self.min_n}, trees={self.trees}"


def _as_int(name: str, value) -> int:
    # numpy integers are fine, 2.5, "3" or True are not
    if isinstance(value, bool):
        raise ValueError(f"{name} values must be integers, got {value!r}")
    try:
        return operator.index(value)
    except TypeError:
        raise ValueError(f"{name} values must be integers, got {value!r}") from None


def build_grid(
    mtry: Sequence[int],
    min_n: Sequence[int],
    trees: Sequence[int],
    n_features: Optional[int] = None,
) -> list[GridPoint]:
    """Cartesian product of the three ranges, in mtry-major order."""
    ranges = {
        "mtry": [_as_int("mtry", v) for v in mtry],
        "min_n": [_as_int("min_n", v) for v in min_n],
        "trees": [_as_int("trees", v) for v in trees],
    }
    points = [GridPoint(m, n, t) for m, n, t in product(ranges["mtry"], ranges["min_n"], ranges["trees"])]
    if not points:
        raise EmptyGrid("Grid ranges produce no points", {"mtry": mtry, "min_n": min_n, "trees": trees})
    if n_features is not None:
        check_grid(points, n_features)
    return points


def check_grid(points: Iterable[GridPoint], n_features: int) -> list[GridPoint]:
    points = list(points)
    if not points:
        raise EmptyGrid("Grid search needs at least one grid point")
    repeated = [str(p) for p, count in Counter(points).items() if count > 1]
    if repeated:
        raise ValueError(f"Grid points must be unique, repeated: {repeated}")
    too_wide = [p for p in points if p.mtry > n_features]
    if too_wide:
        raise ValueError(
            f"mtry cannot exceed the feature count ({n_features}): {[str(p) for p in too_wide]}"
        )
    return points
