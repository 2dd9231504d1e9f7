import math
from typing import Sequence

from .errors import EmptyGrid, UnknownMetric
from .grid import GridPoint
from .hyper_tuner import SearchResult


def _rank_key(metric: str):
    def key(item: tuple[int, SearchResult]):
        order, result = item
        score = result.mean.get(metric, float("nan"))
        undefined = score is None or math.isnan(score)
        # best score first, then the cheaper / simpler configuration
        return (
            undefined,
            0.0 if undefined else -score,
            result.point.trees,
            result.point.mtry,
            result.point.min_n,
            order,
        )
    return key


def _check_metric(results: Sequence[SearchResult], metric: str) -> None:
    available = sorted({name for result in results for name in result.mean})
    if results and metric not in available:
        raise UnknownMetric(
            f"Unknown target metric {metric!r}",
            {"metric": metric, "available": available},
        )


def rank_results(results: Sequence[SearchResult], metric: str = "accuracy", n: int = 5) -> list[SearchResult]:
    """Top ``n`` results in the order ``select_best`` prefers them."""
    _check_metric(results, metric)
    ranked = sorted(enumerate(results), key=_rank_key(metric))
    return [result for _, result in ranked[:n]]


def select_best(search_results: Sequence[SearchResult], target_metric: str = "accuracy") -> GridPoint:
    """
    Grid point with the highest mean ``target_metric``.

    Ties go to fewer trees, then lower mtry, then lower min_n, then the
    earlier result; points whose mean is undefined rank last. A metric name
    no result reports raises ``UnknownMetric``.
    """
    if not search_results:
        raise EmptyGrid("No search results to select from", {"target_metric": target_metric})
    return rank_results(search_results, target_metric, n=1)[0].point
