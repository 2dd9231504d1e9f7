import numpy as np
import pytest

from health_forest.errors import EmptyGrid, UnknownMetric
from health_forest.grid import GridPoint, build_grid, check_grid
from health_forest.hyper_tuner import SearchResult
from health_forest.selector import rank_results, select_best


def _result(point, accuracy):
    return SearchResult(point=point, mean={"accuracy": accuracy}, std_err={"accuracy": 0.01}, fold_metrics=())


def test_select_best_takes_highest_mean():
    results = [
        _result(GridPoint(1, 5, 50), 0.81),
        _result(GridPoint(5, 5, 50), 0.86),
        _result(GridPoint(1, 20, 100), 0.84),
    ]
    assert select_best(results, "accuracy") == GridPoint(5, 5, 50)


def test_ties_prefer_fewer_trees_then_lower_mtry_then_lower_min_n():
    results = [
        _result(GridPoint(5, 20, 100), 0.9),
        _result(GridPoint(5, 20, 50), 0.9),
        _result(GridPoint(1, 20, 50), 0.9),
        _result(GridPoint(1, 5, 50), 0.9),
    ]
    assert select_best(results) == GridPoint(1, 5, 50)
    assert [r.point for r in rank_results(results, n=4)] == [
        GridPoint(1, 5, 50),
        GridPoint(1, 20, 50),
        GridPoint(5, 20, 50),
        GridPoint(5, 20, 100),
    ]


def test_identical_points_fall_back_to_first_encountered():
    first = _result(GridPoint(1, 5, 50), 0.8)
    second = _result(GridPoint(1, 5, 50), 0.8)
    assert rank_results([first, second], n=1)[0] is first


def test_undefined_means_rank_last():
    results = [
        _result(GridPoint(1, 5, 50), float("nan")),
        _result(GridPoint(5, 5, 100), 0.1),
    ]
    assert select_best(results) == GridPoint(5, 5, 100)


def test_select_best_rejects_empty_results():
    with pytest.raises(EmptyGrid):
        select_best([], "accuracy")


def test_build_grid_is_cartesian_product():
    grid = build_grid([1, 5], [5, 20], [50, 100])
    assert len(grid) == 8
    assert grid[0] == GridPoint(1, 5, 50)
    assert grid[-1] == GridPoint(5, 20, 100)
    with pytest.raises(ValueError):
        build_grid([1, 5], [5], [50], n_features=4)
    with pytest.raises(EmptyGrid):
        build_grid([], [5], [50])


@pytest.mark.parametrize("bad", [0, -3, 2.5, True])
def test_grid_point_requires_positive_integers(bad):
    with pytest.raises(ValueError):
        GridPoint(mtry=bad, min_n=5, trees=50)


def test_unknown_target_metric_is_rejected():
    results = [
        _result(GridPoint(5, 5, 100), 0.95),
        _result(GridPoint(1, 20, 50), 0.10),
    ]
    with pytest.raises(UnknownMetric) as err:
        select_best(results, "accuarcy")
    assert err.value.context["available"] == ["accuracy"]
    with pytest.raises(ValueError):
        rank_results(results, "accuarcy")


def test_build_grid_rejects_non_integer_values():
    with pytest.raises(ValueError):
        build_grid([2.5], [5], [50])
    with pytest.raises(ValueError):
        build_grid([1], ["5"], [50])
    assert build_grid(np.array([1, 2]), [5], [50]) == [GridPoint(1, 5, 50), GridPoint(2, 5, 50)]


def test_repeated_grid_points_are_rejected():
    with pytest.raises(ValueError):
        build_grid([1, 1], [5], [50])
    with pytest.raises(ValueError):
        check_grid([GridPoint(1, 5, 50), GridPoint(1, 5, 50)], n_features=4)
