import pytest

from hycore.congestion.windowed_filter import WindowedFilter, max_filter, min_filter


def estimates(f):
    return f.best(), f.second_best(), f.third_best()


def test_fresh_filter_reports_zero():
    f = WindowedFilter(10, max_filter)
    assert estimates(f) == (0, 0, 0)


def test_first_update_sets_all_estimates():
    f = WindowedFilter(10, max_filter)
    f.update(100, 1)
    assert estimates(f) == (100, 100, 100)


def test_better_sample_replaces_everything():
    f = WindowedFilter(10, max_filter)
    f.update(100, 1)
    f.update(200, 2)
    assert estimates(f) == (200, 200, 200)


def test_worse_sample_recorded_after_quarter_window():
    f = WindowedFilter(10, max_filter)
    f.update(100, 0)
    f.update(50, 5)
    assert estimates(f) == (100, 50, 50)


def test_worse_sample_within_quarter_window_ignored():
    f = WindowedFilter(10, max_filter)
    f.update(100, 0)
    f.update(50, 1)
    assert estimates(f) == (100, 100, 100)


def test_best_expires_and_second_is_promoted():
    f = WindowedFilter(10, max_filter)
    f.update(100, 0)
    f.update(50, 5)
    f.update(40, 11)
    assert f.best() == 50
    assert f.third_best() == 40


def test_stale_history_resets_to_new_sample():
    f = WindowedFilter(10, max_filter)
    f.update(100, 0)
    f.update(50, 20)
    assert estimates(f) == (50, 50, 50)


def test_min_filter_keeps_smallest():
    f = WindowedFilter(10, min_filter)
    f.update(30, 1)
    f.update(20, 2)
    f.update(25, 3)
    assert f.best() == 20


def test_clear_forgets_estimates():
    f = WindowedFilter(10, max_filter)
    f.update(100, 1)
    f.clear()
    assert f.best() == 0
    f.update(5, 2)
    assert estimates(f) == (5, 5, 5)


def test_reset_sets_all_estimates():
    f = WindowedFilter(10, max_filter)
    f.update(100, 1)
    f.reset(7, 3)
    assert estimates(f) == (7, 7, 7)


def test_longer_window_keeps_old_best():
    f = WindowedFilter(10, max_filter)
    f.update(100, 0)
    f.set_window_length(100)
    f.update(50, 20)
    assert f.best() == 100


def test_float_window_uses_true_division():
    f = WindowedFilter(10.0, max_filter)
    f.update(100, 0.0)
    f.update(50, 2.4)
    assert f.second_best() == 100
    f.update(50, 2.6)
    assert f.second_best() == 50


@pytest.mark.parametrize(
    "a, b, expected_max, expected_min",
    [(2, 1, 1, -1), (1, 2, -1, 1), (1, 1, 0, 0)],
)
def test_comparators(a, b, expected_max, expected_min):
    assert max_filter(a, b) == expected_max
    assert min_filter(a, b) == expected_min


def test_custom_zero_and_comparator():
    zero = (0, "none")
    f = WindowedFilter(10, lambda a, b: max_filter(a[0], b[0]), zero)
    assert f.best() == zero
    f.update((5, "a"), 1)
    f.update((3, "b"), 2)
    assert f.best() == (5, "a")