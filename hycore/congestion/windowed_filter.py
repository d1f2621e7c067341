"""Windowed minimum/maximum filter over a stream of timed samples.

Keeps the best, second best and third best estimates seen within a window,
with the measurement time of the n-th best never older than the (n-1)-th.
A new best sample replaces all three; when the best expires it is replaced
by the second best, which in turn is replaced by the third best.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, NamedTuple, TypeVar

V = TypeVar("V")
T = TypeVar("T", int, float)


class _Estimate(NamedTuple):
    sample: Any
    time: Any


def max_filter(a: Any, b: Any) -> int:
    """Comparator ranking larger values as better."""
    return (a > b) - (a < b)


def min_filter(a: Any, b: Any) -> int:
    """Comparator ranking smaller values as better."""
    return (a < b) - (a > b)


class WindowedFilter(Generic[V, T]):
    """Tracks the best samples seen within a sliding window of time.

    ``comparator(a, b)`` returns a positive number when ``a`` is better than
    ``b``, zero when they rank equally and a negative number otherwise.
    ``zero`` is the value reported before any sample has been recorded; a
    best estimate equal to it counts as "not yet initialized".
    """

    def __init__(self, window_length: T, comparator: Callable[[V, V], int], zero: Any = 0) -> None:
        self._window_length = window_length
        self._comparator = comparator
        self._zero = zero
        self._estimates = self._blank()

    def _blank(self) -> list[_Estimate]:
        empty = _Estimate(self._zero, 0)
        return [empty, empty, empty]

    def _window_fraction(self, divisor: int) -> T:
        length = self._window_length
        return length // divisor if isinstance(length, int) else length / divisor

    def set_window_length(self, window_length: T) -> None:
        """Change the window length without touching the current estimates."""
        self._window_length = window_length

    def best(self) -> V:
        return self._estimates[0].sample

    def second_best(self) -> V:
        return self._estimates[1].sample

    def third_best(self) -> V:
        return self._estimates[2].sample

    def update(self, sample: V, time: T) -> None:
        """Record a sample, expiring and promoting estimates as needed."""
        better = self._comparator
        est = self._estimates
        window = self._window_length

        if (
            better(est[0].sample, self._zero) == 0
            or better(sample, est[0].sample) >= 0
            or time - est[2].time > window
        ):
            self.reset(sample, time)
            return

        fresh = _Estimate(sample, time)
        if better(sample, est[1].sample) >= 0:
            est[1] = fresh
            est[2] = fresh
        elif better(sample, est[2].sample) >= 0:
            est[2] = fresh

        if time - est[0].time > window:
            # The best estimate is older than the whole window: promote.
            est[0] = est[1]
            est[1] = est[2]
            est[2] = fresh
            if time - est[0].time > window:
                est[0] = est[1]
                est[1] = est[2]
            return

        if better(est[1].sample, est[0].sample) == 0 and time - est[1].time > self._window_fraction(4):
            # A quarter window passed without a better sample.
            est[1] = fresh
            est[2] = fresh
            return

        if better(est[2].sample, est[1].sample) == 0 and time - est[2].time > self._window_fraction(2):
            # Half a window passed without a better sample.
            est[2] = fresh

    def reset(self, sample: V, time: T) -> None:
        """Set all three estimates to the given sample."""
        entry = _Estimate(sample, time)
        self._estimates = [entry, entry, entry]

    def clear(self) -> None:
        """Forget every estimate."""
        self._estimates = self._blank()