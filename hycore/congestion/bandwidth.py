"""Bandwidth arithmetic, time units and clocks.

Timestamps are integer nanoseconds since the Unix epoch, with 0 meaning
"unset"; durations are integer nanoseconds; bandwidth is in bits per second.
"""

from __future__ import annotations

import time
from typing import Protocol

NANOSECOND = 1
MICROSECOND = 1_000 * NANOSECOND
MILLISECOND = 1_000 * MICROSECOND
SECOND = 1_000 * MILLISECOND

BITS_PER_SECOND = 1
BYTES_PER_SECOND = 8 * BITS_PER_SECOND

INF_BANDWIDTH = (1 << 64) - 1


def bandwidth_from_delta(byte_count: int, delta: int) -> int:
    """Bandwidth, in bits per second, of byte_count bytes over delta nanoseconds."""
    return byte_count * SECOND // delta * BYTES_PER_SECOND


class Clock(Protocol):
    """Anything that reports the current time in nanoseconds."""

    def now(self) -> int: ...


class DefaultClock:
    """Clock backed by the system wall clock."""

    def now(self) -> int:
        """Return the current time in nanoseconds since the epoch."""
        return time.time_ns()