"""Token bucket pacer that spreads packets over time."""

from __future__ import annotations

import math
from collections.abc import Callable

from hycore.congestion.bandwidth import MILLISECOND, SECOND

MAX_BURST_PACKETS = 10
INITIAL_PACKET_SIZE_IPV4 = 1252
MIN_PACING_DELAY = MILLISECOND

_OVERFLOW_BUDGET = (1 << 62) - 1


def _div_trunc(a: int, b: int) -> int:
    quotient = abs(a) // b
    return quotient if a >= 0 else -quotient


class Pacer:
    """Token bucket pacing; ``get_bandwidth`` returns bytes per second.

    Times are integer nanoseconds, with 0 meaning "never".
    """

    def __init__(self, get_bandwidth: Callable[[], int]) -> None:
        self._get_bandwidth = get_bandwidth
        self._budget_at_last_sent = MAX_BURST_PACKETS * INITIAL_PACKET_SIZE_IPV4
        self._max_datagram_size = INITIAL_PACKET_SIZE_IPV4
        self._last_sent_time = 0

    def sent_packet(self, send_time: int, size: int) -> None:
        """Spend budget on a packet of the given size sent at send_time."""
        budget = self.budget(send_time)
        self._budget_at_last_sent = 0 if size > budget else budget - size
        self._last_sent_time = send_time

    def budget(self, now: int) -> int:
        """Bytes that may be sent at time now."""
        if self._last_sent_time == 0:
            return self._max_burst_size()
        elapsed = now - self._last_sent_time
        budget = self._budget_at_last_sent + _div_trunc(self._get_bandwidth() * elapsed, SECOND)
        if budget < 0:
            budget = _OVERFLOW_BUDGET
        return min(self._max_burst_size(), budget)

    def _max_burst_size(self) -> int:
        return max(
            (MIN_PACING_DELAY + MILLISECOND) * self._get_bandwidth() // SECOND,
            MAX_BURST_PACKETS * self._max_datagram_size,
        )

    def time_until_send(self) -> int:
        """Time at which the next packet may be sent, or 0 for right away."""
        if self._budget_at_last_sent >= self._max_datagram_size:
            return 0
        missing = self._max_datagram_size - self._budget_at_last_sent
        wait = math.ceil(missing * 1e9 / float(self._get_bandwidth()))
        return self._last_sent_time + max(MIN_PACING_DELAY, wait)

    def set_max_datagram_size(self, size: int) -> None:
        """Change the largest datagram size the pacer accounts for."""
        self._max_datagram_size = size