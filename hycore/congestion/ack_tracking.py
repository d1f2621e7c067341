"""Ack bookkeeping for bandwidth sampling: send states, ack points and ack height.

Times are integer nanoseconds with 0 meaning "unset"; durations are integer
nanoseconds; bandwidth is in bits per second; byte counts are integers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from hycore.congestion.bandwidth import SECOND
from hycore.congestion.packet_queue import INVALID_PACKET_NUMBER
from hycore.congestion.windowed_filter import WindowedFilter


def _div_trunc(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


def bytes_from_bandwidth_and_time_delta(bandwidth: int, delta: int) -> int:
    """Bytes delivered at bandwidth (bits per second) over delta nanoseconds."""
    return _div_trunc(bandwidth * delta, SECOND * 8)


def time_delta_from_bytes_and_bandwidth(byte_count: int, bandwidth: int) -> int:
    """Nanoseconds needed to deliver byte_count bytes at bandwidth bits per second."""
    return _div_trunc(byte_count * 8 * SECOND, bandwidth)


@dataclass
class SendTimeState:
    """Connection state captured when a packet was sent.

    ``bytes_in_flight`` includes the packet itself, as does ``total_bytes_sent``.
    """

    is_valid: bool = False
    is_app_limited: bool = False
    total_bytes_sent: int = 0
    total_bytes_acked: int = 0
    total_bytes_lost: int = 0
    bytes_in_flight: int = 0


@dataclass(frozen=True)
class ExtraAckedEvent:
    """Bytes acknowledged beyond what the estimated bandwidth explains."""

    extra_acked: int = 0
    bytes_acked: int = 0
    time_delta: int = 0
    round: int = 0


def _compare_extra_acked(a: ExtraAckedEvent, b: ExtraAckedEvent) -> int:
    return (a.extra_acked > b.extra_acked) - (a.extra_acked < b.extra_acked)


@dataclass(frozen=True)
class AckPoint:
    """A point on the ack line: a time and the total bytes acked by then."""

    ack_time: int = 0
    total_bytes_acked: int = 0


class RecentAckPoints:
    """The two most recent ack points at distinct times."""

    def __init__(self) -> None:
        self._older = AckPoint()
        self._newer = AckPoint()

    def update(self, ack_time: int, total_bytes_acked: int) -> None:
        """Record the total bytes acked at ack_time."""
        if ack_time < self._newer.ack_time:
            self._newer = replace(self._newer, ack_time=ack_time)
        elif ack_time > self._newer.ack_time:
            self._older = self._newer
            self._newer = replace(self._newer, ack_time=ack_time)
        self._newer = replace(self._newer, total_bytes_acked=total_bytes_acked)

    def clear(self) -> None:
        """Forget both points."""
        self._older = AckPoint()
        self._newer = AckPoint()

    def most_recent_point(self) -> AckPoint:
        return self._newer

    def less_recent_point(self) -> AckPoint:
        """The older point if it has been recorded, else the most recent one."""
        if self._older.total_bytes_acked != 0:
            return self._older
        return self._newer


class MaxAckHeightTracker:
    """Tracks the degree of ack aggregation ("ack height") after every ack event."""

    def __init__(self, window_length: int) -> None:
        self._filter: WindowedFilter[ExtraAckedEvent, int] = WindowedFilter(
            window_length, _compare_extra_acked, ExtraAckedEvent()
        )
        self._epoch_start_time = 0
        self._epoch_bytes = 0
        self._last_sent_packet_before_epoch = INVALID_PACKET_NUMBER
        self.num_ack_aggregation_epochs = 0
        self.ack_aggregation_bandwidth_threshold = 1.0
        self.start_new_aggregation_epoch_after_full_round = False
        self.reduce_extra_acked_on_bandwidth_increase = False

    def get(self) -> int:
        """The largest recorded excess of acked bytes within the window."""
        return self._filter.best().extra_acked

    def _reinsert(self, event: ExtraAckedEvent, bandwidth_estimate: int) -> None:
        expected = bytes_from_bandwidth_and_time_delta(bandwidth_estimate, event.time_delta)
        if expected < event.bytes_acked:
            self._filter.update(
                replace(event, extra_acked=event.bytes_acked - expected), event.round
            )

    def _start_epoch(self, ack_time: int, bytes_acked: int, last_sent_packet_number: int) -> int:
        self._epoch_bytes = bytes_acked
        self._epoch_start_time = ack_time
        self._last_sent_packet_before_epoch = last_sent_packet_number
        self.num_ack_aggregation_epochs += 1
        return 0

    def update(
        self,
        bandwidth_estimate: int,
        is_new_max_bandwidth: bool,
        round_trip_count: int,
        last_sent_packet_number: int,
        last_acked_packet_number: int,
        ack_time: int,
        bytes_acked: int,
    ) -> int:
        """Account for an ack event; return the bytes acked beyond the estimate."""
        if self.reduce_extra_acked_on_bandwidth_increase and is_new_max_bandwidth:
            events = (self._filter.best(), self._filter.second_best(), self._filter.third_best())
            self._filter.clear()
            for event in events:
                self._reinsert(event, bandwidth_estimate)

        force_new_epoch = (
            self.start_new_aggregation_epoch_after_full_round
            and self._last_sent_packet_before_epoch != INVALID_PACKET_NUMBER
            and last_acked_packet_number != INVALID_PACKET_NUMBER
            and last_acked_packet_number > self._last_sent_packet_before_epoch
        )
        if self._epoch_start_time == 0 or force_new_epoch:
            return self._start_epoch(ack_time, bytes_acked, last_sent_packet_number)

        aggregation_delta = ack_time - self._epoch_start_time
        expected_bytes_acked = bytes_from_bandwidth_and_time_delta(
            bandwidth_estimate, aggregation_delta
        )
        # Start a new epoch once acks arrive no faster than the max bandwidth.
        threshold = int(self.ack_aggregation_bandwidth_threshold * float(expected_bytes_acked))
        if self._epoch_bytes <= threshold:
            return self._start_epoch(ack_time, bytes_acked, last_sent_packet_number)

        self._epoch_bytes += bytes_acked
        extra_bytes_acked = self._epoch_bytes - expected_bytes_acked
        event = ExtraAckedEvent(
            extra_acked=expected_bytes_acked,
            bytes_acked=self._epoch_bytes,
            time_delta=aggregation_delta,
        )
        self._filter.update(event, round_trip_count)
        return extra_bytes_acked

    def set_filter_window_length(self, length: int) -> None:
        """Change the window, in round trips, of the max filter."""
        self._filter.set_window_length(length)

    def reset(self, new_height: int, new_time: int) -> None:
        """Replace every tracked height with new_height recorded at round new_time."""
        self._filter.reset(ExtraAckedEvent(extra_acked=new_height, round=new_time), new_time)