"""Brutal congestion control: send at a fixed rate, compensating for loss.

Times are integer nanoseconds since the Unix epoch; durations are integer
nanoseconds; the target rate is in bytes per second.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from hycore.congestion.bandwidth import MILLISECOND, SECOND
from hycore.congestion.pacer import INITIAL_PACKET_SIZE_IPV4, Pacer

# Slots are indexed by second, so this is how many seconds are sampled.
PKT_INFO_SLOT_COUNT = 5
MIN_SAMPLE_COUNT = 50
MIN_ACK_RATE = 0.8
CONGESTION_WINDOW_MULTIPLIER = 2
NO_RTT_CONGESTION_WINDOW = 10240

DEBUG_ENV = "HYSTERIA_BRUTAL_DEBUG"
DEBUG_PRINT_INTERVAL = 2

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})


class RTTStatsProvider(Protocol):
    """Source of round-trip time measurements."""

    def smoothed_rtt(self) -> int: ...


@dataclass
class _PktInfo:
    timestamp: int = 0
    ack_count: int = 0
    loss_count: int = 0


class BrutalSender:
    """Sends at ``bps`` bytes per second, scaled up by the observed loss rate.

    Without an RTT stats provider the smoothed RTT counts as unknown.
    """

    def __init__(self, bps: int) -> None:
        self._rtt_stats: RTTStatsProvider | None = None
        self._bps = bps
        self._max_datagram_size = INITIAL_PACKET_SIZE_IPV4
        self._slots = [_PktInfo() for _ in range(PKT_INFO_SLOT_COUNT)]
        self._ack_rate = 1.0
        self._debug = os.environ.get(DEBUG_ENV, "") in _TRUE_WORDS
        self._last_ack_print_timestamp = 0
        self._pacer = Pacer(lambda: int(float(self._bps) / self._ack_rate))

    @property
    def ack_rate(self) -> float:
        """Fraction of recent packets that were acknowledged, clamped below."""
        return self._ack_rate

    def set_rtt_stats_provider(self, provider: RTTStatsProvider) -> None:
        """Attach the source of RTT measurements."""
        self._rtt_stats = provider

    def _smoothed_rtt(self) -> int:
        return 0 if self._rtt_stats is None else self._rtt_stats.smoothed_rtt()

    def time_until_send(self, bytes_in_flight: int) -> int:
        """Time at which the next packet may be sent, or 0 for right away."""
        return self._pacer.time_until_send()

    def has_pacing_budget(self, now: int) -> bool:
        """Whether a full datagram may be sent at time now."""
        return self._pacer.budget(now) >= self._max_datagram_size

    def can_send(self, bytes_in_flight: int) -> bool:
        """Whether the congestion window leaves room for more bytes."""
        return bytes_in_flight < self.congestion_window()

    def congestion_window(self) -> int:
        """The congestion window in bytes."""
        rtt = self._smoothed_rtt()
        if rtt <= 0:
            return NO_RTT_CONGESTION_WINDOW
        seconds = rtt / SECOND
        return int(float(self._bps) * seconds * CONGESTION_WINDOW_MULTIPLIER / self._ack_rate)

    def on_packet_sent(
        self,
        sent_time: int,
        bytes_in_flight: int,
        packet_number: int,
        byte_count: int,
        is_retransmittable: bool,
    ) -> None:
        """Charge a sent packet against the pacing budget."""
        self._pacer.sent_packet(sent_time, byte_count)

    def on_congestion_event_ex(
        self,
        prior_in_flight: int,
        event_time: int,
        acked_packets: Sequence[Any],
        lost_packets: Sequence[Any],
    ) -> None:
        """Count acked and lost packets in the slot for the event's second."""
        timestamp = event_time // SECOND
        slot = self._slots[timestamp % PKT_INFO_SLOT_COUNT]
        if slot.timestamp == timestamp:
            slot.loss_count += len(lost_packets)
            slot.ack_count += len(acked_packets)
        else:
            slot.timestamp = timestamp
            slot.ack_count = len(acked_packets)
            slot.loss_count = len(lost_packets)
        self._update_ack_rate(timestamp)

    def set_max_datagram_size(self, size: int) -> None:
        """Change the largest datagram size."""
        self._max_datagram_size = size
        self._pacer.set_max_datagram_size(size)
        if self._debug:
            self._debug_print(f"SetMaxDatagramSize: {size}")

    def in_slow_start(self) -> bool:
        return False

    def in_recovery(self) -> bool:
        return False

    def _update_ack_rate(self, current_timestamp: int) -> None:
        min_timestamp = current_timestamp - PKT_INFO_SLOT_COUNT
        recent = [info for info in self._slots if info.timestamp >= min_timestamp]
        ack_count = sum(info.ack_count for info in recent)
        loss_count = sum(info.loss_count for info in recent)
        total = ack_count + loss_count
        rtt_ms = self._smoothed_rtt() // MILLISECOND

        if total < MIN_SAMPLE_COUNT:
            self._ack_rate = 1.0
            self._maybe_print(
                current_timestamp,
                f"Not enough samples (total={total}, ack={ack_count}, "
                f"loss={loss_count}, rtt={rtt_ms})",
            )
            return

        rate = ack_count / total
        if rate < MIN_ACK_RATE:
            self._ack_rate = MIN_ACK_RATE
            self._maybe_print(
                current_timestamp,
                f"ACK rate too low: {rate:.2f}, clamped to {MIN_ACK_RATE:.2f} "
                f"(total={total}, ack={ack_count}, loss={loss_count}, rtt={rtt_ms})",
            )
            return

        self._ack_rate = rate
        self._maybe_print(
            current_timestamp,
            f"ACK rate: {rate:.2f} (total={total}, ack={ack_count}, "
            f"loss={loss_count}, rtt={rtt_ms})",
        )

    def _maybe_print(self, current_timestamp: int, message: str) -> None:
        if self._debug and current_timestamp - self._last_ack_print_timestamp >= DEBUG_PRINT_INTERVAL:
            self._last_ack_print_timestamp = current_timestamp
            self._debug_print(message)

    @staticmethod
    def _debug_print(message: str) -> None:
        print(f"[BrutalSender] [{datetime.now().strftime('%H:%M:%S')}] {message}")