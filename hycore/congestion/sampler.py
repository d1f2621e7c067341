"""Per-packet bandwidth sampling for BBR.

The sampler records the connection state when each packet is sent. When the
packet is acknowledged it derives a bandwidth sample from two slopes: the
send rate between the last acknowledged packet and this one, and the ack rate
over the same span. The sample is the smaller of the two. Samples are
unfiltered; the consumer should apply a max filter spanning at least one RTT.

Once ``on_app_limited`` is called, every packet sent afterwards produces an
app-limited sample. This lasts until a packet sent after that call is acked.

Times are integer nanoseconds with 0 meaning "unset"; durations are integer
nanoseconds; bandwidth is in bits per second.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from hycore.congestion.ack_tracking import (
    AckPoint,
    MaxAckHeightTracker,
    RecentAckPoints,
    SendTimeState,
)
from hycore.congestion.bandwidth import INF_BANDWIDTH, bandwidth_from_delta
from hycore.congestion.packet_queue import INVALID_PACKET_NUMBER, PacketNumberIndexedQueue
from hycore.congestion.ringbuffer import RingBuffer

INF_RTT = (1 << 63) - 1
DEFAULT_CONNECTION_STATE_MAP_QUEUE_SIZE = 256
DEFAULT_CANDIDATES_BUFFER_SIZE = 256


@dataclass(frozen=True)
class AckedPacketInfo:
    """A packet reported as acknowledged in a congestion event."""

    packet_number: int
    bytes_acked: int
    received_time: int = 0


@dataclass(frozen=True)
class LostPacketInfo:
    """A packet reported as lost in a congestion event."""

    packet_number: int
    bytes_lost: int


@dataclass
class BandwidthSample:
    """A bandwidth sample taken for one acknowledged packet."""

    bandwidth: int = 0
    rtt: int = 0
    send_rate: int = INF_BANDWIDTH
    state_at_send: SendTimeState = field(default_factory=SendTimeState)


@dataclass
class CongestionEventSample:
    """Aggregate of the samples produced by one congestion event."""

    sample_max_bandwidth: int = 0
    sample_is_app_limited: bool = False
    sample_rtt: int = INF_RTT
    sample_max_inflight: int = 0
    last_packet_send_state: SendTimeState = field(default_factory=SendTimeState)
    extra_acked: int = 0


@dataclass
class ConnectionStateOnSentPacket:
    """A sent packet and the sampler state at the moment it was sent."""

    sent_time: int
    size: int
    total_bytes_sent_at_last_acked_packet: int
    last_acked_packet_sent_time: int
    last_acked_packet_ack_time: int
    send_time_state: SendTimeState


class BandwidthSampler:
    """Produces a bandwidth sample for every acknowledged packet."""

    def __init__(self, max_ack_height_tracker_window_length: int) -> None:
        self.total_bytes_sent = 0
        self.total_bytes_acked = 0
        self.total_bytes_lost = 0
        self.total_bytes_neutered = 0
        self.total_bytes_sent_at_last_acked_packet = 0
        self.last_acked_packet_sent_time = 0
        self.last_acked_packet_ack_time = 0
        self.last_sent_packet = INVALID_PACKET_NUMBER
        self.last_acked_packet = INVALID_PACKET_NUMBER
        self.is_app_limited = False
        self.end_of_app_limited_phase = INVALID_PACKET_NUMBER
        self.limit_max_ack_height_tracker_by_send_rate = False
        self.max_ack_height_tracker = MaxAckHeightTracker(max_ack_height_tracker_window_length)
        self._connection_state_map: PacketNumberIndexedQueue[ConnectionStateOnSentPacket] = (
            PacketNumberIndexedQueue(DEFAULT_CONNECTION_STATE_MAP_QUEUE_SIZE)
        )
        self._recent_ack_points = RecentAckPoints()
        self._a0_candidates: RingBuffer[AckPoint] = RingBuffer(DEFAULT_CANDIDATES_BUFFER_SIZE)
        self._total_bytes_acked_after_last_ack_event = 0
        self._overestimate_avoidance = False

    @property
    def overestimate_avoidance(self) -> bool:
        """Whether overestimate avoidance is enabled."""
        return self._overestimate_avoidance

    def max_ack_height(self) -> int:
        """The largest recent ack aggregation, in bytes."""
        return self.max_ack_height_tracker.get()

    def reset_max_ack_height_tracker(self, new_height: int, new_time: int) -> None:
        """Replace the tracked ack heights with new_height at round new_time."""
        self.max_ack_height_tracker.reset(new_height, new_time)

    def enable_overestimate_avoidance(self) -> None:
        """Choose the A0 point more carefully to avoid overestimating bandwidth."""
        if self._overestimate_avoidance:
            return
        self._overestimate_avoidance = True
        self.max_ack_height_tracker.ack_aggregation_bandwidth_threshold = 2.0

    def on_packet_sent(
        self,
        sent_time: int,
        packet_number: int,
        byte_count: int,
        bytes_in_flight: int,
        is_retransmittable: bool,
    ) -> None:
        """Record a sent packet; bytes_in_flight excludes the packet itself."""
        self.last_sent_packet = packet_number
        if not is_retransmittable:
            return

        self.total_bytes_sent += byte_count

        # With nothing in flight, the moment this transmission opens serves as
        # the A0 point, giving samples at the start of the connection.
        if bytes_in_flight == 0:
            self.last_acked_packet_ack_time = sent_time
            if self._overestimate_avoidance:
                self._recent_ack_points.clear()
                self._recent_ack_points.update(sent_time, self.total_bytes_acked)
                self._a0_candidates.clear()
                self._a0_candidates.push_back(self._recent_ack_points.most_recent_point())
            self.total_bytes_sent_at_last_acked_packet = self.total_bytes_sent
            self.last_acked_packet_sent_time = sent_time

        self._connection_state_map.emplace(
            packet_number,
            ConnectionStateOnSentPacket(
                sent_time=sent_time,
                size=byte_count,
                total_bytes_sent_at_last_acked_packet=self.total_bytes_sent_at_last_acked_packet,
                last_acked_packet_sent_time=self.last_acked_packet_sent_time,
                last_acked_packet_ack_time=self.last_acked_packet_ack_time,
                send_time_state=SendTimeState(
                    is_valid=True,
                    is_app_limited=self.is_app_limited,
                    total_bytes_sent=self.total_bytes_sent,
                    total_bytes_acked=self.total_bytes_acked,
                    total_bytes_lost=self.total_bytes_lost,
                    bytes_in_flight=bytes_in_flight + byte_count,
                ),
            ),
        )

    def on_congestion_event(
        self,
        ack_time: int,
        acked_packets: Sequence[AckedPacketInfo],
        lost_packets: Sequence[LostPacketInfo],
        max_bandwidth: int,
        est_bandwidth_upper_bound: int,
        round_trip_count: int,
    ) -> CongestionEventSample:
        """Process acked and lost packets and summarise the resulting samples."""
        event = CongestionEventSample()

        last_lost_state = SendTimeState()
        for lost in lost_packets:
            state = self.on_packet_lost(lost.packet_number, lost.bytes_lost)
            if state.is_valid:
                last_lost_state = state

        if not acked_packets:
            event.last_packet_send_state = last_lost_state
            return event

        last_acked_state = SendTimeState()
        max_send_rate = 0
        for acked in acked_packets:
            sample = self._on_packet_acknowledged(ack_time, acked.packet_number)
            if not sample.state_at_send.is_valid:
                continue
            last_acked_state = sample.state_at_send
            if sample.rtt != 0:
                event.sample_rtt = min(event.sample_rtt, sample.rtt)
            if sample.bandwidth > event.sample_max_bandwidth:
                event.sample_max_bandwidth = sample.bandwidth
                event.sample_is_app_limited = sample.state_at_send.is_app_limited
            if sample.send_rate != INF_BANDWIDTH:
                max_send_rate = max(max_send_rate, sample.send_rate)
            inflight_sample = self.total_bytes_acked - last_acked_state.total_bytes_acked
            event.sample_max_inflight = max(event.sample_max_inflight, inflight_sample)

        if not last_lost_state.is_valid:
            event.last_packet_send_state = last_acked_state
        elif not last_acked_state.is_valid:
            event.last_packet_send_state = last_lost_state
        elif lost_packets[-1].packet_number > acked_packets[-1].packet_number:
            # A late loss alarm can declare the later of two packets lost.
            event.last_packet_send_state = last_lost_state
        else:
            event.last_packet_send_state = last_acked_state

        is_new_max_bandwidth = event.sample_max_bandwidth > max_bandwidth
        max_bandwidth = max(max_bandwidth, event.sample_max_bandwidth)
        if self.limit_max_ack_height_tracker_by_send_rate:
            max_bandwidth = max(max_bandwidth, max_send_rate)

        event.extra_acked = self._on_ack_event_end(
            min(est_bandwidth_upper_bound, max_bandwidth), is_new_max_bandwidth, round_trip_count
        )
        return event

    def on_packet_lost(self, packet_number: int, bytes_lost: int) -> SendTimeState:
        """Account for a lost packet; return its send state (invalid if unknown)."""
        self.total_bytes_lost += bytes_lost
        sent = self._connection_state_map.get_entry(packet_number)
        if sent is None:
            return SendTimeState()
        return replace(sent.send_time_state, is_valid=True)

    def on_packet_neutered(self, packet_number: int) -> None:
        """Forget a packet that will never be acked or lost."""

        def count(sent: ConnectionStateOnSentPacket) -> None:
            self.total_bytes_neutered += sent.size

        self._connection_state_map.remove(packet_number, count)

    def on_app_limited(self) -> None:
        """Enter the app-limited phase until a packet sent from now on is acked."""
        self.is_app_limited = True
        self.end_of_app_limited_phase = self.last_sent_packet

    def remove_obsolete_packets(self, least_unacked: int) -> None:
        """Drop records of every packet numbered below least_unacked."""
        self._connection_state_map.remove_up_to(least_unacked)

    def _choose_a0_point(self, total_bytes_acked: int) -> AckPoint | None:
        candidates = self._a0_candidates
        if candidates.empty():
            return None
        if len(candidates) == 1:
            return candidates.front()
        for i in range(1, len(candidates)):
            if candidates[i].total_bytes_acked > total_bytes_acked:
                chosen = candidates[i - 1]
                for _ in range(i - 1):
                    candidates.pop_front()
                return chosen
        chosen = candidates.back()
        # The pop loop shrinks the buffer while counting, dropping the older half.
        for _ in range(len(candidates) // 2):
            candidates.pop_front()
        return chosen

    def _on_packet_acknowledged(self, ack_time: int, packet_number: int) -> BandwidthSample:
        sample = BandwidthSample()
        self.last_acked_packet = packet_number
        sent = self._connection_state_map.get_entry(packet_number)
        if sent is None:
            return sample

        self.total_bytes_acked += sent.size
        self.total_bytes_sent_at_last_acked_packet = sent.send_time_state.total_bytes_sent
        self.last_acked_packet_sent_time = sent.sent_time
        self.last_acked_packet_ack_time = ack_time
        if self._overestimate_avoidance:
            self._recent_ack_points.update(ack_time, self.total_bytes_acked)

        if self.is_app_limited and (
            self.end_of_app_limited_phase == INVALID_PACKET_NUMBER
            or packet_number > self.end_of_app_limited_phase
        ):
            self.is_app_limited = False

        # No packet had been acknowledged when this one was sent: no sample.
        if sent.last_acked_packet_sent_time == 0:
            return sample

        send_rate = INF_BANDWIDTH
        if sent.sent_time > sent.last_acked_packet_sent_time:
            send_rate = bandwidth_from_delta(
                sent.send_time_state.total_bytes_sent - sent.total_bytes_sent_at_last_acked_packet,
                sent.sent_time - sent.last_acked_packet_sent_time,
            )

        a0 = None
        if self._overestimate_avoidance:
            a0 = self._choose_a0_point(sent.send_time_state.total_bytes_acked)
        if a0 is None:
            a0 = AckPoint(
                ack_time=sent.last_acked_packet_ack_time,
                total_bytes_acked=sent.send_time_state.total_bytes_acked,
            )

        # The ack must come strictly after A0, or the slope is undefined.
        if ack_time - a0.ack_time <= 0:
            return sample

        ack_rate = bandwidth_from_delta(
            self.total_bytes_acked - a0.total_bytes_acked, ack_time - a0.ack_time
        )
        sample.bandwidth = min(send_rate, ack_rate)
        sample.rtt = ack_time - sent.sent_time
        sample.send_rate = send_rate
        sample.state_at_send = replace(sent.send_time_state, is_valid=True)
        return sample

    def _on_ack_event_end(
        self, bandwidth_estimate: int, is_new_max_bandwidth: bool, round_trip_count: int
    ) -> int:
        newly_acked = self.total_bytes_acked - self._total_bytes_acked_after_last_ack_event
        if newly_acked == 0:
            return 0
        self._total_bytes_acked_after_last_ack_event = self.total_bytes_acked
        extra_acked = self.max_ack_height_tracker.update(
            bandwidth_estimate,
            is_new_max_bandwidth,
            round_trip_count,
            self.last_sent_packet,
            self.last_acked_packet,
            self.last_acked_packet_ack_time,
            newly_acked,
        )
        # A new aggregation epoch began: the last point of the previous one
        # becomes an A0 candidate.
        if self._overestimate_avoidance and extra_acked == 0:
            self._a0_candidates.push_back(self._recent_ack_points.less_recent_point())
        return extra_acked