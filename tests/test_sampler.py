import pytest

from hycore.congestion.bandwidth import INF_BANDWIDTH, MILLISECOND, SECOND, bandwidth_from_delta
from hycore.congestion.sampler import (
    INF_RTT,
    AckedPacketInfo,
    BandwidthSampler,
    LostPacketInfo,
)

T0 = SECOND
SIZE = 1000


def _ack(sampler, ack_time, *numbers, lost=(), round_trip=1):
    return sampler.on_congestion_event(
        ack_time,
        [AckedPacketInfo(n, SIZE, ack_time) for n in numbers],
        [LostPacketInfo(n, SIZE) for n in lost],
        0,
        INF_BANDWIDTH,
        round_trip,
    )


def test_sent_bytes_counted_only_when_retransmittable():
    sampler = BandwidthSampler(10)
    sampler.on_packet_sent(T0, 1, SIZE, 0, True)
    sampler.on_packet_sent(T0, 2, 500, SIZE, False)
    assert sampler.total_bytes_sent == SIZE
    assert sampler.last_sent_packet == 2


def test_single_packet_sample():
    sampler = BandwidthSampler(10)
    sampler.on_packet_sent(T0, 1, SIZE, 0, True)
    ack_time = T0 + 10 * MILLISECOND
    event = _ack(sampler, ack_time, 1)
    assert event.sample_max_bandwidth == bandwidth_from_delta(SIZE, 10 * MILLISECOND)
    assert event.sample_rtt == 10 * MILLISECOND
    assert event.last_packet_send_state.is_valid
    assert event.last_packet_send_state.total_bytes_sent == SIZE
    assert event.last_packet_send_state.bytes_in_flight == SIZE
    assert event.extra_acked == 0
    assert sampler.total_bytes_acked == SIZE


def test_loss_only_event():
    sampler = BandwidthSampler(10)
    sampler.on_packet_sent(T0, 1, SIZE, 0, True)
    event = _ack(sampler, T0 + MILLISECOND, lost=(1,))
    assert event.sample_rtt == INF_RTT
    assert event.sample_max_bandwidth == 0
    assert event.last_packet_send_state.is_valid
    assert event.last_packet_send_state.total_bytes_sent == SIZE
    assert sampler.total_bytes_lost == SIZE


def test_unknown_acked_packet_gives_no_sample():
    sampler = BandwidthSampler(10)
    event = _ack(sampler, T0, 42)
    assert event.sample_rtt == INF_RTT
    assert not event.last_packet_send_state.is_valid
    assert sampler.last_acked_packet == 42


def test_later_lost_packet_provides_last_send_state():
    sampler = BandwidthSampler(10)
    sampler.on_packet_sent(T0, 1, SIZE, 0, True)
    sampler.on_packet_sent(T0 + MILLISECOND, 2, SIZE, SIZE, True)
    event = _ack(sampler, T0 + 20 * MILLISECOND, 1, lost=(2,))
    assert event.last_packet_send_state.total_bytes_sent == 2 * SIZE


def test_on_packet_lost_unknown_and_known():
    sampler = BandwidthSampler(10)
    sampler.on_packet_sent(T0, 1, SIZE, 0, True)
    assert not sampler.on_packet_lost(7, 100).is_valid
    state = sampler.on_packet_lost(1, SIZE)
    assert state.is_valid
    assert state.bytes_in_flight == SIZE
    assert sampler.total_bytes_lost == 100 + SIZE


def test_neutered_packet_counted_once():
    sampler = BandwidthSampler(10)
    sampler.on_packet_sent(T0, 1, SIZE, 0, True)
    sampler.on_packet_neutered(1)
    sampler.on_packet_neutered(1)
    assert sampler.total_bytes_neutered == SIZE
    assert not sampler.on_packet_lost(1, 0).is_valid


def test_app_limited_phase():
    sampler = BandwidthSampler(10)
    sampler.on_packet_sent(T0, 1, SIZE, 0, True)
    sampler.on_app_limited()
    assert sampler.end_of_app_limited_phase == 1
    sampler.on_packet_sent(T0 + MILLISECOND, 2, SIZE, SIZE, True)
    assert sampler.on_packet_lost(2, 0).is_app_limited
    _ack(sampler, T0 + 10 * MILLISECOND, 1)
    assert sampler.is_app_limited
    _ack(sampler, T0 + 11 * MILLISECOND, 2)
    assert not sampler.is_app_limited


def test_remove_obsolete_packets():
    sampler = BandwidthSampler(10)
    for n in range(1, 5):
        sampler.on_packet_sent(T0 + n, n, SIZE, (n - 1) * SIZE, True)
    sampler.remove_obsolete_packets(3)
    assert not sampler.on_packet_lost(1, 0).is_valid
    assert not sampler.on_packet_lost(2, 0).is_valid
    assert sampler.on_packet_lost(3, 0).is_valid


def test_reset_max_ack_height():
    sampler = BandwidthSampler(10)
    sampler.reset_max_ack_height_tracker(5000, 1)
    assert sampler.max_ack_height() == 5000


def test_enable_overestimate_avoidance():
    sampler = BandwidthSampler(10)
    assert not sampler.overestimate_avoidance
    sampler.enable_overestimate_avoidance()
    assert sampler.overestimate_avoidance
    assert sampler.max_ack_height_tracker.ack_aggregation_bandwidth_threshold == 2.0


@pytest.mark.parametrize("avoid_overestimate", [False, True])
def test_steady_flow_samples(avoid_overestimate):
    sampler = BandwidthSampler(10)
    if avoid_overestimate:
        sampler.enable_overestimate_avoidance()
    count = 10
    for n in range(1, count + 1):
        sampler.on_packet_sent(T0 + n * MILLISECOND, n, SIZE, (n - 1) * SIZE, True)
    for n in range(1, count + 1):
        event = _ack(sampler, T0 + (n + 10) * MILLISECOND, n, round_trip=n)
        assert event.sample_rtt == 10 * MILLISECOND
        assert 0 < event.sample_max_bandwidth < INF_BANDWIDTH
        assert event.last_packet_send_state.total_bytes_sent == n * SIZE
    assert sampler.total_bytes_acked == count * SIZE
    assert sampler.total_bytes_sent == count * SIZE