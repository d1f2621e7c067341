# hycore

`hycore` holds the congestion-control building blocks for a QUIC-based
proxy client. It uses only the standard library.

Everything lives in `hycore.congestion`:

| Module            | What it provides                                                        |
|-------------------|-------------------------------------------------------------------------|
| `ringbuffer`      | `RingBuffer`, a growable FIFO with `push_back`, `pop_front`, `front`, `back`, `clear` and indexing |
| `windowed_filter` | `WindowedFilter`, which keeps the best, second and third best samples in a sliding window; `max_filter` and `min_filter` comparators |
| `bandwidth`       | time units (`NANOSECOND` … `SECOND`), `BYTES_PER_SECOND`, `INF_BANDWIDTH`, `bandwidth_from_delta`, and `DefaultClock` |
| `pacer`           | `Pacer`, a token-bucket pacer                                           |
| `packet_queue`    | `PacketNumberIndexedQueue`, entries keyed by mostly consecutive packet numbers |
| `ack_tracking`    | `SendTimeState`, `ExtraAckedEvent`, `AckPoint`, `RecentAckPoints`, `MaxAckHeightTracker`, `bytes_from_bandwidth_and_time_delta`, `time_delta_from_bytes_and_bandwidth` |
| `sampler`         | `BandwidthSampler`, which yields a bandwidth sample for every acknowledged packet, with `AckedPacketInfo`, `LostPacketInfo`, `BandwidthSample`, `CongestionEventSample` |
| `brutal`          | `BrutalSender`, which sends at a fixed rate and scales that rate up by the observed loss |

## Units

- Timestamps are integer nanoseconds since the Unix epoch. `0` means "unset".
- Durations are integer nanoseconds.
- Bandwidth in `bandwidth`, `ack_tracking` and `sampler` is in bits per second.
- The `Pacer` bandwidth callback and the `BrutalSender` rate are in bytes per second.

## Sampling bandwidth

```python
from hycore.congestion.bandwidth import INF_BANDWIDTH, MILLISECOND
from hycore.congestion.sampler import AckedPacketInfo, BandwidthSampler

sampler = BandwidthSampler(10)
start = 1_000 * MILLISECOND

sampler.on_packet_sent(start, 1, 1200, 0, True)
sampler.on_packet_sent(start + 5 * MILLISECOND, 2, 1200, 1200, True)

event = sampler.on_congestion_event(
    start + 50 * MILLISECOND,
    [AckedPacketInfo(1, 1200), AckedPacketInfo(2, 1200)],
    [],
    0,              # current max bandwidth estimate
    INF_BANDWIDTH,  # upper bound on the estimate
    1,              # round trip count
)
print(event.sample_max_bandwidth, event.sample_rtt)
```

`on_packet_sent` takes the bytes in flight *before* the packet. Call
`on_app_limited` when there is nothing left to send. Samples from packets
sent after that call are flagged as app-limited until one of them is
acknowledged. `enable_overestimate_avoidance` picks the reference ack point
more carefully, which helps when acks arrive in bursts.

## Filtering samples

```python
from hycore.congestion.windowed_filter import WindowedFilter, max_filter

best_bandwidth = WindowedFilter(10, max_filter, 0)
best_bandwidth.update(5_000_000, 1)
best_bandwidth.update(4_000_000, 2)
assert best_bandwidth.best() == 5_000_000
```

## Pacing and the Brutal sender

`Pacer(get_bandwidth)` lets a burst of up to ten datagrams go out, then
refills the budget at the rate the callback returns. `budget(now)` is the
number of bytes that may be sent at `now`. `time_until_send()` is the time
when the next datagram may go out, or `0` if it may go out right away.

`BrutalSender(bps)` paces at `bps` divided by the acknowledgement rate over
the last five seconds. It uses the measured rate only when there are at
least 50 samples, and never lets it fall below 0.8. Its congestion window is
twice the bandwidth-delay product, taken from the smoothed RTT of the
provider you attach with `set_rtt_stats_provider`. The provider is any
object with a `smoothed_rtt()` method that returns nanoseconds. Without an
RTT the window is 10240 bytes. When the environment variable
`HYSTERIA_BRUTAL_DEBUG` holds a true value (`1`, `t`, `true`, …), the sender
prints its acknowledgement rate to standard output.

## What this package does not do

`hycore` has no QUIC stack and no network I/O. The `hycore.client` and
`hycore.protocol` subpackages are present but hold no modules. So it offers
no proxy client, no authentication handshake, no TCP or UDP forwarding, no
wire-format encoding and no command-line program. It offers no full BBR
sender either, only the sampling, filtering and pacing parts that such a
sender is built from.