"""Congestion control: BBR bandwidth sampling, windowed filters, pacing and the Brutal sender."""

__all__ = [
    "ack_tracking",
    "bandwidth",
    "brutal",
    "pacer",
    "packet_queue",
    "ringbuffer",
    "sampler",
    "windowed_filter",
]