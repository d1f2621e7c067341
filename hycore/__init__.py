"""Congestion-control building blocks for a QUIC-based proxy client."""

__version__ = "0.1.0"

__all__ = ["congestion"]