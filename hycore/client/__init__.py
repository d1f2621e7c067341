"""Namespace for client-side session handling; it holds no modules."""

__all__: list[str] = []