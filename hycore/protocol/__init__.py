"""Namespace for wire formats; it holds no modules."""

__all__: list[str] = []