"""Lightweight function-usage tracking."""

from .runtime import flush, snapshot, t

__all__ = ["t", "flush", "snapshot"]
