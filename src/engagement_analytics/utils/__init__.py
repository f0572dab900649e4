"""Utility modules for engagement analytics."""

from .batching import chunked, gather_in_chunks

__all__ = ["chunked", "gather_in_chunks"]
