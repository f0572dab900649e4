"""Chunked concurrent fetching.

Items are processed in chunks; everything inside a chunk runs
concurrently and the next chunk starts only when the whole chunk has
settled. A failing item never fails the batch.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from engagement_analytics.errors import UnauthorizedError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Iterable[T], size: int) -> list[list[T]]:
    """Split items into lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    values = list(items)
    return [values[i : i + size] for i in range(0, len(values), size)]


async def gather_in_chunks(
    items: Iterable[T],
    fetch: Callable[[T], Awaitable[R]],
    chunk_size: int,
) -> list[tuple[T, R]]:
    """Run ``fetch`` over items, ``chunk_size`` at a time.

    Args:
        items: Inputs to process
        fetch: Coroutine function applied to each input
        chunk_size: Maximum number of concurrent fetches

    Returns:
        (item, result) pairs for every item whose fetch succeeded, in
        input order

    Raises:
        UnauthorizedError: If any fetch was refused for lack of access
    """
    results: list[tuple[T, R]] = []
    for chunk in chunked(items, chunk_size):
        outcomes = await asyncio.gather(*(fetch(item) for item in chunk), return_exceptions=True)
        for item, outcome in zip(chunk, outcomes):
            if isinstance(outcome, UnauthorizedError):
                raise outcome
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                logger.debug("Skipping %r: %s", item, outcome)
                continue
            results.append((item, outcome))
    return results
