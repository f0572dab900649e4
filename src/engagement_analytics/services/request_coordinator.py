"""In-flight request deduplication.

Concurrent callers asking for the same key share one underlying fetch:
the first caller starts it, later callers await the same task and see
the same value or the same exception.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _retrieve_exception(task: "asyncio.Task[Any]") -> None:
    # Keeps asyncio from logging "exception was never retrieved" when every waiter was cancelled
    if not task.cancelled():
        task.exception()


class RequestCoordinator:
    """At most one in-flight fetch per key.

    Checking for a pending fetch and registering a new one happen without
    an ``await`` in between, so they are atomic on the event loop.

    Example:
        ```python
        coordinator = RequestCoordinator()
        rows = await coordinator.run_deduped("matches_42_all_all_all", fetch_matches)
        ```
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[Any]] = {}

    async def run_deduped(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """Run ``producer`` unless a fetch for ``key`` is already running.

        The pending entry is removed as soon as the fetch settles, before
        any waiter resumes, so a failure is never cached and the next call
        starts a fresh attempt. Cancelling one caller does not cancel the
        shared fetch.

        Args:
            key: Logical identity of the fetch
            producer: Zero-argument coroutine function performing the fetch

        Returns:
            The producer's result
        """
        task = self._pending.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._run(key, producer))
            task.add_done_callback(_retrieve_exception)
            self._pending[key] = task
        else:
            logger.debug("Joining in-flight request %s", key)
        return await asyncio.shield(task)

    async def _run(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        try:
            return await producer()
        finally:
            self._pending.pop(key, None)

    def pending_keys(self) -> list[str]:
        """Keys with a fetch currently in flight."""
        return list(self._pending)

    def is_pending(self, key: str) -> bool:
        return key in self._pending
