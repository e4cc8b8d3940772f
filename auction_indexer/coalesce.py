"""In-flight request de-duplication.

Concurrent callers asking for the same key share a single underlying
fetch: the first caller starts it, later callers await the same task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

T = TypeVar("T")


class RequestCoalescer(Generic[T]):
    """Registry of in-flight fetches keyed by request identity.

    Usage:
        coalescer = RequestCoalescer[float]()
        price = await coalescer.run("btc-usd", fetch_btc_usd)

    The entry is removed once the fetch completes, so a later call after
    completion starts a fresh fetch. Exceptions propagate to every waiter.
    """

    def __init__(self) -> None:
        self._pending: dict[Hashable, asyncio.Task[T]] = {}

    @property
    def in_flight(self) -> int:
        """Number of fetches currently running."""
        return len(self._pending)

    async def run(self, key: Hashable, fetch: Callable[[], Awaitable[T]]) -> T:
        """Run `fetch` for `key`, or join the fetch already running for it."""
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch())
            self._pending[key] = task
            task.add_done_callback(lambda _t, k=key: self._forget(k, _t))
        # shield so one cancelled waiter does not cancel the shared fetch
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task[T]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
