"""Fixed-interval driver for the indexer poll cycle.

The loop awaits each cycle to completion before sleeping, so two cycles
can never overlap. The sleep is shortened by the time the cycle took.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from auction_indexer.cache import TTLCache
    from auction_indexer.indexer.core import AuctionIndexer
    from auction_indexer.ledger.client import LedgerClient
    from auction_indexer.pricing.resolver import PriceResolver

logger = structlog.get_logger()


class IndexerScheduler:
    """Runs `indexer.poll_once` every `interval_ms` milliseconds.

    Usage:
        scheduler = IndexerScheduler(indexer, interval_ms=8000)
        scheduler.start()     # first cycle runs immediately
        ...
        await scheduler.stop()
    """

    def __init__(self, indexer: AuctionIndexer, interval_ms: int) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.indexer = indexer
        self.interval_ms = interval_ms
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Start polling on the running event loop.

        Returns:
            False if the scheduler was already running (no-op)
        """
        if self.running:
            return False
        self._stopping = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("indexer_started", interval_ms=self.interval_ms)
        return True

    async def stop(self) -> None:
        """Stop after the current cycle (if any) completes."""
        if self._task is None:
            return
        self._stopping.set()
        try:
            await self._task
        finally:
            self._task = None
            logger.info("indexer_stopped", cycles=self.indexer.state.cycles_completed)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.interval_ms / 1000
        while not self._stopping.is_set():
            started = loop.time()
            try:
                await self.indexer.poll_once()
            except Exception:
                logger.exception("poll_cycle_failed")

            delay = max(interval - (loop.time() - started), 0.0)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except TimeoutError:
                pass


# The scheduler most recently started through `start_indexer`.
_active_scheduler: IndexerScheduler | None = None


def start_indexer(
    ledger: LedgerClient,
    cache: TTLCache,
    interval_ms: int,
    price_resolver: PriceResolver | None = None,
    tx_params: Any | None = None,
) -> IndexerScheduler:
    """Build an indexer over `ledger` and start polling it.

    Must be called from a running event loop. While a scheduler started
    here is still running, further calls return it unchanged instead of
    starting a second loop with its own retry state.
    """
    global _active_scheduler
    if _active_scheduler is not None and _active_scheduler.running:
        logger.info("indexer_already_running", interval_ms=_active_scheduler.interval_ms)
        return _active_scheduler

    from auction_indexer.indexer.core import AuctionIndexer

    indexer = AuctionIndexer(
        ledger=ledger,
        cache=cache,
        price_resolver=price_resolver,
        tx_params=tx_params,
    )
    scheduler = IndexerScheduler(indexer, interval_ms)
    scheduler.start()
    _active_scheduler = scheduler
    return scheduler
