"""Automated settlement and payout of auctions.

Both actions simulate before sending. A simulation error counts as a
failed attempt and is retried next cycle, up to a bound; a successful
send is final. Neither action is ever attempted again for an auction
once it is done.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import structlog

from auction_indexer.constants import ORDERS_KEY
from auction_indexer.models.auction import AuctionStatus, IndexedOrder

if TYPE_CHECKING:
    from auction_indexer.cache import TTLCache
    from auction_indexer.indexer.state import IndexerState, RetryTracker
    from auction_indexer.ledger.client import LedgerClient, SimulationResult

logger = structlog.get_logger()

OrderFetcher = Callable[..., Awaitable[list[IndexedOrder] | None]]


class AutoActionRunner:
    """Runs auto-settle and auto-distribute against the indexed state.

    Args:
        ledger: Ledger client used to simulate and send transactions
        cache: Shared read cache (order lists are invalidated after claims)
        state: Indexer state holding auctions and retry trackers
        tx_params: Opaque signing parameters passed to send_transaction
        fetch_orders: Order-list reader, called as fetch_orders(id, use_cache=False)
    """

    def __init__(
        self,
        ledger: LedgerClient,
        cache: TTLCache,
        state: IndexerState,
        tx_params: Any,
        fetch_orders: OrderFetcher,
    ) -> None:
        self.ledger = ledger
        self.cache = cache
        self.state = state
        self.tx_params = tx_params
        self._fetch_orders = fetch_orders

    async def auto_settle(self) -> int:
        """Settle every ended, unsettled auction not yet attempted.

        Auctions are handled one at a time.

        Returns:
            Number of settlement transactions sent
        """
        tracker = self.state.settle_attempts
        candidates = [
            aid
            for aid, a in sorted(self.state.auctions.items())
            if a.status == AuctionStatus.ENDED and not a.is_settled and not tracker.is_done(aid)
        ]

        sent = 0
        for auction_id in candidates:
            try:
                simulation = await self.ledger.simulate_settle(auction_id)
            except Exception as e:
                self._record_failure(tracker, "settle", auction_id, str(e))
                continue
            if await self._send(tracker, "settle", auction_id, simulation):
                sent += 1
        return sent

    async def auto_distribute(self) -> int:
        """Claim every unclaimed order of settled auctions on behalf of its owner.

        The contract pays each order's owner directly, so anyone may
        trigger the claim; the only concern is not submitting twice.

        Returns:
            Number of claim transactions sent
        """
        tracker = self.state.distribute_attempts
        candidates = [
            aid
            for aid, a in sorted(self.state.auctions.items())
            if a.is_settled and not tracker.is_done(aid)
        ]

        sent = 0
        for auction_id in candidates:
            orders = await self._fetch_orders(auction_id, use_cache=False)
            if orders is None:
                # read failure is not a simulation failure; retry next cycle
                continue

            order_ids = [o.order_id for o in orders if o.is_claimable]
            if not order_ids:
                tracker.mark_done(auction_id)
                logger.debug("auto_distribute_nothing_to_claim", auction_id=auction_id)
                continue

            try:
                simulation = await self.ledger.simulate_claim_from_participant_order(
                    auction_id, order_ids
                )
            except Exception as e:
                self._record_failure(tracker, "distribute", auction_id, str(e))
                continue

            if await self._send(tracker, "distribute", auction_id, simulation, order_ids=order_ids):
                self.cache.invalidate(ORDERS_KEY.format(auction_id))
                sent += 1
        return sent

    async def _send(
        self,
        tracker: RetryTracker,
        action: str,
        auction_id: int,
        simulation: SimulationResult,
        **context: Any,
    ) -> bool:
        """Send a simulated transaction unless the simulation reported an error."""
        error = getattr(simulation, "error", None)
        if error:
            self._record_failure(tracker, action, auction_id, str(error))
            return False

        try:
            receipt = await simulation.send_transaction(self.tx_params)
        except Exception as e:
            self._record_failure(tracker, action, auction_id, f"send failed: {e}")
            return False

        tracker.mark_done(auction_id)
        logger.info(f"auto_{action}_sent", auction_id=auction_id, receipt=str(receipt), **context)
        return True

    def _record_failure(
        self, tracker: RetryTracker, action: str, auction_id: int, error: str
    ) -> None:
        gave_up = tracker.record_failure(auction_id)
        if gave_up:
            logger.warning(
                f"auto_{action}_gave_up",
                auction_id=auction_id,
                attempts=tracker.max_attempts,
                error=error,
            )
        else:
            logger.info(
                f"auto_{action}_failed",
                auction_id=auction_id,
                attempt=tracker.failures(auction_id),
                max_attempts=tracker.max_attempts,
                error=error,
            )
