"""Auction indexer: reconciles ledger state into in-memory maps.

One poll cycle runs these phases strictly in order:
0. Reference time - read ledger "now" (wall clock as fallback)
1. Discovery - probe ids past the highest known one
2. Refresh - re-read every unsettled auction
3. Clearing backfill - read clearing prices of settled auctions
4. Order-cache invalidation - drop cached order lists that went stale
5. Volume aggregation - recompute total bid amounts
6. Auto-settle (only with transaction params)
7. Auto-distribute (only with transaction params)

Each phase has its own failure boundary, and so does every per-auction
operation inside it: one bad auction degrades only itself.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import structlog

from auction_indexer.cache import TTLCache
from auction_indexer.constants import (
    CLEARING_KEY,
    FEE_PARAMETERS_KEY,
    MAX_PROBE_AHEAD,
    ORDERS_KEY,
)
from auction_indexer.indexer.automation import AutoActionRunner
from auction_indexer.indexer.state import IndexerState
from auction_indexer.indexer.stats import compute_stats
from auction_indexer.ledger.decoding import (
    LedgerDecodeError,
    decode_auction_fields,
    decode_auction_orders,
    decode_clearing_order,
)
from auction_indexer.models.auction import (
    AuctionStats,
    FeeParameters,
    IndexedAuction,
    IndexedClearing,
    IndexedOrder,
    TokenInfo,
)
from auction_indexer.pricing.resolver import PriceResolver
from auction_indexer.status import derive_status, has_cancel_window
from auction_indexer.tokens import TokenMetadataResolver

if TYPE_CHECKING:
    from auction_indexer.ledger.client import AuctionDataResponse, LedgerClient

logger = structlog.get_logger()


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class AuctionIndexer:
    """Indexes auctions from the ledger and serves the indexed state.

    Args:
        ledger: Ledger client for reads and transaction simulation
        cache: Shared read cache (also used by the read API)
        price_resolver: USD price resolver. If None, prices are always 0.
        tokens: Token metadata resolver. If None, one is built on `ledger`.
        tx_params: Transaction-signing parameters. When None, auto-settle
                   and auto-distribute are disabled.
        state: Existing state to continue from. If None, starts empty.
        probe_window: Maximum ids probed per discovery phase
        wall_clock: Fallback clock (ms) when the ledger time is unavailable
    """

    def __init__(
        self,
        ledger: LedgerClient,
        cache: TTLCache,
        price_resolver: PriceResolver | None = None,
        tokens: TokenMetadataResolver | None = None,
        tx_params: Any | None = None,
        state: IndexerState | None = None,
        probe_window: int = MAX_PROBE_AHEAD,
        wall_clock: Callable[[], int] = wall_clock_ms,
    ) -> None:
        self.ledger = ledger
        self.cache = cache
        self.prices = price_resolver or PriceResolver(ledger=None, btc_usd_source=None)
        self.tokens = tokens or TokenMetadataResolver(ledger)
        self.state = state or IndexerState()
        self.probe_window = probe_window
        self._wall_clock = wall_clock
        self._polling = False

        self.auto_actions: AutoActionRunner | None = None
        if tx_params is not None:
            self.auto_actions = AutoActionRunner(
                ledger=ledger,
                cache=cache,
                state=self.state,
                tx_params=tx_params,
                fetch_orders=self.get_orders_data,
            )

    @property
    def is_polling(self) -> bool:
        return self._polling

    # =========================================================================
    # Poll cycle
    # =========================================================================

    async def poll_once(self) -> bool:
        """Run one full poll cycle.

        Returns:
            False if a cycle was already in progress (nothing was done)
        """
        if self._polling:
            logger.warning("poll_cycle_skipped", reason="previous cycle still running")
            return False

        self._polling = True
        try:
            await self._run_phase("reference_time", self.refresh_ledger_time)
            await self._run_phase("discovery", self.discover_auctions)
            await self._run_phase("refresh", self.refresh_unsettled)
            await self._run_phase("clearing_backfill", self.backfill_clearings)
            await self._run_phase("order_cache_invalidation", self._invalidate_stale_orders)
            await self._run_phase("volume_aggregation", self.aggregate_volumes)
            if self.auto_actions is not None:
                await self._run_phase("auto_settle", self.auto_actions.auto_settle)
                await self._run_phase("auto_distribute", self.auto_actions.auto_distribute)
            self.state.cycles_completed += 1
        finally:
            self._polling = False
        return True

    async def _run_phase(self, name: str, phase: Callable[[], Awaitable[Any]]) -> None:
        try:
            await phase()
        except Exception:
            logger.exception("poll_phase_failed", phase=name)

    async def _invalidate_stale_orders(self) -> None:
        self.invalidate_stale_orders()

    async def refresh_ledger_time(self) -> int:
        """Phase 0: take ledger "now" from the latest block."""
        self.state.ledger_time_ms = await self.read_ledger_time()
        return self.state.ledger_time_ms

    async def read_ledger_time(self) -> int:
        """Read the latest block's timestamp (ms), falling back to wall clock."""
        try:
            height = await self.ledger.get_block_number()
            block = await self.ledger.get_block(height)
            timestamp = block.timestamp_ms
            if timestamp <= 0:
                raise ValueError(f"Block {height} has no timestamp")
            return timestamp
        except Exception as e:
            fallback = self._wall_clock()
            logger.warning("ledger_time_unavailable", error=str(e), fallback_ms=fallback)
            return fallback

    async def discover_auctions(self) -> int:
        """Phase 1: probe ids past the highest known one.

        Probing stops at the first id that does not parse; that id is the
        frontier of what exists on the ledger. A miss on the first probed
        id is the normal "no new auctions" case.

        Returns:
            Number of auctions discovered
        """
        first_id = self.state.highest_known_id + 1
        discovered = 0

        for probe_id in range(first_id, first_id + self.probe_window):
            try:
                response = await self.ledger.get_auction_data(probe_id)
                auction = await self._build_auction(probe_id, response)
            except Exception as e:
                if probe_id == first_id:
                    logger.debug("no_new_auctions", probe_id=probe_id)
                else:
                    logger.warning("auction_probe_failed", probe_id=probe_id, error=str(e))
                break

            self.state.auctions[probe_id] = auction
            self.cache.invalidate(ORDERS_KEY.format(probe_id))
            self.cache.invalidate(CLEARING_KEY.format(probe_id))
            self.state.highest_known_id = probe_id
            discovered += 1
            logger.info(
                "auction_discovered",
                auction_id=probe_id,
                auctioning_token=auction.auctioning_token_symbol,
                bidding_token=auction.bidding_token_symbol,
                status=auction.status.value,
            )

        return discovered

    async def refresh_unsettled(self) -> int:
        """Phase 2: re-read every unsettled auction.

        Reads are issued concurrently; results are written back in id order.

        Returns:
            Number of auctions refreshed
        """
        ids = [aid for aid, a in self.state.auctions.items() if not a.is_settled]
        if not ids:
            return 0

        results = await asyncio.gather(*(self._read_auction(aid) for aid in ids))

        refreshed = 0
        for auction_id, auction in zip(ids, results, strict=True):
            if auction is None:
                continue
            previous = self.state.auctions.get(auction_id)
            if previous is not None:
                auction = self._carry_over(previous, auction)
            self.state.auctions[auction_id] = auction
            # a clearing read cached before settlement is stale once it settles
            self.cache.invalidate(CLEARING_KEY.format(auction_id))
            refreshed += 1
        return refreshed

    async def backfill_clearings(self) -> int:
        """Phase 3: read clearing prices of settled auctions lacking one.

        Returns:
            Number of clearings stored
        """
        ids = [
            aid
            for aid, a in self.state.auctions.items()
            if a.is_settled and aid not in self.state.clearings
        ]
        if not ids:
            return 0

        results = await asyncio.gather(*(self._read_clearing(aid) for aid in ids))

        stored = 0
        for auction_id, clearing in zip(ids, results, strict=True):
            if clearing is None:
                continue
            self.state.clearings[auction_id] = clearing
            self.cache.set(CLEARING_KEY.format(auction_id), clearing)
            stored += 1
            logger.info(
                "clearing_indexed",
                auction_id=auction_id,
                clearing_buy_amount=clearing.clearing_buy_amount,
                clearing_sell_amount=clearing.clearing_sell_amount,
            )
        return stored

    def invalidate_stale_orders(self) -> int:
        """Phase 4: drop cached order lists that may no longer match the ledger.

        A list is stale when its length differs from the auction's order
        count, or when the auction is settled and some order is still
        neither cancelled nor claimed (its claim flag may have flipped).

        Returns:
            Number of order lists invalidated
        """
        invalidated = 0
        for auction_id, auction in self.state.auctions.items():
            if auction.order_count == 0:
                continue
            key = ORDERS_KEY.format(auction_id)
            cached: list[IndexedOrder] | None = self.cache.get(key)
            if cached is None:
                continue
            if len(cached) != auction.order_count or (
                auction.is_settled and any(o.is_claimable for o in cached)
            ):
                self.cache.invalidate(key)
                invalidated += 1
        return invalidated

    async def aggregate_volumes(self) -> int:
        """Phase 5: recompute total bid amounts from order lists.

        Settled auctions with a non-zero total are frozen. A failed fetch
        keeps the previous total.

        Returns:
            Number of auctions updated
        """
        ids = [
            aid
            for aid, a in self.state.auctions.items()
            if a.order_count > 0 and not (a.is_settled and a.total_bid_amount_int != 0)
        ]
        if not ids:
            return 0

        results = await asyncio.gather(*(self.get_orders_data(aid) for aid in ids))

        updated = 0
        for auction_id, orders in zip(ids, results, strict=True):
            if orders is None:
                continue
            total = sum(o.sell_amount_int for o in orders if not o.cancelled)
            auction = self.state.auctions[auction_id]
            self.state.auctions[auction_id] = auction.model_copy(
                update={"total_bid_amount": str(total)}
            )
            updated += 1
        return updated

    # =========================================================================
    # Ledger reads
    # =========================================================================

    async def _build_auction(self, auction_id: int, response: AuctionDataResponse) -> IndexedAuction:
        """Decode a getAuctionData response and enrich it with token metadata.

        Raises:
            LedgerDecodeError: If the response does not describe an auction
        """
        fields = decode_auction_fields(response)

        auctioning, bidding = await asyncio.gather(
            self.tokens.get_token_info(fields.auctioning_token),
            self.tokens.get_token_info(fields.bidding_token),
        )

        status = derive_status(
            cancellation_end=fields.cancellation_end_date,
            auction_end=fields.auction_end_date,
            settled=fields.is_settled,
            ledger_time_ms=self.state.ledger_time_ms,
            order_placement_start=fields.order_placement_start_date,
            funding_not_reached=fields.funding_not_reached,
        )

        return IndexedAuction(
            id=auction_id,
            auctioning_token=fields.auctioning_token,
            auctioning_token_name=auctioning.name,
            auctioning_token_symbol=auctioning.symbol,
            auctioning_token_decimals=auctioning.decimals,
            bidding_token=fields.bidding_token,
            bidding_token_name=bidding.name,
            bidding_token_symbol=bidding.symbol,
            bidding_token_decimals=bidding.decimals,
            order_placement_start_date=fields.order_placement_start_date,
            cancellation_end_date=fields.cancellation_end_date,
            auction_end_date=fields.auction_end_date,
            auctioned_sell_amount=fields.auctioned_sell_amount,
            min_buy_amount=fields.min_buy_amount,
            minimum_bidding_amount_per_order=fields.minimum_bidding_amount_per_order,
            fee_numerator=fields.fee_numerator,
            min_funding_threshold=fields.min_funding_threshold,
            is_atomic_closure_allowed=fields.is_atomic_closure_allowed,
            order_count=fields.order_count,
            is_settled=fields.is_settled,
            funding_not_reached=fields.funding_not_reached,
            status=status,
            has_cancel_window=has_cancel_window(
                fields.cancellation_end_date, fields.auction_end_date
            ),
            auctioneer_address=fields.auctioneer_address or "",
        )

    @staticmethod
    def _carry_over(previous: IndexedAuction, current: IndexedAuction) -> IndexedAuction:
        """Keep indexer-computed fields across a refresh.

        The total bid amount is kept until volume aggregation recomputes
        it, except on the transition to settled, where it is reset so the
        final total is computed once from fresh orders.
        """
        if current.is_settled and not previous.is_settled:
            return current
        return current.model_copy(update={"total_bid_amount": previous.total_bid_amount})

    async def _read_auction(self, auction_id: int) -> IndexedAuction | None:
        try:
            response = await self.ledger.get_auction_data(auction_id)
            return await self._build_auction(auction_id, response)
        except LedgerDecodeError as e:
            logger.warning("auction_refresh_skipped", auction_id=auction_id, error=str(e))
        except Exception as e:
            logger.warning("auction_refresh_failed", auction_id=auction_id, error=str(e))
        return None

    async def _read_clearing(self, auction_id: int) -> IndexedClearing | None:
        try:
            properties = await self.ledger.get_clearing_order(auction_id)
            buy_amount, sell_amount = decode_clearing_order(properties)
        except Exception as e:
            logger.warning("clearing_fetch_failed", auction_id=auction_id, error=str(e))
            return None
        return IndexedClearing(
            clearing_buy_amount=buy_amount,
            clearing_sell_amount=sell_amount,
        )

    async def _resolve_user_addresses(self, user_ids: set[int]) -> dict[int, str]:
        """Resolve user ids to addresses; failed lookups resolve to ""."""

        async def resolve(user_id: int) -> str:
            try:
                return str(await self.ledger.get_user_address(user_id))
            except Exception as e:
                logger.debug("user_address_failed", user_id=user_id, error=str(e))
                return ""

        ordered = sorted(user_ids)
        addresses = await asyncio.gather(*(resolve(uid) for uid in ordered))
        return dict(zip(ordered, addresses, strict=True))

    # =========================================================================
    # Read operations
    # =========================================================================

    def get_auctions(self) -> list[IndexedAuction]:
        """Current snapshot of every indexed auction, in id order."""
        return [self.state.auctions[aid] for aid in sorted(self.state.auctions)]

    def get_auction(self, auction_id: int) -> IndexedAuction | None:
        return self.state.auctions.get(auction_id)

    async def get_orders_data(
        self, auction_id: int, use_cache: bool = True
    ) -> list[IndexedOrder] | None:
        """Order list of an auction, served from cache when possible.

        Args:
            auction_id: Auction to read
            use_cache: If False, always read from the ledger (the fresh
                       result is still cached)

        Returns:
            The orders, or None if the ledger read failed
        """
        key = ORDERS_KEY.format(auction_id)
        if use_cache:
            cached: list[IndexedOrder] | None = self.cache.get(key)
            if cached is not None:
                return cached

        try:
            raw = await self.ledger.get_auction_orders(auction_id)
            raw_orders = decode_auction_orders(raw)
            addresses = await self._resolve_user_addresses({o.user_id for o in raw_orders})
        except Exception as e:
            logger.warning("orders_fetch_failed", auction_id=auction_id, error=str(e))
            return None

        orders = [
            IndexedOrder(
                order_id=o.order_id,
                buy_amount=o.buy_amount,
                sell_amount=o.sell_amount,
                user_id=o.user_id,
                user_address=addresses.get(o.user_id, ""),
                cancelled=o.cancelled,
                claimed=o.claimed,
            )
            for o in raw_orders
        ]
        self.cache.set(key, orders)
        return orders

    async def get_clearing_data(self, auction_id: int) -> IndexedClearing | None:
        """Clearing price of an auction: indexed, cached, or read on demand."""
        clearing = self.state.clearings.get(auction_id)
        if clearing is not None:
            return clearing

        key = CLEARING_KEY.format(auction_id)
        cached: IndexedClearing | None = self.cache.get(key)
        if cached is not None:
            return cached

        clearing = await self._read_clearing(auction_id)
        if clearing is not None:
            self.cache.set(key, clearing)
        return clearing

    async def get_stats(self) -> AuctionStats:
        return await compute_stats(self.state, self.prices)

    async def get_token_info(self, address: str) -> TokenInfo:
        return await self.tokens.get_token_info(address)

    async def get_price_usd(self, token: str) -> float:
        return await self.prices.price_usd(token)

    async def get_block_time(self) -> int:
        """Authoritative ledger time (ms) as of the last poll cycle."""
        if self.state.ledger_time_ms > 0:
            return self.state.ledger_time_ms
        return await self.read_ledger_time()

    async def get_fee_parameters(self) -> FeeParameters | None:
        cached: FeeParameters | None = self.cache.get(FEE_PARAMETERS_KEY)
        if cached is not None:
            return cached
        try:
            fee_numerator = await self.ledger.get_fee_parameters()
        except Exception as e:
            logger.warning("fee_parameters_fetch_failed", error=str(e))
            return None
        fees = FeeParameters(fee_numerator=int(fee_numerator))
        self.cache.set(FEE_PARAMETERS_KEY, fees)
        return fees
