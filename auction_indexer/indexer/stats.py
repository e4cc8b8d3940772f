"""Aggregate statistics across indexed auctions."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING

from auction_indexer.decimal_utils import exact_ratio, multiply, scale_down
from auction_indexer.models.auction import AuctionStats, AuctionStatus

if TYPE_CHECKING:
    from auction_indexer.indexer.state import IndexerState
    from auction_indexer.models.auction import IndexedAuction, IndexedClearing
    from auction_indexer.pricing.resolver import PriceResolver


def raised_amount(auction: IndexedAuction, clearing: IndexedClearing | None) -> Decimal | None:
    """Bidding tokens raised by a settled auction, in human units.

    With a clearing price: auctioned amount × clearingSell / clearingBuy.
    Without one yet: the total bid amount.
    """
    if clearing is None:
        base_units: Decimal | None = Decimal(auction.total_bid_amount_int)
    else:
        ratio = exact_ratio(clearing.clearing_sell_amount_int, clearing.clearing_buy_amount_int)
        if ratio is None:
            return None
        base_units = multiply(auction.auctioned_sell_amount_int, ratio)
    return scale_down(base_units, auction.bidding_token_decimals)


async def compute_stats(state: IndexerState, prices: PriceResolver) -> AuctionStats:
    """Count auctions by status and total the USD raised by settled ones.

    Ended-but-unsettled auctions are counted only in the total.
    """
    settled = open_ = upcoming = failed = 0
    total_orders = 0
    raised: list[tuple[Decimal, str]] = []

    for auction_id, auction in state.auctions.items():
        total_orders += auction.order_count
        if auction.status == AuctionStatus.SETTLED:
            settled += 1
            amount = raised_amount(auction, state.clearings.get(auction_id))
            if amount is not None and amount > 0:
                raised.append((amount, auction.bidding_token))
        elif auction.status == AuctionStatus.UPCOMING:
            upcoming += 1
        elif auction.status in (AuctionStatus.OPEN, AuctionStatus.CANCELLATION_CLOSED):
            open_ += 1
        elif auction.status == AuctionStatus.FAILED:
            failed += 1

    usd_prices = await asyncio.gather(*(prices.price_usd(token) for _, token in raised))
    total_raised_usd = sum(
        (multiply(amount, price) for (amount, _), price in zip(raised, usd_prices, strict=True)),
        Decimal(0),
    )

    return AuctionStats(
        total_auctions=len(state.auctions),
        settled_auctions=settled,
        open_auctions=open_,
        upcoming_auctions=upcoming,
        failed_auctions=failed,
        total_raised_usd=float(total_raised_usd),
        total_orders_placed=total_orders,
    )
