"""Tests for aggregate statistics."""

import asyncio
from decimal import Decimal

import pytest

from auction_indexer.indexer.state import IndexerState
from auction_indexer.indexer.stats import compute_stats, raised_amount
from auction_indexer.models.auction import AuctionStatus, IndexedClearing
from tests.helpers import MOTO, PILL, make_auction


class FixedPrices:
    """Price resolver stub returning one USD price per token."""

    def __init__(self, prices: dict[str, float]) -> None:
        self.prices = prices
        self.requested: list[str] = []

    async def price_usd(self, token: str) -> float:
        self.requested.append(token)
        return self.prices.get(token, 0.0)


def settled(auction_id: int, **overrides):
    return make_auction(auction_id, is_settled=True, status=AuctionStatus.SETTLED, **overrides)


class TestRaisedAmount:
    """Tests for raised_amount."""

    def test_uses_clearing_price(self):
        auction = settled(1, auctioned_sell_amount=1000)
        clearing = IndexedClearing(clearing_buy_amount=100, clearing_sell_amount=500)
        assert raised_amount(auction, clearing) == Decimal("0.00005")

    def test_falls_back_to_total_bid_amount(self):
        auction = settled(1, total_bid_amount=3 * 10**8)
        assert raised_amount(auction, None) == Decimal(3)

    def test_zero_clearing_buy_amount(self):
        auction = settled(1, auctioned_sell_amount=1000)
        clearing = IndexedClearing(clearing_buy_amount=0, clearing_sell_amount=500)
        assert raised_amount(auction, clearing) is None

    def test_scales_by_bidding_token_decimals(self):
        auction = settled(1, total_bid_amount=5 * 10**18, bidding_token=PILL, bidding_token_decimals=18)
        assert raised_amount(auction, None) == Decimal(5)


class TestComputeStats:
    """Tests for compute_stats."""

    def test_example_contribution(self):
        state = IndexerState()
        state.auctions[1] = settled(1, auctioned_sell_amount=1000)
        state.clearings[1] = IndexedClearing(clearing_buy_amount=100, clearing_sell_amount=500)

        stats = asyncio.run(compute_stats(state, FixedPrices({MOTO: 2.0})))
        assert stats.total_raised_usd == pytest.approx(0.0001)
        assert stats.settled_auctions == 1

    def test_counts_by_status(self):
        state = IndexerState()
        statuses = [
            AuctionStatus.UPCOMING,
            AuctionStatus.OPEN,
            AuctionStatus.CANCELLATION_CLOSED,
            AuctionStatus.ENDED,
            AuctionStatus.FAILED,
        ]
        for aid, status in enumerate(statuses, start=1):
            state.auctions[aid] = make_auction(aid, status=status, order_count=aid)
        state.auctions[6] = settled(6, order_count=10)

        stats = asyncio.run(compute_stats(state, FixedPrices({})))
        assert stats.total_auctions == 6
        assert stats.upcoming_auctions == 1
        assert stats.open_auctions == 2
        assert stats.failed_auctions == 1
        assert stats.settled_auctions == 1
        assert stats.total_orders_placed == 1 + 2 + 3 + 4 + 5 + 10

    def test_sums_across_auctions(self):
        state = IndexerState()
        state.auctions[1] = settled(1, total_bid_amount=2 * 10**8)
        state.auctions[2] = settled(2, total_bid_amount=10**18, bidding_token=PILL, bidding_token_decimals=18)
        state.auctions[3] = settled(3)  # nothing raised yet

        prices = FixedPrices({MOTO: 5.0, PILL: 0.5})
        stats = asyncio.run(compute_stats(state, prices))
        assert stats.total_raised_usd == pytest.approx(10.5)
        assert sorted(prices.requested) == sorted([MOTO, PILL])

    def test_unsettled_auctions_raise_nothing(self):
        state = IndexerState()
        state.auctions[1] = make_auction(1, total_bid_amount=10**8)
        prices = FixedPrices({MOTO: 5.0})
        stats = asyncio.run(compute_stats(state, prices))
        assert stats.total_raised_usd == 0.0
        assert prices.requested == []

    def test_empty_state(self):
        stats = asyncio.run(compute_stats(IndexerState(), FixedPrices({})))
        assert stats.total_auctions == 0
        assert stats.total_raised_usd == 0.0
