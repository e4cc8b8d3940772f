"""Pydantic models for indexed auction state.

These are the snapshots the indexer stores in its maps and the read API
serves. JSON field names use camelCase aliases.
"""

from enum import Enum

from pydantic import BaseModel, Field

from auction_indexer.models.types import Uint256


class AuctionStatus(str, Enum):
    """Lifecycle status derived from timestamps and settlement flags."""

    UPCOMING = "upcoming"
    OPEN = "open"
    CANCELLATION_CLOSED = "cancellation_closed"
    ENDED = "ended"
    SETTLED = "settled"
    FAILED = "failed"


class TokenInfo(BaseModel):
    """OP-20 token metadata resolved from the token contract."""

    address: str
    name: str
    symbol: str
    decimals: int = Field(ge=0, le=77)


class IndexedAuction(BaseModel):
    """Snapshot of one auction as last observed on the ledger."""

    id: int = Field(ge=1)
    auctioning_token: str = Field(alias="auctioningToken")
    auctioning_token_name: str = Field(alias="auctioningTokenName")
    auctioning_token_symbol: str = Field(alias="auctioningTokenSymbol")
    auctioning_token_decimals: int = Field(alias="auctioningTokenDecimals")
    bidding_token: str = Field(alias="biddingToken")
    bidding_token_name: str = Field(alias="biddingTokenName")
    bidding_token_symbol: str = Field(alias="biddingTokenSymbol")
    bidding_token_decimals: int = Field(alias="biddingTokenDecimals")
    order_placement_start_date: int = Field(alias="orderPlacementStartDate")
    cancellation_end_date: int = Field(alias="cancellationEndDate")
    auction_end_date: int = Field(alias="auctionEndDate")
    auctioned_sell_amount: Uint256 = Field(alias="auctionedSellAmount")
    min_buy_amount: Uint256 = Field(alias="minBuyAmount")
    minimum_bidding_amount_per_order: Uint256 = Field(alias="minimumBiddingAmountPerOrder")
    fee_numerator: Uint256 = Field(default="0", alias="feeNumerator")
    min_funding_threshold: Uint256 = Field(alias="minFundingThreshold")
    is_atomic_closure_allowed: bool = Field(alias="isAtomicClosureAllowed")
    order_count: int = Field(default=0, ge=0, alias="orderCount")
    total_bid_amount: Uint256 = Field(default="0", alias="totalBidAmount")
    is_settled: bool = Field(alias="isSettled")
    funding_not_reached: bool = Field(default=False, alias="fundingNotReached")
    status: AuctionStatus
    has_cancel_window: bool = Field(alias="hasCancelWindow")
    auctioneer_address: str = Field(default="", alias="auctioneerAddress")

    model_config = {"populate_by_name": True}

    @property
    def auctioned_sell_amount_int(self) -> int:
        return int(self.auctioned_sell_amount)

    @property
    def total_bid_amount_int(self) -> int:
        return int(self.total_bid_amount)


class IndexedOrder(BaseModel):
    """A sell order placed into an auction.

    Only `cancelled` and `claimed` ever change, and only on the ledger.
    """

    order_id: int = Field(ge=0, alias="orderId")
    buy_amount: Uint256 = Field(alias="buyAmount")
    sell_amount: Uint256 = Field(alias="sellAmount")
    user_id: Uint256 = Field(alias="userId")
    user_address: str = Field(default="", alias="userAddress")
    cancelled: bool = False
    claimed: bool = False

    model_config = {"populate_by_name": True}

    @property
    def sell_amount_int(self) -> int:
        return int(self.sell_amount)

    @property
    def is_claimable(self) -> bool:
        """True when the order still has funds waiting to be paid out."""
        return not self.cancelled and not self.claimed


class IndexedClearing(BaseModel):
    """Uniform clearing price of a settled auction, as a buy/sell ratio."""

    clearing_buy_amount: Uint256 = Field(alias="clearingBuyAmount")
    clearing_sell_amount: Uint256 = Field(alias="clearingSellAmount")

    model_config = {"populate_by_name": True}

    @property
    def clearing_buy_amount_int(self) -> int:
        return int(self.clearing_buy_amount)

    @property
    def clearing_sell_amount_int(self) -> int:
        return int(self.clearing_sell_amount)


class AuctionStats(BaseModel):
    """Aggregate counters across all indexed auctions."""

    total_auctions: int = Field(alias="totalAuctions")
    settled_auctions: int = Field(alias="settledAuctions")
    open_auctions: int = Field(alias="openAuctions")
    upcoming_auctions: int = Field(alias="upcomingAuctions")
    failed_auctions: int = Field(alias="failedAuctions")
    total_raised_usd: float = Field(alias="totalRaisedUsd")
    total_orders_placed: int = Field(alias="totalOrdersPlaced")

    model_config = {"populate_by_name": True}


class FeeParameters(BaseModel):
    """Protocol fee configuration read from the auction contract."""

    fee_numerator: Uint256 = Field(alias="feeNumerator")

    model_config = {"populate_by_name": True}
