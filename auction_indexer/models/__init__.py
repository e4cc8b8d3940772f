"""Pydantic models for indexed auction data."""

from auction_indexer.models.auction import (
    AuctionStats,
    AuctionStatus,
    FeeParameters,
    IndexedAuction,
    IndexedClearing,
    IndexedOrder,
    TokenInfo,
)
from auction_indexer.models.types import Address, Uint256

__all__ = [
    # Types
    "Address",
    "Uint256",
    # Indexed state
    "AuctionStatus",
    "IndexedAuction",
    "IndexedOrder",
    "IndexedClearing",
    "AuctionStats",
    "FeeParameters",
    "TokenInfo",
]
