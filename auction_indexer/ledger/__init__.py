"""Ledger client interface and response decoding."""

from auction_indexer.ledger.client import (
    AuctionDataResponse,
    BlockInfo,
    LedgerClient,
    SimulationResult,
)
from auction_indexer.ledger.decoding import (
    AuctionFields,
    LedgerDecodeError,
    RawOrder,
    decode_auction_fields,
    decode_auction_orders,
    decode_clearing_order,
    extract_auctioneer_address,
)

__all__ = [
    "AuctionDataResponse",
    "AuctionFields",
    "BlockInfo",
    "LedgerClient",
    "LedgerDecodeError",
    "RawOrder",
    "SimulationResult",
    "decode_auction_fields",
    "decode_auction_orders",
    "decode_clearing_order",
    "extract_auctioneer_address",
]
