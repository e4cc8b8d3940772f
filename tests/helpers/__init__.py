"""Test helpers module for shared test utilities.

- constants: token addresses, users and reference times
- factories: ledger response builders and model factories
"""

from tests.helpers.constants import (
    ALICE,
    AUCTIONEER,
    BOB,
    HOUR_MS,
    MINUTE_MS,
    MOTO,
    NATIVE_SWAP,
    NOW_MS,
    ORANGE,
    PILL,
    ROUTER,
    TOKEN_METADATA,
)
from tests.helpers.factories import (
    auction_fields,
    auction_response,
    encode_auction_raw,
    encode_orders,
    make_auction,
)

__all__ = [
    # Constants
    "ALICE",
    "AUCTIONEER",
    "BOB",
    "HOUR_MS",
    "MINUTE_MS",
    "MOTO",
    "NATIVE_SWAP",
    "NOW_MS",
    "ORANGE",
    "PILL",
    "ROUTER",
    "TOKEN_METADATA",
    # Factories
    "auction_fields",
    "auction_response",
    "encode_auction_raw",
    "encode_orders",
    "make_auction",
]
