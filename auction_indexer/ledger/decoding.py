"""Decoding of auction contract responses.

The contract writes responses as a packed big-endian byte stream:
- address: 32 bytes
- uint256: 32 bytes
- bool: 1 byte

getAuctionData layout:
    auctioningToken, biddingToken                  (2 addresses)
    orderPlacementStartDate, cancellationEndDate,
    auctionEndDate, auctionedSellAmount,
    minBuyAmount, minimumBiddingAmountPerOrder,
    feeNumerator, minFundingThreshold               (8 uint256)
    isAtomicClosureAllowed                          (bool)
    orderCount                                      (uint256)
    isSettled, fundingNotReached                    (2 bools)
    auctioneer                                      (address, offset 355)

getAuctionOrders layout:
    orderCount (uint256), then per order:
    buyAmount, sellAmount, userId (uint256), cancelled, claimed (bool)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from eth_abi import decode  # type: ignore[attr-defined]

from auction_indexer.constants import (
    ADDRESS_SIZE,
    AUCTION_DATA_MIN_SIZE,
    AUCTIONEER_OFFSET,
    U256_SIZE,
)
from auction_indexer.ledger.client import AuctionDataResponse
from auction_indexer.models.types import is_zero_address


class LedgerDecodeError(ValueError):
    """Raised when a ledger response does not match the expected layout."""


class BinaryReader:
    """Sequential reader over a packed contract response."""

    def __init__(self, buffer: bytes) -> None:
        self._buffer = bytes(buffer)
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._buffer) - self._offset

    def set_offset(self, offset: int) -> None:
        if offset < 0 or offset > len(self._buffer):
            raise LedgerDecodeError(f"Offset {offset} out of range for {len(self._buffer)} bytes")
        self._offset = offset

    def _take(self, size: int) -> bytes:
        if self.remaining < size:
            raise LedgerDecodeError(
                f"Need {size} bytes at offset {self._offset}, only {self.remaining} left"
            )
        chunk = self._buffer[self._offset : self._offset + size]
        self._offset += size
        return chunk

    def read_u256(self) -> int:
        # a packed uint256 is exactly one ABI word
        (value,) = decode(["uint256"], self._take(U256_SIZE))
        return int(value)

    def read_address(self) -> str:
        return "0x" + self._take(ADDRESS_SIZE).hex()

    def read_bool(self) -> bool:
        return self._take(1) != b"\x00"


@dataclass(frozen=True)
class AuctionFields:
    """Auction data as stored on the ledger, before enrichment."""

    auctioning_token: str
    bidding_token: str
    order_placement_start_date: int
    cancellation_end_date: int
    auction_end_date: int
    auctioned_sell_amount: int
    min_buy_amount: int
    minimum_bidding_amount_per_order: int
    fee_numerator: int
    min_funding_threshold: int
    is_atomic_closure_allowed: bool
    order_count: int
    is_settled: bool
    funding_not_reached: bool
    auctioneer_address: str | None = None


@dataclass(frozen=True)
class RawOrder:
    """One order entry from getAuctionOrders."""

    order_id: int
    buy_amount: int
    sell_amount: int
    user_id: int
    cancelled: bool
    claimed: bool


def _as_int(properties: Mapping[str, Any], key: str) -> int:
    value = properties.get(key, 0)
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as err:
        raise LedgerDecodeError(f"Field {key} is not an integer: {value!r}") from err


def extract_auctioneer_address(raw: bytes) -> str | None:
    """Read the auctioneer address at its fixed offset in the raw response.

    Returns:
        The address as 0x-prefixed hex, or None when the buffer is too
        short or the address is all zeros.
    """
    if len(raw) < AUCTION_DATA_MIN_SIZE:
        return None
    reader = BinaryReader(raw)
    reader.set_offset(AUCTIONEER_OFFSET)
    address = reader.read_address()
    if is_zero_address(address):
        return None
    return address


def decode_auction_data_raw(raw: bytes) -> AuctionFields:
    """Decode every auction field from the raw getAuctionData bytes."""
    reader = BinaryReader(raw)
    auctioning_token = reader.read_address()
    bidding_token = reader.read_address()
    order_placement_start_date = reader.read_u256()
    cancellation_end_date = reader.read_u256()
    auction_end_date = reader.read_u256()
    auctioned_sell_amount = reader.read_u256()
    min_buy_amount = reader.read_u256()
    minimum_bidding_amount_per_order = reader.read_u256()
    fee_numerator = reader.read_u256()
    min_funding_threshold = reader.read_u256()
    is_atomic_closure_allowed = reader.read_bool()
    order_count = reader.read_u256()
    is_settled = reader.read_bool()
    funding_not_reached = reader.read_bool()

    if is_zero_address(auctioning_token):
        raise LedgerDecodeError("Auction has no auctioning token")

    return AuctionFields(
        auctioning_token=auctioning_token,
        bidding_token=bidding_token,
        order_placement_start_date=order_placement_start_date,
        cancellation_end_date=cancellation_end_date,
        auction_end_date=auction_end_date,
        auctioned_sell_amount=auctioned_sell_amount,
        min_buy_amount=min_buy_amount,
        minimum_bidding_amount_per_order=minimum_bidding_amount_per_order,
        fee_numerator=fee_numerator,
        min_funding_threshold=min_funding_threshold,
        is_atomic_closure_allowed=is_atomic_closure_allowed,
        order_count=order_count,
        is_settled=is_settled,
        funding_not_reached=funding_not_reached,
        auctioneer_address=extract_auctioneer_address(raw),
    )


def decode_auction_fields(response: AuctionDataResponse) -> AuctionFields:
    """Decode a getAuctionData response.

    Structured properties are used when present; otherwise every field is
    decoded from the raw bytes. The auctioneer address always comes from
    the raw bytes.

    Raises:
        LedgerDecodeError: If the auction does not exist (no auctioning
            token) or a field cannot be decoded
    """
    props = response.properties
    if not props:
        if len(response.raw) < AUCTIONEER_OFFSET:
            raise LedgerDecodeError("Empty auction data response")
        return decode_auction_data_raw(response.raw)

    auctioning_token = str(props.get("auctioningToken") or "")
    if not auctioning_token or is_zero_address(auctioning_token):
        raise LedgerDecodeError("Auction has no auctioning token")

    return AuctionFields(
        auctioning_token=auctioning_token,
        bidding_token=str(props.get("biddingToken") or ""),
        order_placement_start_date=_as_int(props, "orderPlacementStartDate"),
        cancellation_end_date=_as_int(props, "cancellationEndDate"),
        auction_end_date=_as_int(props, "auctionEndDate"),
        auctioned_sell_amount=_as_int(props, "auctionedSellAmount"),
        min_buy_amount=_as_int(props, "minBuyAmount"),
        minimum_bidding_amount_per_order=_as_int(props, "minimumBiddingAmountPerOrder"),
        fee_numerator=_as_int(props, "feeNumerator"),
        min_funding_threshold=_as_int(props, "minFundingThreshold"),
        is_atomic_closure_allowed=bool(props.get("isAtomicClosureAllowed", False)),
        order_count=_as_int(props, "orderCount"),
        is_settled=bool(props.get("isSettled", False)),
        funding_not_reached=bool(props.get("fundingNotReached", False)),
        auctioneer_address=extract_auctioneer_address(response.raw),
    )


def decode_clearing_order(properties: Mapping[str, Any]) -> tuple[int, int]:
    """Decode (clearingBuyAmount, clearingSellAmount) from getClearingOrder.

    Raises:
        LedgerDecodeError: If the response is empty or malformed
    """
    if not properties:
        raise LedgerDecodeError("Empty clearing order response")
    return _as_int(properties, "clearingBuyAmount"), _as_int(properties, "clearingSellAmount")


def decode_auction_orders(raw: bytes) -> list[RawOrder]:
    """Decode the packed order list of an auction.

    Order ids are positions in the list (0-based, dense).

    Raises:
        LedgerDecodeError: If the buffer is shorter than its declared length
    """
    reader = BinaryReader(raw)
    count = reader.read_u256()
    # each order takes 3 words + 2 bools; reject absurd counts before looping
    if count * (3 * U256_SIZE + 2) > reader.remaining:
        raise LedgerDecodeError(f"Order count {count} exceeds response size {len(raw)}")

    orders = []
    for order_id in range(count):
        orders.append(
            RawOrder(
                order_id=order_id,
                buy_amount=reader.read_u256(),
                sell_amount=reader.read_u256(),
                user_id=reader.read_u256(),
                cancelled=reader.read_bool(),
                claimed=reader.read_bool(),
            )
        )
    return orders


__all__ = [
    "AuctionFields",
    "BinaryReader",
    "LedgerDecodeError",
    "RawOrder",
    "decode_auction_data_raw",
    "decode_auction_fields",
    "decode_auction_orders",
    "decode_clearing_order",
    "extract_auctioneer_address",
]
