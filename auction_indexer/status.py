"""Auction status derivation.

Status is never stored independently: it is recomputed from the auction's
timestamps and flags against ledger time on every poll.
"""

from auction_indexer.constants import MIN_CANCEL_WINDOW_MS
from auction_indexer.models.auction import AuctionStatus


def derive_status(
    cancellation_end: int,
    auction_end: int,
    settled: bool,
    ledger_time_ms: int,
    order_placement_start: int = 0,
    funding_not_reached: bool = False,
) -> AuctionStatus:
    """Determine an auction's lifecycle status.

    Priority:
    1. Settled auctions are always SETTLED
    2. Before order placement starts: UPCOMING
    3. Before the cancellation deadline: OPEN
    4. Before the auction end: CANCELLATION_CLOSED
    5. Otherwise ENDED, or FAILED when funding was not reached

    Args:
        cancellation_end: Cancellation deadline (ms)
        auction_end: Auction end (ms)
        settled: Whether the ledger reports the auction settled
        ledger_time_ms: Authoritative "now" taken from the ledger (ms)
        order_placement_start: When bidding opens (ms)
        funding_not_reached: Ledger flag for a missed funding threshold

    Returns:
        The derived AuctionStatus
    """
    if settled:
        return AuctionStatus.SETTLED
    if ledger_time_ms < order_placement_start:
        return AuctionStatus.UPCOMING
    if ledger_time_ms < cancellation_end:
        return AuctionStatus.OPEN
    if ledger_time_ms < auction_end:
        return AuctionStatus.CANCELLATION_CLOSED
    if funding_not_reached:
        return AuctionStatus.FAILED
    return AuctionStatus.ENDED


def has_cancel_window(cancellation_end: int, auction_end: int) -> bool:
    """Whether the auction has a meaningful cancellation window.

    Zero-width or sub-minute windows produced by some creation paths do
    not count.
    """
    if cancellation_end <= 0 or cancellation_end >= auction_end:
        return False
    return auction_end - cancellation_end >= MIN_CANCEL_WINDOW_MS
