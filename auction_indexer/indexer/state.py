"""Mutable state owned by the indexer.

All maps here are written only by the indexer's own poll cycle. Read
handlers must treat them as read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from auction_indexer.constants import MAX_AUTO_ACTION_ATTEMPTS
from auction_indexer.models.auction import IndexedAuction, IndexedClearing


class RetryTracker:
    """Bounded-retry bookkeeping for one kind of automated action.

    An auction is "done" once an action succeeded or once it failed
    `max_attempts` times in a row; done auctions are never attempted again.
    State lives in process memory only and resets on restart.
    """

    def __init__(self, max_attempts: int = MAX_AUTO_ACTION_ATTEMPTS) -> None:
        self.max_attempts = max_attempts
        self._failures: dict[int, int] = {}
        self._done: set[int] = set()

    def is_done(self, auction_id: int) -> bool:
        return auction_id in self._done

    def failures(self, auction_id: int) -> int:
        return self._failures.get(auction_id, 0)

    def mark_done(self, auction_id: int) -> None:
        self._done.add(auction_id)
        self._failures.pop(auction_id, None)

    def record_failure(self, auction_id: int) -> bool:
        """Count a failed attempt.

        Returns:
            True if the retry bound was reached and the auction is now done
        """
        count = self._failures.get(auction_id, 0) + 1
        if count >= self.max_attempts:
            self.mark_done(auction_id)
            return True
        self._failures[auction_id] = count
        return False

    @property
    def done_ids(self) -> frozenset[int]:
        return frozenset(self._done)


@dataclass
class IndexerState:
    """Everything the indexer knows about the ledger.

    Attributes:
        auctions: Auction snapshots keyed by auction id (append-only)
        clearings: Clearing prices of settled auctions (immutable once set)
        highest_known_id: Highest auction id discovered so far
        ledger_time_ms: Ledger "now" of the last completed reference-time read
        settle_attempts: Bounded-retry state of auto-settle
        distribute_attempts: Bounded-retry state of auto-distribute
        cycles_completed: Number of poll cycles that ran to completion
    """

    auctions: dict[int, IndexedAuction] = field(default_factory=dict)
    clearings: dict[int, IndexedClearing] = field(default_factory=dict)
    highest_known_id: int = 0
    ledger_time_ms: int = 0
    settle_attempts: RetryTracker = field(default_factory=RetryTracker)
    distribute_attempts: RetryTracker = field(default_factory=RetryTracker)
    cycles_completed: int = 0
