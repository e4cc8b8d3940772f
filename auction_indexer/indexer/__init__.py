"""Auction indexer: poll cycle, automated actions and read operations."""

from auction_indexer.indexer.core import AuctionIndexer
from auction_indexer.indexer.scheduler import IndexerScheduler, start_indexer
from auction_indexer.indexer.state import IndexerState, RetryTracker

__all__ = [
    "AuctionIndexer",
    "IndexerScheduler",
    "IndexerState",
    "RetryTracker",
    "start_indexer",
]
