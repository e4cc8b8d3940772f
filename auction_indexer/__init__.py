"""Off-chain indexer for on-ledger batch auctions."""

from auction_indexer.indexer.core import AuctionIndexer
from auction_indexer.indexer.scheduler import IndexerScheduler

__version__ = "0.1.0"
__all__ = ["AuctionIndexer", "IndexerScheduler", "__version__"]
