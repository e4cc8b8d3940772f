"""USD price resolution (BTC/USD × Base/BTC × Token/Base)."""

from auction_indexer.pricing.oracle import BtcUsdSource, CoinGeckoBtcUsdSource, PriceSourceError
from auction_indexer.pricing.resolver import PriceHop, PriceResolver

__all__ = [
    "BtcUsdSource",
    "CoinGeckoBtcUsdSource",
    "PriceHop",
    "PriceResolver",
    "PriceSourceError",
]
