"""Read API endpoints for the auction indexer.

Every route reads indexed state; none of them mutates the indexer's maps.
Indexer-internal failures surface as empty results, 0 prices or a 500
with a short detail message, never as a traceback.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from auction_indexer.constants import PRICE_KEY, STATS_KEY
from auction_indexer.indexer.core import AuctionIndexer
from auction_indexer.models.auction import (
    AuctionStats,
    FeeParameters,
    IndexedAuction,
    IndexedClearing,
    IndexedOrder,
    TokenInfo,
)

logger = structlog.get_logger()

router = APIRouter()


def get_indexer(request: Request) -> AuctionIndexer:
    """Dependency provider for the indexer instance.

    Override this in tests to inject a fake indexer:
        app.dependency_overrides[get_indexer] = lambda: fake_indexer

    Raises:
        HTTPException: 503 if the service was started without a ledger client
    """
    indexer: AuctionIndexer | None = getattr(request.app.state, "indexer", None)
    if indexer is None:
        raise HTTPException(status_code=503, detail="Indexer not configured")
    return indexer


def _require_auction(indexer: AuctionIndexer, auction_id: int) -> IndexedAuction:
    if auction_id < 1:
        raise HTTPException(status_code=400, detail="Invalid auction ID")
    auction = indexer.get_auction(auction_id)
    if auction is None:
        raise HTTPException(status_code=404, detail="Auction not found")
    return auction


@router.get("/stats")
async def stats(indexer: AuctionIndexer = Depends(get_indexer)) -> AuctionStats:
    """Aggregate counters and USD raised across all auctions (cached)."""
    cached: AuctionStats | None = indexer.cache.get(STATS_KEY)
    if cached is not None:
        return cached
    result = await indexer.get_stats()
    indexer.cache.set(STATS_KEY, result)
    return result


@router.get("/price/{token_address}")
async def price(
    token_address: str,
    indexer: AuctionIndexer = Depends(get_indexer),
) -> dict[str, float]:
    """USD price of one token (0 when unavailable, cached)."""
    key = PRICE_KEY.format(token_address.lower())
    cached: dict[str, float] | None = indexer.cache.get(key)
    if cached is not None:
        return cached
    data = {"usd": await indexer.get_price_usd(token_address)}
    indexer.cache.set(key, data)
    return data


@router.get("/auctions")
async def list_auctions(indexer: AuctionIndexer = Depends(get_indexer)) -> list[IndexedAuction]:
    return indexer.get_auctions()


@router.get("/auctions/{auction_id}")
async def get_auction(
    auction_id: int,
    indexer: AuctionIndexer = Depends(get_indexer),
) -> IndexedAuction:
    return _require_auction(indexer, auction_id)


@router.get("/auctions/{auction_id}/orders")
async def get_orders(
    auction_id: int,
    indexer: AuctionIndexer = Depends(get_indexer),
) -> list[IndexedOrder]:
    _require_auction(indexer, auction_id)
    orders = await indexer.get_orders_data(auction_id)
    if orders is None:
        raise HTTPException(status_code=500, detail="Failed to fetch orders")
    return orders


@router.get("/auctions/{auction_id}/clearing")
async def get_clearing(
    auction_id: int,
    indexer: AuctionIndexer = Depends(get_indexer),
) -> IndexedClearing:
    auction = _require_auction(indexer, auction_id)
    if not auction.is_settled:
        raise HTTPException(status_code=400, detail="Auction not yet settled")
    clearing = await indexer.get_clearing_data(auction_id)
    if clearing is None:
        raise HTTPException(status_code=500, detail="Failed to fetch clearing data")
    return clearing


@router.get("/tokens/{token_address}")
async def token_info(
    token_address: str,
    indexer: AuctionIndexer = Depends(get_indexer),
) -> TokenInfo:
    return await indexer.get_token_info(token_address)


@router.get("/block-time")
async def block_time(indexer: AuctionIndexer = Depends(get_indexer)) -> dict[str, int]:
    """Ledger time in ms, the clock all auction deadlines are judged by."""
    return {"blockTimeMs": await indexer.get_block_time()}


@router.get("/fee-parameters")
async def fee_parameters(indexer: AuctionIndexer = Depends(get_indexer)) -> FeeParameters:
    fees = await indexer.get_fee_parameters()
    if fees is None:
        raise HTTPException(status_code=500, detail="Failed to fetch fee parameters")
    return fees
