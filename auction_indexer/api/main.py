"""FastAPI application serving the indexed auction state.

The indexer runs inside the application's event loop: the lifespan starts
its scheduler on startup and stops it on shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from auction_indexer.api.endpoints import router
from auction_indexer.cache import TTLCache
from auction_indexer.config import Settings
from auction_indexer.indexer.core import AuctionIndexer
from auction_indexer.indexer.scheduler import IndexerScheduler
from auction_indexer.ledger.loader import load_ledger_client, load_tx_params
from auction_indexer.pricing.resolver import PriceResolver

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Configure structlog for the service process."""
    renderer: Any = (
        structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ]
    )


def build_indexer(settings: Settings) -> AuctionIndexer:
    """Wire an indexer from settings: ledger client, cache, prices, tx params."""
    ledger = load_ledger_client(settings)
    return AuctionIndexer(
        ledger=ledger,
        cache=TTLCache(default_ttl_ms=settings.cache_ttl_ms),
        price_resolver=PriceResolver.from_settings(settings, ledger),
        tx_params=load_tx_params(settings),
    )


def create_app(
    indexer: AuctionIndexer | None = None,
    settings: Settings | None = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Create the read API application.

    Args:
        indexer: Indexer to serve. If None, one is built on startup when
                 settings name a ledger client factory.
        settings: Service settings (defaults to environment)
        start_scheduler: Whether the lifespan starts the poll loop
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        built: AuctionIndexer | None = None
        if app.state.indexer is None and settings.ledger_client_factory:
            built = app.state.indexer = build_indexer(settings)
        scheduler: IndexerScheduler | None = None
        if app.state.indexer is not None and start_scheduler:
            scheduler = IndexerScheduler(app.state.indexer, settings.poll_interval_ms)
            scheduler.start()
        elif app.state.indexer is None:
            logger.warning("indexer_not_configured", reason="INDEXER_LEDGER_CLIENT not set")
        try:
            yield
        finally:
            if scheduler is not None:
                await scheduler.stop()
            if built is not None:
                await built.prices.aclose()

    app = FastAPI(
        title="Batch Auction Indexer",
        description="Indexed state of on-ledger batch auctions",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.indexer = indexer
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.include_router(router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, object]:
        """Health check endpoint."""
        current: AuctionIndexer | None = request.app.state.indexer
        return {
            "status": "ok",
            "network": settings.network,
            "contract": settings.contract_address,
            "indexer": current is not None,
            "highestKnownId": current.state.highest_known_id if current else 0,
            "cyclesCompleted": current.state.cycles_completed if current else 0,
        }

    return app


def run() -> None:
    """Run the indexer service.

    Configuration via environment variables, see `auction_indexer.config`.
    """
    settings = Settings.from_env()
    configure_logging(settings)
    logger.info(
        "service_starting",
        network=settings.network,
        contract=settings.contract_address,
        poll_interval_ms=settings.poll_interval_ms,
        port=settings.port,
    )
    uvicorn.run(
        "auction_indexer.api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
