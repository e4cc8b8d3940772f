"""BTC/USD fiat price source."""

from __future__ import annotations

import math
from typing import Protocol

import httpx
import structlog

from auction_indexer.config import DEFAULT_BTC_USD_URL

logger = structlog.get_logger()


class PriceSourceError(ValueError):
    """Raised when a price source answers with an unusable payload."""


class BtcUsdSource(Protocol):
    """Protocol for fiat BTC/USD sources.

    Implementations raise on any failure; caching and stale fallback are
    handled by the caller.
    """

    async def fetch_btc_usd(self) -> float:
        """Return the current BTC price in USD."""
        ...


class CoinGeckoBtcUsdSource:
    """BTC/USD from the CoinGecko simple-price endpoint.

    Expects a payload of the form {"bitcoin": {"usd": 64000.0}}.
    """

    def __init__(
        self,
        url: str = DEFAULT_BTC_USD_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the source.

        Args:
            url: Simple-price endpoint URL
            client: Shared HTTP client. If None, one is created and owned
                    by this source (closed by `aclose`).
            timeout: Request timeout in seconds for an owned client
        """
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch_btc_usd(self) -> float:
        response = await self._client.get(self._url)
        response.raise_for_status()
        return parse_coingecko_payload(response.json())

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def parse_coingecko_payload(data: object) -> float:
    """Extract a finite, positive BTC/USD price from a CoinGecko payload.

    Raises:
        PriceSourceError: If the payload does not carry a usable price
    """
    if not isinstance(data, dict):
        raise PriceSourceError(f"Expected JSON object, got {type(data).__name__}")
    bitcoin = data.get("bitcoin")
    if not isinstance(bitcoin, dict):
        raise PriceSourceError("Missing 'bitcoin' entry")
    usd = bitcoin.get("usd")
    # bool is an int subclass and never a price
    if isinstance(usd, bool) or not isinstance(usd, int | float):
        raise PriceSourceError(f"'usd' is not a number: {usd!r}")
    price = float(usd)
    if not math.isfinite(price) or price <= 0:
        raise PriceSourceError(f"'usd' is not a positive finite number: {usd!r}")
    return price


__all__ = [
    "BtcUsdSource",
    "CoinGeckoBtcUsdSource",
    "PriceSourceError",
    "parse_coingecko_payload",
]
