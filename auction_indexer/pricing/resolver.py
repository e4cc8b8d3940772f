"""USD price resolution for auction tokens.

Chain: BTC/USD (fiat oracle) × Base/BTC (pool reserves) × Token/Base (router quote)

Each hop is cached with its own TTL, de-duplicates concurrent fetches and
falls back to its last known value when a refresh fails. If any of the
three on-ledger contract addresses is missing, the resolver is disabled
and every price is 0.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from auction_indexer.cache import monotonic_ms
from auction_indexer.coalesce import RequestCoalescer
from auction_indexer.constants import (
    BASE_BTC_CACHE_TTL_MS,
    BTC_USD_CACHE_TTL_MS,
    QUOTE_AMOUNT_IN,
    TOKEN_BASE_CACHE_TTL_MS,
)
from auction_indexer.decimal_utils import exact_ratio, multiply
from auction_indexer.models.types import normalize_address

if TYPE_CHECKING:
    from auction_indexer.config import Settings
    from auction_indexer.ledger.client import LedgerClient
    from auction_indexer.pricing.oracle import BtcUsdSource

logger = structlog.get_logger()


@dataclass
class HopEntry:
    """Last successfully fetched value of a hop."""

    value: Decimal
    fetched_at: float


class PriceHop:
    """Cache for one hop of the price chain.

    A fresh entry is returned as-is. Otherwise a refresh is started (or
    joined, if one is already running for the same key). A refresh that
    raises or yields None falls back to the last known value, however old.
    """

    def __init__(
        self,
        name: str,
        ttl_ms: float,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self.name = name
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[Hashable, HopEntry] = {}
        self._coalescer: RequestCoalescer[Decimal | None] = RequestCoalescer()

    def cached(self, key: Hashable) -> Decimal | None:
        """Last known value for `key`, regardless of age."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    async def get(
        self, key: Hashable, fetch: Callable[[], Awaitable[Decimal | None]]
    ) -> Decimal | None:
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.fetched_at < self._ttl_ms:
            return entry.value
        return await self._coalescer.run(key, lambda: self._refresh(key, fetch))

    async def _refresh(
        self, key: Hashable, fetch: Callable[[], Awaitable[Decimal | None]]
    ) -> Decimal | None:
        try:
            value = await fetch()
        except Exception as e:
            logger.warning("price_hop_refresh_failed", hop=self.name, key=str(key), error=str(e))
            value = None

        if value is None:
            return self.cached(key)

        self._entries[key] = HopEntry(value=value, fetched_at=self._clock())
        return value


class PriceResolver:
    """Resolve the USD price of a token through the base settlement token.

    - If the token IS the base token: price = base_btc × btc_usd
    - Otherwise: price = token_base × base_btc × btc_usd

    Returns 0 on any failure (disabled, pool missing, RPC down, etc.).
    """

    def __init__(
        self,
        ledger: LedgerClient | None,
        btc_usd_source: BtcUsdSource | None,
        native_swap_address: str = "",
        base_token_address: str = "",
        router_address: str = "",
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        """Initialize the resolver.

        Args:
            ledger: Ledger client used for pool reserve and router quote reads
            btc_usd_source: Fiat oracle for the BTC/USD hop
            native_swap_address: Pool holding BTC/base-token reserves
            base_token_address: Base settlement token address
            router_address: Router used to quote Token -> base token
            clock: Millisecond clock, injectable for tests
        """
        self._ledger = ledger
        self._btc_usd_source = btc_usd_source
        self._native_swap_address = native_swap_address
        self._base_token_address = base_token_address
        self._router_address = router_address

        self._btc_usd = PriceHop("btc_usd", BTC_USD_CACHE_TTL_MS, clock)
        self._base_btc = PriceHop("base_btc", BASE_BTC_CACHE_TTL_MS, clock)
        self._token_base = PriceHop("token_base", TOKEN_BASE_CACHE_TTL_MS, clock)

        # evaluated once; the resolver never re-enables itself
        self.enabled = bool(
            ledger is not None
            and btc_usd_source is not None
            and native_swap_address
            and base_token_address
            and router_address
        )
        if self.enabled:
            logger.info("price_feed_enabled", base_token=base_token_address)
        else:
            logger.info(
                "price_feed_disabled",
                reason="missing native swap, base token or router address",
            )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        ledger: LedgerClient,
        btc_usd_source: BtcUsdSource | None = None,
    ) -> PriceResolver:
        """Build a resolver from settings, using CoinGecko for BTC/USD by default."""
        if btc_usd_source is None and settings.price_feed_configured:
            from auction_indexer.pricing.oracle import CoinGeckoBtcUsdSource

            btc_usd_source = CoinGeckoBtcUsdSource(url=settings.btc_usd_url)
        return cls(
            ledger=ledger,
            btc_usd_source=btc_usd_source,
            native_swap_address=settings.native_swap_address,
            base_token_address=settings.base_token_address,
            router_address=settings.router_address,
        )

    async def aclose(self) -> None:
        """Release the BTC/USD source's HTTP client, if it holds one."""
        close = getattr(self._btc_usd_source, "aclose", None)
        if close is not None:
            await close()

    async def btc_usd(self) -> Decimal | None:
        return await self._btc_usd.get("btc_usd", self._fetch_btc_usd)

    async def base_btc(self) -> Decimal | None:
        return await self._base_btc.get(self._base_token_address, self._fetch_base_btc)

    async def token_base(self, token: str) -> Decimal | None:
        key = normalize_address(token)
        return await self._token_base.get(key, lambda: self._fetch_token_base(token))

    async def price_usd(self, token: str) -> float:
        """Get the USD price of one token, or 0 when unavailable."""
        if not self.enabled:
            return 0.0

        try:
            btc_usd, base_btc = await asyncio.gather(self.btc_usd(), self.base_btc())
            if btc_usd is None or base_btc is None:
                return 0.0

            if normalize_address(token) == normalize_address(self._base_token_address):
                price = multiply(base_btc, btc_usd)
            else:
                token_base = await self.token_base(token)
                if token_base is None:
                    return 0.0
                price = multiply(token_base, base_btc, btc_usd)
        except Exception as e:
            logger.warning("price_resolution_failed", token=token, error=str(e))
            return 0.0

        return max(float(price), 0.0)

    async def _fetch_btc_usd(self) -> Decimal | None:
        if self._btc_usd_source is None:
            return None
        price = await self._btc_usd_source.fetch_btc_usd()
        return Decimal(repr(price))

    async def _fetch_base_btc(self) -> Decimal | None:
        if self._ledger is None:
            return None
        btc_reserve, token_reserve = await self._ledger.get_reserve(
            self._native_swap_address, self._base_token_address
        )
        if btc_reserve == 0 or token_reserve == 0:
            logger.debug("base_btc_empty_reserve", pool=self._native_swap_address)
            return None
        return exact_ratio(btc_reserve, token_reserve)

    async def _fetch_token_base(self, token: str) -> Decimal | None:
        if self._ledger is None:
            return None
        amounts_out = await self._ledger.get_amounts_out(
            self._router_address,
            QUOTE_AMOUNT_IN,
            [token, self._base_token_address],
        )
        if len(amounts_out) < 2 or amounts_out[1] == 0:
            logger.debug("token_base_no_quote", token=token)
            return None
        return exact_ratio(amounts_out[1], QUOTE_AMOUNT_IN)


__all__ = ["HopEntry", "PriceHop", "PriceResolver"]
