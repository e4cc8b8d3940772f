"""Token metadata resolution.

Name, symbol and decimals are read once per token and cached for the life
of the process. Failed reads resolve to placeholders and are cached too,
so a broken token contract is not re-queried every poll.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from auction_indexer.coalesce import RequestCoalescer
from auction_indexer.constants import TOKEN_DECIMALS, UNKNOWN_TOKEN_NAME, UNKNOWN_TOKEN_SYMBOL
from auction_indexer.models.auction import TokenInfo
from auction_indexer.models.types import normalize_address

if TYPE_CHECKING:
    from auction_indexer.ledger.client import LedgerClient

logger = structlog.get_logger()


class TokenMetadataResolver:
    """Resolve and cache OP-20 token metadata."""

    def __init__(self, ledger: LedgerClient) -> None:
        self._ledger = ledger
        self._tokens: dict[str, TokenInfo] = {}
        self._coalescer: RequestCoalescer[TokenInfo] = RequestCoalescer()

    def cached(self, address: str) -> TokenInfo | None:
        return self._tokens.get(normalize_address(address))

    async def get_token_info(self, address: str) -> TokenInfo:
        """Return name, symbol and decimals for a token address."""
        key = normalize_address(address)
        info = self._tokens.get(key)
        if info is not None:
            return info
        return await self._coalescer.run(key, lambda: self._resolve(address, key))

    async def _resolve(self, address: str, key: str) -> TokenInfo:
        name, symbol, decimals = await asyncio.gather(
            self._read_name(address),
            self._read_symbol(address),
            self._read_decimals(address),
        )
        info = TokenInfo(address=address, name=name, symbol=symbol, decimals=decimals)
        self._tokens[key] = info
        return info

    async def _read_name(self, address: str) -> str:
        try:
            name = await self._ledger.token_name(address)
        except Exception as e:
            logger.debug("token_name_failed", token=address, error=str(e))
            return UNKNOWN_TOKEN_NAME
        return str(name) if name else UNKNOWN_TOKEN_NAME

    async def _read_symbol(self, address: str) -> str:
        try:
            symbol = await self._ledger.token_symbol(address)
        except Exception as e:
            logger.debug("token_symbol_failed", token=address, error=str(e))
            return UNKNOWN_TOKEN_SYMBOL
        return str(symbol) if symbol else UNKNOWN_TOKEN_SYMBOL

    async def _read_decimals(self, address: str) -> int:
        try:
            decimals = int(await self._ledger.token_decimals(address))
        except Exception as e:
            logger.debug("token_decimals_failed", token=address, error=str(e))
            return TOKEN_DECIMALS
        if decimals < 0 or decimals > 77:
            logger.warning("token_decimals_out_of_range", token=address, decimals=decimals)
            return TOKEN_DECIMALS
        return decimals
