"""Interface of the ledger client the indexer consumes.

The ledger client wraps the node RPC and the auction contract. It is
supplied by the deployment (see `auction_indexer.ledger.loader`); the
indexer only relies on the protocol below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class BlockInfo:
    """Timestamps of a ledger block, both in milliseconds."""

    height: int
    time: int
    median_time: int = 0

    @property
    def timestamp_ms(self) -> int:
        """Timestamp the contract itself uses for deadlines.

        The median time is preferred; the raw block time is a fallback
        for nodes that do not report it.
        """
        return self.median_time if self.median_time > 0 else self.time


@dataclass(frozen=True)
class AuctionDataResponse:
    """Response of getAuctionData.

    Attributes:
        properties: Fields the SDK decoded from the response
        raw: Undecoded response bytes. Carries the auctioneer address,
            which the structured decoding does not expose.
    """

    properties: dict[str, Any] = field(default_factory=dict)
    raw: bytes = b""


class SimulationResult(Protocol):
    """Result of simulating a contract call before sending it.

    `error` is set when the contract would revert; otherwise the
    simulated call can be broadcast with `send_transaction`.
    """

    error: str | None

    async def send_transaction(self, params: Any) -> Any:
        """Sign and broadcast the simulated call, returning a receipt."""
        ...


class LedgerClient(Protocol):
    """Read calls and transaction simulation against the auction contract."""

    async def get_block_number(self) -> int: ...

    async def get_block(self, height: int) -> BlockInfo: ...

    async def get_auction_data(self, auction_id: int) -> AuctionDataResponse: ...

    async def get_clearing_order(self, auction_id: int) -> dict[str, Any]:
        """Return at least `clearingBuyAmount` and `clearingSellAmount`."""
        ...

    async def get_auction_orders(self, auction_id: int) -> bytes:
        """Return the packed order list (see `decode_auction_orders`)."""
        ...

    async def get_user_address(self, user_id: int) -> str: ...

    async def get_fee_parameters(self) -> int:
        """Return the protocol fee numerator."""
        ...

    async def simulate_settle(self, auction_id: int) -> SimulationResult: ...

    async def simulate_claim_from_participant_order(
        self, auction_id: int, order_ids: list[int]
    ) -> SimulationResult: ...

    async def token_name(self, token: str) -> str: ...

    async def token_symbol(self, token: str) -> str: ...

    async def token_decimals(self, token: str) -> int: ...

    async def get_reserve(self, pool: str, token: str) -> tuple[int, int]:
        """Return (btc_reserve, token_reserve) of a liquidity pool."""
        ...

    async def get_amounts_out(self, router: str, amount_in: int, path: list[str]) -> list[int]:
        """Quote a swap of `amount_in` along `path` through a router."""
        ...


__all__ = [
    "AuctionDataResponse",
    "BlockInfo",
    "LedgerClient",
    "SimulationResult",
]
