"""Pytest configuration and fixtures."""

from dataclasses import dataclass, field
from typing import Any

import pytest

from auction_indexer.cache import TTLCache
from auction_indexer.indexer.core import AuctionIndexer
from auction_indexer.ledger.client import AuctionDataResponse, BlockInfo
from auction_indexer.pricing.resolver import PriceResolver
from tests.helpers.constants import MOTO, NATIVE_SWAP, NOW_MS, ROUTER, TOKEN_METADATA

# =============================================================================
# Mock classes for dependency injection
# =============================================================================


class FakeClock:
    """Manually advanced millisecond clock.

    Usage:
        clock = FakeClock()
        cache = TTLCache(default_ttl_ms=1000, clock=clock)
        clock.advance(1001)
    """

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@dataclass
class FakeSimulation:
    """Simulated contract call with a configurable outcome.

    Usage:
        FakeSimulation()                        # sends fine
        FakeSimulation(error="revert")          # simulation reports revert
        FakeSimulation(send_error=RuntimeError("nonce"))  # broadcast fails
    """

    error: str | None = None
    send_error: Exception | None = None
    sent_with: list[Any] = field(default_factory=list)

    async def send_transaction(self, params: Any) -> Any:
        self.sent_with.append(params)
        if self.send_error is not None:
            raise self.send_error
        return {"transactionId": f"tx{len(self.sent_with)}"}


class FakeLedgerClient:
    """In-memory ledger client.

    Unknown auctions raise like a contract revert. Every call is recorded
    in `calls` as (method, *args) for assertions.

    Usage:
        ledger = FakeLedgerClient()
        ledger.auctions[1] = auction_response()
        ledger.orders[1] = encode_orders([(100, 200, 1)])
    """

    def __init__(self) -> None:
        self.block = BlockInfo(height=100, time=NOW_MS - 5_000, median_time=NOW_MS)
        self.block_error: Exception | None = None
        self.auctions: dict[int, AuctionDataResponse] = {}
        self.auction_errors: dict[int, Exception] = {}
        self.clearings: dict[int, dict[str, Any]] = {}
        self.orders: dict[int, bytes] = {}
        self.order_errors: dict[int, Exception] = {}
        self.users: dict[int, str] = {}
        self.fee_numerator: int | Exception = 5
        self.tokens: dict[str, tuple[str, str, int]] = dict(TOKEN_METADATA)
        self.reserves: dict[str, tuple[int, int]] = {}
        self.reserve_error: Exception | None = None
        self.quotes: dict[str, int] = {}
        self.quote_error: Exception | None = None
        self.settle_results: list[FakeSimulation | Exception] = []
        self.claim_results: list[FakeSimulation | Exception] = []
        self.calls: list[tuple] = []

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    async def get_block_number(self) -> int:
        self.calls.append(("get_block_number",))
        if self.block_error is not None:
            raise self.block_error
        return self.block.height

    async def get_block(self, height: int) -> BlockInfo:
        self.calls.append(("get_block", height))
        return self.block

    async def get_auction_data(self, auction_id: int) -> AuctionDataResponse:
        self.calls.append(("get_auction_data", auction_id))
        if auction_id in self.auction_errors:
            raise self.auction_errors[auction_id]
        if auction_id not in self.auctions:
            raise RuntimeError(f"Auction {auction_id} does not exist")
        return self.auctions[auction_id]

    async def get_clearing_order(self, auction_id: int) -> dict[str, Any]:
        self.calls.append(("get_clearing_order", auction_id))
        if auction_id not in self.clearings:
            raise RuntimeError(f"No clearing for auction {auction_id}")
        return self.clearings[auction_id]

    async def get_auction_orders(self, auction_id: int) -> bytes:
        self.calls.append(("get_auction_orders", auction_id))
        if auction_id in self.order_errors:
            raise self.order_errors[auction_id]
        return self.orders.get(auction_id, b"\x00" * 32)

    async def get_user_address(self, user_id: int) -> str:
        self.calls.append(("get_user_address", user_id))
        if user_id not in self.users:
            raise RuntimeError(f"Unknown user {user_id}")
        return self.users[user_id]

    async def get_fee_parameters(self) -> int:
        self.calls.append(("get_fee_parameters",))
        if isinstance(self.fee_numerator, Exception):
            raise self.fee_numerator
        return self.fee_numerator

    async def simulate_settle(self, auction_id: int) -> FakeSimulation:
        self.calls.append(("simulate_settle", auction_id))
        return self._next_result(self.settle_results)

    async def simulate_claim_from_participant_order(
        self, auction_id: int, order_ids: list[int]
    ) -> FakeSimulation:
        self.calls.append(("simulate_claim", auction_id, list(order_ids)))
        return self._next_result(self.claim_results)

    @staticmethod
    def _next_result(results: list[FakeSimulation | Exception]) -> FakeSimulation:
        # the last configured result repeats once the list runs out
        if not results:
            return FakeSimulation()
        result = results.pop(0) if len(results) > 1 else results[0]
        if isinstance(result, Exception):
            raise result
        return result

    def _token(self, token: str) -> tuple[str, str, int]:
        if token.lower() not in self.tokens:
            raise RuntimeError(f"Not a token: {token}")
        return self.tokens[token.lower()]

    async def token_name(self, token: str) -> str:
        self.calls.append(("token_name", token))
        return self._token(token)[0]

    async def token_symbol(self, token: str) -> str:
        self.calls.append(("token_symbol", token))
        return self._token(token)[1]

    async def token_decimals(self, token: str) -> int:
        self.calls.append(("token_decimals", token))
        return self._token(token)[2]

    async def get_reserve(self, pool: str, token: str) -> tuple[int, int]:
        self.calls.append(("get_reserve", pool, token))
        if self.reserve_error is not None:
            raise self.reserve_error
        return self.reserves.get(token.lower(), (0, 0))

    async def get_amounts_out(self, router: str, amount_in: int, path: list[str]) -> list[int]:
        self.calls.append(("get_amounts_out", router, amount_in, tuple(path)))
        if self.quote_error is not None:
            raise self.quote_error
        quote = self.quotes.get(path[0].lower())
        if quote is None:
            raise RuntimeError(f"No route for {path[0]}")
        return [amount_in, quote]


class FakeBtcUsdSource:
    """BTC/USD source returning queued prices (or raising queued errors).

    The last value repeats once the queue runs out.
    """

    def __init__(self, *prices: float | Exception) -> None:
        self.prices: list[float | Exception] = list(prices) or [50_000.0]
        self.calls = 0

    async def fetch_btc_usd(self) -> float:
        self.calls += 1
        price = self.prices.pop(0) if len(self.prices) > 1 else self.prices[0]
        if isinstance(price, Exception):
            raise price
        return price


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(now=1_000_000.0)


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def btc_usd() -> FakeBtcUsdSource:
    return FakeBtcUsdSource(50_000.0)


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(default_ttl_ms=30_000, clock=clock)


@pytest.fixture
def price_resolver(ledger, btc_usd, clock) -> PriceResolver:
    """Enabled resolver: 1 MOTO = 0.0001 BTC = $5 at $50k BTC."""
    ledger.reserves[MOTO] = (1 * 10**8, 10_000 * 10**8)
    return PriceResolver(
        ledger=ledger,
        btc_usd_source=btc_usd,
        native_swap_address=NATIVE_SWAP,
        base_token_address=MOTO,
        router_address=ROUTER,
        clock=clock,
    )


@pytest.fixture
def indexer(ledger, cache) -> AuctionIndexer:
    """Indexer without price feed or transaction params."""
    return AuctionIndexer(ledger=ledger, cache=cache, wall_clock=lambda: NOW_MS)


@pytest.fixture
def auto_indexer(ledger, cache) -> AuctionIndexer:
    """Indexer with transaction params, so auto-actions run."""
    return AuctionIndexer(
        ledger=ledger,
        cache=cache,
        tx_params={"signer": "test"},
        wall_clock=lambda: NOW_MS,
    )
