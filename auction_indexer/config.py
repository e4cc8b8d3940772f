"""Configuration for the auction indexer service.

All settings come from environment variables with sensible defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

# Known ledger networks. Unknown names fall back to testnet.
NETWORK_CONFIGS: dict[str, str] = {
    "testnet": "https://testnet.opnet.org/v1/json-rpc",
    "mainnet": "https://mainnet.opnet.org/v1/json-rpc",
}

DEFAULT_NETWORK = "testnet"

DEFAULT_BTC_USD_URL = "https://api.coingecko.com/api/v3/simple/price?ids=bitcoin&vs_currencies=usd"


def get_network_rpc_url(name: str | None) -> str:
    """Resolve a network's default RPC URL by name (defaults to testnet)."""
    if name and name in NETWORK_CONFIGS:
        return NETWORK_CONFIGS[name]
    return NETWORK_CONFIGS[DEFAULT_NETWORK]


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _parse_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as err:
        raise ValueError(f"{key} must be an integer, got '{raw}'") from err
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the indexer and its HTTP surface.

    Attributes:
        host: Host to bind the read API to
        port: Port to bind the read API to
        debug: Enable uvicorn reload mode
        cors_origin: Allowed CORS origin for browser clients
        network: Ledger network name
        contract_address: Auction contract address
        rpc_url: Ledger RPC URL handed to the ledger client factory
        cache_ttl_ms: TTL of the shared read cache
        poll_interval_ms: Delay between indexer poll cycles
        native_swap_address: Liquidity pool contract used for the Base/BTC hop
        base_token_address: Base settlement token (the middle hop)
        router_address: Router contract used for the Token/Base hop
        btc_usd_url: Fiat oracle endpoint for the BTC/USD hop
        ledger_client_factory: "module:callable" producing a LedgerClient
        tx_params_factory: "module:callable" producing transaction-signing
            parameters. When empty, auto-settle and auto-distribute are off.
        log_json: Render logs as JSON instead of console output
    """

    host: str = "0.0.0.0"
    port: int = 3001
    debug: bool = False
    cors_origin: str = "http://localhost:5173"
    network: str = DEFAULT_NETWORK
    contract_address: str = ""
    rpc_url: str = NETWORK_CONFIGS[DEFAULT_NETWORK]
    cache_ttl_ms: int = 30_000
    poll_interval_ms: int = 8_000
    native_swap_address: str = ""
    base_token_address: str = ""
    router_address: str = ""
    btc_usd_url: str = DEFAULT_BTC_USD_URL
    ledger_client_factory: str = ""
    tx_params_factory: str = ""
    log_json: bool = False

    @property
    def price_feed_configured(self) -> bool:
        """True when all three on-ledger price contracts are configured."""
        return bool(self.native_swap_address and self.base_token_address and self.router_address)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Raises:
            ValueError: If a numeric variable is not a positive integer
        """
        env = os.environ if env is None else env
        network = env.get("INDEXER_NETWORK", DEFAULT_NETWORK)
        return cls(
            host=env.get("INDEXER_HOST", "0.0.0.0"),
            port=_parse_int(env, "INDEXER_PORT", 3001),
            debug=_parse_bool(env.get("INDEXER_DEBUG", "false")),
            cors_origin=env.get("INDEXER_CORS_ORIGIN", "http://localhost:5173"),
            network=network,
            contract_address=env.get("INDEXER_CONTRACT", ""),
            rpc_url=env.get("INDEXER_RPC_URL") or get_network_rpc_url(network),
            cache_ttl_ms=_parse_int(env, "INDEXER_CACHE_TTL_MS", 30_000),
            poll_interval_ms=_parse_int(env, "INDEXER_POLL_MS", 8_000),
            native_swap_address=env.get("INDEXER_NATIVE_SWAP_ADDRESS", ""),
            base_token_address=env.get("INDEXER_BASE_TOKEN_ADDRESS", ""),
            router_address=env.get("INDEXER_ROUTER_ADDRESS", ""),
            btc_usd_url=env.get("INDEXER_BTC_USD_URL", DEFAULT_BTC_USD_URL),
            ledger_client_factory=env.get("INDEXER_LEDGER_CLIENT", ""),
            tx_params_factory=env.get("INDEXER_TX_PARAMS", ""),
            log_json=_parse_bool(env.get("INDEXER_LOG_JSON", "false")),
        )


# Default configuration instance
DEFAULT_SETTINGS = Settings()
