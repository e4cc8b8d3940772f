"""Protocol constants for the auction indexer.

Centralizes ledger layout offsets and indexer tuning parameters.
"""

# Maximum number of consecutive auction ids probed per poll cycle
MAX_PROBE_AHEAD = 50

# getAuctionData raw response layout:
# 2 addresses (2 * 32) + 9 uint256 (9 * 32) + 3 bools (3 * 1) = 355,
# then the auctioneer address (32 bytes)
ADDRESS_SIZE = 32
U256_SIZE = 32
AUCTIONEER_OFFSET = 2 * ADDRESS_SIZE + 9 * U256_SIZE + 3
AUCTION_DATA_MIN_SIZE = AUCTIONEER_OFFSET + ADDRESS_SIZE  # = 387

# A cancel window narrower than this is treated as nonexistent (ms)
MIN_CANCEL_WINDOW_MS = 60_000

# Consecutive failed simulations before an auto-action gives up
MAX_AUTO_ACTION_ATTEMPTS = 10

# Price resolver cache TTLs (ms)
BTC_USD_CACHE_TTL_MS = 60_000
BASE_BTC_CACHE_TTL_MS = 30_000
TOKEN_BASE_CACHE_TTL_MS = 30_000

# Router quote notional: 1 token at 8 decimals
QUOTE_AMOUNT_IN = 100_000_000

# Default OP-20 token decimals, used when decimals() cannot be read
TOKEN_DECIMALS = 8

# Placeholder token metadata when name()/symbol() cannot be read
UNKNOWN_TOKEN_NAME = "Unknown"
UNKNOWN_TOKEN_SYMBOL = "???"

# Cache key prefixes shared by the indexer and the read API
ORDERS_KEY = "orders:{}"
CLEARING_KEY = "clearing:{}"
PRICE_KEY = "price:{}"
STATS_KEY = "stats"
FEE_PARAMETERS_KEY = "fee-parameters"
