"""Shared constants for tests.

All addresses are 32-byte lowercase hex, the ledger's address format.

Usage:
    from tests.helpers import ORANGE, MOTO
    # or
    from tests.helpers.constants import ORANGE, MOTO
"""

# =============================================================================
# Tokens
# =============================================================================

ORANGE = "0x46c631ec33a79cf74bd87790c05d833f6604f90cca16cbb7c468c59c6a073b2a"  # 8 decimals
MOTO = "0xfd4473840751d58d9f8b73bdd57d6c5260453d5518bd7cd02d0a4cf3df9bf4dd"  # base token
PILL = "0xb09fc29c112af8293539477e23d8df1d3126639642767d707277131352040cbb"

TOKEN_METADATA = {
    ORANGE: ("Ornge", "ORNGE", 8),
    MOTO: ("Moto", "MOTO", 8),
    PILL: ("Pill", "PILL", 18),
}

# =============================================================================
# Contracts and users
# =============================================================================

NATIVE_SWAP = "0x" + "5a" * 32
ROUTER = "0x" + "7b" * 32
AUCTIONEER = "0x" + "ab" * 32
ALICE = "0x" + "a1" * 32
BOB = "0x" + "b0" * 32

# =============================================================================
# Time (ms)
# =============================================================================

NOW_MS = 1_772_000_000_000
MINUTE_MS = 60_000
HOUR_MS = 60 * MINUTE_MS


__all__ = [
    "ORANGE",
    "MOTO",
    "PILL",
    "TOKEN_METADATA",
    "NATIVE_SWAP",
    "ROUTER",
    "AUCTIONEER",
    "ALICE",
    "BOB",
    "NOW_MS",
    "MINUTE_MS",
    "HOUR_MS",
]
