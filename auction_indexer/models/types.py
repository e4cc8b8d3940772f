"""Shared type definitions for indexer models."""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

# Maximum uint256 value
UINT256_MAX = 2**256 - 1


def validate_uint256(value: Any) -> str:
    """Coerce a ledger amount to its canonical decimal string.

    Contract reads hand back amounts as Python ints while cached JSON and
    API payloads carry them as strings; both end up as the same base-10
    text, e.g. 10**18 and "1000000000000000000".
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"amount must be an int or decimal string, got {type(value).__name__}")

    if isinstance(value, str):
        try:
            amount = int(value)
        except ValueError as err:
            raise ValueError(f"amount is not a decimal integer: {value!r}") from err
    else:
        amount = value

    if not 0 <= amount <= UINT256_MAX:
        raise ValueError(f"amount {value} is outside the uint256 range")
    return str(amount)


# 256-bit unsigned integer as decimal string (validated)
Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]

# Ledger address (32 bytes, 64 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{64}$")]


def normalize_address(address: str) -> str:
    """Normalize a hex address to lowercase with a 0x prefix.

    Non-hex identifiers (e.g. bech32 contract addresses) are returned
    lowercased and otherwise untouched.
    """
    addr = address.strip().lower()
    if addr.startswith("0x"):
        return addr
    try:
        int(addr, 16)
    except ValueError:
        return addr
    return "0x" + addr


def is_zero_address(address: str) -> bool:
    """Check whether a hex address is empty or all zeros."""
    if not address:
        return True
    digits = address[2:] if address.lower().startswith("0x") else address
    return digits == "" or set(digits) == {"0"}
