"""
EVM Asset Constants and Unit Conversion

Holds the fixed target asset and recipient of the transfer flow together
with the EntryPoint / SimpleAccount factory deployments, plus the canonical
conversions between human-readable token amounts and smallest-unit integers.
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, Union

from pydantic import BaseModel, Field


class EvmAssetConfig(BaseModel):
    """Token asset configuration."""
    symbol: str
    address: str = Field(..., description="Token contract address")
    name: str = Field(..., description="Token name")
    decimals: int = Field(..., description="Token decimals")


# ---------------------------------------------------------------------------
# Deployments
# ---------------------------------------------------------------------------

#: Canonical ERC-4337 EntryPoint v0.6 deployment (same address on every chain).
ENTRY_POINT_V06: str = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"

#: SimpleAccountFactory deployed against EntryPoint v0.6.
SIMPLE_ACCOUNT_FACTORY_V06: str = "0x9406Cc6185a346906296840746125a0E44976454"

#: Default read RPC used by the remote signer.
DEFAULT_RPC: Dict[int, str] = {1: "https://rpc.ankr.com/eth"}

USDT_MAINNET = EvmAssetConfig(
    symbol="USDT",
    address="0xdAC17F958D2ee523a2206206994597C13D831ec7",
    name="Tether USD",
    decimals=6,
)

#: Fixed receiver of the transfer flow.
DEFAULT_RECIPIENT: str = "0x95b79d8cd6c77cf9d5966aa8a187f478d8dbb678"

#: Fixed transfer amount in whole tokens.
DEFAULT_TRANSFER_AMOUNT: str = "100"


def parse_units(*, amount: Union[int, str, Decimal], decimals: int) -> int:
    """Convert a human-readable token `amount` into smallest-unit integer `value`.

    Args:
        amount: Human-readable amount (e.g. "100" for 100 USDT). Accepts int/str/Decimal.
        decimals: Token decimals (e.g. 6 for USDT).

    Returns:
        int: Smallest-unit integer value.

    Raises:
        ValueError: If inputs are invalid or the amount cannot be represented in smallest units.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if not dec_amount.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    scaled = dec_amount.scaleb(decimals)

    # Require exact smallest-unit representability
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {amount!r} is not representable with decimals={decimals} "
            f"(would create fractional smallest units)"
        )

    return int(scaled)


def format_units(*, value: Union[int, str], decimals: int) -> str:
    """Convert a smallest-unit integer `value` into a display string.

    Output keeps at least one fractional digit and trims trailing zeros,
    so ``format_units(value=100000000, decimals=6) == "100.0"`` and
    ``format_units(value=1230000, decimals=6) == "1.23"``.

    Args:
        value: Smallest-unit integer value. Accepts int or decimal string.
        decimals: Token decimals.

    Returns:
        str: Display-ready decimal string.

    Raises:
        ValueError: If inputs are invalid.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")
    if isinstance(value, bool):
        raise ValueError(f"Invalid value: {value!r}")
    if isinstance(value, str):
        try:
            value = int(value, 0) if value.lower().startswith("0x") else int(value)
        except ValueError as e:
            raise ValueError(f"Invalid value: {value!r}") from e
    if not isinstance(value, int):
        raise ValueError(f"Invalid value: {value!r}")

    sign = "-" if value < 0 else ""
    whole, fraction = divmod(abs(value), 10 ** decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{fraction_text}"
