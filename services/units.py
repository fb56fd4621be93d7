"""
Unit Conversion Helpers
Converts between display amounts and on-chain integer units
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Union

# Native currency on the JSON-RPC relay uses 18 decimals (like wei)
NATIVE_DECIMALS = 18

# Contracts report native balances in tinybar (8 decimals)
TINYBAR_DECIMALS = 8
TINYBAR_TO_WEI = 10 ** (NATIVE_DECIMALS - TINYBAR_DECIMALS)

# User amounts above 10**30 display units are rejected
MAX_AMOUNT_EXPONENT = 30

Number = Union[int, float, str, Decimal]


def to_base_units(amount: Number, decimals: int = NATIVE_DECIMALS) -> int:
    """
    Convert a display amount to integer base units

    Args:
        amount: Amount in display units (e.g. 1.5 HBAR)
        decimals: Number of decimals of the asset

    Returns:
        Amount in the smallest unit, truncated toward zero

    Raises:
        ValueError: If the amount is not a number or too large to represent
    """
    try:
        value = Decimal(str(amount))
        scaled = (value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
        return int(scaled)
    except (ArithmeticError, ValueError):
        raise ValueError(f"Invalid amount: {amount!r}")


def from_base_units(value: int, decimals: int = NATIVE_DECIMALS) -> Decimal:
    """Convert integer base units to a display Decimal"""
    return Decimal(int(value)) / (Decimal(10) ** decimals)


def tinybar_to_wei(value: int) -> int:
    """
    Convert a tinybar amount reported by a contract to relay (18 decimal) units

    Contract-side `address(this).balance` on Hedera is in tinybar while the
    JSON-RPC relay and `msg.value` use 18 decimals. Apply this exactly once
    before comparing a contract-reported balance with relay values.
    """
    return int(value) * TINYBAR_TO_WEI


def parse_positive_amount(text: str) -> Decimal:
    """
    Parse user input as a strictly positive finite number

    Raises:
        ValueError: If the text is not a positive number
    """
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        raise ValueError(f"Not a number: {text!r}")
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be positive: {text!r}")
    if value.adjusted() > MAX_AMOUNT_EXPONENT:
        raise ValueError(f"Amount too large: {text!r}")
    return value


def format_amount(value: Number, places: int = 2) -> str:
    """Format a display amount with a fixed number of decimal places"""
    quant = Decimal(1).scaleb(-places)
    return str(Decimal(str(value)).quantize(quant, rounding=ROUND_DOWN))
