# Overview: Fixed-point currency helpers shared by every settlement calculation.

"""
Money utilities

All currency is carried as integer cents and all percentages as integer
basis points (1% == 100 bps). Derived quantities are rounded exactly once,
half-up on the cent, and never re-rounded after being combined.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

FULL_PERCENT_BPS = 10_000

_CENT = Decimal("1")
_BPS_DIVISOR = Decimal(FULL_PERCENT_BPS)


def round_cents(value: Decimal) -> int:
    """Round a fractional cent amount half-up to whole cents."""
    return int(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def percent_of(cents: int, bps: int) -> int:
    """round2(cents * pct / 100), computed without floating point."""
    return round_cents(Decimal(cents) * Decimal(bps) / _BPS_DIVISOR)


def rate_bps_from_amounts(part_cents: int, whole_cents: int) -> int:
    """Effective rate of `part` against `whole`, in basis points."""
    if whole_cents <= 0:
        return 0
    return round_cents(Decimal(part_cents) * _BPS_DIVISOR / Decimal(whole_cents))


def to_decimal(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


def format_cents(cents: int) -> str:
    """Human string for error messages, e.g. 1234 -> '$12.34'."""
    sign = "-" if cents < 0 else ""
    return f"{sign}${to_decimal(abs(cents)):,}"


def to_cents(value) -> int:
    """
    Dollars to cents, half-up on the cent: 12.345 -> 1235, "19.99" -> 1999.

    Floats go through str() so binary representation error never leaks into
    the rounding.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return round_cents(amount * 100)


def cents_to_str(cents: int) -> str:
    """Plain decimal string, e.g. 1234 -> '12.34', -5 -> '-0.05'."""
    sign = "-" if cents < 0 else ""
    return f"{sign}{to_decimal(abs(cents))}"


def percent_to_bps(value) -> int:
    """Percent to basis points: 12.5 -> 1250, "20" -> 2000."""
    if isinstance(value, bool):
        raise ValueError("Percentage must be a number")
    try:
        pct = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid percentage: {value!r}")
    if not pct.is_finite():
        raise ValueError(f"Invalid percentage: {value!r}")
    return round_cents(pct * 100)
