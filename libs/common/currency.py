"""Money helpers for the marketplace.

Internal storage unit: major currency unit as ``Decimal`` with 2 fractional
digits (``Numeric(12, 2)`` columns).
Gateway unit: minor units as ``int`` (paise for INR, 100 paise = ₹1).

Rounding policy is ROUND_HALF_UP everywhere money is quantized.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# ─── constants ───────────────────────────────────────────────────────────────

MINOR_UNITS_PER_MAJOR: int = 100
CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


# ─── conversion helpers ───────────────────────────────────────────────────────


def to_decimal(value: object) -> Decimal:
    """Convert ints, strings, floats (via ``str``) and Decimals to Decimal.

    Raises ``ValueError`` for anything that is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Not a monetary value: {value!r}")
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as e:
            raise ValueError(f"Not a monetary value: {value!r}") from e
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValueError(f"Not a monetary value: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a monetary value: {value!r}")
    return result


def to_money(value: object) -> Decimal:
    """Quantize to 2 dp, round half-up."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount: object) -> int:
    """Convert a major-unit amount to integer minor units. ₹1.005 → 101."""
    return int(to_money(amount) * MINOR_UNITS_PER_MAJOR)


def from_minor_units(minor: int) -> Decimal:
    """Convert integer minor units to a major-unit Decimal. 101 → 1.01."""
    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(CENTS)
