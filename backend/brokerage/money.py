from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
THOUSAND = Decimal("1000")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely (floats go through str)."""
    if val is None:
        return ZERO
    if isinstance(val, Decimal):
        result = val
    else:
        try:
            result = Decimal(str(val).strip())
        except InvalidOperation:
            raise ValueError(f"Not a decimal amount: {val!r}")
    # NaN and Infinity parse but cannot be compared or rounded
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {val!r}")
    return result


def money(val) -> Decimal:
    """Round to the cent, half-up."""
    return d(val).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def rate(val) -> Decimal:
    """Per-unit rates and percentages keep four places."""
    return d(val).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def cpm_amount(rate_per_thousand, quantity) -> Decimal:
    """
    Convert a per-thousand rate into an amount for ``quantity`` units.

    Every CPM consumer goes through here so rounding is identical everywhere.
    """
    return money(d(rate_per_thousand) * d(quantity) / THOUSAND)


def half(amount) -> Decimal:
    return money(d(amount) / 2)


def percent_of(amount, fraction) -> Decimal:
    """``fraction`` is a ratio (0.35), not a percentage (35)."""
    return money(d(amount) * d(fraction))


def margin_percent(profit, base) -> Decimal:
    base = d(base)
    if base <= 0:
        return ZERO
    return (d(profit) / base * HUNDRED).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_str(val) -> str | None:
    return None if val is None else str(val)
