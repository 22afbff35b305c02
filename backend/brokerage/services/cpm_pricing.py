# Overview: CPM (cost per thousand) table for partner-routed self-mailers.

"""
Partner CPM Pricing Table

Rates are per 1,000 finished pieces. Paper sell CPM is always paper cost CPM
plus the fixed 18% partner markup. Only PARTNER_ROUTED jobs read this table;
a size that is not listed sends the job down the PO/line-item costing path.

Lookups are exact string matches on the canonical size ("6 x 9"). Use
normalize_size() on operator input before storing it on a job.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction

from ..errors import ValidationError
from ..money import cpm_amount, d, money, rate

PAPER_MARKUP_MULTIPLIER = Decimal("1.18")


@dataclass(frozen=True)
class CpmRates:
    size: str
    cost_cpm_paper: Decimal
    print_cpm: Decimal
    paper_lbs_per_m: Decimal

    @property
    def sell_cpm_paper(self) -> Decimal:
        return rate(self.cost_cpm_paper * PAPER_MARKUP_MULTIPLIER)

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "cost_cpm_paper": str(self.cost_cpm_paper),
            "sell_cpm_paper": str(self.sell_cpm_paper),
            "print_cpm": str(self.print_cpm),
            "paper_lbs_per_m": str(self.paper_lbs_per_m),
        }


def _rates(size: str, cost_cpm_paper: str, print_cpm: str, paper_lbs_per_m: str) -> CpmRates:
    return CpmRates(size, Decimal(cost_cpm_paper), Decimal(print_cpm), Decimal(paper_lbs_per_m))


CPM_TABLE: dict[str, CpmRates] = {
    r.size: r
    for r in (
        _rates("7 1/4 x 16 3/8", "15.46", "34.74", "22.90"),
        _rates("8 1/2 x 17 1/2", "20.36", "38.41", "30.16"),
        _rates("9 3/4 x 22 1/8", "35.76", "49.18", "52.98"),
        _rates("9 3/4 x 26", "36.91", "49.18", "54.28"),
        _rates("6 x 9", "13.60", "10.00", "17.10"),
        _rates("6 x 11", "15.90", "10.00", "20.00"),
    )
}


def lookup_cpm(size: str | None) -> CpmRates | None:
    """Exact-match lookup; None means 'no entry'."""
    if not size:
        return None
    return CPM_TABLE.get(size)


def cpm_sizes() -> list[str]:
    return list(CPM_TABLE)


# =============================================================================
# SIZE NORMALIZATION
# =============================================================================

_EIGHTHS = {Fraction(n, 8) for n in range(1, 8)}
_MIXED = re.compile(r"^(\d+)\s+(\d+)/(\d+)$")
_PURE_FRACTION = re.compile(r"^(\d+)/(\d+)$")


def _parse_dimension(dim: str) -> Fraction | None:
    dim = dim.strip()
    m = _MIXED.match(dim)
    if m:
        return int(m.group(1)) + Fraction(int(m.group(2)), int(m.group(3)))
    m = _PURE_FRACTION.match(dim)
    if m:
        return Fraction(int(m.group(1)), int(m.group(2)))
    try:
        return Fraction(dim)
    except (ValueError, ZeroDivisionError):
        return None


def _format_dimension(value: Fraction) -> str:
    whole = int(value)
    rest = value - whole
    if rest == 0:
        return str(whole)
    if rest in _EIGHTHS:
        return f"{whole} {rest}" if whole else str(rest)
    return str(float(value)).rstrip("0").rstrip(".")


def normalize_size(size: str | None) -> str | None:
    """
    Canonical "W x H" form, smaller dimension first, eighths as fractions.

    "8.5x17.5" -> "8 1/2 x 17 1/2", "9 x 6" -> "6 x 9".
    Input that does not parse as two dimensions is returned stripped.
    """
    if size is None:
        return None
    raw = size.strip()
    if not raw:
        return None
    parts = re.split(r"\s*[xX×]\s*", raw)
    if len(parts) != 2:
        return raw
    dims = [_parse_dimension(p) for p in parts]
    if any(v is None or v <= 0 for v in dims):
        return raw
    low, high = sorted(dims)
    return f"{_format_dimension(low)} x {_format_dimension(high)}"


# =============================================================================
# PARTNER COSTS
# =============================================================================

@dataclass(frozen=True)
class PartnerCostBreakdown:
    paper_cost: Decimal
    paper_markup: Decimal
    mfg_cost: Decimal

    @property
    def total_cost(self) -> Decimal:
        return self.paper_cost + self.paper_markup + self.mfg_cost

    @property
    def partner_buy_cost(self) -> Decimal:
        """What the partner pays the secondary shop (paper at cost + print)."""
        return self.paper_cost + self.mfg_cost


def partner_cost_breakdown(rates: CpmRates, quantity: int, markup_rate=Decimal("0.18")) -> PartnerCostBreakdown:
    paper_cost = cpm_amount(rates.cost_cpm_paper, quantity)
    return PartnerCostBreakdown(
        paper_cost=paper_cost,
        paper_markup=money(paper_cost * d(markup_rate)),
        mfg_cost=cpm_amount(rates.print_cpm, quantity),
    )


def require_cpm(size: str | None) -> CpmRates:
    """Lookup for callers that cannot fall back to line items."""
    rates = lookup_cpm(size)
    if rates is None:
        raise ValidationError(
            f"No CPM pricing for size '{size}'",
            details={"known_sizes": cpm_sizes()},
        )
    return rates
