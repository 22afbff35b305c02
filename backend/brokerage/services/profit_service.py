# Overview: Cost and profit-split calculation plus the cached ProfitSplit record.

"""
Cost & Profit-Split Calculator

compute_profit_split() is the only place a job's cost, spread and the split
between the two intermediaries is derived. Every screen, report and payment
default reads the cached ProfitSplit written from it.

ROUTING -> FORMULA:
- PARTNER_ROUTED with a CPM table entry:
    paper cost   = CPM(cost_cpm_paper, qty)
    paper markup = paper cost * 18%
    mfg cost     = CPM(print_cpm, qty)
    total cost   = paper cost + paper markup + mfg cost
    spread       = sell price - total cost
    brokerage    = spread / 2
    partner      = spread / 2 + paper markup   (partner sources the paper)
- PARTNER_ROUTED without CPM data:
    total cost   = sum of brokerage->partner PO buy costs
    paper markup = sum of paper markup recorded on those POs (not recomputed)
    split as above
- DIRECT_ROUTED / THIRD_PARTY_ROUTED:
    total cost   = sum(qty * unit cost), revenue = sum(qty * unit price)
    gross profit = revenue - total cost
    cut          = manual amount, else 35% of gross profit when auto is on
    final profit = gross profit - cut     (may go negative; never clamped)

CACHE:
Any write to an input marks the cached split stale (invalidate_profit_split).
get_profit_split() recomputes a stale or missing split before returning it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app

from ..domain import CostingBasis, Party, RoutingType
from ..errors import ValidationError
from ..extensions import db
from ..models import Job, ProfitSplit
from ..money import ZERO, d, half, margin_percent, money, percent_of
from ..time_utils import utcnow
from .concurrency import run_in_transaction
from .cpm_pricing import lookup_cpm, partner_cost_breakdown
from .repository import load_job

DEFAULT_PAPER_MARKUP_RATE = Decimal("0.18")
DEFAULT_INTERMEDIARY_CUT_RATE = Decimal("0.35")


@dataclass
class ProfitSplitResult:
    routing_type: RoutingType
    costing_basis: CostingBasis
    sell_price: Decimal
    total_cost: Decimal
    spread: Decimal
    partner_share: Decimal
    brokerage_share: Decimal
    paper_cost: Decimal = ZERO
    paper_markup: Decimal = ZERO
    mfg_cost: Decimal = ZERO
    revenue: Decimal = ZERO
    gross_profit: Decimal = ZERO
    intermediary_cut: Decimal = ZERO
    final_profit: Decimal = ZERO
    margin_percent: Decimal = ZERO
    warnings: list[str] = field(default_factory=list)

    @property
    def is_negative(self) -> bool:
        if self.costing_basis == CostingBasis.LINE_ITEMS:
            return self.final_profit < 0 or self.spread < 0
        return self.spread < 0

    def to_dict(self) -> dict:
        return {
            "routing_type": self.routing_type.value,
            "costing_basis": self.costing_basis.value,
            "sell_price": str(self.sell_price),
            "total_cost": str(self.total_cost),
            "spread": str(self.spread),
            "paper_cost": str(self.paper_cost),
            "paper_markup": str(self.paper_markup),
            "mfg_cost": str(self.mfg_cost),
            "revenue": str(self.revenue),
            "gross_profit": str(self.gross_profit),
            "intermediary_cut": str(self.intermediary_cut),
            "final_profit": str(self.final_profit),
            "partner_share": str(self.partner_share),
            "brokerage_share": str(self.brokerage_share),
            "margin_percent": str(self.margin_percent),
            "is_negative": self.is_negative,
            "warnings": list(self.warnings),
        }


# =============================================================================
# PURE CALCULATION
# =============================================================================

def compute_profit_split(
    job,
    line_items,
    purchase_orders,
    routing_type=None,
    *,
    paper_markup_rate=DEFAULT_PAPER_MARKUP_RATE,
    intermediary_cut_rate=DEFAULT_INTERMEDIARY_CUT_RATE,
) -> ProfitSplitResult:
    """
    Derive the profit split for one job. No I/O.

    ``job`` needs sell_price, quantity, size_name, use_cpm_pricing,
    intermediary_cut, auto_intermediary_cut and routing_type (used when
    ``routing_type`` is not passed).

    Raises:
        ValidationError: sell price unset or not positive
    """
    routing = RoutingType.parse(routing_type if routing_type is not None else job.routing_type)

    if job.sell_price is None or d(job.sell_price) <= 0:
        raise ValidationError("Sell price must be set and greater than zero before computing profit")
    sell_price = money(job.sell_price)

    if routing == RoutingType.PARTNER_ROUTED:
        result = _partner_split(job, sell_price, purchase_orders or [], paper_markup_rate)
    else:
        result = _line_item_split(job, routing, sell_price, line_items or [], intermediary_cut_rate)

    if result.spread < 0:
        result.warnings.append(f"Negative spread: job sold {abs(result.spread)} below cost")
    if result.costing_basis == CostingBasis.LINE_ITEMS and result.final_profit < 0:
        result.warnings.append(f"Negative final profit after intermediary cut: {result.final_profit}")
    return result


def _partner_split(job, sell_price: Decimal, purchase_orders, paper_markup_rate) -> ProfitSplitResult:
    rates = lookup_cpm(job.size_name) if getattr(job, "use_cpm_pricing", True) else None
    quantity = int(job.quantity or 0)

    if rates is not None and quantity > 0:
        costs = partner_cost_breakdown(rates, quantity, paper_markup_rate)
        basis = CostingBasis.CPM
        paper_cost, paper_markup, mfg_cost = costs.paper_cost, costs.paper_markup, costs.mfg_cost
        total_cost = costs.total_cost
    else:
        # Recorded PO values are kept as entered.
        partner_pos = [po for po in purchase_orders if po.is_between(Party.BROKERAGE, Party.PARTNER)]
        basis = CostingBasis.PURCHASE_ORDERS
        total_cost = money(sum((d(po.buy_cost) for po in partner_pos), ZERO))
        paper_markup = money(sum((d(po.paper_markup) for po in partner_pos), ZERO))
        paper_cost = money(sum((d(po.paper_cost) for po in partner_pos), ZERO))
        mfg_cost = money(sum((d(po.mfg_cost) for po in partner_pos), ZERO))

    spread = sell_price - total_cost
    brokerage_share = half(spread)
    # Remainder keeps partner + brokerage == spread + paper markup to the cent
    partner_share = spread - brokerage_share + paper_markup

    return ProfitSplitResult(
        routing_type=RoutingType.PARTNER_ROUTED,
        costing_basis=basis,
        sell_price=sell_price,
        total_cost=total_cost,
        spread=spread,
        partner_share=partner_share,
        brokerage_share=brokerage_share,
        paper_cost=paper_cost,
        paper_markup=paper_markup,
        mfg_cost=mfg_cost,
        revenue=sell_price,
        gross_profit=spread,
        final_profit=brokerage_share,
        margin_percent=margin_percent(spread, sell_price),
    )


def _line_item_split(job, routing: RoutingType, sell_price: Decimal, line_items, cut_rate) -> ProfitSplitResult:
    total_cost = money(sum((d(li.quantity) * d(li.unit_cost) for li in line_items), ZERO))
    revenue = money(sum((d(li.quantity) * d(li.unit_price) for li in line_items), ZERO))
    gross_profit = revenue - total_cost

    if job.intermediary_cut is not None:
        cut = money(job.intermediary_cut)
    elif job.auto_intermediary_cut:
        cut = percent_of(gross_profit, cut_rate)
    else:
        cut = ZERO
    final_profit = gross_profit - cut
    spread = sell_price - total_cost

    return ProfitSplitResult(
        routing_type=routing,
        costing_basis=CostingBasis.LINE_ITEMS,
        sell_price=sell_price,
        total_cost=total_cost,
        spread=spread,
        partner_share=cut,
        brokerage_share=final_profit,
        revenue=revenue,
        gross_profit=gross_profit,
        intermediary_cut=cut,
        final_profit=final_profit,
        margin_percent=margin_percent(gross_profit, revenue),
    )


# =============================================================================
# CACHED RECORD
# =============================================================================

def _configured_rates() -> dict:
    return {
        "paper_markup_rate": d(current_app.config.get("PAPER_MARKUP_RATE", DEFAULT_PAPER_MARKUP_RATE)),
        "intermediary_cut_rate": d(current_app.config.get("INTERMEDIARY_CUT_RATE", DEFAULT_INTERMEDIARY_CUT_RATE)),
    }


def compute_for_job(job) -> ProfitSplitResult:
    """compute_profit_split() over a loaded Job with configured rates."""
    return compute_profit_split(
        job,
        job.line_items,
        job.purchase_orders,
        job.routing_type,
        **_configured_rates(),
    )


def invalidate_profit_split(job) -> None:
    """
    Mark the cached split stale. Call from every write that touches an input.

    Also stamps the job so its version moves when only child rows changed.
    """
    job.updated_at = utcnow()
    if job.profit_split is not None:
        job.profit_split.is_stale = True


def _store(job, result: ProfitSplitResult) -> ProfitSplit:
    split = job.profit_split
    if split is None:
        split = ProfitSplit(job_id=job.id)
        job.profit_split = split

    split.routing_type = result.routing_type.value
    split.costing_basis = result.costing_basis.value
    split.sell_price = result.sell_price
    split.total_cost = result.total_cost
    split.spread = result.spread
    split.paper_cost = result.paper_cost
    split.paper_markup = result.paper_markup
    split.mfg_cost = result.mfg_cost
    split.revenue = result.revenue
    split.gross_profit = result.gross_profit
    split.intermediary_cut = result.intermediary_cut
    split.final_profit = result.final_profit
    split.partner_share = result.partner_share
    split.brokerage_share = result.brokerage_share
    split.margin_percent = result.margin_percent
    split.is_negative = result.is_negative
    split.is_stale = False
    split.calculated_at = utcnow()
    return split


def recalculate_profit_split(job_id: int) -> tuple[ProfitSplit, list[str]]:
    """
    Recompute and persist the split for a job.

    Returns:
        (ProfitSplit, warnings)

    Raises:
        ValidationError: sell price missing/non-positive (nothing is persisted)
    """
    def _op():
        job = load_job(job_id, lock=True)
        result = compute_for_job(job)
        split = _store(job, result)
        if result.warnings:
            current_app.logger.warning(
                "Job %s profit warning: %s", job.job_number, "; ".join(result.warnings)
            )
        return split, result.warnings

    return run_in_transaction(_op)


def get_profit_split(job_id: int) -> ProfitSplit:
    """Cached split, recomputed first if an input changed since the last write."""
    job = load_job(job_id)
    split = job.profit_split
    if split is None or split.is_stale:
        split, _warnings = recalculate_profit_split(job_id)
    return split


def recalculate_all(*, stale_only: bool = True) -> dict:
    """
    Batch recompute for maintenance.

    Jobs that fail validation (no sell price yet) are reported, not stored.
    """
    query = db.session.query(Job).filter(Job.deleted_at.is_(None))
    job_ids = [row.id for row in query.all() if not stale_only or row.profit_split is None or row.profit_split.is_stale]

    updated, skipped = [], []
    for job_id in job_ids:
        try:
            recalculate_profit_split(job_id)
            updated.append(job_id)
        except ValidationError as exc:
            skipped.append({"job_id": job_id, "reason": exc.message})
    return {"updated": updated, "skipped": skipped}
