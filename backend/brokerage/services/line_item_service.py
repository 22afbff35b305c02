# Overview: Line-item pricing edits and persistence.

"""
Line Item Pricing

Each edit drives exactly one of cost / markup / price; the other two follow:

    edit unit_cost       -> markup_percent recomputed, unit_price held
    edit markup_percent  -> unit_price recomputed, unit_cost held
    edit unit_price      -> markup_percent recomputed, unit_cost held

A zero cost has no meaningful markup; markup is reported as 0 in that case.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from ..errors import ValidationError
from ..extensions import db
from ..models import LineItem
from ..money import HUNDRED, ZERO, d, rate
from .concurrency import run_in_transaction
from .profit_service import invalidate_profit_split
from .repository import load_job, load_line_item

PRICING_FIELDS = ("unit_cost", "markup_percent", "unit_price")


@dataclass(frozen=True)
class LinePricing:
    unit_cost: Decimal
    markup_percent: Decimal
    unit_price: Decimal


def derive_price(unit_cost, markup_percent) -> Decimal:
    return rate(d(unit_cost) * (1 + d(markup_percent) / HUNDRED))


def derive_markup(unit_cost, unit_price) -> Decimal:
    cost = d(unit_cost)
    if cost <= 0:
        return ZERO
    return rate((d(unit_price) / cost - 1) * HUNDRED)


def apply_pricing_edit(pricing: LinePricing, field: str, value) -> LinePricing:
    """Return new pricing after ``field`` was edited to ``value``."""
    value = _parse_amount(field, value)
    if field == "unit_cost":
        return replace(pricing, unit_cost=rate(value), markup_percent=derive_markup(value, pricing.unit_price))
    if field == "markup_percent":
        return replace(pricing, markup_percent=rate(value), unit_price=derive_price(pricing.unit_cost, value))
    if field == "unit_price":
        return replace(pricing, unit_price=rate(value), markup_percent=derive_markup(pricing.unit_cost, value))
    raise ValidationError(f"Unknown pricing field '{field}'. Must be one of: {', '.join(PRICING_FIELDS)}")


def initial_pricing(unit_cost, markup_percent=None, unit_price=None) -> LinePricing:
    """
    Pricing for a new line. A direct price wins over a markup; with neither,
    the line is priced at cost.
    """
    cost = rate(_parse_amount("unit_cost", unit_cost or 0))
    if unit_price is not None:
        price = rate(_parse_amount("unit_price", unit_price))
        return LinePricing(cost, derive_markup(cost, price), price)
    markup = rate(_parse_amount("markup_percent", markup_percent or 0))
    return LinePricing(cost, markup, derive_price(cost, markup))


def _parse_amount(field: str, value) -> Decimal:
    try:
        amount = d(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if field != "markup_percent" and amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def _parse_quantity(value) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError("quantity must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("quantity must be a whole number")
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be an integer")
    if quantity < 0:
        raise ValidationError("quantity cannot be negative")
    return quantity


def _pricing_of(item: LineItem) -> LinePricing:
    return LinePricing(d(item.unit_cost), d(item.markup_percent), d(item.unit_price))


def _apply(item: LineItem, pricing: LinePricing) -> None:
    item.unit_cost = pricing.unit_cost
    item.markup_percent = pricing.markup_percent
    item.unit_price = pricing.unit_price


# =============================================================================
# PERSISTENCE
# =============================================================================

def add_line_item(
    job_id: int,
    *,
    description: str,
    quantity,
    unit_cost,
    markup_percent=None,
    unit_price=None,
) -> LineItem:
    def _op():
        job = load_job(job_id, lock=True)
        pricing = initial_pricing(unit_cost, markup_percent, unit_price)
        item = LineItem(description=(description or "").strip(), quantity=_parse_quantity(quantity))
        _apply(item, pricing)
        job.line_items.append(item)
        invalidate_profit_split(job)
        db.session.flush()
        return item

    return run_in_transaction(_op)


def edit_line_item(line_item_id: int, *, field: str | None = None, value=None,
                   description: str | None = None, quantity=None) -> LineItem:
    """
    Apply one pricing edit and/or descriptive changes to a line.

    Raises:
        ValidationError: unknown field or bad amount
        NotFoundError: line item (or its job) missing
    """
    def _op():
        item = load_line_item(line_item_id)
        job = load_job(item.job_id, lock=True)
        if field is not None:
            _apply(item, apply_pricing_edit(_pricing_of(item), field, value))
        if description is not None:
            item.description = description.strip()
        if quantity is not None:
            item.quantity = _parse_quantity(quantity)
        invalidate_profit_split(job)
        return item

    return run_in_transaction(_op)


def delete_line_item(line_item_id: int) -> None:
    def _op():
        item = load_line_item(line_item_id)
        job = load_job(item.job_id, lock=True)
        job.line_items.remove(item)
        invalidate_profit_split(job)

    run_in_transaction(_op)
