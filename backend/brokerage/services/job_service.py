# Overview: Job creation and edits; every write that feeds the profit split invalidates it.

"""
Job Service

Creation classifies routing exactly once and stores it. Later edits to sell
price, quantity, size, costing preferences, purchase orders or the routing
type itself mark the cached profit split stale.

Jobs are soft-deleted (``deleted_at``); financial history stays queryable.
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..domain import INTERNAL_PARTIES, MaterialStatus, Party, ReadinessFlag, RoutingType
from ..errors import ValidationError
from ..extensions import db
from ..models import Job, JobComponent, PurchaseOrder
from ..money import money, rate
from ..time_utils import utcnow
from .concurrency import run_in_transaction
from .cpm_pricing import normalize_size, partner_cost_breakdown, require_cpm
from .profit_service import _configured_rates, invalidate_profit_split
from .readiness_service import initial_readiness_flags
from .repository import load_component, load_job, load_purchase_order, load_vendor
from .routing_service import classify_routing

JOB_NUMBER_WIDTH = 6

# Fields a PATCH may change (routing has its own explicit operation)
EDITABLE_FIELDS = {
    "title",
    "customer_name",
    "sell_price",
    "quantity",
    "size_name",
    "use_cpm_pricing",
    "intermediary_cut",
    "auto_intermediary_cut",
    "mail_date",
}
PROFIT_INPUT_FIELDS = EDITABLE_FIELDS - {"title", "customer_name", "mail_date"}


# =============================================================================
# FIELD PARSING
# =============================================================================

def _parse_money(field: str, value, *, allow_none: bool = True):
    if value is None or value == "":
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")
    try:
        amount = money(value)
    except ValueError:
        raise ValidationError(f"{field} must be a decimal amount")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def _parse_rate(field: str, value):
    if value is None or value == "":
        return None
    try:
        per_thousand = rate(value)
    except ValueError:
        raise ValidationError(f"{field} must be a decimal rate")
    if per_thousand < 0:
        raise ValidationError(f"{field} cannot be negative")
    return per_thousand


def _parse_quantity(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("quantity must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("quantity must be a whole number")
    try:
        quantity = int(value or 0)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be an integer")
    if quantity < 0:
        raise ValidationError("quantity cannot be negative")
    return quantity


def _parse_date(value):
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("mail_date must be YYYY-MM-DD")


def _apply_field(job: Job, field: str, value) -> None:
    if field == "sell_price":
        job.sell_price = _parse_money("sell_price", value)
    elif field == "intermediary_cut":
        job.intermediary_cut = _parse_money("intermediary_cut", value)
    elif field == "quantity":
        job.quantity = _parse_quantity(value)
    elif field == "size_name":
        job.size_name = normalize_size(value)
    elif field in ("use_cpm_pricing", "auto_intermediary_cut"):
        setattr(job, field, bool(value))
    elif field == "mail_date":
        job.mail_date = _parse_date(value)
    else:
        setattr(job, field, (value or "").strip())


# =============================================================================
# JOBS
# =============================================================================

def create_job(
    *,
    title: str,
    vendor_id: int | None = None,
    bills_secondary_shop_directly: bool = False,
    customer_name: str | None = None,
    quantity=0,
    sell_price=None,
    size_name: str | None = None,
    job_number: str | None = None,
    is_mailing: bool = False,
    has_supplied_components: bool = False,
    version_count: int = 1,
) -> Job:
    """
    Create a job and classify its routing from the assigned vendor.

    The routing type is stored; later changes to the vendor's partner flag
    do not touch this job.
    """
    def _op():
        vendor = load_vendor(vendor_id) if vendor_id is not None else None
        routing = classify_routing(vendor, bills_secondary_shop_directly=bills_secondary_shop_directly)

        job = Job(
            title=(title or "").strip(),
            customer_name=customer_name,
            vendor_id=vendor.id if vendor else None,
            routing_type=routing.value,
            quantity=_parse_quantity(quantity),
            sell_price=_parse_money("sell_price", sell_price),
            size_name=normalize_size(size_name),
            job_number=job_number,
        )
        for column, flag in initial_readiness_flags(
            is_mailing=is_mailing,
            has_supplied_components=has_supplied_components,
            version_count=version_count,
        ).items():
            setattr(job, column, flag.value)

        db.session.add(job)
        db.session.flush()
        if not job.job_number:
            job.job_number = f"J-{job.id:0{JOB_NUMBER_WIDTH}d}"
        return job

    job = run_in_transaction(_op)
    current_app.logger.info("Created job %s routed %s", job.job_number, job.routing_type)
    return job


def update_job(job_id: int, changes: dict) -> Job:
    """
    Apply a partial update. Unknown keys are rejected, not ignored.

    Raises:
        ValidationError: unknown field or bad value
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

    def _op():
        job = load_job(job_id, lock=True)
        for field, value in changes.items():
            _apply_field(job, field, value)
        job.updated_at = utcnow()
        if PROFIT_INPUT_FIELDS & set(changes):
            invalidate_profit_split(job)
        return job

    return run_in_transaction(_op)


def change_routing_type(job_id: int, routing_type) -> Job:
    """Explicit reclassification; never happens implicitly from vendor changes."""
    routing = RoutingType.parse(routing_type)

    def _op():
        job = load_job(job_id, lock=True)
        job.routing_type = routing.value
        invalidate_profit_split(job)
        return job

    return run_in_transaction(_op)


def soft_delete_job(job_id: int) -> Job:
    def _op():
        job = load_job(job_id, lock=True)
        job.deleted_at = utcnow()
        return job

    return run_in_transaction(_op)


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def _parse_party(value, *, field: str) -> str:
    party = str(value or "").strip().upper()
    if party in INTERNAL_PARTIES or party == "VENDOR":
        return party
    raise ValidationError(f"{field} must be one of: {', '.join(sorted(INTERNAL_PARTIES | {'VENDOR'}))}")


def add_purchase_order(
    job_id: int,
    *,
    origin_party,
    target_party,
    buy_cost,
    target_vendor_id: int | None = None,
    po_number: str | None = None,
    paper_cpm=None,
    print_cpm=None,
    paper_cost=None,
    paper_markup=None,
    mfg_cost=None,
) -> PurchaseOrder:
    origin = _parse_party(origin_party, field="origin_party")
    target = _parse_party(target_party, field="target_party")
    if origin == target:
        raise ValidationError("A purchase order cannot target its own origin")
    if target == "VENDOR" and target_vendor_id is None:
        raise ValidationError("target_vendor_id is required when target_party is VENDOR")

    def _op():
        job = load_job(job_id, lock=True)
        if target_vendor_id is not None:
            load_vendor(target_vendor_id)
        po = PurchaseOrder(
            po_number=po_number,
            origin_party=origin,
            target_party=target,
            target_vendor_id=target_vendor_id,
            buy_cost=_parse_money("buy_cost", buy_cost, allow_none=False),
            paper_cpm=_parse_rate("paper_cpm", paper_cpm),
            print_cpm=_parse_rate("print_cpm", print_cpm),
            paper_cost=_parse_money("paper_cost", paper_cost),
            paper_markup=_parse_money("paper_markup", paper_markup),
            mfg_cost=_parse_money("mfg_cost", mfg_cost),
        )
        job.purchase_orders.append(po)
        invalidate_profit_split(job)
        db.session.flush()
        return po

    return run_in_transaction(_op)


def delete_purchase_order(po_id: int) -> None:
    def _op():
        po = load_purchase_order(po_id)
        job = load_job(po.job_id, lock=True)
        job.purchase_orders.remove(po)
        invalidate_profit_split(job)

    run_in_transaction(_op)


def create_partner_purchase_orders(job_id: int) -> list[PurchaseOrder]:
    """
    Build the two internal POs of a partner-routed job from the CPM table:
    brokerage -> partner (paper with markup + print) and
    partner -> secondary shop (paper at cost + print).

    Raises:
        ValidationError: job not partner-routed, no quantity, or size not in the table
    """
    def _op():
        job = load_job(job_id, lock=True)
        if job.routing_type != RoutingType.PARTNER_ROUTED.value:
            raise ValidationError("Partner purchase orders only apply to PARTNER_ROUTED jobs")
        if not job.quantity or job.quantity <= 0:
            raise ValidationError("Job quantity must be positive to price from the CPM table")
        rates = require_cpm(job.size_name)
        costs = partner_cost_breakdown(rates, job.quantity, _configured_rates()["paper_markup_rate"])

        existing = [
            po for po in job.purchase_orders
            if po.is_between(Party.BROKERAGE, Party.PARTNER) or po.is_between(Party.PARTNER, Party.SECONDARY_SHOP)
        ]
        for po in existing:
            job.purchase_orders.remove(po)

        to_partner = PurchaseOrder(
            origin_party=Party.BROKERAGE.value,
            target_party=Party.PARTNER.value,
            buy_cost=costs.total_cost,
            paper_cpm=rates.cost_cpm_paper,
            print_cpm=rates.print_cpm,
            paper_cost=costs.paper_cost,
            paper_markup=costs.paper_markup,
            mfg_cost=costs.mfg_cost,
        )
        to_shop = PurchaseOrder(
            origin_party=Party.PARTNER.value,
            target_party=Party.SECONDARY_SHOP.value,
            buy_cost=costs.partner_buy_cost,
            paper_cpm=rates.cost_cpm_paper,
            print_cpm=rates.print_cpm,
            paper_cost=costs.paper_cost,
            mfg_cost=costs.mfg_cost,
        )
        job.purchase_orders.extend([to_partner, to_shop])
        invalidate_profit_split(job)
        db.session.flush()
        for po in (to_partner, to_shop):
            po.po_number = f"{job.job_number}-PO{po.id}"
        return [to_partner, to_shop]

    return run_in_transaction(_op)


# =============================================================================
# COMPONENTS
# =============================================================================

def add_component(job_id: int, *, name: str, supplier: str | None = None,
                  artwork_status="PENDING", material_status="PENDING",
                  tracking_info: str | None = None) -> JobComponent:
    if not (name or "").strip():
        raise ValidationError("Component name is required")

    def _op():
        job = load_job(job_id, lock=True)
        component = JobComponent(
            name=name.strip(),
            supplier=supplier,
            artwork_status=ReadinessFlag.parse(artwork_status).value,
            material_status=MaterialStatus.parse(material_status).value,
            tracking_info=tracking_info,
        )
        job.components.append(component)
        job.updated_at = utcnow()
        db.session.flush()
        return component

    return run_in_transaction(_op)


def update_component(component_id: int, changes: dict) -> JobComponent:
    allowed = {"supplier", "artwork_status", "material_status", "tracking_info"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

    def _op():
        component = load_component(component_id)
        job = load_job(component.job_id, lock=True)
        if "artwork_status" in changes:
            component.artwork_status = ReadinessFlag.parse(changes["artwork_status"]).value
        if "material_status" in changes:
            component.material_status = MaterialStatus.parse(changes["material_status"]).value
        for field in ("supplier", "tracking_info"):
            if field in changes:
                setattr(component, field, changes[field])
        job.updated_at = utcnow()
        return component

    return run_in_transaction(_op)
