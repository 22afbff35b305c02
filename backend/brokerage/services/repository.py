# Overview: Job-aggregate loading used by every service (the persistence seam).

from __future__ import annotations

from sqlalchemy import and_, or_

from ..errors import NotFoundError
from ..extensions import db
from ..models import Job, LineItem, PurchaseOrder, JobComponent, Vendor
from .concurrency import lock_for_update


def load_job(job_id: int, *, lock: bool = False, include_deleted: bool = False) -> Job:
    """Fetch a job or raise NotFoundError. Soft-deleted jobs are hidden by default."""
    query = db.session.query(Job).filter(Job.id == job_id)
    if not include_deleted:
        query = query.filter(Job.deleted_at.is_(None))
    if lock:
        query = lock_for_update(query)
    job = query.first()
    if job is None:
        raise NotFoundError(f"Job {job_id} not found")
    return job


def list_jobs(*, routing_type: str | None = None, status: str | None = None, limit: int = 200) -> list[Job]:
    query = db.session.query(Job).filter(Job.deleted_at.is_(None))
    if routing_type:
        query = query.filter(Job.routing_type == routing_type)
    if status:
        query = query.filter(
            or_(
                Job.status_override == status,
                and_(Job.status_override.is_(None), Job.status == status),
            )
        )
    return query.order_by(Job.id.desc()).limit(limit).all()


def load_vendor(vendor_id: int) -> Vendor:
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError(f"Vendor {vendor_id} not found")
    return vendor


def load_line_item(line_item_id: int) -> LineItem:
    item = db.session.get(LineItem, line_item_id)
    if item is None or item.job.is_deleted:
        raise NotFoundError(f"Line item {line_item_id} not found")
    return item


def load_purchase_order(po_id: int) -> PurchaseOrder:
    po = db.session.get(PurchaseOrder, po_id)
    if po is None or po.job.is_deleted:
        raise NotFoundError(f"Purchase order {po_id} not found")
    return po


def load_component(component_id: int) -> JobComponent:
    component = db.session.get(JobComponent, component_id)
    if component is None or component.job.is_deleted:
        raise NotFoundError(f"Component {component_id} not found")
    return component
