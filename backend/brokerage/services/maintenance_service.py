# Overview: Detection and repair of lifecycle/payment drift on legacy rows.

"""
Status/payment drift

New writes cannot produce a job that is INVOICED without INVOICE_SENT or
PAID without CUSTOMER_PAID. Rows imported or edited outside the services can.
These helpers find them and move the status back to the highest status the
recorded payments support, clearing any override.
"""

from __future__ import annotations

from flask import current_app

from ..domain import LifecycleStatus, PaymentMilestone, StatusEventSource
from ..extensions import db
from ..models import Job
from ..time_utils import utcnow
from .concurrency import run_in_transaction
from .lifecycle_service import _clear_override, _log_transition, check_payment_consistency
from .repository import load_job

REPAIR_REASON = "Status repaired to match recorded payments"


def consistent_status(job) -> LifecycleStatus:
    """Highest status at or below the effective one that recorded payments allow."""
    status = job.effective_status
    if status == LifecycleStatus.PAID and not job.is_milestone_set(PaymentMilestone.CUSTOMER_PAID):
        status = LifecycleStatus.INVOICED
    if status == LifecycleStatus.INVOICED and not job.is_milestone_set(PaymentMilestone.INVOICE_SENT):
        status = LifecycleStatus.COMPLETED
    return status


def find_status_inconsistencies(*, limit: int | None = None) -> list[dict]:
    query = (
        db.session.query(Job)
        .filter(Job.deleted_at.is_(None))
        .filter(Job.status.in_([LifecycleStatus.INVOICED.value, LifecycleStatus.PAID.value])
                | Job.status_override.in_([LifecycleStatus.INVOICED.value, LifecycleStatus.PAID.value]))
        .order_by(Job.id.asc())
    )
    found = []
    for job in query.all():
        issues = check_payment_consistency(job)
        if not issues:
            continue
        found.append({
            "job_id": job.id,
            "job_number": job.job_number,
            "effective_status": job.effective_status.value,
            "is_overridden": job.status_state.is_overridden,
            "issues": issues,
            "repair_to": consistent_status(job).value,
        })
        if limit is not None and len(found) >= limit:
            break
    return found


def repair_status_inconsistencies(*, apply: bool = False, limit: int | None = None) -> dict:
    """
    Dry-run by default. With ``apply`` each job is repaired in its own
    transaction and a REPAIR status event is written.
    """
    found = find_status_inconsistencies(limit=limit)
    if not apply:
        return {"applied": False, "jobs": found}

    repaired = []
    for entry in found:
        def _op(job_id=entry["job_id"]):
            job = load_job(job_id, lock=True)
            current = job.effective_status
            target = consistent_status(job)
            job.status = target.value
            _clear_override(job)
            job.updated_at = utcnow()
            _log_transition(job, current, target, StatusEventSource.REPAIR, actor="maintenance",
                            reason=REPAIR_REASON)
            return job

        job = run_in_transaction(_op)
        current_app.logger.info("Repaired status on job %s to %s", job.job_number, job.status)
        repaired.append(job.id)

    return {"applied": True, "jobs": found, "repaired": repaired}
