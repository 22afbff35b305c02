# Overview: Job lifecycle state machine with operator override.

"""
Job Lifecycle Service

================================================================================
PURPOSE: Track where a job is between intake and final payment
================================================================================

STATE MACHINE:
    NEW -> AWAITING_VENDOR_PROOF -> PROOF_RECEIVED -> PROOF_SENT_TO_CUSTOMER
        -> AWAITING_CUSTOMER_RESPONSE -> APPROVED_PENDING_VENDOR
        -> IN_PRODUCTION -> COMPLETED -> INVOICED -> PAID

    Natural status moves one step at a time (advance). An operator may force
    any status (override); the override wins until cleared, at which point
    the natural status shows again.

RULES:
1. advance moves exactly one step; advancing a PAID job is refused
2. advancing an overridden job starts from the overridden value and clears
   the override
3. INVOICED needs INVOICE_SENT, PAID needs CUSTOMER_PAID, by advance or override
4. Every change writes a JobStatusEvent (source ADVANCE / OVERRIDE /
   CLEAR_OVERRIDE / REPAIR)
================================================================================
"""

from __future__ import annotations

from flask import current_app

from ..domain import (
    LIFECYCLE_ORDER,
    STATUS_PAYMENT_REQUIREMENTS,
    LifecycleStatus,
    StatusEventSource,
)
from ..errors import PreconditionError
from ..extensions import db
from ..models import Job, JobStatusEvent
from ..time_utils import utcnow
from .concurrency import run_in_transaction
from .repository import load_job


def next_status(status: LifecycleStatus) -> LifecycleStatus | None:
    """Following status, or None at the end of the line."""
    position = status.order
    if position + 1 >= len(LIFECYCLE_ORDER):
        return None
    return LIFECYCLE_ORDER[position + 1]


def check_payment_consistency(job, status: LifecycleStatus | None = None) -> list[str]:
    """
    Payment milestones missing for ``status`` (default: the job's effective status).

    Empty list means consistent.
    """
    status = status or job.effective_status
    required = STATUS_PAYMENT_REQUIREMENTS.get(status)
    if required is not None and not job.is_milestone_set(required):
        return [f"{status.value} requires {required.value}"]
    return []


def _require_payments(job, target: LifecycleStatus) -> None:
    issues = check_payment_consistency(job, target)
    if issues:
        raise PreconditionError(
            f"Cannot move job {job.job_number} to {target.value}: {'; '.join(issues)}",
            details={"status": target.value, "missing": [STATUS_PAYMENT_REQUIREMENTS[target].value]},
        )


def _log_transition(job: Job, from_status, to_status: LifecycleStatus, source: StatusEventSource,
                    *, actor=None, reason=None) -> None:
    db.session.add(JobStatusEvent(
        job_id=job.id,
        from_status=from_status.value if from_status else None,
        to_status=to_status.value,
        source=source.value,
        actor=actor,
        reason=reason,
        occurred_at=utcnow(),
    ))


def _clear_override(job: Job) -> None:
    job.status_override = None
    job.status_override_by = None
    job.status_override_at = None


# =============================================================================
# TRANSITIONS
# =============================================================================

def advance_lifecycle_status(job_id: int, *, actor: str | None = None) -> Job:
    """
    Move the job one step forward from its effective status.

    Raises:
        PreconditionError: job is PAID, or the next status needs a payment
            milestone that is not recorded
    """
    def _op():
        job = load_job(job_id, lock=True)
        current = job.effective_status
        target = next_status(current)
        if target is None:
            raise PreconditionError(f"Job {job.job_number} is already {current.value}; nothing to advance to")
        _require_payments(job, target)

        job.status = target.value
        _clear_override(job)
        job.updated_at = utcnow()
        _log_transition(job, current, target, StatusEventSource.ADVANCE, actor=actor)
        return job

    return run_in_transaction(_op)


def override_lifecycle_status(job_id: int, status, *, actor: str | None = None,
                              reason: str | None = None) -> Job:
    """
    Force the effective status. The natural status is kept underneath.

    Raises:
        ValidationError: unknown status
        PreconditionError: INVOICED/PAID without the matching payment milestone
    """
    target = LifecycleStatus.parse(status)

    def _op():
        job = load_job(job_id, lock=True)
        current = job.effective_status
        _require_payments(job, target)

        now = utcnow()
        job.status_override = target.value
        job.status_override_by = actor
        job.status_override_at = now
        job.updated_at = now
        _log_transition(job, current, target, StatusEventSource.OVERRIDE, actor=actor, reason=reason)
        return job

    job = run_in_transaction(_op)
    current_app.logger.info(
        "Status override on job %s: %s by %s", job.job_number, target.value, actor or "unknown"
    )
    return job


def clear_status_override(job_id: int, *, actor: str | None = None) -> Job:
    """
    Drop the override so the natural status shows again. No-op without one.

    Raises:
        PreconditionError: the natural status needs a milestone that is missing
    """
    def _op():
        job = load_job(job_id, lock=True)
        if not job.status_override:
            return job
        current = job.effective_status
        natural = LifecycleStatus(job.status)
        _require_payments(job, natural)

        _clear_override(job)
        job.updated_at = utcnow()
        _log_transition(job, current, natural, StatusEventSource.CLEAR_OVERRIDE, actor=actor)
        return job

    return run_in_transaction(_op)


def status_history(job_id: int) -> list[dict]:
    job = load_job(job_id, include_deleted=True)
    events = (
        db.session.query(JobStatusEvent)
        .filter(JobStatusEvent.job_id == job.id)
        .order_by(JobStatusEvent.id.asc())
        .all()
    )
    return [e.to_dict() for e in events]
