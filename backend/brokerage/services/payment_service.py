# Overview: Multi-party payment milestones and the downstream invoice they trigger.

"""
Payment Workflow

WHY: Money moves customer -> brokerage -> intermediary -> final vendor, and
each hop may only be recorded once the previous hop happened. The
intermediary payment is also the moment the final vendor gets invoiced.

MILESTONES (in order):
    INVOICE_SENT       customer was invoiced (independent)
    CUSTOMER_PAID      customer paid the brokerage (independent of invoicing)
    INTERMEDIARY_PAID  requires CUSTOMER_PAID; dispatches the downstream invoice
    FINAL_VENDOR_PAID  requires INTERMEDIARY_PAID

DESIGN PRINCIPLES:
- Recording an already-set milestone is rejected; re-sending the downstream
  invoice is a separate action (resend_downstream_invoice)
- The milestone commits before the invoice is dispatched; a failed dispatch
  comes back as a warning and never rolls the payment back
- Unset is explicit and refused while a later milestone, or the job's
  lifecycle status, still relies on it
- Every set/unset/dispatch writes a PaymentEvent row
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..domain import (
    PAYMENT_ORDER,
    PAYMENT_PREREQUISITES,
    STATUS_PAYMENT_REQUIREMENTS,
    PaymentMilestone,
)
from ..errors import BrokerageError, DependencyError, PreconditionError, ValidationError
from ..extensions import db
from ..models import Job, PaymentEvent
from ..money import money
from ..time_utils import milestone_timestamp, to_utc_z, utcnow
from .concurrency import run_in_transaction
from .invoice_dispatch import get_dispatcher
from .profit_service import compute_for_job
from .repository import load_job

ACTION_SET = "SET"
ACTION_UNSET = "UNSET"
ACTION_DISPATCH = "DISPATCH"
ACTION_RESEND = "RESEND"

PAYMENT_STEP_LABELS = {
    1: "Awaiting Payment",
    2: "Customer Paid",
    3: "Intermediary Paid",
    4: "Complete",
}


@dataclass
class MilestoneResult:
    job: Job
    milestone: PaymentMilestone
    warnings: list[str] = field(default_factory=list)
    invoice_dispatched: bool = False

    def to_dict(self) -> dict:
        return {
            "job": self.job.to_dict(),
            "milestone": self.milestone.value,
            "invoice_dispatched": self.invoice_dispatched,
            "warnings": list(self.warnings),
        }


def _log_event(job: Job, milestone: PaymentMilestone, action: str, *, amount=None, note=None,
               previous_at=None, actor=None) -> None:
    db.session.add(PaymentEvent(
        job_id=job.id,
        milestone=milestone.value,
        action=action,
        amount=amount,
        note=note,
        previous_at=previous_at,
        actor=actor,
        occurred_at=utcnow(),
    ))


def _default_amount(job: Job, milestone: PaymentMilestone):
    """Customer pays the sell price; the intermediary gets the partner share."""
    if milestone == PaymentMilestone.CUSTOMER_PAID:
        return job.sell_price
    if milestone == PaymentMilestone.INTERMEDIARY_PAID:
        try:
            return compute_for_job(job).partner_share
        except ValidationError:
            return None
    return None


def _parse_amount(value):
    if value is None or value == "":
        return None
    try:
        amount = money(value)
    except ValueError:
        raise ValidationError("amount must be a decimal amount")
    if amount < 0:
        raise ValidationError("amount cannot be negative")
    return amount


def _parse_at(value):
    try:
        return milestone_timestamp(value)
    except ValueError:
        raise ValidationError("at must be an ISO-8601 timestamp")


# =============================================================================
# RECORD / UNSET
# =============================================================================

def record_payment_milestone(
    job_id: int,
    milestone,
    *,
    at=None,
    amount=None,
    note: str | None = None,
    actor: str | None = None,
) -> MilestoneResult:
    """
    Record one payment milestone.

    Args:
        at: when it happened (defaults to now)
        amount: defaults to sell price (CUSTOMER_PAID) or partner share
            (INTERMEDIARY_PAID) when omitted

    Returns:
        MilestoneResult; ``warnings`` carries a failed invoice dispatch

    Raises:
        PreconditionError: prerequisite milestone missing, or already recorded
    """
    milestone = PaymentMilestone.parse(milestone)
    when = _parse_at(at)
    explicit_amount = _parse_amount(amount)

    def _op():
        job = load_job(job_id, lock=True)
        if job.is_milestone_set(milestone):
            raise PreconditionError(f"{milestone.value} is already recorded for job {job.job_number}")

        required = PAYMENT_PREREQUISITES.get(milestone)
        if required is not None and not job.is_milestone_set(required):
            raise PreconditionError(
                f"{milestone.value} requires {required.value} first",
                details={"required": required.value},
            )

        value = explicit_amount if explicit_amount is not None else _default_amount(job, milestone)
        prefix = milestone.field
        setattr(job, f"{prefix}_at", when)
        setattr(job, f"{prefix}_amount", value)
        setattr(job, f"{prefix}_note", note)
        job.updated_at = utcnow()
        _log_event(job, milestone, ACTION_SET, amount=value, note=note, actor=actor)
        return job

    job = run_in_transaction(_op)
    result = MilestoneResult(job=job, milestone=milestone)

    if milestone == PaymentMilestone.INTERMEDIARY_PAID:
        sent, warning = _dispatch_downstream_invoice(job_id, action=ACTION_DISPATCH, actor=actor)
        result.invoice_dispatched = sent
        if warning:
            result.warnings.append(warning)
        result.job = load_job(job_id)

    return result


def unset_payment_milestone(job_id: int, milestone, *, actor: str | None = None) -> Job:
    """
    Clear a recorded milestone.

    Raises:
        PreconditionError: milestone is not recorded
        DependencyError: a later milestone or the lifecycle status relies on it
    """
    milestone = PaymentMilestone.parse(milestone)

    def _op():
        job = load_job(job_id, lock=True)
        if not job.is_milestone_set(milestone):
            raise PreconditionError(f"{milestone.value} is not recorded for job {job.job_number}")

        dependents = [
            later.value for later, required in PAYMENT_PREREQUISITES.items()
            if required == milestone and job.is_milestone_set(later)
        ]
        if dependents:
            raise DependencyError(
                f"Cannot unset {milestone.value}: {', '.join(dependents)} depends on it",
                details={"dependents": dependents},
            )

        status = job.effective_status
        if STATUS_PAYMENT_REQUIREMENTS.get(status) == milestone:
            raise DependencyError(
                f"Cannot unset {milestone.value}: job status {status.value} depends on it",
                details={"status": status.value},
            )

        prefix = milestone.field
        previous_at = getattr(job, f"{prefix}_at")
        previous_amount = getattr(job, f"{prefix}_amount")
        setattr(job, f"{prefix}_at", None)
        setattr(job, f"{prefix}_amount", None)
        setattr(job, f"{prefix}_note", None)
        job.updated_at = utcnow()
        _log_event(job, milestone, ACTION_UNSET, amount=previous_amount, previous_at=previous_at, actor=actor)
        return job

    return run_in_transaction(_op)


# =============================================================================
# DOWNSTREAM INVOICE
# =============================================================================

def _dispatch_downstream_invoice(job_id: int, *, action: str, actor: str | None) -> tuple[bool, str | None]:
    """
    Send the downstream invoice and record the send.

    Runs after the milestone transaction committed. Returns (sent, warning).
    """
    job = load_job(job_id)
    try:
        outcome = get_dispatcher().send_downstream_invoice(job)
    except Exception as exc:
        current_app.logger.exception("Downstream invoice dispatch raised for job %s", job.job_number)
        return False, f"Downstream invoice not sent: {exc}"

    if not outcome.sent:
        reason = outcome.error or "dispatcher reported failure"
        current_app.logger.warning("Downstream invoice for job %s not sent: %s", job.job_number, reason)
        return False, f"Downstream invoice not sent: {reason}"

    def _op():
        locked = load_job(job_id, lock=True)
        locked.downstream_invoice_sent_at = utcnow()
        locked.downstream_invoice_sent_to = outcome.sent_to
        _log_event(locked, PaymentMilestone.INTERMEDIARY_PAID, action, note=outcome.sent_to, actor=actor)
        return locked

    try:
        run_in_transaction(_op)
    except BrokerageError as exc:
        current_app.logger.warning(
            "Downstream invoice for job %s sent but not recorded: %s", job.job_number, exc.message
        )
        return True, f"Downstream invoice sent but not recorded: {exc.message}"
    return True, None


def resend_downstream_invoice(job_id: int, *, actor: str | None = None) -> MilestoneResult:
    """
    Dispatch the downstream invoice again.

    Raises:
        PreconditionError: intermediary payment not recorded yet
    """
    job = load_job(job_id)
    if not job.is_milestone_set(PaymentMilestone.INTERMEDIARY_PAID):
        raise PreconditionError("Downstream invoice can only be sent after INTERMEDIARY_PAID")

    sent, warning = _dispatch_downstream_invoice(job_id, action=ACTION_RESEND, actor=actor)
    result = MilestoneResult(job=load_job(job_id), milestone=PaymentMilestone.INTERMEDIARY_PAID,
                             invoice_dispatched=sent)
    if warning:
        result.warnings.append(warning)
    return result


# =============================================================================
# SUMMARY
# =============================================================================

def payment_step(job) -> int:
    """
    1: awaiting customer payment
    2: customer paid, awaiting intermediary payment
    3: intermediary paid, awaiting final vendor payment
    4: complete
    """
    if not job.is_milestone_set(PaymentMilestone.CUSTOMER_PAID):
        return 1
    if not job.is_milestone_set(PaymentMilestone.INTERMEDIARY_PAID):
        return 2
    if not job.is_milestone_set(PaymentMilestone.FINAL_VENDOR_PAID):
        return 3
    return 4


def next_milestone(job) -> PaymentMilestone | None:
    for milestone in PAYMENT_ORDER:
        if not job.is_milestone_set(milestone):
            return milestone
    return None


def payment_summary(job_id: int) -> dict:
    job = load_job(job_id)
    step = payment_step(job)
    upcoming = next_milestone(job)
    events = (
        db.session.query(PaymentEvent)
        .filter(PaymentEvent.job_id == job.id)
        .order_by(PaymentEvent.id.asc())
        .all()
    )
    return {
        "job_id": job.id,
        "job_number": job.job_number,
        "step": step,
        "label": PAYMENT_STEP_LABELS[step],
        "next_milestone": upcoming.value if upcoming else None,
        "milestones": job.milestones_dict(),
        "downstream_invoice": {
            "sent_at": to_utc_z(job.downstream_invoice_sent_at),
            "sent_to": job.downstream_invoice_sent_to,
        },
        "events": [e.to_dict() for e in events],
    }
