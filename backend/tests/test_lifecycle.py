import pytest

from brokerage.domain import LIFECYCLE_ORDER, Computed, LifecycleStatus, Overridden
from brokerage.errors import PreconditionError, ValidationError
from brokerage.services import lifecycle_service, payment_service
from brokerage.services.lifecycle_service import next_status


def _advance(job_id, times):
    job = None
    for _ in range(times):
        job = lifecycle_service.advance_lifecycle_status(job_id, actor="ops")
    return job


def test_next_status_walks_the_declared_order():
    walked = [LifecycleStatus.NEW]
    while next_status(walked[-1]) is not None:
        walked.append(next_status(walked[-1]))
    assert tuple(walked) == LIFECYCLE_ORDER
    assert next_status(LifecycleStatus.PAID) is None


def test_advance_moves_exactly_one_step(partner_job):
    job = lifecycle_service.advance_lifecycle_status(partner_job.id)
    assert job.status == "AWAITING_VENDOR_PROOF"
    assert isinstance(job.status_state, Computed)


def test_advance_to_completed_needs_no_payments(partner_job):
    job = _advance(partner_job.id, 7)
    assert job.effective_status == LifecycleStatus.COMPLETED


def test_invoiced_requires_invoice_sent(partner_job):
    _advance(partner_job.id, 7)
    with pytest.raises(PreconditionError) as exc:
        lifecycle_service.advance_lifecycle_status(partner_job.id)
    assert exc.value.details["missing"] == ["INVOICE_SENT"]

    payment_service.record_payment_milestone(partner_job.id, "INVOICE_SENT")
    assert lifecycle_service.advance_lifecycle_status(partner_job.id).status == "INVOICED"


def test_paid_requires_customer_paid_and_is_terminal(partner_job):
    payment_service.record_payment_milestone(partner_job.id, "INVOICE_SENT")
    _advance(partner_job.id, 8)
    with pytest.raises(PreconditionError):
        lifecycle_service.advance_lifecycle_status(partner_job.id)

    payment_service.record_payment_milestone(partner_job.id, "CUSTOMER_PAID")
    job = lifecycle_service.advance_lifecycle_status(partner_job.id)
    assert job.status == "PAID"

    with pytest.raises(PreconditionError):
        lifecycle_service.advance_lifecycle_status(partner_job.id)


def test_override_wins_until_cleared(partner_job):
    job = lifecycle_service.override_lifecycle_status(partner_job.id, "in_production", actor="dana",
                                                      reason="rush job")
    state = job.status_state
    assert isinstance(state, Overridden)
    assert state.value == LifecycleStatus.IN_PRODUCTION
    assert state.set_by == "dana"
    assert state.set_at is not None
    assert job.status == "NEW"

    job = lifecycle_service.clear_status_override(partner_job.id, actor="dana")
    assert job.status_state == Computed(LifecycleStatus.NEW)


def test_override_to_paid_needs_customer_payment(partner_job):
    with pytest.raises(PreconditionError):
        lifecycle_service.override_lifecycle_status(partner_job.id, "PAID")

    payment_service.record_payment_milestone(partner_job.id, "CUSTOMER_PAID")
    job = lifecycle_service.override_lifecycle_status(partner_job.id, "PAID")
    assert job.effective_status == LifecycleStatus.PAID


def test_override_unknown_status(partner_job):
    with pytest.raises(ValidationError):
        lifecycle_service.override_lifecycle_status(partner_job.id, "SHIPPED")


def test_advance_from_override_continues_from_overridden_value(partner_job):
    lifecycle_service.override_lifecycle_status(partner_job.id, "PROOF_RECEIVED")
    job = lifecycle_service.advance_lifecycle_status(partner_job.id)

    assert job.status == "PROOF_SENT_TO_CUSTOMER"
    assert job.status_override is None


def test_clear_without_override_is_a_no_op(partner_job):
    job = lifecycle_service.clear_status_override(partner_job.id)
    assert job.status == "NEW"
    assert lifecycle_service.status_history(partner_job.id) == []


def test_history_separates_overrides_from_progression(partner_job):
    lifecycle_service.advance_lifecycle_status(partner_job.id, actor="ops")
    lifecycle_service.override_lifecycle_status(partner_job.id, "IN_PRODUCTION", actor="dana", reason="rush")
    lifecycle_service.clear_status_override(partner_job.id, actor="dana")

    history = lifecycle_service.status_history(partner_job.id)
    assert [(h["from_status"], h["to_status"], h["source"]) for h in history] == [
        ("NEW", "AWAITING_VENDOR_PROOF", "ADVANCE"),
        ("AWAITING_VENDOR_PROOF", "IN_PRODUCTION", "OVERRIDE"),
        ("IN_PRODUCTION", "AWAITING_VENDOR_PROOF", "CLEAR_OVERRIDE"),
    ]
    assert history[1]["reason"] == "rush"
