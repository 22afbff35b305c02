"""
Payment workflow tests.

Covers milestone ordering, the downstream invoice side effect, unset
dependencies and the audit trail.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import text

from brokerage.errors import ConflictError, DependencyError, PreconditionError, ValidationError
from brokerage.models import PaymentEvent
from brokerage.services import lifecycle_service, payment_service
from brokerage.services.repository import load_job


def _paid_through(job_id, *milestones):
    for milestone in milestones:
        payment_service.record_payment_milestone(job_id, milestone)


# =============================================================================
# ORDERING
# =============================================================================

def test_customer_paid_does_not_need_invoice(partner_job, dispatcher):
    result = payment_service.record_payment_milestone(partner_job.id, "CUSTOMER_PAID")

    assert result.job.customer_paid_at is not None
    assert result.job.customer_paid_amount == Decimal("900.00")
    assert result.invoice_dispatched is False
    assert dispatcher.sent_for == []


def test_intermediary_paid_requires_customer_paid(partner_job, dispatcher):
    with pytest.raises(PreconditionError) as exc:
        payment_service.record_payment_milestone(partner_job.id, "INTERMEDIARY_PAID")

    assert exc.value.details["required"] == "CUSTOMER_PAID"
    assert load_job(partner_job.id).intermediary_paid_at is None
    assert dispatcher.sent_for == []


def test_final_vendor_paid_requires_intermediary_paid(partner_job, dispatcher):
    _paid_through(partner_job.id, "CUSTOMER_PAID")
    with pytest.raises(PreconditionError):
        payment_service.record_payment_milestone(partner_job.id, "FINAL_VENDOR_PAID")


def test_unknown_milestone_is_a_validation_error(partner_job):
    with pytest.raises(ValidationError):
        payment_service.record_payment_milestone(partner_job.id, "VENDOR_THANKED")


# =============================================================================
# DOWNSTREAM INVOICE
# =============================================================================

def test_intermediary_paid_dispatches_invoice_exactly_once(partner_job, dispatcher):
    _paid_through(partner_job.id, "CUSTOMER_PAID")
    result = payment_service.record_payment_milestone(partner_job.id, "INTERMEDIARY_PAID", actor="sam")

    assert result.invoice_dispatched is True
    assert result.warnings == []
    assert dispatcher.sent_for == [partner_job.id]
    assert result.job.intermediary_paid_amount == Decimal("397.12")
    assert result.job.downstream_invoice_sent_to == "ap@secondary-shop.test"
    assert result.job.downstream_invoice_sent_at is not None


def test_second_mark_paid_is_rejected_and_sends_nothing(partner_job, dispatcher):
    _paid_through(partner_job.id, "CUSTOMER_PAID", "INTERMEDIARY_PAID")

    with pytest.raises(PreconditionError):
        payment_service.record_payment_milestone(partner_job.id, "INTERMEDIARY_PAID")
    assert dispatcher.sent_for == [partner_job.id]


def test_resend_is_a_separate_action(partner_job, dispatcher):
    _paid_through(partner_job.id, "CUSTOMER_PAID", "INTERMEDIARY_PAID")
    result = payment_service.resend_downstream_invoice(partner_job.id, actor="sam")

    assert result.invoice_dispatched is True
    assert dispatcher.sent_for == [partner_job.id, partner_job.id]


def test_resend_before_intermediary_paid_is_refused(partner_job, dispatcher):
    with pytest.raises(PreconditionError):
        payment_service.resend_downstream_invoice(partner_job.id)
    assert dispatcher.sent_for == []


def test_failed_dispatch_keeps_milestone_and_warns(partner_job, dispatcher):
    _paid_through(partner_job.id, "CUSTOMER_PAID")
    dispatcher.fail_with = "mailbox full"

    result = payment_service.record_payment_milestone(partner_job.id, "INTERMEDIARY_PAID")

    assert result.invoice_dispatched is False
    assert result.warnings == ["Downstream invoice not sent: mailbox full"]
    job = load_job(partner_job.id)
    assert job.intermediary_paid_at is not None
    assert job.downstream_invoice_sent_at is None


def test_raising_dispatcher_keeps_milestone_and_warns(partner_job, dispatcher):
    _paid_through(partner_job.id, "CUSTOMER_PAID")
    dispatcher.raise_with = RuntimeError("smtp down")

    result = payment_service.record_payment_milestone(partner_job.id, "INTERMEDIARY_PAID")

    assert result.invoice_dispatched is False
    assert "smtp down" in result.warnings[0]
    assert load_job(partner_job.id).intermediary_paid_at is not None


# =============================================================================
# UNSET
# =============================================================================

def test_unset_with_later_milestone_set_is_a_dependency_error(partner_job, dispatcher):
    _paid_through(partner_job.id, "CUSTOMER_PAID", "INTERMEDIARY_PAID")

    with pytest.raises(DependencyError) as exc:
        payment_service.unset_payment_milestone(partner_job.id, "CUSTOMER_PAID")
    assert exc.value.details["dependents"] == ["INTERMEDIARY_PAID"]


def test_unset_in_reverse_order_succeeds(partner_job, dispatcher):
    _paid_through(partner_job.id, "CUSTOMER_PAID", "INTERMEDIARY_PAID", "FINAL_VENDOR_PAID")

    for milestone in ("FINAL_VENDOR_PAID", "INTERMEDIARY_PAID", "CUSTOMER_PAID"):
        payment_service.unset_payment_milestone(partner_job.id, milestone, actor="sam")

    job = load_job(partner_job.id)
    assert job.customer_paid_at is None
    assert job.customer_paid_amount is None


def test_unset_milestone_that_status_relies_on(partner_job, dispatcher):
    _paid_through(partner_job.id, "INVOICE_SENT")
    lifecycle_service.override_lifecycle_status(partner_job.id, "INVOICED", actor="sam")

    with pytest.raises(DependencyError) as exc:
        payment_service.unset_payment_milestone(partner_job.id, "INVOICE_SENT")
    assert exc.value.details["status"] == "INVOICED"


def test_unset_when_not_recorded(partner_job):
    with pytest.raises(PreconditionError):
        payment_service.unset_payment_milestone(partner_job.id, "INVOICE_SENT")


# =============================================================================
# AMOUNTS, TIMESTAMPS, AUDIT
# =============================================================================

def test_explicit_amount_timestamp_and_note(partner_job):
    result = payment_service.record_payment_milestone(
        partner_job.id, "CUSTOMER_PAID", at="2026-03-01T15:30:00Z", amount="450.50", note="check #1042",
    )
    assert result.job.customer_paid_at == datetime(2026, 3, 1, 15, 30)
    assert result.job.customer_paid_amount == Decimal("450.50")
    assert result.job.customer_paid_note == "check #1042"


def test_bad_timestamp_is_rejected(partner_job):
    with pytest.raises(ValidationError):
        payment_service.record_payment_milestone(partner_job.id, "CUSTOMER_PAID", at="yesterday")


@pytest.mark.parametrize("amount", ["sNaN", "NaN", "Infinity"])
def test_non_finite_amount_is_rejected(partner_job, amount):
    with pytest.raises(ValidationError):
        payment_service.record_payment_milestone(partner_job.id, "CUSTOMER_PAID", amount=amount)
    assert load_job(partner_job.id).customer_paid_at is None


def test_intermediary_amount_is_left_empty_without_sell_price(make_job, dispatcher):
    job = make_job(quantity=10)
    _paid_through(job.id, "CUSTOMER_PAID")
    result = payment_service.record_payment_milestone(job.id, "INTERMEDIARY_PAID")
    assert result.job.intermediary_paid_amount is None


def test_events_are_logged(partner_job, dispatcher, db_session):
    _paid_through(partner_job.id, "CUSTOMER_PAID", "INTERMEDIARY_PAID")
    payment_service.unset_payment_milestone(partner_job.id, "INTERMEDIARY_PAID", actor="sam")

    actions = [
        (e.milestone, e.action)
        for e in db_session.query(PaymentEvent).filter_by(job_id=partner_job.id).order_by(PaymentEvent.id)
    ]
    assert actions == [
        ("CUSTOMER_PAID", "SET"),
        ("INTERMEDIARY_PAID", "SET"),
        ("INTERMEDIARY_PAID", "DISPATCH"),
        ("INTERMEDIARY_PAID", "UNSET"),
    ]


def test_payment_summary_steps(partner_job, dispatcher):
    summary = payment_service.payment_summary(partner_job.id)
    assert (summary["step"], summary["label"], summary["next_milestone"]) == (1, "Awaiting Payment", "INVOICE_SENT")

    _paid_through(partner_job.id, "CUSTOMER_PAID")
    summary = payment_service.payment_summary(partner_job.id)
    assert (summary["step"], summary["label"]) == (2, "Customer Paid")

    _paid_through(partner_job.id, "INTERMEDIARY_PAID", "FINAL_VENDOR_PAID")
    summary = payment_service.payment_summary(partner_job.id)
    assert (summary["step"], summary["label"]) == (4, "Complete")
    assert summary["next_milestone"] == "INVOICE_SENT"
    assert summary["downstream_invoice"]["sent_to"] == "ap@secondary-shop.test"


# =============================================================================
# CONCURRENT WRITERS
# =============================================================================

def test_losing_writer_gets_conflict_and_nothing_is_merged(partner_job, db_session, monkeypatch):
    def load_then_commit_elsewhere(job_id, **kwargs):
        job = load_job(job_id, **kwargs)
        # another writer bumps the row version after we read it
        db_session.execute(text("UPDATE jobs SET version_id = version_id + 1 WHERE id = :id"), {"id": job_id})
        return job

    monkeypatch.setattr(payment_service, "load_job", load_then_commit_elsewhere)
    with pytest.raises(ConflictError):
        payment_service.record_payment_milestone(partner_job.id, "CUSTOMER_PAID")
    monkeypatch.undo()

    assert load_job(partner_job.id).customer_paid_at is None
    assert db_session.query(PaymentEvent).filter_by(job_id=partner_job.id).count() == 0
