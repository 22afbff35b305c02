from brokerage.models import JobStatusEvent
from brokerage.services import maintenance_service, payment_service
from brokerage.services.maintenance_service import REPAIR_REASON
from brokerage.services.repository import load_job


def _force(db_session, job, **columns):
    """Write status columns directly, the way a legacy import would."""
    for column, value in columns.items():
        setattr(job, column, value)
    db_session.commit()


def test_consistent_jobs_are_not_reported(partner_job):
    payment_service.record_payment_milestone(partner_job.id, "INVOICE_SENT")
    assert maintenance_service.find_status_inconsistencies() == []


def test_paid_without_any_payment_is_reported(partner_job, db_session):
    _force(db_session, partner_job, status="PAID")

    found = maintenance_service.find_status_inconsistencies()
    assert len(found) == 1
    assert found[0]["job_id"] == partner_job.id
    assert found[0]["issues"] == ["PAID requires CUSTOMER_PAID"]
    assert found[0]["repair_to"] == "COMPLETED"
    assert found[0]["is_overridden"] is False


def test_paid_with_invoice_sent_repairs_to_invoiced(partner_job, db_session):
    payment_service.record_payment_milestone(partner_job.id, "INVOICE_SENT")
    _force(db_session, load_job(partner_job.id), status="PAID")

    assert maintenance_service.find_status_inconsistencies()[0]["repair_to"] == "INVOICED"


def test_dry_run_changes_nothing(partner_job, db_session):
    _force(db_session, partner_job, status_override="INVOICED")

    outcome = maintenance_service.repair_status_inconsistencies()
    assert outcome["applied"] is False
    assert outcome["jobs"][0]["is_overridden"] is True
    assert load_job(partner_job.id).status_override == "INVOICED"


def test_apply_repairs_and_logs_event(partner_job, db_session):
    _force(db_session, partner_job, status_override="INVOICED", status_override_by="import")

    outcome = maintenance_service.repair_status_inconsistencies(apply=True)
    assert outcome["repaired"] == [partner_job.id]

    job = load_job(partner_job.id)
    assert job.status == "COMPLETED"
    assert job.status_override is None

    event = db_session.query(JobStatusEvent).filter_by(job_id=partner_job.id).one()
    assert (event.from_status, event.to_status, event.source) == ("INVOICED", "COMPLETED", "REPAIR")
    assert event.actor == "maintenance"
    assert event.reason == REPAIR_REASON

    assert maintenance_service.find_status_inconsistencies() == []


def test_limit_caps_the_report(make_job, db_session):
    for _ in range(3):
        _force(db_session, make_job(), status="PAID")
    assert len(maintenance_service.find_status_inconsistencies(limit=2)) == 2
