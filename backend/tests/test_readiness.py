from datetime import date, datetime
from types import SimpleNamespace

import pytest

from brokerage.domain import READINESS_FLAGS, ReadinessStatus
from brokerage.errors import PreconditionError, ValidationError
from brokerage.services import job_service, readiness_service
from brokerage.services.readiness_service import evaluate_readiness


def _job(**flags):
    base = {column: "NOT_APPLICABLE" for column in READINESS_FLAGS}
    base.update(mail_date=date(2026, 11, 2), po_sent_at=None)
    base.update(flags)
    return SimpleNamespace(**base)


def _component(name="Insert", supplier=None, artwork="COMPLETE", material="COMPLETE", tracking=None):
    return SimpleNamespace(name=name, supplier=supplier, artwork_status=artwork,
                           material_status=material, tracking_info=tracking)


def test_all_flags_not_applicable_is_ready():
    result = evaluate_readiness(_job(), [])
    assert result.status == ReadinessStatus.READY
    assert result.blockers == []
    assert result.is_ready


@pytest.mark.parametrize("column", list(READINESS_FLAGS))
def test_single_pending_flag_blocks(column):
    result = evaluate_readiness(_job(**{column: "PENDING"}), [])
    assert result.status == ReadinessStatus.INCOMPLETE
    assert result.blockers == [READINESS_FLAGS[column]]


def test_component_blockers_name_the_supplier():
    components = [
        _component("Envelope", supplier="Acme Envelope", artwork="PENDING", material="PENDING"),
        _component("Reply card"),
    ]
    result = evaluate_readiness(_job(qc_artwork="COMPLETE"), components)

    assert result.blockers == [
        "Envelope (Acme Envelope): artwork not received",
        "Envelope (Acme Envelope): materials not received",
    ]


def test_in_transit_materials_warn_but_do_not_block():
    result = evaluate_readiness(_job(), [_component("Envelope", material="IN_TRANSIT", tracking="1Z999")])
    assert result.is_ready
    assert result.warnings == ["Envelope: materials in transit (tracking 1Z999)"]


def test_mailing_job_without_mail_date_is_blocked():
    result = evaluate_readiness(_job(qc_mailing="COMPLETE", mail_date=None), [])
    assert result.status == ReadinessStatus.INCOMPLETE
    assert result.blockers == ["Mail date not set"]

    pending = evaluate_readiness(_job(qc_mailing="PENDING", mail_date=None), [])
    assert pending.blockers == ["Mailing information incomplete", "Mail date not set"]


def test_mail_date_is_ignored_for_non_mailing_jobs():
    assert evaluate_readiness(_job(mail_date=None), []).is_ready


def test_po_sent_reports_sent_whatever_the_flags():
    result = evaluate_readiness(_job(qc_artwork="PENDING", po_sent_at=datetime(2026, 1, 5)), [])
    assert result.status == ReadinessStatus.SENT
    assert result.blockers == []


# =============================================================================
# PERSISTENCE
# =============================================================================

def test_mark_po_sent_refuses_until_ready(partner_job):
    with pytest.raises(PreconditionError) as exc:
        readiness_service.mark_po_sent(partner_job.id)
    assert exc.value.details["blockers"] == ["Artwork not received"]

    job, result = readiness_service.update_readiness_flags(partner_job.id, {"qc_artwork": "complete"})
    assert job.qc_artwork == "COMPLETE"
    assert result.is_ready

    sent = readiness_service.mark_po_sent(partner_job.id, actor="ops")
    assert sent["changed"] is True
    assert sent["po_sent_at"].endswith("Z")
    assert readiness_service.evaluate_readiness_for_job(partner_job.id).status == ReadinessStatus.SENT

    again = readiness_service.mark_po_sent(partner_job.id)
    assert again["changed"] is False
    assert again["po_sent_at"] == sent["po_sent_at"]


def test_component_progress_unblocks(partner_job):
    readiness_service.update_readiness_flags(partner_job.id, {"qc_artwork": "COMPLETE"})
    component = job_service.add_component(partner_job.id, name="Insert", supplier="Customer")
    assert readiness_service.evaluate_readiness_for_job(partner_job.id).blockers == [
        "Insert (Customer): artwork not received",
        "Insert (Customer): materials not received",
    ]

    job_service.update_component(component.id, {"artwork_status": "COMPLETE", "material_status": "IN_TRANSIT",
                                                "tracking_info": "1Z42"})
    result = readiness_service.evaluate_readiness_for_job(partner_job.id)
    assert result.is_ready
    assert result.warnings == ["Insert (Customer): materials in transit (tracking 1Z42)"]


def test_unknown_flag_or_value_is_rejected(partner_job):
    with pytest.raises(ValidationError):
        readiness_service.update_readiness_flags(partner_job.id, {"qc_color_proof": "COMPLETE"})
    with pytest.raises(ValidationError):
        readiness_service.update_readiness_flags(partner_job.id, {"qc_artwork": "DONE"})


def test_version_count_must_be_numeric():
    with pytest.raises(ValidationError):
        readiness_service.initial_readiness_flags(version_count="several")


def test_mailing_job_waits_for_its_mail_date(make_job):
    job = make_job(is_mailing=True)
    readiness_service.update_readiness_flags(job.id, {"qc_artwork": "COMPLETE", "qc_data_files": "COMPLETE",
                                                      "qc_mailing": "COMPLETE"})
    with pytest.raises(PreconditionError) as exc:
        readiness_service.mark_po_sent(job.id)
    assert exc.value.details["blockers"] == ["Mail date not set"]

    job_service.update_job(job.id, {"mail_date": "2026-11-02"})
    assert readiness_service.mark_po_sent(job.id)["changed"] is True
