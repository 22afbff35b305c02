# Overview: Pre-production readiness gate (may the PO go to the vendor yet?).

"""
Readiness Gate

A job is READY when no checklist flag is PENDING and no component is missing
artwork or materials. Once the vendor PO has been sent the job reports SENT
regardless of the flags.

Blockers stop the PO; warnings never do. A mailing job also needs its mail
date before the PO can go. A component whose materials are IN_TRANSIT is
only a warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..domain import READINESS_FLAGS, MaterialStatus, ReadinessFlag, ReadinessStatus
from ..errors import PreconditionError, ValidationError
from ..time_utils import to_utc_z, utcnow
from .concurrency import run_in_transaction
from .repository import load_job


@dataclass
class ReadinessResult:
    status: ReadinessStatus
    blockers: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        return self.status == ReadinessStatus.READY

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "blockers": list(self.blockers),
            "warnings": list(self.warnings),
        }


def _flag(value) -> ReadinessFlag:
    return ReadinessFlag.parse(value or ReadinessFlag.NOT_APPLICABLE)


def evaluate_readiness(job, components) -> ReadinessResult:
    """
    Pure evaluation over a job's flags and components.

    Blocker order is stable: checklist flags first (artwork, data files,
    mailing, supplied materials, versions), then the mail date, then
    components in list order.
    """
    if job.po_sent_at is not None:
        return ReadinessResult(status=ReadinessStatus.SENT)

    blockers: list[str] = []
    warnings: list[str] = []

    for column, message in READINESS_FLAGS.items():
        if _flag(getattr(job, column)) == ReadinessFlag.PENDING:
            blockers.append(message)

    if _flag(job.qc_mailing) != ReadinessFlag.NOT_APPLICABLE and job.mail_date is None:
        blockers.append("Mail date not set")

    for component in components or []:
        label = component.name
        if component.supplier:
            label = f"{component.name} ({component.supplier})"
        if _flag(component.artwork_status) == ReadinessFlag.PENDING:
            blockers.append(f"{label}: artwork not received")
        material = MaterialStatus.parse(component.material_status or MaterialStatus.NOT_APPLICABLE)
        if material == MaterialStatus.PENDING:
            blockers.append(f"{label}: materials not received")
        elif material == MaterialStatus.IN_TRANSIT:
            tracking = f" (tracking {component.tracking_info})" if component.tracking_info else ""
            warnings.append(f"{label}: materials in transit{tracking}")

    status = ReadinessStatus.INCOMPLETE if blockers else ReadinessStatus.READY
    return ReadinessResult(status=status, blockers=blockers, warnings=warnings)


def initial_readiness_flags(*, is_mailing: bool = False, has_supplied_components: bool = False,
                            version_count: int = 1) -> dict:
    """
    Checklist for a new job. Artwork is always required; the rest only when
    the job needs them (mail list, customer-supplied pieces, several versions).
    """
    def needed(flag: bool) -> ReadinessFlag:
        return ReadinessFlag.PENDING if flag else ReadinessFlag.NOT_APPLICABLE

    try:
        version_count = int(version_count or 1)
    except (TypeError, ValueError):
        raise ValidationError("version_count must be an integer")

    return {
        "qc_artwork": ReadinessFlag.PENDING,
        "qc_data_files": needed(is_mailing),
        "qc_mailing": needed(is_mailing),
        "qc_supplied_materials": needed(has_supplied_components),
        "qc_versions": needed(version_count > 1),
    }


# =============================================================================
# PERSISTENCE
# =============================================================================

def evaluate_readiness_for_job(job_id: int) -> ReadinessResult:
    job = load_job(job_id)
    return evaluate_readiness(job, job.components)


def update_readiness_flags(job_id: int, flags: dict):
    """
    Set one or more checklist flags.

    Raises:
        ValidationError: unknown flag name or value
    """
    unknown = set(flags) - set(READINESS_FLAGS)
    if unknown:
        raise ValidationError(
            f"Unknown readiness flag(s): {', '.join(sorted(unknown))}",
            details={"known_flags": list(READINESS_FLAGS)},
        )
    parsed = {column: ReadinessFlag.parse(value) for column, value in flags.items()}

    def _op():
        job = load_job(job_id, lock=True)
        for column, value in parsed.items():
            setattr(job, column, value.value)
        job.updated_at = utcnow()
        return job, evaluate_readiness(job, job.components)

    return run_in_transaction(_op)


def mark_po_sent(job_id: int, *, actor: str | None = None) -> dict:
    """
    Record that the vendor PO went out. Allowed only from READY.

    Repeating the call on a job already SENT is a no-op.

    Raises:
        PreconditionError: job has blockers (listed in details)
    """
    def _op():
        job = load_job(job_id, lock=True)
        result = evaluate_readiness(job, job.components)
        if result.status == ReadinessStatus.SENT:
            return job, False
        if result.status != ReadinessStatus.READY:
            raise PreconditionError(
                "Job is not ready for the vendor PO",
                details={"blockers": result.blockers},
            )
        job.po_sent_at = utcnow()
        job.updated_at = job.po_sent_at
        return job, True

    job, changed = run_in_transaction(_op)
    if changed:
        current_app.logger.info("PO sent for job %s by %s", job.job_number, actor or "unknown")
    return {"job_id": job.id, "po_sent_at": to_utc_z(job.po_sent_at), "changed": changed}
