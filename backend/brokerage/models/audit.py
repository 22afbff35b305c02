from __future__ import annotations

from ..extensions import db
from ..money import to_str
from ..time_utils import to_utc_z


class PaymentEvent(db.Model):
    """
    Append-only log of payment milestone changes.

    WHY: milestones are plain columns on Job so they can be unset; this table
    keeps what was set, by whom, and what it replaced.
    """
    __tablename__ = "payment_events"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, index=True)
    milestone = db.Column(db.String(32), nullable=False)
    action = db.Column(db.String(16), nullable=False)  # SET, UNSET, DISPATCH, RESEND
    amount = db.Column(db.Numeric(12, 2), nullable=True)
    note = db.Column(db.String(255), nullable=True)
    previous_at = db.Column(db.DateTime(timezone=True), nullable=True)
    actor = db.Column(db.String(128), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "milestone": self.milestone,
            "action": self.action,
            "amount": to_str(self.amount),
            "note": self.note,
            "previous_at": to_utc_z(self.previous_at),
            "actor": self.actor,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class JobStatusEvent(db.Model):
    """Lifecycle audit trail; ``source`` separates natural progression from overrides."""
    __tablename__ = "job_status_events"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, index=True)
    from_status = db.Column(db.String(32), nullable=True)
    to_status = db.Column(db.String(32), nullable=False)
    source = db.Column(db.String(16), nullable=False)
    actor = db.Column(db.String(128), nullable=True)
    reason = db.Column(db.String(255), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "source": self.source,
            "actor": self.actor,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }
