from __future__ import annotations

from ..domain import (
    Computed,
    LifecycleStatus,
    Overridden,
    PaymentMilestone,
    StatusState,
)
from ..extensions import db
from ..money import to_str
from ..time_utils import to_utc_z


class Job(db.Model):
    """
    A brokered print job (the aggregate root).

    Routing type is captured at creation. Lifecycle status and payment
    milestones are tracked independently; the profit split is a cached
    derivative (see ProfitSplit). Jobs are soft-deleted.
    """
    __tablename__ = "jobs"
    __table_args__ = (
        db.UniqueConstraint("job_number", name="uq_jobs_job_number"),
        db.Index("ix_jobs_status_deleted", "status", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    job_number = db.Column(db.String(32), nullable=True)
    title = db.Column(db.String(255), nullable=False, default="")
    customer_name = db.Column(db.String(255), nullable=True)

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)
    routing_type = db.Column(db.String(32), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    sell_price = db.Column(db.Numeric(12, 2), nullable=True)
    size_name = db.Column(db.String(64), nullable=True)
    use_cpm_pricing = db.Column(db.Boolean, nullable=False, default=True)

    # Non-partner intermediary cut: manual amount wins over the auto percentage
    intermediary_cut = db.Column(db.Numeric(12, 2), nullable=True)
    auto_intermediary_cut = db.Column(db.Boolean, nullable=False, default=False)

    # Lifecycle: natural status plus optional operator override
    status = db.Column(db.String(32), nullable=False, default=LifecycleStatus.NEW.value)
    status_override = db.Column(db.String(32), nullable=True)
    status_override_by = db.Column(db.String(128), nullable=True)
    status_override_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Payment milestones (timestamp, amount, note)
    invoice_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    invoice_sent_amount = db.Column(db.Numeric(12, 2), nullable=True)
    invoice_sent_note = db.Column(db.String(255), nullable=True)
    customer_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    customer_paid_amount = db.Column(db.Numeric(12, 2), nullable=True)
    customer_paid_note = db.Column(db.String(255), nullable=True)
    intermediary_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    intermediary_paid_amount = db.Column(db.Numeric(12, 2), nullable=True)
    intermediary_paid_note = db.Column(db.String(255), nullable=True)
    final_vendor_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    final_vendor_paid_amount = db.Column(db.Numeric(12, 2), nullable=True)
    final_vendor_paid_note = db.Column(db.String(255), nullable=True)

    # Downstream invoice (sent to the final vendor when the intermediary is paid)
    downstream_invoice_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    downstream_invoice_sent_to = db.Column(db.String(255), nullable=True)

    # Readiness checklist
    qc_artwork = db.Column(db.String(16), nullable=False, default="PENDING")
    qc_data_files = db.Column(db.String(16), nullable=False, default="NOT_APPLICABLE")
    qc_mailing = db.Column(db.String(16), nullable=False, default="NOT_APPLICABLE")
    qc_supplied_materials = db.Column(db.String(16), nullable=False, default="NOT_APPLICABLE")
    qc_versions = db.Column(db.String(16), nullable=False, default="NOT_APPLICABLE")
    mail_date = db.Column(db.Date, nullable=True)
    po_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    vendor = db.relationship("Vendor", backref=db.backref("jobs", lazy=True))
    line_items = db.relationship(
        "LineItem",
        backref="job",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="LineItem.id",
    )
    purchase_orders = db.relationship(
        "PurchaseOrder",
        backref="job",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="PurchaseOrder.id",
    )
    components = db.relationship(
        "JobComponent",
        backref="job",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="JobComponent.id",
    )
    profit_split = db.relationship(
        "ProfitSplit",
        backref="job",
        uselist=False,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    # -- lifecycle ---------------------------------------------------------

    @property
    def status_state(self) -> StatusState:
        if self.status_override:
            return Overridden(
                value=LifecycleStatus(self.status_override),
                set_by=self.status_override_by,
                set_at=self.status_override_at,
            )
        return Computed(value=LifecycleStatus(self.status))

    @property
    def effective_status(self) -> LifecycleStatus:
        return self.status_state.value

    # -- payments ----------------------------------------------------------

    def milestone_at(self, milestone: PaymentMilestone):
        return getattr(self, f"{milestone.field}_at")

    def is_milestone_set(self, milestone: PaymentMilestone) -> bool:
        return self.milestone_at(milestone) is not None

    def milestones_dict(self) -> dict:
        out = {}
        for milestone in PaymentMilestone:
            prefix = milestone.field
            out[milestone.value] = {
                "at": to_utc_z(getattr(self, f"{prefix}_at")),
                "amount": to_str(getattr(self, f"{prefix}_amount")),
                "note": getattr(self, f"{prefix}_note"),
            }
        return out

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> dict:
        state = self.status_state
        return {
            "id": self.id,
            "job_number": self.job_number,
            "title": self.title,
            "customer_name": self.customer_name,
            "vendor_id": self.vendor_id,
            "routing_type": self.routing_type,
            "quantity": self.quantity,
            "sell_price": to_str(self.sell_price),
            "size_name": self.size_name,
            "use_cpm_pricing": self.use_cpm_pricing,
            "intermediary_cut": to_str(self.intermediary_cut),
            "auto_intermediary_cut": self.auto_intermediary_cut,
            "status": self.status,
            "effective_status": state.value.value,
            "status_override": {
                "value": state.value.value,
                "set_by": state.set_by,
                "set_at": to_utc_z(state.set_at),
            } if state.is_overridden else None,
            "payments": self.milestones_dict(),
            "downstream_invoice_sent_at": to_utc_z(self.downstream_invoice_sent_at),
            "downstream_invoice_sent_to": self.downstream_invoice_sent_to,
            "readiness_flags": {
                "qc_artwork": self.qc_artwork,
                "qc_data_files": self.qc_data_files,
                "qc_mailing": self.qc_mailing,
                "qc_supplied_materials": self.qc_supplied_materials,
                "qc_versions": self.qc_versions,
            },
            "mail_date": self.mail_date.isoformat() if self.mail_date else None,
            "po_sent_at": to_utc_z(self.po_sent_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "deleted_at": to_utc_z(self.deleted_at),
            "version_id": self.version_id,
        }


class LineItem(db.Model):
    """
    Priced line on a job.

    unit_price = unit_cost * (1 + markup_percent / 100) unless the price was
    entered directly, in which case markup_percent is back-derived.
    """
    __tablename__ = "line_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_cost = db.Column(db.Numeric(12, 4), nullable=False, default=0)
    markup_percent = db.Column(db.Numeric(9, 4), nullable=False, default=0)
    unit_price = db.Column(db.Numeric(12, 4), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "description": self.description,
            "quantity": self.quantity,
            "unit_cost": to_str(self.unit_cost),
            "markup_percent": to_str(self.markup_percent),
            "unit_price": to_str(self.unit_price),
            "created_at": to_utc_z(self.created_at),
        }


class JobComponent(db.Model):
    """One part of a multi-part job, possibly from its own supplier."""
    __tablename__ = "job_components"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    supplier = db.Column(db.String(255), nullable=True)
    artwork_status = db.Column(db.String(16), nullable=False, default="PENDING")
    material_status = db.Column(db.String(16), nullable=False, default="PENDING")
    tracking_info = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "name": self.name,
            "supplier": self.supplier,
            "artwork_status": self.artwork_status,
            "material_status": self.material_status,
            "tracking_info": self.tracking_info,
        }
