from __future__ import annotations

from ..domain import INTERNAL_PARTIES
from ..extensions import db
from ..money import to_str
from ..time_utils import to_utc_z


class PurchaseOrder(db.Model):
    """
    Purchase order attached to a job.

    origin/target are party codes (BROKERAGE, PARTNER, SECONDARY_SHOP) or, for
    external vendors, ``target_party`` is "VENDOR" with ``target_vendor_id`` set.
    POs between internal companies are cost basis only.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, index=True)
    po_number = db.Column(db.String(64), nullable=True)

    origin_party = db.Column(db.String(32), nullable=False)
    target_party = db.Column(db.String(32), nullable=False)
    target_vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True)

    buy_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # CPM inputs (partner path)
    paper_cpm = db.Column(db.Numeric(12, 4), nullable=True)
    print_cpm = db.Column(db.Numeric(12, 4), nullable=True)

    # Cost breakdown, recorded as entered
    paper_cost = db.Column(db.Numeric(12, 2), nullable=True)
    paper_markup = db.Column(db.Numeric(12, 2), nullable=True)
    mfg_cost = db.Column(db.Numeric(12, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    target_vendor = db.relationship("Vendor")

    @property
    def is_internal(self) -> bool:
        return self.origin_party in INTERNAL_PARTIES and self.target_party in INTERNAL_PARTIES

    @property
    def billable_to_customer(self) -> bool:
        # Customers are only ever billed off the job's sell price.
        return False

    def is_between(self, origin: str, target: str) -> bool:
        return self.origin_party == str(origin) and self.target_party == str(target)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "po_number": self.po_number,
            "origin_party": self.origin_party,
            "target_party": self.target_party,
            "target_vendor_id": self.target_vendor_id,
            "buy_cost": to_str(self.buy_cost),
            "paper_cpm": to_str(self.paper_cpm),
            "print_cpm": to_str(self.print_cpm),
            "paper_cost": to_str(self.paper_cost),
            "paper_markup": to_str(self.paper_markup),
            "mfg_cost": to_str(self.mfg_cost),
            "is_internal": self.is_internal,
            "billable_to_customer": self.billable_to_customer,
            "created_at": to_utc_z(self.created_at),
        }
