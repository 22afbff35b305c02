from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Vendor(db.Model):
    """
    Fulfillment vendor (print shop, mail house, partner).

    ``is_partner`` marks the preferred printing partner. It is read once when a
    job is created; flipping it later never reclassifies existing jobs.
    """
    __tablename__ = "vendors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    vendor_code = db.Column(db.String(64), nullable=True, unique=True)
    email = db.Column(db.String(255), nullable=True)
    is_partner = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "vendor_code": self.vendor_code,
            "email": self.email,
            "is_partner": self.is_partner,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
