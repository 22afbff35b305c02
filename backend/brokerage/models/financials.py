from __future__ import annotations

from ..extensions import db
from ..money import to_str
from ..time_utils import to_utc_z


class ProfitSplit(db.Model):
    """
    Cached profit split for one job.

    Written only by profit_service; never hand-edited. ``is_stale`` is raised
    whenever an input changes and the next read recomputes.
    """
    __tablename__ = "profit_splits"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, unique=True, index=True)

    routing_type = db.Column(db.String(32), nullable=False)
    costing_basis = db.Column(db.String(32), nullable=False)

    sell_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_cost = db.Column(db.Numeric(12, 2), nullable=False)
    spread = db.Column(db.Numeric(12, 2), nullable=False)

    paper_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    paper_markup = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    mfg_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    revenue = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    gross_profit = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    intermediary_cut = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    final_profit = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    partner_share = db.Column(db.Numeric(12, 2), nullable=False)
    brokerage_share = db.Column(db.Numeric(12, 2), nullable=False)
    margin_percent = db.Column(db.Numeric(7, 2), nullable=False, default=0)

    is_negative = db.Column(db.Boolean, nullable=False, default=False)
    is_stale = db.Column(db.Boolean, nullable=False, default=False)
    calculated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "routing_type": self.routing_type,
            "costing_basis": self.costing_basis,
            "sell_price": to_str(self.sell_price),
            "total_cost": to_str(self.total_cost),
            "spread": to_str(self.spread),
            "paper_cost": to_str(self.paper_cost),
            "paper_markup": to_str(self.paper_markup),
            "mfg_cost": to_str(self.mfg_cost),
            "revenue": to_str(self.revenue),
            "gross_profit": to_str(self.gross_profit),
            "intermediary_cut": to_str(self.intermediary_cut),
            "final_profit": to_str(self.final_profit),
            "partner_share": to_str(self.partner_share),
            "brokerage_share": to_str(self.brokerage_share),
            "margin_percent": to_str(self.margin_percent),
            "is_negative": self.is_negative,
            "is_stale": self.is_stale,
            "calculated_at": to_utc_z(self.calculated_at),
        }
