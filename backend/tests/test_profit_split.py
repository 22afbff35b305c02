"""
Profit split calculation tests.

The pure calculator is exercised with plain namespaces; the cached record
is exercised through the services against the test database.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from brokerage.domain import CostingBasis, RoutingType
from brokerage.errors import ValidationError
from brokerage.models import LineItem, PurchaseOrder
from brokerage.services import job_service, line_item_service, profit_service
from brokerage.services.cpm_pricing import CPM_TABLE
from brokerage.services.profit_service import compute_profit_split
from brokerage.services.repository import load_job


def _job(**fields):
    base = dict(
        routing_type="PARTNER_ROUTED",
        sell_price=Decimal("900.00"),
        quantity=5000,
        size_name="6 x 9",
        use_cpm_pricing=True,
        intermediary_cut=None,
        auto_intermediary_cut=False,
    )
    base.update(fields)
    return SimpleNamespace(**base)


def _line(quantity, unit_cost, unit_price):
    return LineItem(description="line", quantity=quantity, unit_cost=Decimal(unit_cost),
                    markup_percent=Decimal("0"), unit_price=Decimal(unit_price))


def _po(origin, target, buy_cost, paper_markup=None):
    return PurchaseOrder(origin_party=origin, target_party=target, buy_cost=Decimal(buy_cost),
                         paper_markup=None if paper_markup is None else Decimal(paper_markup))


# =============================================================================
# PARTNER ROUTED
# =============================================================================

def test_partner_cpm_scenario_six_by_nine():
    result = compute_profit_split(_job(), [], [])

    assert result.costing_basis == CostingBasis.CPM
    assert result.paper_cost == Decimal("68.00")
    assert result.paper_markup == Decimal("12.24")
    assert result.mfg_cost == Decimal("50.00")
    assert result.total_cost == Decimal("130.24")
    assert result.spread == Decimal("769.76")
    assert result.brokerage_share == Decimal("384.88")
    assert result.partner_share == Decimal("397.12")
    assert result.margin_percent == Decimal("85.53")
    assert result.warnings == []
    assert not result.is_negative


@pytest.mark.parametrize("size", list(CPM_TABLE))
@pytest.mark.parametrize("quantity", [1, 333, 1000, 2500, 5001, 77777])
def test_partner_shares_add_up_to_spread_plus_markup(size, quantity):
    for sell in ("0.01", "99.99", "1234.57", "25000.00"):
        result = compute_profit_split(_job(size_name=size, quantity=quantity, sell_price=Decimal(sell)), [], [])
        assert result.partner_share + result.brokerage_share == result.spread + result.paper_markup


def test_negative_spread_is_reported_not_clamped():
    result = compute_profit_split(_job(sell_price=Decimal("100.00")), [], [])

    assert result.spread == Decimal("-30.24")
    assert result.brokerage_share == Decimal("-15.12")
    assert result.partner_share == Decimal("-2.88")
    assert result.is_negative
    assert any("Negative spread" in w for w in result.warnings)


def test_partner_without_cpm_uses_recorded_po_values():
    pos = [
        _po("BROKERAGE", "PARTNER", "500.00", paper_markup="20.00"),
        _po("PARTNER", "SECONDARY_SHOP", "400.00"),
        _po("BROKERAGE", "VENDOR", "75.00"),
    ]
    result = compute_profit_split(_job(use_cpm_pricing=False), [], pos)

    assert result.costing_basis == CostingBasis.PURCHASE_ORDERS
    assert result.total_cost == Decimal("500.00")
    assert result.paper_markup == Decimal("20.00")
    assert result.spread == Decimal("400.00")
    assert result.brokerage_share == Decimal("200.00")
    assert result.partner_share == Decimal("220.00")


def test_unknown_size_falls_back_to_purchase_orders():
    result = compute_profit_split(_job(size_name="11 x 17"), [], [_po("BROKERAGE", "PARTNER", "300.00")])
    assert result.costing_basis == CostingBasis.PURCHASE_ORDERS
    assert result.total_cost == Decimal("300.00")
    assert result.paper_markup == Decimal("0.00")


def test_zero_quantity_falls_back_to_purchase_orders():
    result = compute_profit_split(_job(quantity=0), [], [])
    assert result.costing_basis == CostingBasis.PURCHASE_ORDERS
    assert result.spread == Decimal("900.00")


# =============================================================================
# LINE ITEM ROUTED
# =============================================================================

def test_third_party_auto_cut_scenario():
    job = _job(routing_type="THIRD_PARTY_ROUTED", sell_price=Decimal("1000.00"), auto_intermediary_cut=True)
    lines = [_line(1, "600.00", "1000.00")]
    result = compute_profit_split(job, lines, [])

    assert result.costing_basis == CostingBasis.LINE_ITEMS
    assert result.revenue == Decimal("1000.00")
    assert result.total_cost == Decimal("600.00")
    assert result.gross_profit == Decimal("400.00")
    assert result.intermediary_cut == Decimal("140.00")
    assert result.final_profit == Decimal("260.00")
    assert result.partner_share == Decimal("140.00")
    assert result.brokerage_share == Decimal("260.00")
    assert result.margin_percent == Decimal("40.00")


def test_manual_cut_wins_and_may_exceed_gross_profit():
    job = _job(routing_type="DIRECT_ROUTED", sell_price=Decimal("1000.00"),
               intermediary_cut=Decimal("500.00"), auto_intermediary_cut=True)
    result = compute_profit_split(job, [_line(10, "60.00", "100.00")], [])

    assert result.gross_profit == Decimal("400.00")
    assert result.intermediary_cut == Decimal("500.00")
    assert result.final_profit == result.gross_profit - result.intermediary_cut == Decimal("-100.00")
    assert result.is_negative
    assert any("Negative final profit" in w for w in result.warnings)


def test_no_cut_when_auto_disabled():
    job = _job(routing_type="THIRD_PARTY_ROUTED", sell_price=Decimal("50.00"))
    result = compute_profit_split(job, [_line(3, "10.00", "15.00")], [])
    assert result.intermediary_cut == Decimal("0")
    assert result.final_profit == Decimal("15.00")


def test_explicit_routing_argument_overrides_job_field():
    job = _job(routing_type="PARTNER_ROUTED", sell_price=Decimal("1000.00"))
    result = compute_profit_split(job, [_line(1, "600.00", "1000.00")], [], RoutingType.DIRECT_ROUTED)
    assert result.routing_type == RoutingType.DIRECT_ROUTED
    assert result.costing_basis == CostingBasis.LINE_ITEMS


@pytest.mark.parametrize("sell_price", [None, Decimal("0"), Decimal("-5.00")])
def test_missing_or_non_positive_sell_price_is_rejected(sell_price):
    with pytest.raises(ValidationError):
        compute_profit_split(_job(sell_price=sell_price), [], [])


# =============================================================================
# CACHED RECORD
# =============================================================================

def test_cached_split_is_written_on_first_read(partner_job):
    split = profit_service.get_profit_split(partner_job.id)

    assert split.partner_share == Decimal("397.12")
    assert split.brokerage_share == Decimal("384.88")
    assert split.costing_basis == "CPM"
    assert split.is_stale is False


def test_sell_price_edit_invalidates_and_read_recomputes(partner_job):
    profit_service.get_profit_split(partner_job.id)
    job_service.update_job(partner_job.id, {"sell_price": "1000.00"})

    job = load_job(partner_job.id)
    assert job.profit_split.is_stale is True

    split = profit_service.get_profit_split(partner_job.id)
    assert split.is_stale is False
    assert split.spread == Decimal("869.76")


def test_title_edit_keeps_cache_fresh(partner_job):
    profit_service.get_profit_split(partner_job.id)
    job = job_service.update_job(partner_job.id, {"title": "Renamed"})
    assert job.profit_split.is_stale is False


def test_line_item_add_invalidates(third_party_job):
    line_item_service.add_line_item(third_party_job.id, description="Print", quantity=1,
                                    unit_cost="600", unit_price="1000")
    first = profit_service.get_profit_split(third_party_job.id)
    assert first.gross_profit == Decimal("400.00")

    line_item_service.add_line_item(third_party_job.id, description="Envelopes", quantity=100,
                                    unit_cost="1", markup_percent="50")
    split = profit_service.get_profit_split(third_party_job.id)
    assert split.total_cost == Decimal("700.00")
    assert split.revenue == Decimal("1150.00")
    assert split.gross_profit == Decimal("450.00")


def test_routing_change_invalidates(third_party_job):
    line_item_service.add_line_item(third_party_job.id, description="Print", quantity=1,
                                    unit_cost="600", unit_price="1000")
    profit_service.get_profit_split(third_party_job.id)
    job = job_service.change_routing_type(third_party_job.id, "DIRECT_ROUTED")
    assert job.profit_split.is_stale is True
    assert profit_service.get_profit_split(third_party_job.id).routing_type == "DIRECT_ROUTED"


def test_recompute_refusal_persists_nothing(make_job):
    job = make_job(quantity=100)
    with pytest.raises(ValidationError):
        profit_service.recalculate_profit_split(job.id)
    assert load_job(job.id).profit_split is None


def test_recalculate_all_reports_skipped_jobs(partner_job, make_job):
    no_price = make_job(quantity=10)
    outcome = profit_service.recalculate_all()

    assert partner_job.id in outcome["updated"]
    assert [s["job_id"] for s in outcome["skipped"]] == [no_price.id]
