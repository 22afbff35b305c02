# Overview: Routing classification for new jobs.

from __future__ import annotations

from ..domain import PARTNER_VENDOR_CODE, RoutingType


def is_partner_vendor(vendor) -> bool:
    """Partner flag, or the reserved partner vendor code for older vendor rows."""
    if vendor is None:
        return False
    if getattr(vendor, "is_partner", False):
        return True
    code = getattr(vendor, "vendor_code", None)
    return bool(code) and code.strip().upper() == PARTNER_VENDOR_CODE


def classify_routing(vendor, *, bills_secondary_shop_directly: bool = False) -> RoutingType:
    """
    Decide which fulfillment path a job follows.

    - assigned vendor is the preferred partner -> PARTNER_ROUTED
    - job skips the partner and is billed straight to the secondary shop -> DIRECT_ROUTED
    - anything else -> THIRD_PARTY_ROUTED

    Called once at job creation; the result is stored on the job.
    """
    if is_partner_vendor(vendor):
        return RoutingType.PARTNER_ROUTED
    if bills_secondary_shop_directly:
        return RoutingType.DIRECT_ROUTED
    return RoutingType.THIRD_PARTY_ROUTED
