# Overview: Closed enums and value types shared by models, services and routes.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from .errors import ValidationError


class _Choice(str, Enum):
    """String-valued enum validated once at the system boundary."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except (ValueError, AttributeError):
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError(f"Invalid {cls.__name__} '{value}'. Must be one of: {allowed}")

    def __str__(self) -> str:
        return self.value


# =============================================================================
# PARTIES
# =============================================================================

class Party(_Choice):
    """Internal companies that appear as PO origin/target."""

    BROKERAGE = "BROKERAGE"
    PARTNER = "PARTNER"
    SECONDARY_SHOP = "SECONDARY_SHOP"


INTERNAL_PARTIES = frozenset(p.value for p in Party)
PARTNER_VENDOR_CODE = "PARTNER"


# =============================================================================
# ROUTING
# =============================================================================

class RoutingType(_Choice):
    PARTNER_ROUTED = "PARTNER_ROUTED"
    DIRECT_ROUTED = "DIRECT_ROUTED"
    THIRD_PARTY_ROUTED = "THIRD_PARTY_ROUTED"


class CostingBasis(_Choice):
    CPM = "CPM"
    PURCHASE_ORDERS = "PURCHASE_ORDERS"
    LINE_ITEMS = "LINE_ITEMS"


# =============================================================================
# PAYMENT MILESTONES
# =============================================================================

class PaymentMilestone(_Choice):
    INVOICE_SENT = "INVOICE_SENT"
    CUSTOMER_PAID = "CUSTOMER_PAID"
    INTERMEDIARY_PAID = "INTERMEDIARY_PAID"
    FINAL_VENDOR_PAID = "FINAL_VENDOR_PAID"

    @property
    def field(self) -> str:
        """Column prefix on Job (``customer_paid`` -> customer_paid_at, ...)."""
        return self.value.lower()


PAYMENT_ORDER = (
    PaymentMilestone.INVOICE_SENT,
    PaymentMilestone.CUSTOMER_PAID,
    PaymentMilestone.INTERMEDIARY_PAID,
    PaymentMilestone.FINAL_VENDOR_PAID,
)

# milestone -> milestone it requires. INVOICE_SENT and CUSTOMER_PAID stand alone
# (customer payment is tracked even when invoicing happened out of band).
PAYMENT_PREREQUISITES = {
    PaymentMilestone.INTERMEDIARY_PAID: PaymentMilestone.CUSTOMER_PAID,
    PaymentMilestone.FINAL_VENDOR_PAID: PaymentMilestone.INTERMEDIARY_PAID,
}


# =============================================================================
# LIFECYCLE
# =============================================================================

class LifecycleStatus(_Choice):
    NEW = "NEW"
    AWAITING_VENDOR_PROOF = "AWAITING_VENDOR_PROOF"
    PROOF_RECEIVED = "PROOF_RECEIVED"
    PROOF_SENT_TO_CUSTOMER = "PROOF_SENT_TO_CUSTOMER"
    AWAITING_CUSTOMER_RESPONSE = "AWAITING_CUSTOMER_RESPONSE"
    APPROVED_PENDING_VENDOR = "APPROVED_PENDING_VENDOR"
    IN_PRODUCTION = "IN_PRODUCTION"
    COMPLETED = "COMPLETED"
    INVOICED = "INVOICED"
    PAID = "PAID"

    @property
    def order(self) -> int:
        return LIFECYCLE_ORDER.index(self)


LIFECYCLE_ORDER = tuple(LifecycleStatus)

# Entering these statuses needs the payment workflow to agree
STATUS_PAYMENT_REQUIREMENTS = {
    LifecycleStatus.INVOICED: PaymentMilestone.INVOICE_SENT,
    LifecycleStatus.PAID: PaymentMilestone.CUSTOMER_PAID,
}


class StatusEventSource(_Choice):
    ADVANCE = "ADVANCE"
    OVERRIDE = "OVERRIDE"
    CLEAR_OVERRIDE = "CLEAR_OVERRIDE"
    REPAIR = "REPAIR"


@dataclass(frozen=True)
class Computed:
    """Status follows natural progression."""

    value: LifecycleStatus
    is_overridden = False


@dataclass(frozen=True)
class Overridden:
    """Status was forced by an operator."""

    value: LifecycleStatus
    set_by: str | None
    set_at: datetime | None
    is_overridden = True


StatusState = Union[Computed, Overridden]


# =============================================================================
# READINESS
# =============================================================================

class ReadinessFlag(_Choice):
    COMPLETE = "COMPLETE"
    PENDING = "PENDING"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class MaterialStatus(_Choice):
    COMPLETE = "COMPLETE"
    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class ReadinessStatus(_Choice):
    READY = "READY"
    INCOMPLETE = "INCOMPLETE"
    SENT = "SENT"


# Job column -> blocker message when the flag is PENDING
READINESS_FLAGS = {
    "qc_artwork": "Artwork not received",
    "qc_data_files": "Data files not received",
    "qc_mailing": "Mailing information incomplete",
    "qc_supplied_materials": "Supplied materials not received",
    "qc_versions": "Version breakdown incomplete",
}
