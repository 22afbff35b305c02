# Overview: Vendor records used for routing classification at job creation.

"""
Vendor Service

Vendors carry the partner flag the routing classifier reads. Changing a
vendor never touches jobs already created for it: routing is stored on the
job.
"""

from __future__ import annotations

from ..errors import ValidationError
from ..extensions import db
from ..models import Vendor
from .concurrency import run_in_transaction
from .repository import load_vendor


def _normalize_code(code: str | None) -> str | None:
    if not code:
        return None
    code = code.strip().upper()
    return code or None


def _check_code_free(code: str | None, *, exclude_id: int | None = None) -> None:
    if not code:
        return
    query = db.session.query(Vendor).filter(Vendor.vendor_code == code)
    if exclude_id is not None:
        query = query.filter(Vendor.id != exclude_id)
    if query.first() is not None:
        raise ValidationError(f"Vendor code '{code}' already exists")


def create_vendor(*, name: str, vendor_code: str | None = None, email: str | None = None,
                  is_partner: bool = False) -> Vendor:
    """
    Create a vendor.

    Raises:
        ValidationError: missing name or duplicate code
    """
    if not name or not name.strip():
        raise ValidationError("Vendor name is required")
    code = _normalize_code(vendor_code)

    def _op():
        _check_code_free(code)
        vendor = Vendor(name=name.strip(), vendor_code=code, email=email, is_partner=bool(is_partner))
        db.session.add(vendor)
        db.session.flush()
        return vendor

    return run_in_transaction(_op)


def update_vendor(vendor_id: int, changes: dict) -> Vendor:
    allowed = {"name", "vendor_code", "email", "is_partner", "is_active"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

    def _op():
        vendor = load_vendor(vendor_id)
        if "name" in changes:
            if not (changes["name"] or "").strip():
                raise ValidationError("Vendor name is required")
            vendor.name = changes["name"].strip()
        if "vendor_code" in changes:
            code = _normalize_code(changes["vendor_code"])
            _check_code_free(code, exclude_id=vendor.id)
            vendor.vendor_code = code
        if "email" in changes:
            vendor.email = changes["email"]
        for flag in ("is_partner", "is_active"):
            if flag in changes:
                setattr(vendor, flag, bool(changes[flag]))
        return vendor

    return run_in_transaction(_op)


def list_vendors(*, active_only: bool = True) -> list[Vendor]:
    query = db.session.query(Vendor)
    if active_only:
        query = query.filter(Vendor.is_active.is_(True))
    return query.order_by(Vendor.name.asc()).all()
