# Overview: Flask API routes for vendor operations; parses input and returns JSON responses.

"""
Vendor Routes

The partner flag set here is read when a job is created; it never
reclassifies existing jobs.
"""

from flask import Blueprint, current_app, jsonify, request

from ..errors import BrokerageError, error_response
from ..services import vendor_service
from .common import request_json

vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


@vendors_bp.get("")
def list_vendors_route():
    """
    List vendors.

    Query parameters:
    - include_inactive: Include inactive vendors (default: false)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    vendors = vendor_service.list_vendors(active_only=not include_inactive)
    return jsonify({"items": [v.to_dict() for v in vendors], "count": len(vendors)})


@vendors_bp.post("")
def create_vendor_route():
    """
    Create a vendor.

    Request body:
    {
        "name": "Vendor Name",   // required
        "vendor_code": "VCODE",  // optional, unique
        "email": "...",          // optional
        "is_partner": false      // optional
    }
    """
    try:
        data = request_json()
        vendor = vendor_service.create_vendor(
            name=data.get("name"),
            vendor_code=data.get("vendor_code"),
            email=data.get("email"),
            is_partner=data.get("is_partner", False),
        )
        return jsonify(vendor.to_dict()), 201
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create vendor")
        return jsonify({"error": "Internal server error"}), 500


@vendors_bp.patch("/<int:vendor_id>")
def update_vendor_route(vendor_id: int):
    try:
        vendor = vendor_service.update_vendor(vendor_id, request_json())
        return jsonify(vendor.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update vendor")
        return jsonify({"error": "Internal server error"}), 500
