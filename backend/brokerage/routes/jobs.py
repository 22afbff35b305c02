# Overview: Flask API routes for jobs and their line items, purchase orders and components.

"""
Job API Routes

DESIGN:
- Routing is classified once on create; PATCH cannot change it
  (PUT /routing is the explicit reclassification)
- Any edit that feeds the profit split marks the cached split stale
- Soft delete only; the job and its financial rows stay in the database
"""

from flask import Blueprint, current_app, jsonify, request

from ..domain import LifecycleStatus, RoutingType
from ..errors import BrokerageError, error_response
from ..services import job_service, line_item_service, readiness_service
from ..services.repository import list_jobs, load_job
from .common import request_actor, request_json

jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")


def _job_detail(job) -> dict:
    body = job.to_dict()
    body["line_items"] = [li.to_dict() for li in job.line_items]
    body["purchase_orders"] = [po.to_dict() for po in job.purchase_orders]
    body["components"] = [c.to_dict() for c in job.components]
    return body


# =============================================================================
# JOBS
# =============================================================================

@jobs_bp.get("")
def list_jobs_route():
    """
    List jobs, newest first.

    Query parameters:
    - routing_type: PARTNER_ROUTED | DIRECT_ROUTED | THIRD_PARTY_ROUTED
    - status: effective lifecycle status
    - limit: default 200, max 500
    """
    try:
        routing = request.args.get("routing_type")
        status = request.args.get("status")
        limit = request.args.get("limit", 200, type=int)
        limit = max(1, min(limit, 500))

        jobs = list_jobs(
            routing_type=RoutingType.parse(routing).value if routing else None,
            status=LifecycleStatus.parse(status).value if status else None,
            limit=limit,
        )
        return jsonify({"items": [j.to_dict() for j in jobs], "count": len(jobs)})
    except BrokerageError as e:
        return error_response(e)


@jobs_bp.post("")
def create_job_route():
    """
    Create a job. Routing is derived from the vendor.

    Request body:
    {
        "title": "Spring mailer",               // required
        "vendor_id": 3,                          // optional
        "bills_secondary_shop_directly": false,  // optional
        "customer_name": "...",
        "quantity": 5000,
        "sell_price": "900.00",
        "size_name": "6x9",                      // normalized to "6 x 9"
        "job_number": "J-...",                   // optional, generated otherwise
        "is_mailing": false,
        "has_supplied_components": false,
        "version_count": 1
    }
    """
    try:
        data = request_json()
        job = job_service.create_job(
            title=data.get("title"),
            vendor_id=data.get("vendor_id"),
            bills_secondary_shop_directly=bool(data.get("bills_secondary_shop_directly", False)),
            customer_name=data.get("customer_name"),
            quantity=data.get("quantity", 0),
            sell_price=data.get("sell_price"),
            size_name=data.get("size_name"),
            job_number=data.get("job_number"),
            is_mailing=bool(data.get("is_mailing", False)),
            has_supplied_components=bool(data.get("has_supplied_components", False)),
            version_count=data.get("version_count", 1),
        )
        return jsonify(_job_detail(job)), 201
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create job")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.get("/<int:job_id>")
def get_job_route(job_id: int):
    try:
        return jsonify(_job_detail(load_job(job_id)))
    except BrokerageError as e:
        return error_response(e)


@jobs_bp.patch("/<int:job_id>")
def update_job_route(job_id: int):
    try:
        job = job_service.update_job(job_id, request_json())
        return jsonify(_job_detail(job))
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update job")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.put("/<int:job_id>/routing")
def change_routing_route(job_id: int):
    try:
        data = request_json()
        job = job_service.change_routing_type(job_id, data.get("routing_type"))
        return jsonify(_job_detail(job))
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change routing type")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.delete("/<int:job_id>")
def delete_job_route(job_id: int):
    try:
        job = job_service.soft_delete_job(job_id)
        return jsonify({"id": job.id, "deleted_at": job.to_dict()["deleted_at"]})
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete job")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# LINE ITEMS
# =============================================================================

@jobs_bp.post("/<int:job_id>/line-items")
def add_line_item_route(job_id: int):
    """
    Request body:
    {
        "description": "Envelopes",
        "quantity": 1000,
        "unit_cost": "0.12",
        "markup_percent": "25",   // or "unit_price"; price wins when both given
        "unit_price": "0.15"
    }
    """
    try:
        data = request_json()
        item = line_item_service.add_line_item(
            job_id,
            description=data.get("description"),
            quantity=data.get("quantity"),
            unit_cost=data.get("unit_cost"),
            markup_percent=data.get("markup_percent"),
            unit_price=data.get("unit_price"),
        )
        return jsonify(item.to_dict()), 201
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add line item")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.patch("/line-items/<int:line_item_id>")
def edit_line_item_route(line_item_id: int):
    """
    One pricing edit per call: {"field": "unit_price", "value": "15.00"}.
    description / quantity may ride along.
    """
    try:
        data = request_json()
        item = line_item_service.edit_line_item(
            line_item_id,
            field=data.get("field"),
            value=data.get("value"),
            description=data.get("description"),
            quantity=data.get("quantity"),
        )
        return jsonify(item.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to edit line item")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.delete("/line-items/<int:line_item_id>")
def delete_line_item_route(line_item_id: int):
    try:
        line_item_service.delete_line_item(line_item_id)
        return "", 204
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete line item")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

@jobs_bp.post("/<int:job_id>/purchase-orders")
def add_purchase_order_route(job_id: int):
    try:
        data = request_json()
        po = job_service.add_purchase_order(
            job_id,
            origin_party=data.get("origin_party"),
            target_party=data.get("target_party"),
            buy_cost=data.get("buy_cost"),
            target_vendor_id=data.get("target_vendor_id"),
            po_number=data.get("po_number"),
            paper_cpm=data.get("paper_cpm"),
            print_cpm=data.get("print_cpm"),
            paper_cost=data.get("paper_cost"),
            paper_markup=data.get("paper_markup"),
            mfg_cost=data.get("mfg_cost"),
        )
        return jsonify(po.to_dict()), 201
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add purchase order")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.post("/<int:job_id>/purchase-orders/partner")
def create_partner_purchase_orders_route(job_id: int):
    """Generate brokerage->partner and partner->secondary shop POs from the CPM table."""
    try:
        pos = job_service.create_partner_purchase_orders(job_id)
        return jsonify({"items": [po.to_dict() for po in pos]}), 201
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create partner purchase orders")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.delete("/purchase-orders/<int:po_id>")
def delete_purchase_order_route(po_id: int):
    try:
        job_service.delete_purchase_order(po_id)
        return "", 204
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete purchase order")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.post("/<int:job_id>/po-sent")
def mark_po_sent_route(job_id: int):
    """Record the vendor PO as sent. 409 with blockers unless the job is READY."""
    try:
        data = request_json()
        return jsonify(readiness_service.mark_po_sent(job_id, actor=request_actor(data)))
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark PO sent")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# COMPONENTS
# =============================================================================

@jobs_bp.post("/<int:job_id>/components")
def add_component_route(job_id: int):
    try:
        data = request_json()
        component = job_service.add_component(
            job_id,
            name=data.get("name"),
            supplier=data.get("supplier"),
            artwork_status=data.get("artwork_status", "PENDING"),
            material_status=data.get("material_status", "PENDING"),
            tracking_info=data.get("tracking_info"),
        )
        return jsonify(component.to_dict()), 201
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add component")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.patch("/components/<int:component_id>")
def update_component_route(component_id: int):
    try:
        component = job_service.update_component(component_id, request_json())
        return jsonify(component.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update component")
        return jsonify({"error": "Internal server error"}), 500
