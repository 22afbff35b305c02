# Overview: Flask API routes for payment milestones; parses input and returns JSON responses.

"""
Payment Milestone API Routes

DESIGN:
- One resource per milestone: POST records it, DELETE unsets it
- Recording INTERMEDIARY_PAID dispatches the downstream invoice; a failed
  dispatch is reported in ``warnings`` with a 201, never as an error
- Resending the downstream invoice is its own endpoint
"""

from flask import Blueprint, current_app, jsonify

from ..errors import BrokerageError, error_response
from ..services import payment_service
from .common import request_actor, request_json

payments_bp = Blueprint("payments", __name__, url_prefix="/api/jobs")


@payments_bp.get("/<int:job_id>/payments")
def payment_summary_route(job_id: int):
    """Step (1-4), label, milestones, downstream invoice and the event log."""
    try:
        return jsonify(payment_service.payment_summary(job_id))
    except BrokerageError as e:
        return error_response(e)


@payments_bp.post("/<int:job_id>/payments/<milestone>")
def record_milestone_route(job_id: int, milestone: str):
    """
    Record a milestone.

    Request body (all optional):
    {
        "at": "2025-03-01T12:00:00Z",
        "amount": "900.00",
        "note": "check #1042",
        "actor": "jane"
    }

    Returns:
        201: {job, milestone, invoice_dispatched, warnings}
        409: prerequisite missing or already recorded (kind=precondition)
    """
    try:
        data = request_json()
        result = payment_service.record_payment_milestone(
            job_id,
            milestone,
            at=data.get("at"),
            amount=data.get("amount"),
            note=data.get("note"),
            actor=request_actor(data),
        )
        return jsonify(result.to_dict()), 201
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record payment milestone")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.delete("/<int:job_id>/payments/<milestone>")
def unset_milestone_route(job_id: int, milestone: str):
    """409 kind=dependency while a later milestone or the job status relies on it."""
    try:
        data = request_json()
        job = payment_service.unset_payment_milestone(job_id, milestone, actor=request_actor(data))
        return jsonify(job.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to unset payment milestone")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:job_id>/downstream-invoice/resend")
def resend_downstream_invoice_route(job_id: int):
    try:
        data = request_json()
        result = payment_service.resend_downstream_invoice(job_id, actor=request_actor(data))
        return jsonify(result.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to resend downstream invoice")
        return jsonify({"error": "Internal server error"}), 500
