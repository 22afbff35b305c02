# Overview: Flask API routes for the job lifecycle; parses input and returns JSON responses.

"""
Job Lifecycle API Routes

STATE MACHINE: NEW -> ... -> COMPLETED -> INVOICED -> PAID

ENDPOINTS:
- POST   /api/jobs/<id>/status/advance    one step forward
- PUT    /api/jobs/<id>/status/override   force a status (audited)
- DELETE /api/jobs/<id>/status/override   back to the natural status
- GET    /api/jobs/<id>/status/history    status events, oldest first
"""

from flask import Blueprint, current_app, jsonify

from ..errors import BrokerageError, error_response
from ..services import lifecycle_service
from .common import request_actor, request_json

lifecycle_bp = Blueprint("lifecycle", __name__, url_prefix="/api/jobs")


@lifecycle_bp.post("/<int:job_id>/status/advance")
def advance_status_route(job_id: int):
    try:
        data = request_json()
        job = lifecycle_service.advance_lifecycle_status(job_id, actor=request_actor(data))
        return jsonify(job.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to advance job status")
        return jsonify({"error": "Internal server error"}), 500


@lifecycle_bp.put("/<int:job_id>/status/override")
def override_status_route(job_id: int):
    """
    Request body:
    {
        "status": "IN_PRODUCTION",  // required
        "reason": "...",            // optional
        "actor": "jane"             // or X-Actor header
    }
    """
    try:
        data = request_json()
        job = lifecycle_service.override_lifecycle_status(
            job_id,
            data.get("status"),
            actor=request_actor(data),
            reason=data.get("reason"),
        )
        return jsonify(job.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to override job status")
        return jsonify({"error": "Internal server error"}), 500


@lifecycle_bp.delete("/<int:job_id>/status/override")
def clear_override_route(job_id: int):
    try:
        data = request_json()
        job = lifecycle_service.clear_status_override(job_id, actor=request_actor(data))
        return jsonify(job.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to clear status override")
        return jsonify({"error": "Internal server error"}), 500


@lifecycle_bp.get("/<int:job_id>/status/history")
def status_history_route(job_id: int):
    try:
        return jsonify({"items": lifecycle_service.status_history(job_id)})
    except BrokerageError as e:
        return error_response(e)
