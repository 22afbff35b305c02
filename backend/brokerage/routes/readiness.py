# Overview: Flask API routes for the readiness checklist.

from flask import Blueprint, current_app, jsonify

from ..errors import BrokerageError, error_response
from ..services import readiness_service
from .common import request_json

readiness_bp = Blueprint("readiness", __name__, url_prefix="/api/jobs")


@readiness_bp.get("/<int:job_id>/readiness")
def get_readiness_route(job_id: int):
    """{status: READY|INCOMPLETE|SENT, blockers: [...], warnings: [...]}"""
    try:
        return jsonify(readiness_service.evaluate_readiness_for_job(job_id).to_dict())
    except BrokerageError as e:
        return error_response(e)


@readiness_bp.patch("/<int:job_id>/readiness")
def update_readiness_route(job_id: int):
    """
    Set checklist flags, e.g. {"qc_artwork": "COMPLETE", "qc_versions": "NOT_APPLICABLE"}.
    Returns the re-evaluated readiness.
    """
    try:
        _job, result = readiness_service.update_readiness_flags(job_id, request_json())
        return jsonify(result.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update readiness flags")
        return jsonify({"error": "Internal server error"}), 500
