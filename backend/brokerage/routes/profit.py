# Overview: Flask API routes for the cached profit split.

from flask import Blueprint, current_app, jsonify

from ..errors import BrokerageError, error_response
from ..services import profit_service

profit_bp = Blueprint("profit", __name__, url_prefix="/api/jobs")


@profit_bp.get("/<int:job_id>/profit")
def get_profit_route(job_id: int):
    """
    Cached profit split; recomputed first when an input changed.

    Returns:
        200: ProfitSplit
        400: sell price missing or not positive (kind=validation)
        404: job not found
    """
    try:
        split = profit_service.get_profit_split(job_id)
        return jsonify(split.to_dict())
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load profit split")
        return jsonify({"error": "Internal server error"}), 500


@profit_bp.post("/<int:job_id>/profit/recalculate")
def recalculate_profit_route(job_id: int):
    """Force a recompute. Warnings (negative spread, ...) come back alongside."""
    try:
        split, warnings = profit_service.recalculate_profit_split(job_id)
        body = split.to_dict()
        body["warnings"] = warnings
        return jsonify(body)
    except BrokerageError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to recalculate profit split")
        return jsonify({"error": "Internal server error"}), 500
