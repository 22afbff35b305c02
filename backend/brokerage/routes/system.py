# backend/brokerage/routes/system.py
"""
System health endpoint.

Checks the database and the downstream invoice dispatcher so a broken
deployment shows up before the first payment is recorded.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Job, Vendor
from ..services.invoice_dispatch import LoggingInvoiceDispatcher, get_dispatcher
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Count a couple of tables; any failure marks the database unhealthy."""
    start_time = time.time()
    try:
        job_count = db.session.query(Job).count()
        vendor_count = db.session.query(Vendor).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"jobs": job_count, "vendors": vendor_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_dispatcher_health() -> dict:
    dispatcher = get_dispatcher()
    if isinstance(dispatcher, LoggingInvoiceDispatcher) and not (
        dispatcher.recipient or current_app.config.get("DOWNSTREAM_INVOICE_RECIPIENT")
    ):
        return {
            "status": "degraded",
            "warning": "DOWNSTREAM_INVOICE_RECIPIENT is not configured",
        }
    return {"status": "healthy", "details": {"dispatcher": type(dispatcher).__name__}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    dispatcher_health = check_dispatcher_health()

    all_checks = [database_health, dispatcher_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "invoice_dispatcher": dispatcher_health,
        },
    }
    return response, http_status
