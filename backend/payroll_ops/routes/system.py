# backend/payroll_ops/routes/system.py
"""
System health endpoints.

Liveness plus a database round trip, and an on-demand consistency scan of
order state for operators.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Order, LineItem, IdCounter, UndoAction
from ..decorators import with_actor, handle_order_errors
from ..services import conflict_service
from payroll_ops.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        order_count = db.session.query(Order).count()
        line_count = db.session.query(LineItem).count()
        counter_count = db.session.query(IdCounter).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "orders": order_count,
                "lines": line_count,
                "counters": counter_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_undo_ledger_health() -> dict:
    """
    Check the undo ledger is readable and report entries awaiting purge.
    """
    start_time = time.time()
    try:
        now = utcnow()
        open_entries = db.session.query(UndoAction).filter(
            UndoAction.undone == False,  # noqa: E712
            UndoAction.expires_at > now,
        ).count()
        expired_entries = db.session.query(UndoAction).filter(
            UndoAction.expires_at <= now
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "undoable_actions": open_entries,
                "expired_pending_cleanup": expired_entries,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Undo ledger health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Undo ledger error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    undo_health = check_undo_ledger_health()

    all_checks = [database_health, undo_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "python_version": sys.version.split()[0],
        "checks": {
            "database": database_health,
            "undo_ledger": undo_health,
        }
    }

    return response, http_status


@system_bp.get("/health/conflicts")
@with_actor
@handle_order_errors
def conflicts():
    """
    Run the order consistency scan.

    Read-only; findings are advisory and must be resolved by a person.
    """
    report = conflict_service.scan()
    if report["issue_count"]:
        current_app.logger.warning("Conflict scan found %s issue(s)", report["issue_count"])
    return report
