# Overview: Flask API routes for the payroll calendar and deduction schedule.

"""
Payroll Routes

Read-only views consumed by the payroll export job and the manager calendar.
"""

from flask import Blueprint, request, jsonify

from ..decorators import with_actor, handle_order_errors
from ..services import deduction_service, payday_service
from payroll_ops.time_utils import parse_iso_date, to_iso_date


payroll_bp = Blueprint("payroll", __name__, url_prefix="/api/payroll")


def _bounded(name: str, default: int, upper: int) -> int:
    value = request.args.get(name, default, type=int)
    return min(max(value, 0), upper)


@payroll_bp.get("/paydays")
@with_actor
@handle_order_errors
def paydays_route():
    """
    Paydays around today.

    Query parameters:
    - count: paydays on or after today (default 6, max 52)
    - history_count: paydays before today (default 2, max 52)
    """
    count = _bounded("count", 6, 52)
    history_count = _bounded("history_count", 2, 52)
    paydays = payday_service.upcoming_paydays(count, history_count)
    return jsonify({"paydays": [to_iso_date(p) for p in paydays]})


@payroll_bp.get("/deductions")
@with_actor
@handle_order_errors
def deductions_route():
    """
    Deductions due on a payday.

    Query parameters:
    - payday: YYYY-MM-DD (required, must be a payday)

    Returns:
        {payday, orders: [...], total_amount_cents, employee_count}
    """
    raw = request.args.get("payday")
    if not raw:
        return jsonify({"error": "payday is required"}), 400
    try:
        payday = parse_iso_date(raw)
    except ValueError:
        return jsonify({"error": "Invalid payday format"}), 400
    if not payday_service.is_payday(payday):
        return jsonify({
            "error": f"{payday.isoformat()} is not a payday",
            "next_payday": to_iso_date(payday_service.next_payday_on_or_after(payday)),
        }), 400

    return jsonify(deduction_service.due_on(payday))


@payroll_bp.get("/calendar")
@with_actor
@handle_order_errors
def calendar_route():
    count = _bounded("count", 6, 52)
    history_count = _bounded("history_count", 2, 52)
    return jsonify({"items": deduction_service.deduction_calendar(count, history_count)})
