# Overview: Payroll deduction schedule derived from committed order state.

"""
Deduction Schedule

Nothing is stored per payday: the schedule is replayed from each received
order's first_deduction_date, payment_plan and installment amount. Completed
orders still answer for the paydays they were collected on, so past payroll
reports stay reproducible.

Installment i (0-based) of an order is due on
first_deduction_date + i * cycle_days. The last installment is whatever the
earlier ones leave of the total.
"""

from __future__ import annotations

from datetime import date, timedelta

from flask import current_app

from ..extensions import db
from ..models import Order, OrderStatus
from .payday_service import upcoming_paydays
from payroll_ops.time_utils import parse_iso_date


SCHEDULED_STATUSES = (OrderStatus.ACTIVE, OrderStatus.COMPLETED)


def installment_due(order: Order, index: int) -> int:
    """Amount in cents collected by installment index (0-based)."""
    if index < order.payment_plan - 1:
        return order.amount_per_installment_cents
    return max(order.total_cents - order.amount_per_installment_cents * (order.payment_plan - 1), 0)


def due_on(payday) -> dict:
    """
    Everything deducted on one payday.

    Returns:
        {
            "payday": "YYYY-MM-DD",
            "orders": [{order_id, employee_id, employee_name, location, amount_cents,
                        installment_number, payment_plan, is_final_installment}],
            "total_amount_cents": int,
            "employee_count": int,
        }
    """
    payday = parse_iso_date(payday)
    if payday is None:
        raise ValueError("payday is required")

    cycle_days = current_app.config.get("PAYDAY_CYCLE_DAYS", 14)
    max_plan = current_app.config.get("MAX_PAYMENT_PLAN", 3)
    earliest = payday - timedelta(days=cycle_days * (max_plan - 1))

    candidates = (
        db.session.query(Order)
        .filter(
            Order.status.in_(SCHEDULED_STATUSES),
            Order.payment_plan > 0,
            Order.total_cents > 0,
            Order.first_deduction_date.isnot(None),
            Order.first_deduction_date >= earliest,
            Order.first_deduction_date <= payday,
        )
        .order_by(Order.employee_name, Order.order_id)
        .all()
    )

    rows = []
    for order in candidates:
        offset = (payday - order.first_deduction_date).days
        if offset % cycle_days:
            continue
        index = offset // cycle_days
        if index >= order.payment_plan:
            continue
        rows.append({
            "order_id": order.order_id,
            "employee_id": order.employee_id,
            "employee_name": order.employee_name,
            "location": order.location,
            "amount_cents": installment_due(order, index),
            "installment_number": index + 1,
            "payment_plan": order.payment_plan,
            "is_final_installment": index == order.payment_plan - 1,
        })

    return {
        "payday": payday.isoformat(),
        "orders": rows,
        "total_amount_cents": sum(row["amount_cents"] for row in rows),
        "employee_count": len({row["employee_id"] for row in rows}),
    }


def deduction_calendar(count: int = 6, history_count: int = 2, *, today: date | None = None) -> list[dict]:
    """Payday list with per-payday totals for calendar and report views."""
    calendar = []
    for payday in upcoming_paydays(count, history_count, today=today):
        summary = due_on(payday)
        calendar.append({
            "payday": summary["payday"],
            "total_amount_cents": summary["total_amount_cents"],
            "employee_count": summary["employee_count"],
            "order_count": len(summary["orders"]),
        })
    return calendar
