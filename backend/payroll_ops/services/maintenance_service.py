# Overview: Service-layer operations for maintenance; encapsulates repair and housekeeping work.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order, OrderStatus, UndoAction
from .payday_service import payday_for
from payroll_ops.time_utils import utcnow


RECEIVED_STATUSES = (OrderStatus.ACTIVE, OrderStatus.COMPLETED)


def repair_deduction_dates(*, dry_run: bool = False) -> list[dict]:
    """
    Make first_deduction_date consistent with status after a partial write.

    - Received payroll orders (Active/Completed, plan > 0) without a date get
      the payday owning their received date.
    - Any other order carrying a date has it cleared.

    Returns one {order_id, old, new} entry per changed order.
    """
    repaired = []
    for order in db.session.query(Order).order_by(Order.order_id).all():
        should_have_date = order.status in RECEIVED_STATUSES and not order.is_cash_order

        if should_have_date and order.first_deduction_date is None:
            if order.received_date is None:
                current_app.logger.warning("Cannot repair %s: no received date", order.order_id)
                continue
            new = payday_for(order.received_date)
        elif not should_have_date and order.first_deduction_date is not None:
            new = None
        else:
            continue

        repaired.append({
            "order_id": order.order_id,
            "old": order.first_deduction_date.isoformat() if order.first_deduction_date else None,
            "new": new.isoformat() if new else None,
        })
        if not dry_run:
            order.first_deduction_date = new

    if dry_run:
        db.session.rollback()
    else:
        db.session.commit()
    return repaired


def purge_expired_undo_actions() -> int:
    """Delete undo entries past their window."""
    deleted = db.session.query(UndoAction).filter(
        UndoAction.expires_at <= utcnow()
    ).delete()
    db.session.commit()
    return deleted
