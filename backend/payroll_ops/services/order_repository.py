# Overview: Data access for uniform orders and their line items.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Order, LineItem, OrderEvent, OrderStatus, ItemStatus
from .concurrency import lock_for_update
from .errors import OrderNotFoundError
from payroll_ops.time_utils import utcnow


def get_order(order_id: str) -> Order | None:
    return db.session.get(Order, order_id)


def require_order(order_id: str, *, for_update: bool = False) -> Order:
    """Load an order or raise OrderNotFoundError."""
    query = db.session.query(Order).filter(Order.order_id == order_id)
    if for_update:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def get_line(line_id: str) -> LineItem | None:
    return db.session.get(LineItem, line_id)


def lines_for_order(order_id: str, *, include_cancelled: bool = True) -> list[LineItem]:
    query = db.session.query(LineItem).filter(LineItem.order_id == order_id)
    if not include_cancelled:
        query = query.filter(LineItem.item_status != ItemStatus.CANCELLED)
    return query.order_by(LineItem.line_id).all()


def lines_for_orders(order_ids: list[str]) -> dict[str, list[LineItem]]:
    grouped: dict[str, list[LineItem]] = {order_id: [] for order_id in order_ids}
    if not order_ids:
        return grouped
    rows = (
        db.session.query(LineItem)
        .filter(LineItem.order_id.in_(order_ids))
        .order_by(LineItem.line_id)
        .all()
    )
    for line in rows:
        grouped.setdefault(line.order_id, []).append(line)
    return grouped


def child_order_ids(order_ids: list[str]) -> list[str]:
    """Orders split off from any of order_ids."""
    if not order_ids:
        return []
    rows = (
        db.session.query(Order.order_id)
        .filter(Order.parent_order_id.in_(order_ids))
        .order_by(Order.order_id)
        .all()
    )
    return [row[0] for row in rows]


def list_orders(
    *,
    employee_id: str | None = None,
    location: str | None = None,
    status: OrderStatus | str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """
    List orders with optional filters.

    Returns:
        Tuple of (orders newest first, total count)
    """
    query = db.session.query(Order)

    if employee_id:
        query = query.filter(Order.employee_id == employee_id)
    if location:
        query = query.filter(Order.location == location)
    if status:
        query = query.filter(Order.status == OrderStatus(status))
    if from_date:
        query = query.filter(Order.order_date >= from_date)
    if to_date:
        query = query.filter(Order.order_date <= to_date)

    total = query.count()

    query = query.order_by(Order.order_date.desc(), Order.order_id.desc())
    query = query.offset(offset).limit(limit)

    return query.all(), total


def all_orders() -> list[Order]:
    return db.session.query(Order).order_by(Order.order_id).all()


def all_lines() -> list[LineItem]:
    return db.session.query(LineItem).order_by(LineItem.line_id).all()


def orders_with_status(statuses) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.status.in_(list(statuses)))
        .order_by(Order.order_id)
        .all()
    )


def add(*rows) -> None:
    for row in rows:
        db.session.add(row)


def append_event(
    *,
    order_id: str,
    event_type: str,
    actor: str | None = None,
    action_id: str | None = None,
    occurred_at: datetime | None = None,
    note: str | None = None,
    payload: str | None = None,
) -> OrderEvent:
    """Append-only order event; flushed, committed by the caller."""
    ev = OrderEvent(
        order_id=order_id,
        event_type=event_type,
        actor=actor,
        action_id=action_id,
        occurred_at=occurred_at or utcnow(),
        note=note[:255] if note else None,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def events_for_order(order_id: str) -> list[OrderEvent]:
    return (
        db.session.query(OrderEvent)
        .filter(OrderEvent.order_id == order_id)
        .order_by(OrderEvent.id)
        .all()
    )
