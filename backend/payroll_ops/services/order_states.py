# Overview: Order status transition table and guard.

"""
Order status state machine.

    Pending     -> Active | StorePaid | Cancelled
    PendingCash -> Completed | Cancelled
    StorePaid   -> Completed
    Active      -> Completed | Cancelled (only before anything was received)

Completed and Cancelled are terminal.

Administrative cancellation may additionally cancel a StorePaid order,
provided none of its lines have been received.
"""

from __future__ import annotations

from ..models import Order, OrderStatus
from .errors import InvalidStateError


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACTIVE, OrderStatus.STORE_PAID, OrderStatus.CANCELLED}),
    OrderStatus.PENDING_CASH: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.STORE_PAID: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.ACTIVE: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

ADMIN_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.STORE_PAID: frozenset({OrderStatus.CANCELLED}),
}

RECEIVABLE = frozenset({OrderStatus.PENDING, OrderStatus.STORE_PAID})
CASH_CONVERTIBLE = frozenset({OrderStatus.PENDING, OrderStatus.PENDING_CASH})
SELF_CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.PENDING_CASH})


def can_transition(from_status: OrderStatus, to_status: OrderStatus, *, administrative: bool = False) -> bool:
    if to_status in TRANSITIONS[from_status]:
        return True
    if administrative:
        return to_status in ADMIN_TRANSITIONS.get(from_status, frozenset())
    return False


def transition(order: Order, to_status: OrderStatus, *, administrative: bool = False) -> OrderStatus:
    """Move order to to_status or raise InvalidStateError. Returns the previous status."""
    current = order.status
    if not can_transition(current, to_status, administrative=administrative):
        raise InvalidStateError(
            f"Cannot move order {order.order_id} from {current.value} to {to_status.value}",
            current_status=current.value,
        )
    order.status = to_status
    return current


def require_status(order: Order, allowed: frozenset[OrderStatus], action: str) -> None:
    if order.status not in allowed:
        raise InvalidStateError(
            f"Cannot {action} order {order.order_id}: current status is '{order.status.value}', "
            f"must be one of: {', '.join(sorted(s.value for s in allowed))}",
            current_status=order.status.value,
        )


def initial_status(total_cents: int, payment_plan: int) -> OrderStatus:
    """Status for a newly created (or newly split) order."""
    if total_cents == 0:
        return OrderStatus.STORE_PAID
    if payment_plan == 0:
        return OrderStatus.PENDING_CASH
    return OrderStatus.PENDING
