# Overview: Service-layer operations for uniform benefit orders; encapsulates the order lifecycle.

"""
Uniform Order Lifecycle Service

WHY: Employees order uniforms that are paid back through payroll deductions
spread over 1-3 paychecks (or in cash). The deduction clock only starts when
the items physically arrive, and shipments are often incomplete, so orders
must be splittable at receiving time.

LIFECYCLE (see order_states.py for the transition table):
    Pending      payroll-deducted order waiting for items
    PendingCash  cash order waiting for items
    StorePaid    nothing to collect from the employee (zero cost or paid at the store)
    Active       received; installments being deducted
    Completed    fully collected (or zero cost and received)
    Cancelled    withdrawn before receiving

RECEIVING:
- markReceived: every open line arrived.
- receiveWithPartialItems: per-line received quantities. Lines that arrived
  stay on the order; lines that did not move to a new Pending order; lines
  that partly arrived are split, the remainder becoming a new line on the
  new order. The original order is re-priced from what it kept.
- convertToCashPayment: same split, but the kept portion is paid in full at
  the store and never deducted.

MONEY: integer cents. Division (per-installment amounts) is rounded half-up
to the cent when the value is written, and the final installment collects
whatever remains so amount_remaining always equals total - paid.

Identifiers are allocated before any row is staged: allocation commits the
session (see identifier_service).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Order, LineItem, OrderStatus, ItemStatus
from . import order_repository as repo
from . import identifier_service, catalog_service, employee_service, notification_service
from .concurrency import run_with_retry
from .errors import OrderError, ValidationError, InvalidStateError, NothingReceivedError, NotDueError
from .order_states import (
    RECEIVABLE,
    CASH_CONVERTIBLE,
    SELF_CANCELLABLE,
    initial_status,
    require_status,
    transition,
)
from .payday_service import payday_for
from payroll_ops.time_utils import utcnow


@dataclass(frozen=True)
class OrderItemRequest:
    """One requested catalog item at intake."""
    item_name: str
    quantity: int = 1
    size: str | None = None
    is_replacement: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "OrderItemRequest":
        if not isinstance(data, dict):
            raise ValidationError("Each item must be an object")
        name = (data.get("item_name") or data.get("name") or "").strip()
        if not name:
            raise ValidationError("item_name is required for every item")
        return cls(
            item_name=name,
            quantity=_coerce_quantity(data.get("quantity", 1), name),
            size=(str(data["size"]).strip() or None) if data.get("size") is not None else None,
            is_replacement=bool(data.get("is_replacement", False)),
        )


@dataclass
class _SplitPlan:
    full: list[tuple[LineItem, int]]
    partial: list[tuple[LineItem, int]]
    missing: list[LineItem]

    @property
    def needs_new_order(self) -> bool:
        return bool(self.partial or self.missing)


# =============================================================================
# HELPERS
# =============================================================================

def _whole_number(value, message: str) -> int:
    """Accept ints and integer strings only; floats are never truncated."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(message)
    try:
        return int(value)
    except ValueError:
        raise ValidationError(message)


def _coerce_quantity(value, label: str) -> int:
    qty = _whole_number(value, f"Quantity for '{label}' must be a whole number")
    if qty < 1:
        raise ValidationError(f"Quantity for '{label}' must be at least 1")
    return qty


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def installment_amount(total_cents: int, payment_plan: int) -> int:
    """Per-installment deduction in cents (0 for cash orders)."""
    if payment_plan <= 0:
        return 0
    return _round_cents(Decimal(total_cents) / Decimal(payment_plan))


def _reprice(order: Order, total_cents: int) -> None:
    order.total_cents = total_cents
    order.amount_per_installment_cents = installment_amount(total_cents, order.payment_plan)
    order.amount_remaining_cents = order.total_cents - order.amount_paid_cents


def _open_total(lines: list[LineItem]) -> int:
    return sum(line.line_total_cents for line in lines if line.item_status != ItemStatus.CANCELLED)


def _validate_payment_plan(payment_plan, pay_cash: bool) -> int:
    if pay_cash:
        return 0
    if isinstance(payment_plan, bool):
        raise ValidationError("payment_plan must be a whole number")
    try:
        plan = int(payment_plan)
    except (TypeError, ValueError):
        raise ValidationError("payment_plan must be a whole number")
    max_plan = current_app.config.get("MAX_PAYMENT_PLAN", 3)
    if plan < 0 or plan > max_plan:
        raise ValidationError(f"payment_plan must be between 1 and {max_plan}, or 0 for cash")
    return plan


def _mark_line_received(line: LineItem, quantity: int, *, actor: str | None, received_at: datetime) -> None:
    line.received_flag = True
    line.received_quantity = quantity
    line.received_date = received_at
    line.received_by = actor
    line.item_status = ItemStatus.RECEIVED


def _plan_split(lines: list[LineItem], received_quantities: dict | None) -> _SplitPlan:
    """
    Classify open lines by received quantity.

    received_quantities maps line_id -> quantity received; None means every
    line arrived in full. Lines missing from the mapping count as not received.
    """
    open_lines = [line for line in lines if line.item_status == ItemStatus.PENDING]
    plan = _SplitPlan(full=[], partial=[], missing=[])

    if received_quantities is None:
        plan.full = [(line, line.quantity) for line in open_lines]
        return plan

    if not isinstance(received_quantities, dict):
        raise ValidationError("received quantities must map line ids to quantities")

    known = {line.line_id for line in open_lines}
    unknown = sorted(set(received_quantities) - known)
    if unknown:
        raise ValidationError(f"Lines not open on this order: {', '.join(unknown)}")

    for line in open_lines:
        qty = _whole_number(
            received_quantities.get(line.line_id, 0),
            f"Received quantity for {line.line_id} must be a whole number",
        )
        if qty < 0 or qty > line.quantity:
            raise ValidationError(
                f"Received quantity for {line.line_id} must be between 0 and {line.quantity}"
            )

        if qty == line.quantity:
            plan.full.append((line, qty))
        elif qty == 0:
            plan.missing.append(line)
        else:
            plan.partial.append((line, qty))

    return plan


def _apply_split(
    order: Order,
    plan: _SplitPlan,
    *,
    new_order_id: str | None,
    new_line_ids: list[str],
    actor: str | None,
    received_at: datetime,
) -> Order | None:
    """Receive kept lines and move the unreceived remainder to a new order."""
    for line, qty in plan.full:
        _mark_line_received(line, qty, actor=actor, received_at=received_at)

    if not plan.needs_new_order:
        return None

    new_order = Order(
        order_id=new_order_id,
        employee_id=order.employee_id,
        employee_name=order.employee_name,
        location=order.location,
        order_date=received_at,
        payment_plan=order.payment_plan,
        installments_paid=0,
        amount_paid_cents=0,
        notes=f"Back-ordered items split from {order.order_id}",
        created_by=actor,
        parent_order_id=order.order_id,
    )
    moved_total = 0

    for line in plan.missing:
        line.order_id = new_order_id
        moved_total += line.line_total_cents

    for (line, qty), remainder_id in zip(plan.partial, new_line_ids):
        remainder = line.quantity - qty
        remainder_line = LineItem(
            line_id=remainder_id,
            order_id=new_order_id,
            item_id=line.item_id,
            item_name=line.item_name,
            size=line.size,
            quantity=remainder,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.unit_price_cents * remainder,
            is_replacement=line.is_replacement,
            received_flag=False,
            received_quantity=0,
            item_status=ItemStatus.PENDING,
            parent_line_id=line.line_id,
        )
        db.session.add(remainder_line)
        moved_total += remainder_line.line_total_cents

        line.quantity = qty
        line.line_total_cents = line.unit_price_cents * qty
        _mark_line_received(line, qty, actor=actor, received_at=received_at)

    _reprice(new_order, moved_total)
    new_order.status = initial_status(new_order.total_cents, new_order.payment_plan)
    db.session.add(new_order)
    return new_order


def _reserve_split_ids(plan: _SplitPlan) -> tuple[str | None, list[str]]:
    if not plan.needs_new_order:
        return None, []
    order_id = identifier_service.next_order_id()
    line_ids = identifier_service.next_line_ids(len(plan.partial))
    return order_id, line_ids


def _settle_received(order: Order, received_at: datetime) -> None:
    """Move a freshly received order to Active, or Completed when nothing is deducted."""
    order.received_date = received_at
    order.first_deduction_date = None if order.is_cash_order else payday_for(received_at)

    if order.total_cents == 0 or order.is_cash_order:
        if order.status == OrderStatus.PENDING:
            transition(order, OrderStatus.STORE_PAID)
        transition(order, OrderStatus.COMPLETED)
        order.amount_remaining_cents = order.total_cents - order.amount_paid_cents
        return

    transition(order, OrderStatus.ACTIVE)


def _commit_split(order: Order, new_order: Order | None, *, actor: str | None, event_type: str, received_at: datetime) -> None:
    repo.append_event(
        order_id=order.order_id,
        event_type=event_type,
        actor=actor,
        occurred_at=received_at,
        note=f"Status {order.status.value}, total {order.total_cents} cents",
    )
    if new_order is not None:
        repo.append_event(
            order_id=new_order.order_id,
            event_type="order.split_created",
            actor=actor,
            occurred_at=received_at,
            note=f"Split from {order.order_id}",
        )
    db.session.commit()


# =============================================================================
# INTAKE
# =============================================================================

def create_order(
    *,
    employee: str,
    location: str | None,
    items: list,
    payment_plan: int | None = 1,
    notes: str | None = None,
    pay_cash: bool = False,
    created_by: str | None = None,
    order_date: datetime | None = None,
) -> Order:
    """
    Create a uniform order.

    Args:
        employee: Employee id (or unique name) from the directory
        location: Location the order is for; defaults to the employee's home location
        items: 1-5 OrderItemRequest objects or dicts with item_name/quantity/size/is_replacement
        payment_plan: 1-3 payroll installments, or 0 for cash
        notes: Free-form notes
        pay_cash: Pay in cash instead of payroll deduction (forces payment_plan 0)
        created_by: Actor submitting the order

    Returns:
        Created Order

    Raises:
        ValidationError: Missing employee/location/items, more than 5 items,
            bad quantities, unknown or inactive catalog items
        LockTimeoutError: Identifier allocation timed out (retry)
    """
    if not employee or not str(employee).strip():
        raise ValidationError("employee is required")
    if not items:
        raise ValidationError("At least one item is required")

    max_items = current_app.config.get("MAX_ORDER_ITEMS", 5)
    if len(items) > max_items:
        raise ValidationError(f"An order can contain at most {max_items} items")

    requests = [item if isinstance(item, OrderItemRequest) else OrderItemRequest.from_dict(item) for item in items]
    plan = _validate_payment_plan(payment_plan, pay_cash)

    person = employee_service.resolve_employee(employee)
    location = (location or "").strip() or person.location
    if not location:
        raise ValidationError("location is required")

    priced = []
    for request in requests:
        catalog_item = catalog_service.require_orderable_item(request.item_name)
        unit_price = 0 if request.is_replacement else catalog_item.price_cents
        priced.append((request, catalog_item, unit_price))

    total = sum(unit_price * request.quantity for request, _, unit_price in priced)

    def _op() -> Order:
        order_id = identifier_service.next_order_id()
        line_ids = identifier_service.next_line_ids(len(priced))
        now = order_date or utcnow()

        order = Order(
            order_id=order_id,
            employee_id=person.employee_id,
            employee_name=person.name,
            location=location,
            order_date=now,
            payment_plan=plan,
            installments_paid=0,
            amount_paid_cents=0,
            notes=notes,
            created_by=created_by,
            status=initial_status(total, plan),
        )
        _reprice(order, total)
        db.session.add(order)

        for line_id, (request, catalog_item, unit_price) in zip(line_ids, priced):
            db.session.add(LineItem(
                line_id=line_id,
                order_id=order_id,
                item_id=catalog_item.item_id,
                item_name=catalog_item.item_name,
                size=request.size,
                quantity=request.quantity,
                unit_price_cents=unit_price,
                line_total_cents=unit_price * request.quantity,
                is_replacement=request.is_replacement,
                received_flag=False,
                received_quantity=0,
                item_status=ItemStatus.PENDING,
            ))

        repo.append_event(
            order_id=order_id,
            event_type="order.created",
            actor=created_by,
            occurred_at=now,
            note=f"{len(priced)} items, total {total} cents, plan {plan}",
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Created order %s for %s (%s, %s cents)", order.order_id, order.employee_id, order.status.value, order.total_cents
    )
    notification_service.notify(notification_service.EVENT_ORDER_CREATED, order)
    return order


# =============================================================================
# RECEIVING
# =============================================================================

def mark_received(order_id: str, *, actor: str | None = None, received_at: datetime | None = None) -> Order:
    """
    Receive every open line of an order in one step.

    Legal from Pending or StorePaid. Sets the first deduction payday from the
    received date and moves the order to Active (Completed when nothing is
    deducted).

    Raises:
        OrderNotFoundError, InvalidStateError
    """
    def _op() -> Order:
        received = received_at or utcnow()
        order = repo.require_order(order_id, for_update=True)
        require_status(order, RECEIVABLE, "receive")

        for line in repo.lines_for_order(order_id, include_cancelled=False):
            if line.item_status == ItemStatus.PENDING:
                _mark_line_received(line, line.quantity, actor=actor, received_at=received)

        _settle_received(order, received)
        _commit_split(order, None, actor=actor, event_type="order.received", received_at=received)
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Received order %s -> %s", order.order_id, order.status.value)
    if order.status == OrderStatus.ACTIVE:
        notification_service.notify(
            notification_service.EVENT_ORDER_ACTIVATED,
            order,
            first_deduction_date=order.first_deduction_date.isoformat(),
        )
    return order


def mark_received_bulk(order_ids: list[str], *, actor: str | None = None, received_at: datetime | None = None) -> dict:
    """
    Receive several orders. Failures are reported per order, not raised.

    Returns:
        {"received": [order dicts], "failed": [{"order_id", "error"}]}
    """
    received, failed = [], []
    for order_id in order_ids:
        try:
            order = mark_received(order_id, actor=actor, received_at=received_at)
            received.append(order.to_dict())
        except OrderError as exc:
            db.session.rollback()
            failed.append({"order_id": order_id, "error": str(exc)})
    return {"received": received, "failed": failed}


def receive_with_partial_items(
    order_id: str,
    received_quantities: dict,
    *,
    actor: str | None = None,
    received_at: datetime | None = None,
) -> str | None:
    """
    Receive an order line by line, splitting off whatever did not arrive.

    Args:
        order_id: Order being received (Pending or StorePaid)
        received_quantities: {line_id: quantity received}; omitted lines count as 0

    Returns:
        Id of the new order holding the unreceived remainder, or None if
        everything arrived.

    Raises:
        NothingReceivedError: Zero quantity received across all lines
        InvalidStateError: Order is not receivable
        ValidationError: Unknown lines or quantities out of range
    """
    def _op() -> str | None:
        received = received_at or utcnow()
        order = repo.require_order(order_id, for_update=True)
        require_status(order, RECEIVABLE, "receive")

        lines = repo.lines_for_order(order_id, include_cancelled=False)
        plan = _plan_split(lines, received_quantities)
        if not plan.full and not plan.partial:
            raise NothingReceivedError(f"No items were received for order {order_id}")

        new_order_id, new_line_ids = _reserve_split_ids(plan)
        # Allocation committed the session; reload what we are about to change
        order = repo.require_order(order_id, for_update=True)
        require_status(order, RECEIVABLE, "receive")
        plan = _plan_split(repo.lines_for_order(order_id, include_cancelled=False), received_quantities)

        new_order = _apply_split(
            order, plan,
            new_order_id=new_order_id,
            new_line_ids=new_line_ids,
            actor=actor,
            received_at=received,
        )
        db.session.flush()
        _reprice(order, _open_total(repo.lines_for_order(order_id)))
        _settle_received(order, received)
        _commit_split(order, new_order, actor=actor, event_type="order.received_partial", received_at=received)
        return new_order.order_id if new_order is not None else None

    new_order_id = run_with_retry(_op)
    order = repo.require_order(order_id)
    current_app.logger.info(
        "Partially received order %s -> %s; remainder order %s", order_id, order.status.value, new_order_id
    )
    if order.status == OrderStatus.ACTIVE:
        notification_service.notify(
            notification_service.EVENT_ORDER_ACTIVATED,
            order,
            first_deduction_date=order.first_deduction_date.isoformat(),
        )
    if new_order_id:
        notification_service.notify(
            notification_service.EVENT_ORDER_SPLIT, repo.require_order(new_order_id), parent_order_id=order_id
        )
    return new_order_id


def convert_to_cash_payment(
    order_id: str,
    received_quantities: dict | None = None,
    *,
    actor: str | None = None,
    received_at: datetime | None = None,
) -> str | None:
    """
    Receive an order and settle the kept portion in cash at the store.

    Same split rules as receive_with_partial_items (None means everything
    arrived). The kept portion is marked fully paid and never deducted:
    a Pending order becomes StorePaid, a PendingCash order becomes Completed.
    The remainder order keeps the original payment plan.

    Returns:
        Id of the remainder order, or None.
    """
    def _op() -> str | None:
        received = received_at or utcnow()
        order = repo.require_order(order_id, for_update=True)
        require_status(order, CASH_CONVERTIBLE, "convert to cash")

        plan = _plan_split(repo.lines_for_order(order_id, include_cancelled=False), received_quantities)
        if not plan.full and not plan.partial:
            raise NothingReceivedError(f"No items were received for order {order_id}")

        new_order_id, new_line_ids = _reserve_split_ids(plan)
        order = repo.require_order(order_id, for_update=True)
        require_status(order, CASH_CONVERTIBLE, "convert to cash")
        plan = _plan_split(repo.lines_for_order(order_id, include_cancelled=False), received_quantities)

        new_order = _apply_split(
            order, plan,
            new_order_id=new_order_id,
            new_line_ids=new_line_ids,
            actor=actor,
            received_at=received,
        )
        db.session.flush()

        order.payment_plan = 0
        order.installments_paid = 0
        order.first_deduction_date = None
        order.received_date = received
        total = _open_total(repo.lines_for_order(order_id))
        order.amount_paid_cents = total
        _reprice(order, total)

        if order.status == OrderStatus.PENDING:
            transition(order, OrderStatus.STORE_PAID)
        else:
            transition(order, OrderStatus.COMPLETED)

        _commit_split(order, new_order, actor=actor, event_type="order.cash_converted", received_at=received)
        return new_order.order_id if new_order is not None else None

    new_order_id = run_with_retry(_op)
    current_app.logger.info("Converted order %s to cash; remainder order %s", order_id, new_order_id)
    return new_order_id


# =============================================================================
# PAYMENTS AND CANCELLATION
# =============================================================================

def record_installment_payment(order_id: str, *, actor: str | None = None, paid_at: datetime | None = None) -> Order:
    """
    Record one payroll deduction against an Active order.

    The final installment collects the exact remaining balance so rounding
    never leaves a residue; the order then moves to Completed.

    Raises:
        NotDueError: Order is not Active or every installment is recorded
    """
    def _op() -> Order:
        order = repo.require_order(order_id, for_update=True)
        if order.status != OrderStatus.ACTIVE:
            raise NotDueError(
                f"Order {order_id} is {order.status.value}; installments are only recorded on Active orders"
            )
        if order.installments_paid >= order.payment_plan:
            raise NotDueError(f"All {order.payment_plan} installments of order {order_id} are already recorded")

        is_final = order.installments_paid + 1 == order.payment_plan
        remaining = order.total_cents - order.amount_paid_cents
        amount = remaining if is_final else min(order.amount_per_installment_cents, remaining)

        order.installments_paid += 1
        order.amount_paid_cents += amount
        order.amount_remaining_cents = order.total_cents - order.amount_paid_cents

        if is_final:
            order.amount_remaining_cents = 0
            transition(order, OrderStatus.COMPLETED)

        repo.append_event(
            order_id=order_id,
            event_type="order.installment_recorded",
            actor=actor,
            occurred_at=paid_at or utcnow(),
            note=f"Installment {order.installments_paid}/{order.payment_plan}: {amount} cents",
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Recorded installment %s/%s on %s", order.installments_paid, order.payment_plan, order.order_id
    )
    return order


def cancel_order(
    order_id: str,
    *,
    actor: str | None = None,
    administrative: bool = False,
    reason: str | None = None,
) -> Order:
    """
    Cancel an order and every line that has not been received.

    Employees may cancel their own Pending/PendingCash orders. Administrators
    may cancel any non-terminal order as long as nothing on it was received.

    Raises:
        InvalidStateError
    """
    def _op() -> Order:
        order = repo.require_order(order_id, for_update=True)
        if order.status.is_terminal:
            raise InvalidStateError(
                f"Order {order_id} is already {order.status.value}", current_status=order.status.value
            )
        if not administrative:
            require_status(order, SELF_CANCELLABLE, "cancel")

        lines = repo.lines_for_order(order_id)
        if any(line.received_flag for line in lines):
            raise InvalidStateError(
                f"Cannot cancel order {order_id}: receiving has already started",
                current_status=order.status.value,
            )

        transition(order, OrderStatus.CANCELLED, administrative=administrative)
        for line in lines:
            if not line.received_flag:
                line.item_status = ItemStatus.CANCELLED

        order.first_deduction_date = None
        _reprice(order, _open_total(lines))
        if reason:
            order.notes = f"{order.notes}\nCancelled: {reason}" if order.notes else f"Cancelled: {reason}"

        repo.append_event(
            order_id=order_id,
            event_type="order.cancelled",
            actor=actor,
            note=reason or ("administrative" if administrative else "employee request"),
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Cancelled order %s (administrative=%s)", order_id, administrative)
    return order


# =============================================================================
# READS AND EDITS
# =============================================================================

def update_order_notes(order_id: str, notes: str | None, *, actor: str | None = None) -> Order:
    order = repo.require_order(order_id)
    order.notes = notes
    repo.append_event(order_id=order_id, event_type="order.notes_updated", actor=actor)
    db.session.commit()
    return order


def get_order_with_lines(order_id: str) -> dict:
    """Order dict with its lines and lifecycle events."""
    order = repo.require_order(order_id)
    result = order.to_dict()
    result["lines"] = [line.to_dict() for line in repo.lines_for_order(order_id)]
    result["events"] = [ev.to_dict() for ev in repo.events_for_order(order_id)]
    result["child_order_ids"] = repo.child_order_ids([order_id])
    return result


def employee_order_summary(employee_id: str) -> dict:
    """Self-service view: an employee's orders and what is still owed."""
    orders, _ = repo.list_orders(employee_id=employee_id, limit=500)
    outstanding = sum(
        o.amount_remaining_cents for o in orders if o.status in (OrderStatus.ACTIVE, OrderStatus.PENDING)
    )
    return {
        "employee_id": employee_id,
        "orders": [o.to_dict() for o in orders],
        "outstanding_cents": outstanding,
    }
