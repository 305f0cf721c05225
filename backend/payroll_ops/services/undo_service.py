# Overview: Bounded-time undo ledger for order lifecycle actions.

"""
Undo Ledger

WHY: Managers receive, split and cash-convert orders in bulk and sometimes
pick the wrong ones. Those actions create rows and move lines between
orders, so they have no clean inverse. Instead, every undoable action keeps
a full snapshot of the affected orders (and their lines) before and after.

RULES:
- An entry can be undone once, within UNDO_WINDOW_HOURS (12) of recording.
- Only the UNDO_MAX_ENTRIES (10) most recent entries are kept.
- Undo writes the "before" snapshot back verbatim. Orders that only exist in
  the "after" snapshot (created by a split) are cancelled, together with any
  line that did not exist before.
- Recording and undoing both append to the order_events log.
"""

from __future__ import annotations

import json
import uuid
from datetime import date, datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import UndoAction, OrderStatus, ItemStatus
from . import order_repository as repo
from .errors import NotUndoableError
from payroll_ops.time_utils import utcnow


ORDER_FIELDS = (
    "status",
    "total_cents",
    "payment_plan",
    "amount_per_installment_cents",
    "first_deduction_date",
    "installments_paid",
    "amount_paid_cents",
    "amount_remaining_cents",
    "received_date",
    "notes",
)

LINE_FIELDS = (
    "order_id",
    "quantity",
    "line_total_cents",
    "received_flag",
    "received_quantity",
    "received_date",
    "received_by",
    "item_status",
)

_DATE_FIELDS = {"first_deduction_date"}
_DATETIME_FIELDS = {"received_date"}


def _json_dumps(value) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _dump_value(value):
    if isinstance(value, (OrderStatus, ItemStatus)):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _load_value(field: str, value):
    if value is None:
        return None
    if field == "status":
        return OrderStatus(value)
    if field == "item_status":
        return ItemStatus(value)
    if field in _DATE_FIELDS:
        return date.fromisoformat(value)
    if field in _DATETIME_FIELDS:
        return datetime.fromisoformat(value)
    return value


# =============================================================================
# SNAPSHOTS
# =============================================================================

def snapshot(order_ids: list[str], *, include_children: bool = True) -> list[dict]:
    """
    Capture every mutable field of the given orders and their lines.

    Orders split off from them are included so a later snapshot can tell
    which orders an action created.
    """
    ids = list(dict.fromkeys(order_ids))
    if include_children:
        ids += [child for child in repo.child_order_ids(ids) if child not in ids]

    lines_by_order = repo.lines_for_orders(ids)
    states = []
    for order_id in ids:
        order = repo.get_order(order_id)
        if order is None:
            states.append({"order_id": order_id, "exists": False, "lines": []})
            continue
        state = {"order_id": order_id, "exists": True}
        state.update({field: _dump_value(getattr(order, field)) for field in ORDER_FIELDS})
        state["lines"] = [
            {"line_id": line.line_id, **{field: _dump_value(getattr(line, field)) for field in LINE_FIELDS}}
            for line in lines_by_order.get(order_id, [])
        ]
        states.append(state)
    return states


# =============================================================================
# LEDGER
# =============================================================================

def record(
    action_type: str,
    description: str,
    affected_ids: list[str],
    before: list[dict],
    after: list[dict],
    *,
    actor: str | None = None,
    now: datetime | None = None,
) -> UndoAction:
    """Append an undo entry and prune the ledger to the most recent entries."""
    now = now or utcnow()
    window = timedelta(hours=current_app.config.get("UNDO_WINDOW_HOURS", 12))
    keep = current_app.config.get("UNDO_MAX_ENTRIES", 10)

    entry = UndoAction(
        action_id=f"ACT-{uuid.uuid4().hex[:12].upper()}",
        timestamp=now,
        actor=actor,
        action_type=action_type,
        description=(description or "")[:255],
        affected_ids_json=_json_dumps(sorted(set(affected_ids))),
        before_state_json=_json_dumps(before),
        after_state_json=_json_dumps(after),
        expires_at=now + window,
        undone=False,
    )
    db.session.add(entry)
    db.session.flush()

    stale = (
        db.session.query(UndoAction)
        .order_by(UndoAction.timestamp.desc(), UndoAction.action_id.desc())
        .offset(keep)
        .all()
    )
    for old in stale:
        db.session.delete(old)

    for order_id in entry.affected_ids:
        repo.append_event(
            order_id=order_id,
            event_type="undo.recorded",
            actor=actor,
            action_id=entry.action_id,
            occurred_at=now,
            note=f"{action_type}: {description}",
        )

    db.session.commit()
    return entry


def perform(action_type: str, description: str, order_ids: list[str], operation, *, actor: str | None = None):
    """
    Run operation() between two snapshots and record it as undoable.

    Returns:
        (operation result, UndoAction)
    """
    before = snapshot(order_ids)
    result = operation()
    after = snapshot(order_ids)
    affected = [state["order_id"] for state in before + after]
    entry = record(action_type, description, affected, before, after, actor=actor)
    return result, entry


def get_action(action_id: str) -> UndoAction | None:
    return db.session.get(UndoAction, action_id)


def can_undo(action_id: str, *, now: datetime | None = None) -> bool:
    entry = get_action(action_id)
    return entry is not None and not entry.undone and (now or utcnow()) < entry.expires_at


def list_actions(*, now: datetime | None = None) -> list[dict]:
    now = now or utcnow()
    entries = (
        db.session.query(UndoAction)
        .order_by(UndoAction.timestamp.desc(), UndoAction.action_id.desc())
        .all()
    )
    rows = []
    for entry in entries:
        row = entry.to_dict()
        row["can_undo"] = not entry.undone and now < entry.expires_at
        rows.append(row)
    return rows


def _restore_order(state: dict) -> None:
    order = repo.get_order(state["order_id"])
    if order is None:
        current_app.logger.warning("Undo skipped missing order %s", state["order_id"])
        return
    for field in ORDER_FIELDS:
        setattr(order, field, _load_value(field, state.get(field)))

    for line_state in state.get("lines", []):
        line = repo.get_line(line_state["line_id"])
        if line is None:
            current_app.logger.warning("Undo skipped missing line %s", line_state["line_id"])
            continue
        for field in LINE_FIELDS:
            setattr(line, field, _load_value(field, line_state.get(field)))


def _retire_created_order(order_id: str, known_line_ids: set[str]) -> None:
    """Cancel an order that the undone action created."""
    order = repo.get_order(order_id)
    if order is None:
        return
    total = 0
    for line in repo.lines_for_order(order_id):
        if line.line_id not in known_line_ids:
            line.item_status = ItemStatus.CANCELLED
        elif line.item_status != ItemStatus.CANCELLED:
            total += line.line_total_cents
    order.status = OrderStatus.CANCELLED
    order.first_deduction_date = None
    order.total_cents = total
    order.amount_remaining_cents = total - order.amount_paid_cents


def undo(action_id: str, *, actor: str | None = None, now: datetime | None = None) -> UndoAction:
    """
    Restore the "before" snapshot of an action.

    Raises:
        NotUndoableError: Unknown id, already undone, or window expired
    """
    now = now or utcnow()
    entry = get_action(action_id)
    if entry is None:
        raise NotUndoableError(f"Undo action {action_id} not found")
    if entry.undone:
        raise NotUndoableError(f"Action {action_id} was already undone")
    if now >= entry.expires_at:
        raise NotUndoableError(f"Undo window for action {action_id} has expired")

    before = entry.before_state
    after = entry.after_state

    for state in before:
        if state.get("exists"):
            _restore_order(state)
    db.session.flush()

    existed = {state["order_id"] for state in before if state.get("exists")}
    known_lines = {line["line_id"] for state in before for line in state.get("lines", [])}
    for state in after:
        if state.get("exists") and state["order_id"] not in existed:
            _retire_created_order(state["order_id"], known_lines)

    entry.undone = True
    entry.undone_at = now
    entry.undone_by = actor

    for order_id in entry.affected_ids:
        repo.append_event(
            order_id=order_id,
            event_type="undo.applied",
            actor=actor,
            action_id=action_id,
            occurred_at=now,
            note=f"Reverted {entry.action_type}",
        )

    db.session.commit()
    current_app.logger.info("Undid action %s (%s) for %s", action_id, entry.action_type, ", ".join(entry.affected_ids))
    return entry
