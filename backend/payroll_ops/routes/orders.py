# Overview: Flask API routes for uniform orders; parses input and returns JSON responses.

"""
Uniform Order Routes

Authentication happens upstream; the acting user arrives in X-Actor.

Receiving, cash conversion, installment recording and cancellation are
recorded in the undo ledger; responses carry the resulting action_id so the
caller can offer "undo" for UNDO_WINDOW_HOURS.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, handle_order_errors
from ..services import order_service, undo_service
from ..services import order_repository as repo
from ..services.errors import ValidationError
from payroll_ops.time_utils import parse_iso_datetime


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _received_at(data: dict):
    raw = data.get("received_at")
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError("received_at must be an ISO-8601 string")
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError("Invalid received_at format")


def _quantities(data: dict) -> dict:
    quantities = data.get("received_quantities")
    if not isinstance(quantities, dict):
        raise ValidationError("received_quantities must map line ids to quantities")
    return quantities


def _undoable_response(payload: dict, entry, status: int = 200):
    payload["action_id"] = entry.action_id
    payload["undo_expires_at"] = entry.to_dict()["expires_at"]
    return jsonify(payload), status


@orders_bp.get("")
@with_actor
@handle_order_errors
def list_orders_route():
    """
    List orders.

    Query parameters:
    - employee_id, location, status
    - from_date / to_date: order_date bounds (ISO-8601)
    - limit (default 100, max 500), offset

    Returns:
        {items: Order[], count: int, limit, offset}
    """
    try:
        from_date = parse_iso_datetime(request.args.get("from_date"))
        to_date = parse_iso_datetime(request.args.get("to_date"))
    except ValueError:
        return jsonify({"error": "Invalid date format"}), 400

    limit = request.args.get("limit", 100, type=int)
    offset = request.args.get("offset", 0, type=int)
    limit = min(max(limit, 1), 500)
    offset = max(offset, 0)

    status = request.args.get("status")
    try:
        orders, total = repo.list_orders(
            employee_id=request.args.get("employee_id"),
            location=request.args.get("location"),
            status=status,
            from_date=from_date,
            to_date=to_date,
            limit=limit,
            offset=offset,
        )
    except ValueError:
        return jsonify({"error": f"Unknown status: {status}"}), 400

    return jsonify({
        "items": [o.to_dict() for o in orders],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@orders_bp.post("")
@with_actor
@handle_order_errors
def create_order_route():
    """
    Create a uniform order.

    Request body:
    {
        "employee": "E100",          // required, id or unique name
        "location": "North",         // optional, defaults to the employee's location
        "items": [{"item_name": "Polo Shirt", "quantity": 2, "size": "L", "is_replacement": false}],
        "payment_plan": 2,           // 1-3, or 0 for cash
        "pay_cash": false,
        "notes": "..."
    }

    Returns:
        Created order with lines (201)
    """
    data = request.get_json(silent=True) or {}

    order = order_service.create_order(
        employee=data.get("employee") or data.get("employee_id"),
        location=data.get("location"),
        items=data.get("items") or [],
        payment_plan=data.get("payment_plan", 1),
        notes=data.get("notes"),
        pay_cash=bool(data.get("pay_cash", False)),
        created_by=g.actor,
    )
    return jsonify(order_service.get_order_with_lines(order.order_id)), 201


@orders_bp.get("/<order_id>")
@with_actor
@handle_order_errors
def get_order_route(order_id: str):
    return jsonify(order_service.get_order_with_lines(order_id))


@orders_bp.patch("/<order_id>/notes")
@with_actor
@handle_order_errors
def update_notes_route(order_id: str):
    data = request.get_json(silent=True) or {}
    if "notes" not in data:
        return jsonify({"error": "notes is required"}), 400
    order = order_service.update_order_notes(order_id, data.get("notes"), actor=g.actor)
    return jsonify(order.to_dict())


@orders_bp.get("/employee/<employee_id>")
@with_actor
@handle_order_errors
def employee_orders_route(employee_id: str):
    """Self-service order history with outstanding balance."""
    return jsonify(order_service.employee_order_summary(employee_id))


@orders_bp.post("/<order_id>/receive")
@with_actor
@handle_order_errors
def receive_order_route(order_id: str):
    """Receive every open line of the order."""
    data = request.get_json(silent=True) or {}
    received_at = _received_at(data)

    order, entry = undo_service.perform(
        "RECEIVE",
        f"Received order {order_id}",
        [order_id],
        lambda: order_service.mark_received(order_id, actor=g.actor, received_at=received_at),
        actor=g.actor,
    )
    return _undoable_response({"order": order.to_dict()}, entry)


@orders_bp.post("/receive-bulk")
@with_actor
@handle_order_errors
def receive_bulk_route():
    """
    Receive several orders as one undoable action.

    Request body:
    {"order_ids": ["ORD-2025-0001", ...], "received_at": "..."}

    Returns:
        {received: Order[], failed: [{order_id, error}], action_id}
    """
    data = request.get_json(silent=True) or {}
    order_ids = data.get("order_ids")
    if not isinstance(order_ids, list) or not order_ids:
        return jsonify({"error": "order_ids must be a non-empty list"}), 400
    order_ids = [str(oid) for oid in dict.fromkeys(order_ids)]
    received_at = _received_at(data)

    result, entry = undo_service.perform(
        "RECEIVE_BULK",
        f"Received {len(order_ids)} orders",
        order_ids,
        lambda: order_service.mark_received_bulk(order_ids, actor=g.actor, received_at=received_at),
        actor=g.actor,
    )
    return _undoable_response(result, entry)


@orders_bp.post("/<order_id>/receive-partial")
@with_actor
@handle_order_errors
def receive_partial_route(order_id: str):
    """
    Receive per line; unreceived items move to a new order.

    Request body:
    {"received_quantities": {"LINE-000001": 1, "LINE-000002": 0}, "received_at": "..."}

    Returns:
        {order, new_order_id, action_id}
    """
    data = request.get_json(silent=True) or {}
    quantities = _quantities(data)
    received_at = _received_at(data)

    new_order_id, entry = undo_service.perform(
        "RECEIVE_PARTIAL",
        f"Partially received order {order_id}",
        [order_id],
        lambda: order_service.receive_with_partial_items(
            order_id, quantities, actor=g.actor, received_at=received_at
        ),
        actor=g.actor,
    )
    return _undoable_response({
        "order": repo.require_order(order_id).to_dict(),
        "new_order_id": new_order_id,
    }, entry)


@orders_bp.post("/<order_id>/convert-cash")
@with_actor
@handle_order_errors
def convert_cash_route(order_id: str):
    """
    Settle the order in cash at the store.

    Request body (optional):
    {"received_quantities": {...}}   // omit when every item arrived

    Returns:
        {order, new_order_id, action_id}
    """
    data = request.get_json(silent=True) or {}
    quantities = _quantities(data) if "received_quantities" in data else None
    received_at = _received_at(data)

    new_order_id, entry = undo_service.perform(
        "CONVERT_CASH",
        f"Converted order {order_id} to cash",
        [order_id],
        lambda: order_service.convert_to_cash_payment(
            order_id, quantities, actor=g.actor, received_at=received_at
        ),
        actor=g.actor,
    )
    return _undoable_response({
        "order": repo.require_order(order_id).to_dict(),
        "new_order_id": new_order_id,
    }, entry)


@orders_bp.post("/<order_id>/payments")
@with_actor
@handle_order_errors
def record_payment_route(order_id: str):
    """Record one payroll installment."""
    order, entry = undo_service.perform(
        "INSTALLMENT",
        f"Recorded installment on order {order_id}",
        [order_id],
        lambda: order_service.record_installment_payment(order_id, actor=g.actor),
        actor=g.actor,
    )
    return _undoable_response({"order": order.to_dict()}, entry)


@orders_bp.post("/<order_id>/cancel")
@with_actor
@handle_order_errors
def cancel_order_route(order_id: str):
    """
    Cancel an order.

    Request body:
    {"administrative": false, "reason": "..."}
    """
    data = request.get_json(silent=True) or {}
    administrative = bool(data.get("administrative", False))

    order, entry = undo_service.perform(
        "CANCEL",
        f"Cancelled order {order_id}",
        [order_id],
        lambda: order_service.cancel_order(
            order_id, actor=g.actor, administrative=administrative, reason=data.get("reason")
        ),
        actor=g.actor,
    )
    return _undoable_response({"order": order.to_dict()}, entry)
