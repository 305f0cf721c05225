# Overview: Fire-and-forget notifications after order creation/activation.

"""
Notification dispatch.

The actual transport (email, chat) is an external collaborator. A sender is a
callable (event, payload) registered on the app as
app.extensions["order_notifier"]; without one, messages are only logged.

A failing sender never fails the order operation that triggered it.
"""

from __future__ import annotations

from flask import current_app

from ..models import Order


EVENT_ORDER_CREATED = "order.created"
EVENT_ORDER_ACTIVATED = "order.activated"
EVENT_ORDER_SPLIT = "order.split"


def register_sender(app, sender) -> None:
    app.extensions["order_notifier"] = sender


def _log_sender(event: str, payload: dict) -> None:
    current_app.logger.info("Notification %s for order %s", event, payload.get("order_id"))


def notify(event: str, order: Order, **extra) -> bool:
    """Send a notification; returns False if it was skipped or failed."""
    if not current_app.config.get("NOTIFICATIONS_ENABLED", True):
        return False

    sender = current_app.extensions.get("order_notifier", _log_sender)
    payload = {
        "order_id": order.order_id,
        "employee_id": order.employee_id,
        "employee_name": order.employee_name,
        "location": order.location,
        "status": order.status.value,
        "total_cents": order.total_cents,
        **extra,
    }
    try:
        sender(event, payload)
    except Exception:
        current_app.logger.warning("Notification %s failed for order %s", event, order.order_id, exc_info=True)
        return False
    return True
