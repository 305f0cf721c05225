# Overview: Flask API routes for the undo ledger.

from flask import Blueprint, jsonify, g

from ..decorators import with_actor, handle_order_errors
from ..services import undo_service


undo_bp = Blueprint("undo", __name__, url_prefix="/api/undo")


@undo_bp.get("")
@with_actor
@handle_order_errors
def list_undo_route():
    """Recent undoable actions, newest first, each with a can_undo flag."""
    return jsonify({"items": undo_service.list_actions()})


@undo_bp.post("/<action_id>")
@with_actor
@handle_order_errors
def undo_route(action_id: str):
    """
    Revert an action to its recorded "before" state.

    Returns:
        The ledger entry, now marked undone (200)
        409 if the entry was already undone or its window has passed
    """
    entry = undo_service.undo(action_id, actor=g.actor)
    return jsonify(entry.to_dict())
