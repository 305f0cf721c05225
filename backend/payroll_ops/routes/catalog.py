# Overview: Flask API routes for the orderable uniform catalog.

from flask import Blueprint, jsonify

from ..decorators import with_actor, handle_order_errors
from ..services import catalog_service


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("")
@with_actor
@handle_order_errors
def list_catalog_route():
    items = catalog_service.list_active_items()
    return jsonify({"items": [item.to_dict() for item in items], "count": len(items)})
