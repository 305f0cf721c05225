# Overview: Request decorators for API routes (acting user, error translation).

from functools import wraps
from flask import request, jsonify, g, current_app
from sqlalchemy.orm.exc import StaleDataError

from .services.errors import OrderError


DEFAULT_ACTOR = "system"


def with_actor(f):
    """
    Establish the acting user for the request.

    Authentication is handled in front of this service; the authenticated
    user name arrives in the X-Actor header. Sets g.actor.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = (request.headers.get("X-Actor") or "").strip()
        g.actor = actor[:64] or DEFAULT_ACTOR
        return f(*args, **kwargs)

    return decorated_function


def handle_order_errors(f):
    """
    Translate service errors into JSON responses.

    - OrderError subclasses -> their status code and to_dict() body
    - StaleDataError (a concurrent writer won after retries) -> 409
    - Anything else is logged with traceback -> 500
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except OrderError as e:
            return jsonify(e.to_dict()), e.status_code
        except StaleDataError:
            current_app.logger.warning("Concurrent update conflict on %s %s", request.method, request.path)
            return jsonify({
                "error": "The order was modified by another request. Reload and try again.",
                "retryable": True,
            }), 409
        except Exception:
            current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
            return jsonify({"error": "Internal server error"}), 500

    return decorated_function
