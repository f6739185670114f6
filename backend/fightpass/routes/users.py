# Overview: Flask API routes for a user's grants, stream access, balance and orders.

"""
User-scoped API Routes

All /users/<user_id>/... routes only serve the verified principal's own
records; another user id in the path is rejected with 403.
"""

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_auth, require_path_user
from ..errors import PurchaseError
from ..services.wiring import get_services
from . import error_response, internal_error_response


users_bp = Blueprint("users", __name__, url_prefix="/api/v1")


@users_bp.post("/events/<event_id>/stream")
@require_auth
def stream_route(event_id: str):
    """
    Return the playback locator for an event the caller holds an active grant for.

    Returns:
        200: stream_url, expires_at
        403: No valid purchase found
        404: Stream not available
    """
    try:
        access = get_services().access.get_stream_locator(g.principal.user_id, event_id)
        return jsonify(access.to_dict())
    except PurchaseError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load stream")
        return internal_error_response()


@users_bp.get("/users/<user_id>/events")
@require_auth
@require_path_user
def user_events_route(user_id: str):
    """List purchased event access with active/expired status."""
    try:
        grants = get_services().access.list_user_access_grants(user_id)
        return jsonify({
            "events": [grant.to_dict() for grant in grants],
            "total": len(grants),
        })
    except PurchaseError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list user events")
        return internal_error_response()


@users_bp.get("/users/<user_id>/tokens")
@require_auth
@require_path_user
def token_balance_route(user_id: str):
    try:
        balance = get_services().ledger.get_balance(user_id)
        return jsonify({"balance": balance, "user_id": user_id})
    except PurchaseError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load token balance")
        return internal_error_response()


@users_bp.get("/users/<user_id>/orders")
@require_auth
@require_path_user
def user_orders_route(user_id: str):
    """Unified order history (event access and token packages), newest first."""
    try:
        orders = get_services().store.list_orders(user_id)
        return jsonify({
            "orders": [order.to_dict() for order in orders],
            "total": len(orders),
        })
    except PurchaseError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return internal_error_response()
