# Overview: Flask API routes for event and token purchases; parses input and returns JSON responses.

# backend/fightpass/routes/purchases.py
"""
Purchase API Routes

DESIGN:
- Event access is bought with tokens (no external payment)
- Token packages are bought with money through Square
- The buyer is always the verified principal, never a body field

SECURITY:
- Bearer token required on every route
- Processor error payloads are never returned; only the declared decline reason
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import PurchaseError, ValidationError
from ..services.wiring import get_services
from . import error_response, internal_error_response


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/v1")


@purchases_bp.post("/purchases/events")
@require_auth
def purchase_event_route():
    """
    Buy time-limited access to an event with tokens.

    Request body:
    {
        "event_id": "evt_live_championship"
    }

    Returns:
        200: access_token, expires_at, receipt_number, digital_signature
        400: INSUFFICIENT_BALANCE (required/current/shortage) or missing event_id
        404: Event or user not found
        500: Purchase could not be recorded
    """
    try:
        data = request.get_json(silent=True) or {}
        event_id = data.get("event_id")
        if not event_id:
            raise ValidationError("event_id required")

        result = get_services().access.purchase_event_access(g.principal.user_id, str(event_id))
        return jsonify(result.to_dict())

    except PurchaseError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to purchase event")
        return internal_error_response()


@purchases_bp.post("/tokens/purchase")
@require_auth
def purchase_tokens_route():
    """
    Buy a token package.

    Request body:
    {
        "package_id": "250",
        "source_id": "cnon:card-nonce-ok",
        "verification_token": "verf:..."  (optional, SCA)
    }

    PACKAGES: 100, 250 (+50), 500 (+150), 1000 (+500)

    Returns:
        200: new_balance, tokens_added, bonus_tokens, receipt_number, signature, square_payment_id
        400: UNKNOWN_PACKAGE or missing source_id
        402: PAYMENT_DECLINED
        503: PAYMENT_PROCESSOR_UNAVAILABLE
    """
    try:
        data = request.get_json(silent=True) or {}
        package_id = data.get("package_id")
        source_id = data.get("source_id")
        verification_token = data.get("verification_token")

        if package_id is None:
            raise ValidationError("package_id required")
        if not source_id:
            raise ValidationError("source_id required")

        result = get_services().tokens.purchase_token_package(
            g.principal.user_id,
            str(package_id),
            str(source_id),
            verification_token,
        )
        return jsonify(result.to_dict())

    except PurchaseError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to purchase tokens")
        return internal_error_response()
