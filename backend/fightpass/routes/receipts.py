# Overview: Flask API route for receipt lookup and verification.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth
from ..errors import NotFound, PurchaseError
from ..services.wiring import get_services
from . import error_response, internal_error_response


receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/v1/receipts")


@receipts_bp.get("/<receipt_number>")
@require_auth
def lookup_receipt_route(receipt_number: str):
    """
    Look up a receipt and re-verify its digital signature.

    Returns:
        200: Receipt view with signature_valid
        404: Receipt not found
    """
    try:
        return jsonify(get_services().receipts.lookup_receipt(receipt_number))
    except NotFound as e:
        body = e.to_dict()
        body["receipt_number"] = receipt_number
        return jsonify(body), e.status
    except PurchaseError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to verify receipt")
        return internal_error_response()
