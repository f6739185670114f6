from flask import jsonify

from ..errors import PurchaseError


def error_response(err: PurchaseError):
    """Map a PurchaseError to its JSON body and HTTP status."""
    return jsonify(err.to_dict()), err.status


def internal_error_response():
    return jsonify({"error": "INTERNAL_FAULT", "message": "Internal server error"}), 500
