# backend/fightpass/routes/system.py
"""System health endpoint."""

from flask import Blueprint, current_app, jsonify

from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


@system_bp.get("/health")
def health():
    return jsonify({
        "status": "healthy",
        "timestamp": to_utc_z(utcnow()),
        "environment": current_app.config.get("ENVIRONMENT", "development"),
    })
