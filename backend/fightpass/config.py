# backend/fightpass/config.py
from __future__ import annotations
import os


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = _getenv("SECRET_KEY", "dev-secret-key-change-me")
    ENVIRONMENT = (_getenv("ENVIRONMENT", "development") or "development").lower()

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = _getenv(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fightpass.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer token verification (issuance happens elsewhere)
    JWT_SECRET = _getenv("JWT_SECRET", "your-secret-key")
    JWT_ALGORITHMS = ["HS256"]

    # Receipt signatures; never sent to clients
    RECEIPT_SIGNING_KEY = _getenv("RECEIPT_SIGNING_KEY") or JWT_SECRET

    # Square payments
    SQUARE_ACCESS_TOKEN = _getenv("SQUARE_ACCESS_TOKEN")
    SQUARE_LOCATION_ID = _getenv("SQUARE_LOCATION_ID")
    SQUARE_ENVIRONMENT = (_getenv("SQUARE_ENVIRONMENT", "sandbox") or "sandbox").lower()
    SQUARE_API_VERSION = _getenv("SQUARE_API_VERSION", "2024-07-17")
    SQUARE_TIMEOUT_SECONDS = float(_getenv("SQUARE_TIMEOUT_SECONDS", "30") or "30")
    PAYMENT_CURRENCY = _getenv("PAYMENT_CURRENCY", "USD")

    # Receipt email via Resend
    RESEND_API_KEY = _getenv("RESEND_API_KEY")
    RESEND_FROM_EMAIL = _getenv("RESEND_FROM_EMAIL", "FightPass <onboarding@resend.dev>")
    NOTIFICATION_WORKERS = int(_getenv("NOTIFICATION_WORKERS", "2") or "2")
    NOTIFICATIONS_SYNCHRONOUS = _getenv_bool("NOTIFICATIONS_SYNCHRONOUS", default=False)

    ACCESS_VALIDITY_DAYS = int(_getenv("ACCESS_VALIDITY_DAYS", "30") or "30")

    LOG_LEVEL = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()
