# Overview: Adapter for idempotent monetary charges against Square.

"""
Payment Gateway

WHY: Token packages are paid with real money through Square's Payments API.
This adapter performs exactly one charge attempt per call and maps Square's
outcomes onto PaymentDeclined / PaymentProcessorUnavailable.

IDEMPOTENCY: The caller supplies a fresh idempotency key per attempt. The
adapter never retries; retry discipline belongs to the caller, who must
reuse the same key when retrying the same attempt.

ERROR MAPPING:
- HTTP 2xx, payment status COMPLETED/APPROVED     -> ChargeResult
- HTTP 2xx, payment status FAILED/CANCELED        -> PaymentDeclined
- 4xx with PAYMENT_METHOD_ERROR / INVALID_REQUEST  -> PaymentDeclined(detail)
- 401/403/429, 5xx, timeouts, bad JSON            -> PaymentProcessorUnavailable
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import requests

from ..errors import PaymentDeclined, PaymentProcessorUnavailable

logger = logging.getLogger(__name__)

SQUARE_BASE_URLS = {
    "production": "https://connect.squareup.com",
    "sandbox": "https://connect.squareupsandbox.com",
}

DECLINE_CATEGORIES = {"PAYMENT_METHOD_ERROR", "INVALID_REQUEST_ERROR"}
SUCCESS_STATUSES = {"COMPLETED", "APPROVED"}


@dataclass(frozen=True)
class ChargeResult:
    payment_id: str
    status: str
    receipt_url: str | None = None


class PaymentGateway(Protocol):
    def charge(
        self,
        amount_minor_units: int,
        currency: str,
        source_id: str,
        idempotency_key: str,
        buyer_email: str | None,
        metadata: Mapping[str, Any] | None = None,
    ) -> ChargeResult:
        ...


def _error_detail(errors: list[dict]) -> str:
    parts = [str(e.get("detail") or e.get("code") or "Unknown error") for e in errors if isinstance(e, dict)]
    return ", ".join(parts) or "Payment was declined"


class SquarePaymentGateway:
    """Square Payments API client (POST /v2/payments)."""

    def __init__(
        self,
        access_token: str | None,
        location_id: str | None,
        *,
        environment: str = "sandbox",
        api_version: str | None = None,
        timeout_s: float = 30,
        session=None,
    ) -> None:
        self._access_token = access_token
        self._location_id = location_id
        self._base_url = SQUARE_BASE_URLS.get(environment, SQUARE_BASE_URLS["sandbox"])
        self._api_version = api_version
        self._timeout_s = timeout_s
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._api_version:
            headers["Square-Version"] = self._api_version
        return headers

    def charge(
        self,
        amount_minor_units: int,
        currency: str,
        source_id: str,
        idempotency_key: str,
        buyer_email: str | None,
        metadata: Mapping[str, Any] | None = None,
    ) -> ChargeResult:
        if not self._access_token or not self._location_id:
            logger.error("Square is not configured (SQUARE_ACCESS_TOKEN / SQUARE_LOCATION_ID)")
            raise PaymentProcessorUnavailable(private_details={"reason": "not_configured"})

        metadata = dict(metadata or {})
        payload: dict[str, Any] = {
            "source_id": source_id,
            "idempotency_key": idempotency_key,
            "amount_money": {"amount": int(amount_minor_units), "currency": currency},
            "location_id": self._location_id,
            "autocomplete": True,
            "statement_description_identifier": "FIGHTPASS",
        }
        if buyer_email:
            payload["buyer_email_address"] = buyer_email
        if metadata.get("note"):
            payload["note"] = str(metadata["note"])
        if metadata.get("verification_token"):
            payload["verification_token"] = str(metadata["verification_token"])
        if metadata.get("reference_id"):
            payload["reference_id"] = str(metadata["reference_id"])

        try:
            resp = self._session.post(
                f"{self._base_url}/v2/payments",
                headers=self._headers(),
                json=payload,
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            logger.error("Square request failed: %s", type(exc).__name__)
            raise PaymentProcessorUnavailable(
                private_details={"idempotency_key": idempotency_key, "exception": type(exc).__name__}
            ) from exc

        status_code = int(resp.status_code)
        try:
            body = resp.json() or {}
        except ValueError:
            body = None

        if not isinstance(body, dict):
            logger.error("Square returned a non-JSON body (HTTP %s)", status_code)
            raise PaymentProcessorUnavailable(private_details={"http_status": status_code})

        if status_code >= 400:
            errors = body.get("errors") or []
            categories = {e.get("category") for e in errors if isinstance(e, dict)}
            if status_code < 500 and status_code not in (401, 403, 429) and categories & DECLINE_CATEGORIES:
                detail = _error_detail(errors)
                logger.warning("Square declined payment (HTTP %s): %s", status_code, detail)
                raise PaymentDeclined(detail)
            logger.error("Square unavailable (HTTP %s, categories=%s)", status_code, sorted(c for c in categories if c))
            raise PaymentProcessorUnavailable(
                private_details={"http_status": status_code, "idempotency_key": idempotency_key}
            )

        payment = body.get("payment") or {}
        payment_id = payment.get("id")
        payment_status = str(payment.get("status") or "")
        if not payment_id:
            logger.error("Square response missing payment id (HTTP %s)", status_code)
            raise PaymentProcessorUnavailable(private_details={"http_status": status_code})
        if payment_status not in SUCCESS_STATUSES:
            logger.warning("Square payment %s finished with status %s", payment_id, payment_status)
            raise PaymentDeclined(f"Payment {payment_status.lower() or 'not completed'}")

        return ChargeResult(
            payment_id=str(payment_id),
            status=payment_status,
            receipt_url=payment.get("receipt_url"),
        )
