# Overview: Error taxonomy for the purchase and receipt subsystem.

"""
Purchase Errors

Every failure surfaced to a caller maps to a stable, machine-readable
ErrorKind plus a human message. Details attached to an error are split
into public details (returned to clients) and private details (logged for
manual reconciliation, never returned).
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed set of error kinds with their HTTP status."""

    NOT_FOUND = ("NOT_FOUND", 404)
    INSUFFICIENT_BALANCE = ("INSUFFICIENT_BALANCE", 400)
    UNKNOWN_PACKAGE = ("UNKNOWN_PACKAGE", 400)
    PAYMENT_DECLINED = ("PAYMENT_DECLINED", 402)
    PAYMENT_PROCESSOR_UNAVAILABLE = ("PAYMENT_PROCESSOR_UNAVAILABLE", 503)
    UNAUTHORIZED = ("UNAUTHORIZED", 401)
    FORBIDDEN = ("FORBIDDEN", 403)
    VALIDATION_ERROR = ("VALIDATION_ERROR", 400)
    INTERNAL_FAULT = ("INTERNAL_FAULT", 500)

    def __init__(self, code: str, http_status: int) -> None:
        self.code = code
        self.http_status = http_status


class PurchaseError(Exception):
    """Base error with kind, user-safe message and optional details."""

    kind: ErrorKind = ErrorKind.INTERNAL_FAULT

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        private_details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        self.private_details = dict(private_details or {})

    @property
    def status(self) -> int:
        return self.kind.http_status

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind.code, "message": self.message, **self.details}

    def __str__(self) -> str:
        return f"{self.kind.code}: {self.message}"


class NotFound(PurchaseError):
    """Raised when a user, event, receipt or stream is absent."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, identifier: str | None = None) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.identifier = identifier


class InsufficientBalance(PurchaseError):
    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, required: int, current: int) -> None:
        self.required = required
        self.current = current
        self.shortage = required - current
        super().__init__(
            "Insufficient tokens",
            details={"required": required, "current": current, "shortage": self.shortage},
        )


class UnknownPackage(PurchaseError):
    kind = ErrorKind.UNKNOWN_PACKAGE

    def __init__(self, package_id: str) -> None:
        super().__init__("Invalid package")
        self.package_id = package_id


class PaymentDeclined(PurchaseError):
    """The processor refused the charge. `detail` is the processor's declared reason."""

    kind = ErrorKind.PAYMENT_DECLINED

    def __init__(self, detail: str) -> None:
        super().__init__(f"Payment failed: {detail}", details={"detail": detail})
        self.detail = detail


class PaymentProcessorUnavailable(PurchaseError):
    kind = ErrorKind.PAYMENT_PROCESSOR_UNAVAILABLE

    def __init__(self, private_details: dict[str, Any] | None = None) -> None:
        super().__init__(
            "Payment processing failed. Please try again.",
            private_details=private_details,
        )


class Unauthorized(PurchaseError):
    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class Forbidden(PurchaseError):
    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class ValidationError(PurchaseError):
    """400-level input problem."""

    kind = ErrorKind.VALIDATION_ERROR


class InternalFault(PurchaseError):
    """
    Unexpected failure in the persistence or signature layers.

    private_details carries what an operator needs to reconcile the
    purchase by hand (user, event/package, amount, external payment id).
    """

    kind = ErrorKind.INTERNAL_FAULT

    def __init__(self, message: str = "Internal server error", *, private_details: dict[str, Any] | None = None) -> None:
        super().__init__(message, private_details=private_details)
