# Overview: Keyed receipt signatures over canonical purchase facts.

"""
Receipt Signature Service

WHY: Every purchase is stamped with an HMAC-SHA256 over a canonical fact
tuple so that later edits to the stored row (direct database writes,
restore mistakes) are detected when the receipt is looked up.

CANONICAL FORM:
- Each fact type has a fixed, ordered field set (dataclass field order).
- Serialization is compact JSON in that order, so signing and verification
  must always build the fact through the same dataclass.
- Timestamps are ISO-8601 UTC with milliseconds and a trailing Z.
- Currency amounts are decimal strings with two places.

The signing key is injected at construction. The signer keeps no other state.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from typing import Any

from ..time_utils import as_utc_naive, to_utc_z


@dataclass(frozen=True)
class EventPurchaseFact:
    receipt_number: str
    purchase_id: str
    user_id: str
    event_id: str
    access_token: str
    tokens_spent: int
    expires_at: datetime
    timestamp: datetime

    @classmethod
    def from_grant(cls, grant) -> "EventPurchaseFact":
        """Re-derive the fact from stored AccessGrant fields."""
        return cls(
            receipt_number=grant.receipt_number,
            purchase_id=grant.id,
            user_id=grant.user_id,
            event_id=grant.event_id,
            access_token=grant.access_token,
            tokens_spent=grant.amount_paid,
            expires_at=as_utc_naive(grant.expires_at),
            timestamp=as_utc_naive(grant.purchase_date),
        )


@dataclass(frozen=True)
class TokenPurchaseFact:
    receipt_number: str
    purchase_id: str
    user_id: str
    package_id: str
    tokens: int
    amount: Decimal
    square_payment_id: str
    timestamp: datetime

    @classmethod
    def from_token_purchase(cls, purchase) -> "TokenPurchaseFact":
        """Re-derive the fact from stored TokenPurchase fields."""
        return cls(
            receipt_number=purchase.receipt_number,
            purchase_id=purchase.id,
            user_id=purchase.user_id,
            package_id=purchase.package_id,
            tokens=int(purchase.tokens_added) + int(purchase.bonus_tokens or 0),
            amount=purchase.amount_paid,
            square_payment_id=purchase.square_payment_id,
            timestamp=as_utc_naive(purchase.created_at),
        )


def _canonical_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, (Decimal, float)):
        return f"{Decimal(str(value)):.2f}"
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if value is None:
        return None
    return str(value)


def canonical_serialize(fact) -> bytes:
    """Compact JSON of the fact's fields, in declaration order."""
    pairs = {f.name: _canonical_value(getattr(fact, f.name)) for f in fields(fact)}
    return json.dumps(pairs, separators=(",", ":"), ensure_ascii=True).encode("utf-8")


class ReceiptSigner:
    """HMAC-SHA256 signer for purchase facts."""

    def __init__(self, key: str | bytes) -> None:
        if not key:
            raise ValueError("Receipt signing key must not be empty")
        self._key = key.encode("utf-8") if isinstance(key, str) else bytes(key)

    def sign(self, fact) -> str:
        """Return the hex-encoded signature of the fact."""
        return hmac.new(self._key, canonical_serialize(fact), hashlib.sha256).hexdigest()

    def verify(self, fact, signature: str | None) -> bool:
        """
        Recompute the signature and compare in constant time.

        Never raises. Both sides are re-keyed to fixed-length digests before
        comparison so a length mismatch does not show up in timing.
        """
        if not isinstance(signature, str) or not signature:
            return False
        try:
            expected = self.sign(fact)
        except (TypeError, ValueError):
            return False
        expected_mac = hmac.new(self._key, expected.encode("ascii"), hashlib.sha256).digest()
        supplied_mac = hmac.new(self._key, signature.encode("utf-8", "replace"), hashlib.sha256).digest()
        return hmac.compare_digest(expected_mac, supplied_mac)
