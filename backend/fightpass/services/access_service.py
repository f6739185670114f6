# Overview: Converts token debits into signed, time-bounded event access grants.

"""
Access Grant Service

PURCHASE FLOW (purchase_event_access):
    Requested -> Priced -> Debited -> Signed -> Persisted -> NotificationSent -> Complete
    Rejected(reason) is reachable only before the debit.

ATOMICITY: The debit, the grant, its mirrored Order and the signature are
one unit of work. Nothing is visible until commit; any failure before
commit rolls the debit back. A failure that escapes as something other
than a validation error is reported as InternalFault, with the
reconciliation details logged.

IDEMPOTENCY: Event purchases carry no caller-supplied idempotency key.
A retried request creates a second grant. This is a known gap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import IntegrityError

from ..errors import Forbidden, InsufficientBalance, InternalFault, NotFound, PurchaseError
from ..models import AccessGrant, GrantStatus, Order, OrderStatus, OrderType
from ..stores import PurchaseStore
from ..time_utils import as_utc_naive, to_utc_z, truncate_to_millis, utcnow
from .concurrency import run_with_retry
from .identifier_service import generate_access_token, generate_id
from .notification_service import NotificationDispatcher, event_receipt_email
from .receipt_service import allocate_receipt_number
from .signature_service import EventPurchaseFact, ReceiptSigner
from .token_ledger_service import TokenLedger

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_VALIDITY = timedelta(days=30)


@dataclass(frozen=True)
class EventPurchaseResult:
    purchase_id: str
    access_token: str
    expires_at: datetime
    receipt_number: str
    digital_signature: str
    email: str

    def to_dict(self) -> dict:
        return {
            "success": True,
            "access_token": self.access_token,
            "expires_at": to_utc_z(self.expires_at),
            "receipt_number": self.receipt_number,
            "digital_signature": self.digital_signature,
            "message": f"Event purchased successfully! Receipt sent to {self.email}",
        }


@dataclass(frozen=True)
class StreamAccess:
    stream_url: str
    expires_at: datetime

    def to_dict(self) -> dict:
        return {"stream_url": self.stream_url, "expires_at": to_utc_z(self.expires_at)}


@dataclass(frozen=True)
class AccessGrantView:
    id: str
    event_id: str
    title: str
    thumbnail_url: str | None
    purchase_date: datetime
    expires_at: datetime
    status: GrantStatus

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "title": self.title,
            "purchase_date": to_utc_z(self.purchase_date),
            "expires_at": to_utc_z(self.expires_at),
            "status": self.status.value,
            "thumbnail_url": self.thumbnail_url,
        }


class AccessGrantService:
    """Event access purchases, stream authorization and grant listing."""

    def __init__(
        self,
        store: PurchaseStore,
        signer: ReceiptSigner,
        dispatcher: NotificationDispatcher,
        *,
        validity: timedelta = DEFAULT_ACCESS_VALIDITY,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._signer = signer
        self._dispatcher = dispatcher
        self._ledger = TokenLedger(store)
        self._validity = validity
        self._clock = clock

    def _now(self) -> datetime:
        # Injected clocks may be tz-aware; stored timestamps are UTC-naive
        return as_utc_naive(self._clock())

    def purchase_event_access(self, user_id: str, event_id: str) -> EventPurchaseResult:
        """
        Spend tokens on time-bounded access to one event.

        Raises:
            NotFound: If the event or user does not exist.
            InsufficientBalance: If the user cannot afford the event.
            InternalFault: If the purchase could not be persisted.
        """
        event = self._store.get_event(event_id)
        if event is None:
            raise NotFound("Event", event_id)

        user = self._store.get_user(user_id)
        if user is None:
            raise NotFound("User", user_id)

        price = int(event.price)
        if int(user.token_balance or 0) < price:
            raise InsufficientBalance(required=price, current=int(user.token_balance or 0))

        attempt: dict = {}

        def _op() -> AccessGrant:
            now = truncate_to_millis(self._now())
            # Re-checked under the user lock; may still raise InsufficientBalance
            self._ledger.debit(user_id, price)

            purchase_id = generate_id()
            attempt["purchase_id"] = purchase_id
            receipt_number = allocate_receipt_number(self._store)
            access_token = generate_access_token()
            expires_at = now + self._validity

            signature = self._signer.sign(EventPurchaseFact(
                receipt_number=receipt_number,
                purchase_id=purchase_id,
                user_id=user_id,
                event_id=event_id,
                access_token=access_token,
                tokens_spent=price,
                expires_at=expires_at,
                timestamp=now,
            ))

            grant = AccessGrant(
                id=purchase_id,
                user_id=user_id,
                event_id=event_id,
                access_token=access_token,
                purchase_date=now,
                expires_at=expires_at,
                amount_paid=price,
                receipt_number=receipt_number,
                digital_signature=signature,
            )
            self._store.add_access_grant(grant)
            self._store.add_order(Order(
                id=generate_id(),
                user_id=user_id,
                type=OrderType.EVENT_ACCESS,
                items=f"{event.title} - {event.subtitle}" if event.subtitle else event.title,
                amount=Decimal(price),
                status=OrderStatus.COMPLETED,
                receipt_number=receipt_number,
                digital_signature=signature,
                created_at=now,
            ))
            self._store.commit()
            return grant

        try:
            grant = run_with_retry(_op, self._store, retry_on=(IntegrityError,))
        except PurchaseError:
            raise
        except Exception as exc:
            details = {
                "user_id": user_id,
                "event_id": event_id,
                "tokens": price,
                "purchase_id": attempt.get("purchase_id"),
                "debit_rolled_back": True,
            }
            logger.error("Event purchase failed after debit was staged: %s", details, exc_info=True)
            raise InternalFault("Purchase could not be completed", private_details=details) from exc

        logger.info(
            "Event access purchased: receipt=%s user=%s event=%s tokens=%d",
            grant.receipt_number, user_id, event_id, price,
        )
        self._notify(user, event, grant)

        return EventPurchaseResult(
            purchase_id=grant.id,
            access_token=grant.access_token,
            expires_at=grant.expires_at,
            receipt_number=grant.receipt_number,
            digital_signature=grant.digital_signature,
            email=user.email,
        )

    def _notify(self, user, event, grant) -> None:
        try:
            self._dispatcher.dispatch(event_receipt_email(user, event, grant))
        except Exception:
            logger.exception("Failed to queue receipt email %s", grant.receipt_number)

    def get_stream_locator(self, user_id: str, event_id: str) -> StreamAccess:
        """
        Return the playback locator for a holder of an unexpired grant.

        Raises:
            Forbidden: If no grant for (user, event) expires after now.
            NotFound: If the event has no stream available.
        """
        grant = self._store.find_active_grant(user_id, event_id, self._now())
        if grant is None:
            raise Forbidden("No valid purchase found")

        event = self._store.get_event(event_id)
        if event is None or not event.stream_url:
            raise NotFound("Stream", event_id)

        return StreamAccess(stream_url=event.stream_url, expires_at=grant.expires_at)

    def list_user_access_grants(self, user_id: str) -> list[AccessGrantView]:
        """All grants for a user, with status derived from expiry at read time."""
        now = self._now()
        return [
            AccessGrantView(
                id=grant.id,
                event_id=grant.event_id,
                title=event.title,
                thumbnail_url=event.thumbnail_url,
                purchase_date=grant.purchase_date,
                expires_at=grant.expires_at,
                status=grant.status_at(now),
            )
            for grant, event in self._store.list_access_grants(user_id)
        ]
