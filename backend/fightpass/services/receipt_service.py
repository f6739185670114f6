# Overview: Receipt lookup with signature re-verification.

"""
Receipt Service

Lookup searches token purchases first, then event access grants. On a hit
the canonical fact is re-derived from the stored fields (never from the
stored signature) and verified, so any later edit to a signed field is
reported as signature_valid = False. Lookups never write.
"""

from __future__ import annotations

from decimal import Decimal

from ..errors import InternalFault, NotFound
from ..stores import PurchaseStore
from ..time_utils import to_utc_z
from .identifier_service import generate_receipt_number
from .signature_service import EventPurchaseFact, ReceiptSigner, TokenPurchaseFact

RECEIPT_ALLOCATION_ATTEMPTS = 5


def allocate_receipt_number(store: PurchaseStore) -> str:
    """Generate a receipt number unused in both purchase namespaces."""
    for _ in range(RECEIPT_ALLOCATION_ATTEMPTS):
        receipt_number = generate_receipt_number()
        if not store.receipt_number_exists(receipt_number):
            return receipt_number
    raise InternalFault("Could not allocate a receipt number")


class ReceiptService:
    def __init__(self, store: PurchaseStore, signer: ReceiptSigner) -> None:
        self._store = store
        self._signer = signer

    def lookup_receipt(self, receipt_number: str) -> dict:
        """
        Return the receipt view for a receipt number, with signature_valid.

        Raises:
            NotFound: If neither namespace holds the receipt number.
        """
        purchase = self._store.find_token_purchase_by_receipt(receipt_number)
        if purchase is not None:
            return self._token_purchase_view(purchase)

        grant = self._store.find_access_grant_by_receipt(receipt_number)
        if grant is not None:
            return self._event_purchase_view(grant)

        raise NotFound("Receipt", receipt_number)

    def _token_purchase_view(self, purchase) -> dict:
        fact = TokenPurchaseFact.from_token_purchase(purchase)
        is_valid = self._signer.verify(fact, purchase.digital_signature)
        user = self._store.get_user(purchase.user_id)
        return {
            "type": "token_purchase",
            "receipt_number": purchase.receipt_number,
            "purchase_date": to_utc_z(purchase.created_at),
            "customer_email": user.email if user else None,
            "customer_name": user.name if user else None,
            "tokens_purchased": purchase.tokens_added,
            "bonus_tokens": purchase.bonus_tokens,
            "total_tokens": purchase.total_tokens,
            "amount_paid": float(Decimal(str(purchase.amount_paid))),
            "square_payment_id": purchase.square_payment_id,
            "digital_signature": purchase.digital_signature,
            "signature_valid": is_valid,
            "verified": is_valid,
        }

    def _event_purchase_view(self, grant) -> dict:
        fact = EventPurchaseFact.from_grant(grant)
        is_valid = self._signer.verify(fact, grant.digital_signature)
        user = self._store.get_user(grant.user_id)
        event = self._store.get_event(grant.event_id)
        return {
            "type": "event_purchase",
            "receipt_number": grant.receipt_number,
            "purchase_date": to_utc_z(grant.purchase_date),
            "customer_email": user.email if user else None,
            "customer_name": user.name if user else None,
            "event_title": event.title if event else None,
            "event_subtitle": event.subtitle if event else None,
            "tokens_spent": grant.amount_paid,
            "access_token": grant.access_token,
            "expires_at": to_utc_z(grant.expires_at),
            "digital_signature": grant.digital_signature,
            "signature_valid": is_valid,
            "verified": is_valid,
        }
