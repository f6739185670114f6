# Overview: Token package purchases paid through the payment gateway.

"""
Token Purchase Service

ORDERING: The external charge happens first, outside any user lock. A
declined or failed charge therefore aborts with no ledger mutation and is
safe to retry with a new idempotency key. Only after a successful charge
are the credit, TokenPurchase, Order and signature written as one unit of
work. If that unit of work fails, the customer has been charged without
tokens. This is raised as InternalFault and logged with the external
payment id for reconciliation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import IntegrityError

from ..errors import InternalFault, NotFound, UnknownPackage
from ..models import Order, OrderStatus, OrderType, TokenPurchase
from ..stores import PurchaseStore
from ..time_utils import as_utc_naive, truncate_to_millis, utcnow
from .concurrency import run_with_retry
from .identifier_service import generate_id, generate_idempotency_key
from .notification_service import NotificationDispatcher, token_receipt_email
from .payment_gateway import PaymentGateway
from .receipt_service import allocate_receipt_number
from .signature_service import ReceiptSigner, TokenPurchaseFact
from .token_ledger_service import TokenLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPackage:
    id: str
    tokens: int
    bonus: int
    price: Decimal
    name: str

    @property
    def total_tokens(self) -> int:
        return self.tokens + self.bonus

    @property
    def price_minor_units(self) -> int:
        return int((self.price * 100).to_integral_value())


TOKEN_PACKAGES: dict[str, TokenPackage] = {
    "100": TokenPackage("100", 100, 0, Decimal("4.99"), "100 Tokens"),
    "250": TokenPackage("250", 250, 50, Decimal("9.99"), "250 + 50 Bonus Tokens"),
    "500": TokenPackage("500", 500, 150, Decimal("19.99"), "500 + 150 Bonus Tokens"),
    "1000": TokenPackage("1000", 1000, 500, Decimal("39.99"), "1000 + 500 Bonus Tokens"),
}


def get_package(package_id) -> TokenPackage:
    package = TOKEN_PACKAGES.get(str(package_id)) if package_id is not None else None
    if package is None:
        raise UnknownPackage(str(package_id))
    return package


@dataclass(frozen=True)
class TokenPurchaseResult:
    new_balance: int
    tokens_added: int
    bonus_tokens: int
    receipt_number: str
    receipt_url: str | None
    digital_signature: str
    square_payment_id: str
    email: str

    def to_dict(self) -> dict:
        return {
            "success": True,
            "new_balance": self.new_balance,
            "tokens_added": self.tokens_added,
            "bonus_tokens": self.bonus_tokens,
            "receipt_number": self.receipt_number,
            "receipt_url": self.receipt_url,
            "digital_signature": self.digital_signature,
            "square_payment_id": self.square_payment_id,
            "message": f"Successfully purchased {self.tokens_added} tokens! Receipt sent to {self.email}",
        }


class TokenPurchaseService:
    def __init__(
        self,
        store: PurchaseStore,
        signer: ReceiptSigner,
        gateway: PaymentGateway,
        dispatcher: NotificationDispatcher,
        *,
        currency: str = "USD",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._signer = signer
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._ledger = TokenLedger(store)
        self._currency = currency
        self._clock = clock

    def _now(self) -> datetime:
        # Injected clocks may be tz-aware; stored timestamps are UTC-naive
        return as_utc_naive(self._clock())

    def purchase_token_package(
        self,
        user_id: str,
        package_id: str,
        source_id: str,
        verification_token: str | None = None,
    ) -> TokenPurchaseResult:
        """
        Charge for a token package and credit the tokens.

        Raises:
            UnknownPackage: If package_id is not in TOKEN_PACKAGES.
            NotFound: If the user does not exist.
            PaymentDeclined / PaymentProcessorUnavailable: Charge failed; nothing was written.
            InternalFault: Charged, but the purchase could not be recorded.
        """
        package = get_package(package_id)

        user = self._store.get_user(user_id)
        if user is None:
            raise NotFound("User", user_id)
        email = user.email

        charge = self._gateway.charge(
            package.price_minor_units,
            self._currency,
            source_id,
            generate_idempotency_key(),
            email,
            {
                "note": f"FightPass Token Purchase - {package.name}",
                "verification_token": verification_token,
            },
        )

        def _op() -> tuple[TokenPurchase, int]:
            now = truncate_to_millis(self._now())
            new_balance = self._ledger.credit(user_id, package.total_tokens)

            purchase_id = generate_id()
            receipt_number = allocate_receipt_number(self._store)
            signature = self._signer.sign(TokenPurchaseFact(
                receipt_number=receipt_number,
                purchase_id=purchase_id,
                user_id=user_id,
                package_id=package.id,
                tokens=package.total_tokens,
                amount=package.price,
                square_payment_id=charge.payment_id,
                timestamp=now,
            ))

            purchase = TokenPurchase(
                id=purchase_id,
                user_id=user_id,
                package_id=package.id,
                tokens_added=package.tokens,
                bonus_tokens=package.bonus,
                amount_paid=package.price,
                square_payment_id=charge.payment_id,
                receipt_number=receipt_number,
                receipt_url=charge.receipt_url,
                digital_signature=signature,
                created_at=now,
            )
            self._store.add_token_purchase(purchase)
            self._store.add_order(Order(
                id=generate_id(),
                user_id=user_id,
                type=OrderType.TOKEN_PACKAGE,
                items=package.name,
                amount=package.price,
                status=OrderStatus.COMPLETED,
                square_payment_id=charge.payment_id,
                receipt_number=receipt_number,
                receipt_url=charge.receipt_url,
                digital_signature=signature,
                created_at=now,
            ))
            self._store.commit()
            return purchase, new_balance

        try:
            purchase, new_balance = run_with_retry(_op, self._store, retry_on=(IntegrityError,))
        except Exception as exc:
            details = {
                "user_id": user_id,
                "package_id": package.id,
                "tokens": package.total_tokens,
                "amount": str(package.price),
                "square_payment_id": charge.payment_id,
            }
            logger.error("Token purchase charged but not recorded: %s", details, exc_info=True)
            raise InternalFault("Purchase could not be completed", private_details=details) from exc

        logger.info(
            "Token package purchased: receipt=%s user=%s package=%s amount=%s",
            purchase.receipt_number, user_id, package.id, package.price,
        )
        try:
            self._dispatcher.dispatch(token_receipt_email(user, package, purchase))
        except Exception:
            logger.exception("Failed to queue receipt email %s", purchase.receipt_number)

        return TokenPurchaseResult(
            new_balance=new_balance,
            tokens_added=package.total_tokens,
            bonus_tokens=package.bonus,
            receipt_number=purchase.receipt_number,
            receipt_url=purchase.receipt_url,
            digital_signature=purchase.digital_signature,
            square_payment_id=purchase.square_payment_id,
            email=email,
        )
