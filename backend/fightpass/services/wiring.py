# Overview: Builds the purchase collaborators once per Flask app.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from flask import current_app

from ..stores import PurchaseStore, SqlAlchemyPurchaseStore
from ..time_utils import utcnow
from .access_service import AccessGrantService
from .notification_service import NotificationDispatcher, ReceiptNotifier, ResendReceiptNotifier
from .payment_gateway import PaymentGateway, SquarePaymentGateway
from .receipt_service import ReceiptService
from .signature_service import ReceiptSigner
from .token_ledger_service import TokenLedger
from .token_purchase_service import TokenPurchaseService

EXTENSION_KEY = "fightpass"


@dataclass
class PurchaseServices:
    store: PurchaseStore
    signer: ReceiptSigner
    gateway: PaymentGateway
    dispatcher: NotificationDispatcher
    ledger: TokenLedger
    access: AccessGrantService
    tokens: TokenPurchaseService
    receipts: ReceiptService


def build_services(
    config,
    *,
    store: PurchaseStore | None = None,
    gateway: PaymentGateway | None = None,
    notifier: ReceiptNotifier | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> PurchaseServices:
    """Wire the services from a Flask config mapping; any collaborator may be overridden."""
    store = store or SqlAlchemyPurchaseStore()
    signer = ReceiptSigner(config["RECEIPT_SIGNING_KEY"])
    gateway = gateway or SquarePaymentGateway(
        config.get("SQUARE_ACCESS_TOKEN"),
        config.get("SQUARE_LOCATION_ID"),
        environment=config.get("SQUARE_ENVIRONMENT", "sandbox"),
        api_version=config.get("SQUARE_API_VERSION"),
        timeout_s=config.get("SQUARE_TIMEOUT_SECONDS", 30),
    )
    notifier = notifier or ResendReceiptNotifier(
        config.get("RESEND_API_KEY"),
        config.get("RESEND_FROM_EMAIL"),
    )
    dispatcher = NotificationDispatcher(
        notifier,
        max_workers=config.get("NOTIFICATION_WORKERS", 2),
        synchronous=bool(config.get("NOTIFICATIONS_SYNCHRONOUS", False)),
    )
    validity = timedelta(days=int(config.get("ACCESS_VALIDITY_DAYS", 30)))

    return PurchaseServices(
        store=store,
        signer=signer,
        gateway=gateway,
        dispatcher=dispatcher,
        ledger=TokenLedger(store),
        access=AccessGrantService(store, signer, dispatcher, validity=validity, clock=clock),
        tokens=TokenPurchaseService(
            store, signer, gateway, dispatcher,
            currency=config.get("PAYMENT_CURRENCY", "USD"),
            clock=clock,
        ),
        receipts=ReceiptService(store, signer),
    )


def get_services() -> PurchaseServices:
    return current_app.extensions[EXTENSION_KEY]
