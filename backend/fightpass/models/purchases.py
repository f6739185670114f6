from __future__ import annotations

import enum
from decimal import Decimal

from ..extensions import db
from ..time_utils import as_utc_naive, to_utc_z
from .types import UTCDateTime


class OrderType(enum.Enum):
    EVENT_ACCESS = "event_access"
    TOKEN_PACKAGE = "token_package"

    @property
    def label(self) -> str:
        return "Event Access" if self is OrderType.EVENT_ACCESS else "Token Package"


class OrderStatus(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class GrantStatus(enum.Enum):
    """Derived at read time from expires_at; never stored."""
    ACTIVE = "active"
    EXPIRED = "expired"


def _enum_column(enum_cls, name: str):
    return db.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
        length=32,
    )


class AccessGrant(db.Model):
    """
    Time-bounded access to one event, paid for with tokens.

    WHY "purchases": the table name is kept for compatibility with existing
    clients and reporting. Rows are immutable once written; expiry is a
    read-time comparison and rows are never deleted here.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("receipt_number", name="uq_purchases_receipt_number"),
        db.Index("ix_purchases_user_event_expires", "user_id", "event_id", "expires_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    event_id = db.Column(db.String(64), db.ForeignKey("events.id"), nullable=False, index=True)
    access_token = db.Column(db.String(128), nullable=False)
    purchase_date = db.Column(UTCDateTime(), nullable=False)
    expires_at = db.Column(UTCDateTime(), nullable=False)

    # Tokens spent on the grant
    amount_paid = db.Column(db.Integer, nullable=False)

    receipt_number = db.Column(db.String(64), nullable=False)
    digital_signature = db.Column(db.String(128), nullable=False)

    user = db.relationship("User")
    event = db.relationship("Event")

    def status_at(self, now) -> GrantStatus:
        if as_utc_naive(self.expires_at) > as_utc_naive(now):
            return GrantStatus.ACTIVE
        return GrantStatus.EXPIRED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_id": self.event_id,
            "access_token": self.access_token,
            "purchase_date": to_utc_z(self.purchase_date),
            "expires_at": to_utc_z(self.expires_at),
            "tokens_spent": self.amount_paid,
            "receipt_number": self.receipt_number,
            "digital_signature": self.digital_signature,
        }


class TokenPurchase(db.Model):
    """Token package bought with real money. Immutable once created."""
    __tablename__ = "token_purchases"
    __table_args__ = (
        db.UniqueConstraint("receipt_number", name="uq_token_purchases_receipt_number"),
    )

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    package_id = db.Column(db.String(32), nullable=False)
    tokens_added = db.Column(db.Integer, nullable=False)
    bonus_tokens = db.Column(db.Integer, nullable=False, default=0)

    # Currency units (e.g. dollars), two decimal places
    amount_paid = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False)

    square_payment_id = db.Column(db.String(128), nullable=False)
    receipt_number = db.Column(db.String(64), nullable=False)
    receipt_url = db.Column(db.String(500), nullable=True)
    digital_signature = db.Column(db.String(128), nullable=False)
    created_at = db.Column(UTCDateTime(), nullable=False)

    user = db.relationship("User")

    @property
    def total_tokens(self) -> int:
        return int(self.tokens_added) + int(self.bonus_tokens or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "package_id": self.package_id,
            "tokens_added": self.tokens_added,
            "bonus_tokens": self.bonus_tokens,
            "amount_paid": float(Decimal(self.amount_paid)),
            "square_payment_id": self.square_payment_id,
            "receipt_number": self.receipt_number,
            "digital_signature": self.digital_signature,
            "created_at": to_utc_z(self.created_at),
        }


class Order(db.Model):
    """
    Secondary ledger row mirrored from every AccessGrant and TokenPurchase.

    Exists for unified order-history queries only.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    type = db.Column(_enum_column(OrderType, "order_type"), nullable=False)
    items = db.Column(db.Text, nullable=True)
    amount = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False)
    status = db.Column(_enum_column(OrderStatus, "order_status"), nullable=False, default=OrderStatus.PENDING)
    square_payment_id = db.Column(db.String(128), nullable=True)
    receipt_number = db.Column(db.String(64), nullable=False, index=True)
    receipt_url = db.Column(db.String(500), nullable=True)
    digital_signature = db.Column(db.String(128), nullable=False)
    created_at = db.Column(UTCDateTime(), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.label,
            "items": self.items,
            "date": to_utc_z(self.created_at),
            "amount": f"${Decimal(self.amount):.2f}",
            "status": self.status.value,
        }
