from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .types import UTCDateTime


class User(db.Model):
    """
    Platform user holding a token balance.

    INVARIANT: token_balance is a non-negative integer and is only mutated
    through the TokenLedger (services/token_ledger_service.py).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("token_balance >= 0", name="ck_users_token_balance_non_negative"),
    )

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    token_balance = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(UTCDateTime(), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "token_balance": self.token_balance,
            "created_at": to_utc_z(self.created_at),
        }
