# Overview: Account bootstrap helpers for operator-created users.

"""
Account Service

Sign-up and login live outside this subsystem. These helpers exist so that
operators (CLI seed/create) can put users with a starting balance in place.
"""

from __future__ import annotations

import bcrypt

from ..errors import ValidationError
from ..models import User
from ..stores import PurchaseStore
from .identifier_service import generate_id


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    WHY: Cost factor 12 provides good security/performance balance.
    """
    if not password:
        raise ValidationError("Password required")
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def create_user(
    store: PurchaseStore,
    email: str,
    password: str,
    *,
    name: str | None = None,
    token_balance: int = 0,
    user_id: str | None = None,
) -> User:
    """
    Create and commit a user.

    Raises:
        ValidationError: If the email is taken or the starting balance is negative.
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email required")
    if token_balance < 0:
        raise ValidationError("Token balance cannot be negative")
    if store.get_user_by_email(email) is not None:
        raise ValidationError(f"User with email {email} already exists")

    user = User(
        id=user_id or generate_id("user_"),
        email=email,
        password_hash=hash_password(password),
        name=name,
        token_balance=token_balance,
    )
    store.add_user(user)
    store.commit()
    return user
