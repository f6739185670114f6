# Overview: Sole mutator of user token balances.

"""
Token Ledger

INVARIANTS:
- token_balance is always a non-negative integer.
- Balances change only through debit() and credit() here.
- debit() and credit() run inside the caller's unit of work: they lock the
  user through the store and stage the change. The caller commits.
- The store applies the change relative to the stored balance, and the
  debit only lands while the stored balance still covers it. Two debits
  that both read a stale balance cannot overdraw or lose an update, even
  on backends where the row lock is a no-op.
"""

from __future__ import annotations

from ..errors import InsufficientBalance, NotFound, ValidationError
from ..stores import PurchaseStore


def _validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Token amount must be an integer")
    if amount < 0:
        raise ValidationError("Token amount cannot be negative")
    return amount


class TokenLedger:
    """Atomic debit/credit of a user's token balance."""

    def __init__(self, store: PurchaseStore) -> None:
        self._store = store

    def debit(self, user_id: str, amount: int) -> int:
        """
        Remove `amount` tokens from the user's balance.

        Returns the pre-debit balance.

        Raises:
            NotFound: If the user does not exist.
            InsufficientBalance: If amount exceeds the current balance.
                The balance is left unchanged.
        """
        amount = _validate_amount(amount)
        user = self._store.lock_user(user_id)
        if user is None:
            raise NotFound("User", user_id)

        current = int(user.token_balance or 0)
        if amount > current:
            raise InsufficientBalance(required=amount, current=current)

        new_balance = self._store.debit_balance(user_id, amount)
        if new_balance is None:
            # Another writer spent the tokens after our read
            user = self._store.lock_user(user_id)
            if user is None:
                raise NotFound("User", user_id)
            raise InsufficientBalance(required=amount, current=int(user.token_balance or 0))
        return new_balance + amount

    def credit(self, user_id: str, amount: int) -> int:
        """Add `amount` tokens. Returns the new balance."""
        amount = _validate_amount(amount)
        if self._store.lock_user(user_id) is None:
            raise NotFound("User", user_id)

        new_balance = self._store.credit_balance(user_id, amount)
        if new_balance is None:
            raise NotFound("User", user_id)
        return new_balance

    def get_balance(self, user_id: str) -> int:
        user = self._store.get_user(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return int(user.token_balance or 0)
