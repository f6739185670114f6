"""In-memory implementation of the PurchaseStore.

Holds model instances in dicts. Used by service tests and local tooling
where a database is not wanted.

Each thread has its own unit of work:
- lock_user() takes a per-user threading.Lock held until commit/rollback.
- debit_balance() and credit_balance() apply immediately and record the
  prior value for rollback. Other writers must hold the same user lock.
- Readers iterate over snapshots of the tables, so a concurrent commit
  cannot change a dict while it is being walked.
- New rows are staged and become visible on commit(). Duplicate primary
  keys or receipt numbers raise sqlalchemy's IntegrityError, like a
  database unique constraint would.
"""

from __future__ import annotations

import threading
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from ..models import AccessGrant, Event, Order, TokenPurchase, User
from .interfaces import PurchaseStore


class _UnitOfWork:
    def __init__(self) -> None:
        self.held_locks: list[threading.Lock] = []
        self.locked_user_ids: set[str] = set()
        self.balance_undo: dict[str, tuple[User, int]] = {}
        self.pending: list[object] = []


class InMemoryPurchaseStore(PurchaseStore):
    """Dict-backed store with per-user locking."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.events: dict[str, Event] = {}
        self.access_grants: dict[str, AccessGrant] = {}
        self.token_purchases: dict[str, TokenPurchase] = {}
        self.orders: dict[str, Order] = {}
        self._user_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._commit_lock = threading.Lock()
        self._local = threading.local()

    @property
    def _uow(self) -> _UnitOfWork:
        uow = getattr(self._local, "uow", None)
        if uow is None:
            uow = _UnitOfWork()
            self._local.uow = uow
        return uow

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._user_locks[user_id] = lock
            return lock

    def _end_unit_of_work(self) -> None:
        uow = self._uow
        for lock in reversed(uow.held_locks):
            lock.release()
        self._local.uow = None

    # -- users ---------------------------------------------------------------

    def get_user(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> User | None:
        for user in list(self.users.values()):
            if user.email == email:
                return user
        return None

    def add_user(self, user: User) -> None:
        self._uow.pending.append(user)

    def lock_user(self, user_id: str) -> User | None:
        uow = self._uow
        if user_id not in uow.locked_user_ids:
            lock = self._lock_for(user_id)
            lock.acquire()
            uow.held_locks.append(lock)
            uow.locked_user_ids.add(user_id)
        return self.users.get(user_id)

    def debit_balance(self, user_id: str, amount: int) -> int | None:
        user = self._locked(user_id)
        if user is None or user.token_balance < amount:
            return None
        self._stage_balance(user, user.token_balance - amount)
        return user.token_balance

    def credit_balance(self, user_id: str, amount: int) -> int | None:
        user = self._locked(user_id)
        if user is None:
            return None
        self._stage_balance(user, user.token_balance + amount)
        return user.token_balance

    def _locked(self, user_id: str) -> User | None:
        if user_id not in self._uow.locked_user_ids:
            raise RuntimeError(f"User {user_id} must be locked before its balance is changed")
        return self.users.get(user_id)

    def _stage_balance(self, user: User, new_balance: int) -> None:
        self._uow.balance_undo.setdefault(user.id, (user, user.token_balance))
        user.token_balance = new_balance

    # -- catalog -------------------------------------------------------------

    def get_event(self, event_id: str) -> Event | None:
        return self.events.get(event_id)

    def add_event(self, event: Event) -> None:
        self._uow.pending.append(event)

    # -- purchases -----------------------------------------------------------

    def add_access_grant(self, grant: AccessGrant) -> None:
        self._uow.pending.append(grant)

    def add_token_purchase(self, purchase: TokenPurchase) -> None:
        self._uow.pending.append(purchase)

    def add_order(self, order: Order) -> None:
        self._uow.pending.append(order)

    def find_active_grant(self, user_id: str, event_id: str, now: datetime) -> AccessGrant | None:
        candidates = [
            g for g in list(self.access_grants.values())
            if g.user_id == user_id and g.event_id == event_id and g.expires_at > now
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda g: g.expires_at)

    def list_access_grants(self, user_id: str) -> list[tuple[AccessGrant, Event]]:
        grants = [g for g in list(self.access_grants.values()) if g.user_id == user_id]
        grants.sort(key=lambda g: g.purchase_date, reverse=True)
        events = dict(self.events)
        return [(g, events[g.event_id]) for g in grants if g.event_id in events]

    def list_orders(self, user_id: str) -> list[Order]:
        orders = [o for o in list(self.orders.values()) if o.user_id == user_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    # -- receipts ------------------------------------------------------------

    def find_token_purchase_by_receipt(self, receipt_number: str) -> TokenPurchase | None:
        for purchase in list(self.token_purchases.values()):
            if purchase.receipt_number == receipt_number:
                return purchase
        return None

    def find_access_grant_by_receipt(self, receipt_number: str) -> AccessGrant | None:
        for grant in list(self.access_grants.values()):
            if grant.receipt_number == receipt_number:
                return grant
        return None

    # -- unit of work --------------------------------------------------------

    def _table_for(self, row) -> dict:
        if isinstance(row, User):
            return self.users
        if isinstance(row, Event):
            return self.events
        if isinstance(row, AccessGrant):
            return self.access_grants
        if isinstance(row, TokenPurchase):
            return self.token_purchases
        if isinstance(row, Order):
            return self.orders
        raise TypeError(f"Unsupported row type: {type(row).__name__}")

    def _check_unique(self, rows: list[object]) -> None:
        seen_keys: set[tuple[str, str]] = set()
        seen_receipts: set[tuple[str, str]] = set()
        for row in rows:
            table = self._table_for(row)
            key = (type(row).__name__, row.id)
            if row.id in table or key in seen_keys:
                raise IntegrityError("INSERT", {"id": row.id}, Exception("UNIQUE constraint failed: id"))
            seen_keys.add(key)
            if isinstance(row, (AccessGrant, TokenPurchase)):
                receipt_key = (type(row).__name__, row.receipt_number)
                clash = any(
                    existing.receipt_number == row.receipt_number for existing in table.values()
                )
                if clash or receipt_key in seen_receipts:
                    raise IntegrityError(
                        "INSERT",
                        {"receipt_number": row.receipt_number},
                        Exception("UNIQUE constraint failed: receipt_number"),
                    )
                seen_receipts.add(receipt_key)
            if isinstance(row, User) and self.get_user_by_email(row.email) is not None:
                raise IntegrityError("INSERT", {"email": row.email}, Exception("UNIQUE constraint failed: users.email"))

    def commit(self) -> None:
        uow = self._uow
        try:
            with self._commit_lock:
                self._check_unique(uow.pending)
                for row in uow.pending:
                    self._table_for(row)[row.id] = row
        except Exception:
            self.rollback()
            raise
        self._end_unit_of_work()

    def rollback(self) -> None:
        uow = self._uow
        for user, previous in uow.balance_undo.values():
            user.token_balance = previous
        self._end_unit_of_work()
