"""Store interfaces (repository pattern).

Every purchase service receives a PurchaseStore explicitly. Stores must be
swappable and return the persistence models from fightpass.models.

Unit of work: writes made through a store are staged until commit() and
discarded by rollback(). lock_user() places the user under a per-user
exclusion scope that lasts until the unit of work ends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..models import AccessGrant, Event, Order, TokenPurchase, User


class PurchaseStore(ABC):
    """Interface for purchase and receipt persistence."""

    # -- users ---------------------------------------------------------------

    @abstractmethod
    def get_user(self, user_id: str) -> User | None:
        """Return a user by ID, or None if not found."""
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None:
        ...

    @abstractmethod
    def add_user(self, user: User) -> None:
        ...

    @abstractmethod
    def lock_user(self, user_id: str) -> User | None:
        """
        Return the user under the per-user lock for the current unit of work.

        Two units of work that lock the same user are serialized, so a
        read-check-then-write on the balance cannot see a stale value.
        """
        ...

    @abstractmethod
    def debit_balance(self, user_id: str, amount: int) -> int | None:
        """
        Subtract `amount` from the stored balance if it covers the amount.

        The check and the write happen in one step against the stored value,
        not against a previously loaded copy of the user.

        Returns the new balance, or None when the user is missing or the
        balance is smaller than `amount` (nothing is written).
        """
        ...

    @abstractmethod
    def credit_balance(self, user_id: str, amount: int) -> int | None:
        """Add `amount` to the stored balance. Returns the new balance, or None if no user."""
        ...

    # -- catalog -------------------------------------------------------------

    @abstractmethod
    def get_event(self, event_id: str) -> Event | None:
        ...

    @abstractmethod
    def add_event(self, event: Event) -> None:
        ...

    # -- purchases -----------------------------------------------------------

    @abstractmethod
    def add_access_grant(self, grant: AccessGrant) -> None:
        ...

    @abstractmethod
    def add_token_purchase(self, purchase: TokenPurchase) -> None:
        ...

    @abstractmethod
    def add_order(self, order: Order) -> None:
        ...

    @abstractmethod
    def find_active_grant(self, user_id: str, event_id: str, now: datetime) -> AccessGrant | None:
        """Return the grant with the latest expiry strictly after `now`, if any."""
        ...

    @abstractmethod
    def list_access_grants(self, user_id: str) -> list[tuple[AccessGrant, Event]]:
        """Return a user's grants with their events, newest purchase first."""
        ...

    @abstractmethod
    def list_orders(self, user_id: str) -> list[Order]:
        """Return a user's orders, newest first."""
        ...

    # -- receipts ------------------------------------------------------------

    @abstractmethod
    def find_token_purchase_by_receipt(self, receipt_number: str) -> TokenPurchase | None:
        ...

    @abstractmethod
    def find_access_grant_by_receipt(self, receipt_number: str) -> AccessGrant | None:
        ...

    def receipt_number_exists(self, receipt_number: str) -> bool:
        """Check both purchase namespaces for a receipt number."""
        return (
            self.find_token_purchase_by_receipt(receipt_number) is not None
            or self.find_access_grant_by_receipt(receipt_number) is not None
        )

    # -- unit of work --------------------------------------------------------

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...
