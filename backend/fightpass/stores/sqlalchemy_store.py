"""Flask-SQLAlchemy implementation of the PurchaseStore."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import desc, update

from ..extensions import db
from ..models import AccessGrant, Event, Order, TokenPurchase, User
from ..services.concurrency import lock_for_update
from .interfaces import PurchaseStore


class SqlAlchemyPurchaseStore(PurchaseStore):
    """Relational store backed by the app's db.session."""

    @property
    def session(self):
        return db.session

    def get_user(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter_by(email=email).first()

    def add_user(self, user: User) -> None:
        self.session.add(user)

    def lock_user(self, user_id: str) -> User | None:
        # populate_existing refreshes an identity-map copy that may be stale
        query = self.session.query(User).filter_by(id=user_id).populate_existing()
        return lock_for_update(query).first()

    def debit_balance(self, user_id: str, amount: int) -> int | None:
        # SQLite ignores FOR UPDATE; the WHERE clause is what keeps the balance >= 0
        stmt = (
            update(User)
            .where(User.id == user_id, User.token_balance >= amount)
            .values(token_balance=User.token_balance - amount)
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount == 0:
            return None
        return self._reload_balance(user_id)

    def credit_balance(self, user_id: str, amount: int) -> int | None:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(token_balance=User.token_balance + amount)
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount == 0:
            return None
        return self._reload_balance(user_id)

    def _reload_balance(self, user_id: str) -> int:
        user = self.session.query(User).filter_by(id=user_id).populate_existing().one()
        return user.token_balance

    def get_event(self, event_id: str) -> Event | None:
        return self.session.get(Event, event_id)

    def add_event(self, event: Event) -> None:
        self.session.add(event)

    def add_access_grant(self, grant: AccessGrant) -> None:
        self.session.add(grant)

    def add_token_purchase(self, purchase: TokenPurchase) -> None:
        self.session.add(purchase)

    def add_order(self, order: Order) -> None:
        self.session.add(order)

    def find_active_grant(self, user_id: str, event_id: str, now: datetime) -> AccessGrant | None:
        return (
            self.session.query(AccessGrant)
            .filter(
                AccessGrant.user_id == user_id,
                AccessGrant.event_id == event_id,
                AccessGrant.expires_at > now,
            )
            .order_by(desc(AccessGrant.expires_at))
            .first()
        )

    def list_access_grants(self, user_id: str) -> list[tuple[AccessGrant, Event]]:
        rows = (
            self.session.query(AccessGrant, Event)
            .join(Event, AccessGrant.event_id == Event.id)
            .filter(AccessGrant.user_id == user_id)
            .order_by(desc(AccessGrant.purchase_date))
            .all()
        )
        return [(grant, event) for grant, event in rows]

    def list_orders(self, user_id: str) -> list[Order]:
        return (
            self.session.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(desc(Order.created_at))
            .all()
        )

    def find_token_purchase_by_receipt(self, receipt_number: str) -> TokenPurchase | None:
        return self.session.query(TokenPurchase).filter_by(receipt_number=receipt_number).first()

    def find_access_grant_by_receipt(self, receipt_number: str) -> AccessGrant | None:
        return self.session.query(AccessGrant).filter_by(receipt_number=receipt_number).first()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
