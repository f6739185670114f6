"""
Pytest fixtures for FightPass backend tests.

Provides the app with an in-memory database, a fake payment gateway, a
recording receipt notifier, a controllable clock, and bearer-token helpers.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fightpass import create_app
from fightpass.extensions import db
from fightpass.models import Event, User
from fightpass.services.payment_gateway import ChargeResult
from fightpass.services.wiring import build_services
from fightpass.stores import InMemoryPurchaseStore


TEST_JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes"
TEST_SIGNING_KEY = "test-receipt-signing-key-32-bytes-long"
START_TIME = datetime(2026, 10, 19, 12, 0, 0, 250000)

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'JWT_SECRET': TEST_JWT_SECRET,
    'RECEIPT_SIGNING_KEY': TEST_SIGNING_KEY,
    'NOTIFICATIONS_SYNCHRONOUS': True,
    'ACCESS_VALIDITY_DAYS': 30,
    'PAYMENT_CURRENCY': 'USD',
}


class FakeGateway:
    """Payment gateway double; records every charge attempt."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.charges = []
        self.error = None

    def charge(self, amount_minor_units, currency, source_id, idempotency_key, buyer_email, metadata=None):
        self.charges.append({
            'amount': amount_minor_units,
            'currency': currency,
            'source_id': source_id,
            'idempotency_key': idempotency_key,
            'buyer_email': buyer_email,
            'metadata': dict(metadata or {}),
        })
        if self.error is not None:
            raise self.error
        return ChargeResult(
            payment_id=f"sq_pay_{len(self.charges)}",
            status="COMPLETED",
            receipt_url=f"https://squareup.com/receipt/preview/sq_pay_{len(self.charges)}",
        )


class RecordingNotifier:
    def __init__(self):
        self.reset()

    def reset(self):
        self.sent = []
        self.fail = False

    def send_receipt(self, email):
        if self.fail:
            raise RuntimeError("mail provider down")
        self.sent.append(email)


class FrozenClock:
    def __init__(self):
        self.reset()

    def reset(self):
        self.now = START_TIME

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)

    def __call__(self):
        return self.now


@pytest.fixture(scope='session')
def fakes():
    return {
        'gateway': FakeGateway(),
        'notifier': RecordingNotifier(),
        'clock': FrozenClock(),
    }


@pytest.fixture(scope='session')
def app(fakes):
    """Create application for testing."""
    app = create_app(
        TEST_CONFIG,
        gateway=fakes['gateway'],
        notifier=fakes['notifier'],
        clock=fakes['clock'],
    )

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def gateway(fakes):
    fakes['gateway'].reset()
    return fakes['gateway']


@pytest.fixture(scope='function')
def notifier(fakes):
    fakes['notifier'].reset()
    return fakes['notifier']


@pytest.fixture(scope='function')
def clock(fakes):
    fakes['clock'].reset()
    return fakes['clock']


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app, gateway, notifier, clock):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def services(app, db_session):
    """Services wired to the SQLAlchemy store."""
    return app.extensions['fightpass']


@pytest.fixture(scope='function')
def memory_store():
    return InMemoryPurchaseStore()


@pytest.fixture(scope='function')
def memory_services(memory_store, gateway, notifier, clock):
    """Services wired to the in-memory store (no app, no database)."""
    return build_services(
        TEST_CONFIG,
        store=memory_store,
        gateway=gateway,
        notifier=notifier,
        clock=clock,
    )


def make_user(user_id="user_fan", email=None, balance=500, name="Test Fan"):
    return User(
        id=user_id,
        email=email or f"{user_id}@fightpass.test",
        password_hash="not-a-real-hash",
        name=name,
        token_balance=balance,
    )


def make_event(event_id="evt_main", price=50, stream_url="https://stream.fightpass.test/evt_main.m3u8"):
    return Event(
        id=event_id,
        title="Championship Night",
        subtitle="Main Event",
        description="Title fight",
        thumbnail_url="https://cdn.fightpass.test/thumb.jpg",
        is_live=True,
        viewers=0,
        price=price,
        start_time=START_TIME,
        stream_url=stream_url,
    )


def seed(store, *, balance=500, price=50, user_id="user_fan"):
    """Add one user and one event through a store and commit."""
    store.add_user(make_user(user_id=user_id, balance=balance))
    store.add_event(make_event(price=price))
    store.commit()


def make_token(user_id, *, secret=TEST_JWT_SECRET, expires_in=timedelta(hours=1)):
    payload = {
        'userId': user_id,
        'email': f"{user_id}@fightpass.test",
        'exp': datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, secret, algorithm='HS256')


def auth_headers(user_id, **kwargs):
    return {'Authorization': f'Bearer {make_token(user_id, **kwargs)}'}
