# Overview: Flask CLI command groups for bootstrap, seeding, and receipt checks.

# backend/fightpass/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system seed
#   Idempotent: sample events plus test user test@fightpass.com / test123 (500 tokens).
#
# Users:
# - python -m flask users create --email fan@example.com --password "secret" --name "Fan" --tokens 100
#   Create a user with a starting token balance.
# - python -m flask users grant-tokens user_test123 250
#   Credit tokens through the ledger (support adjustments).
#
# Receipts:
# - python -m flask receipts verify RCP-XXXXXXXX-XXXXXXXX
#   Look up a receipt and re-verify its digital signature.

from datetime import timedelta

import click
from flask.cli import with_appcontext

from .errors import PurchaseError
from .extensions import db
from .models import Event
from .services.account_service import create_user
from .services.wiring import get_services
from .time_utils import utcnow


TEST_USER_ID = "user_test123"
TEST_USER_EMAIL = "test@fightpass.com"
TEST_USER_PASSWORD = "test123"
SAMPLE_STREAM_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def _sample_events(now):
    return [
        dict(
            id="evt_live_championship",
            title="UFC Championship Night",
            subtitle="Main Event: Heavyweight Title Fight",
            description="The biggest fight of the year! Watch live as two champions collide.",
            is_live=True, viewers=12543, price=50,
            start_time=now, stream_url=SAMPLE_STREAM_URL,
        ),
        dict(
            id="evt_live_bjj",
            title="International BJJ Championship",
            subtitle="Black Belt Finals",
            description="Top grapplers from around the world compete for the championship.",
            is_live=True, viewers=3241, price=30,
            start_time=now, stream_url=SAMPLE_STREAM_URL,
        ),
        dict(
            id="evt_upcoming_1",
            title="Summer Combat Showdown",
            subtitle="Preliminary Matches",
            description="Rising stars battle it out in this exciting preliminary card.",
            is_live=False, viewers=0, price=25,
            start_time=now + timedelta(days=7), stream_url=None,
        ),
        dict(
            id="evt_upcoming_2",
            title="Kickboxing World Series",
            subtitle="Round 1",
            description="Elite kickboxers compete in the opening round of the championship series.",
            is_live=False, viewers=0, price=35,
            start_time=now + timedelta(days=14), stream_url=None,
        ),
        dict(
            id="evt_upcoming_3",
            title="Amateur MMA Fights",
            subtitle="Local Talent Showcase",
            description="Watch tomorrow's champions today in this exciting amateur showcase.",
            is_live=False, viewers=0, price=15,
            start_time=now + timedelta(days=3), stream_url=None,
        ),
    ]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the current SQLALCHEMY_DATABASE_URI."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Add sample events and the test user.

    Existing rows are left untouched, so the command can be re-run.
    """
    services = get_services()
    store = services.store
    click.echo("START Seeding database...")

    if store.get_user(TEST_USER_ID) is None and store.get_user_by_email(TEST_USER_EMAIL) is None:
        create_user(
            store,
            TEST_USER_EMAIL,
            TEST_USER_PASSWORD,
            name="Test User",
            token_balance=500,
            user_id=TEST_USER_ID,
        )
        click.echo(f"PASS Created test user: {TEST_USER_EMAIL} / {TEST_USER_PASSWORD} (500 tokens)")
    else:
        click.echo("INFO Test user already exists")

    now = utcnow()
    added = 0
    for data in _sample_events(now):
        if store.get_event(data["id"]) is not None:
            click.echo(f"INFO Event already exists: {data['title']}")
            continue
        store.add_event(Event(**data))
        added += 1
        status = "LIVE" if data["is_live"] else "Upcoming"
        click.echo(f"PASS Added event: {status} {data['title']} ({data['price']} tokens)")
    store.commit()

    click.echo(f"\nDONE Database seeded ({added} new events)")


@click.group('users')
def users_group():
    """User bootstrap and balance adjustments."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', default=None, help='Display name')
@click.option('--tokens', type=int, default=0, show_default=True, help='Starting token balance')
@with_appcontext
def create_user_cli(email, password, name, tokens):
    """Create a new user."""
    try:
        user = create_user(get_services().store, email, password, name=name, token_balance=tokens)
    except PurchaseError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created user: {user.email} (ID: {user.id}, tokens: {user.token_balance})")


@users_group.command('grant-tokens')
@click.argument('user_id')
@click.argument('amount', type=int)
@with_appcontext
def grant_tokens_cli(user_id, amount):
    """Credit AMOUNT tokens to USER_ID."""
    services = get_services()
    try:
        new_balance = services.ledger.credit(user_id, amount)
        services.store.commit()
    except PurchaseError as e:
        services.store.rollback()
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Credited {amount} tokens to {user_id} (balance: {new_balance})")


@click.group('receipts')
def receipts_group():
    """Receipt inspection."""


@receipts_group.command('verify')
@click.argument('receipt_number')
@with_appcontext
def verify_receipt_cli(receipt_number):
    """Re-verify the digital signature of RECEIPT_NUMBER."""
    try:
        receipt = get_services().receipts.lookup_receipt(receipt_number)
    except PurchaseError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"Receipt:   {receipt['receipt_number']} ({receipt['type']})")
    click.echo(f"Customer:  {receipt['customer_email']}")
    click.echo(f"Date:      {receipt['purchase_date']}")
    if receipt["signature_valid"]:
        click.echo("PASS Signature valid")
    else:
        click.echo("FAIL Signature INVALID (receipt fields were altered or signed with another key)")
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(receipts_group)
