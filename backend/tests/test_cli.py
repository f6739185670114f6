import bcrypt
import pytest

from fightpass.models import Event, User

from conftest import seed


@pytest.fixture
def runner(app, db_session):
    return app.test_cli_runner()


def test_seed_is_idempotent(runner, db_session):
    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0, result.output
    assert "Created test user" in result.output

    user = db_session.get(User, "user_test123")
    assert user.email == "test@fightpass.com"
    assert user.token_balance == 500
    assert bcrypt.checkpw(b"test123", user.password_hash.encode("utf-8"))
    assert db_session.query(Event).count() == 5
    assert db_session.get(Event, "evt_live_championship").price == 50

    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0
    assert "Test user already exists" in result.output
    assert db_session.query(Event).count() == 5


def test_create_user(runner, db_session):
    result = runner.invoke(args=[
        "users", "create", "--email", "Fan@Example.com", "--password", "pw-123", "--tokens", "75",
    ])
    assert result.exit_code == 0, result.output

    user = db_session.query(User).filter_by(email="fan@example.com").one()
    assert user.id.startswith("user_")
    assert user.token_balance == 75

    result = runner.invoke(args=["users", "create", "--email", "fan@example.com", "--password", "pw"])
    assert "FAIL" in result.output


def test_grant_tokens(runner, services, db_session):
    seed(services.store, balance=100)
    result = runner.invoke(args=["users", "grant-tokens", "user_fan", "250"])
    assert result.exit_code == 0, result.output
    assert db_session.get(User, "user_fan").token_balance == 350


def test_grant_tokens_unknown_user(runner, db_session):
    result = runner.invoke(args=["users", "grant-tokens", "user_ghost", "5"])
    assert "FAIL User not found" in result.output


def test_verify_receipt(runner, services, db_session):
    seed(services.store, balance=500)
    purchase = services.access.purchase_event_access("user_fan", "evt_main")

    result = runner.invoke(args=["receipts", "verify", purchase.receipt_number])
    assert result.exit_code == 0, result.output
    assert "PASS Signature valid" in result.output

    result = runner.invoke(args=["receipts", "verify", "RCP-NOPE-00000000"])
    assert result.exit_code == 1
