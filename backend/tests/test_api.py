"""HTTP API tests: auth, status codes and response bodies."""

from datetime import timedelta

import pytest

from fightpass.errors import PaymentDeclined, PaymentProcessorUnavailable

from conftest import auth_headers, make_token, seed


@pytest.fixture
def fan(services):
    seed(services.store, balance=500, price=50)
    return auth_headers("user_fan")


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "healthy"


class TestAuthentication:
    @pytest.mark.parametrize("method,path", [
        ("post", "/api/v1/purchases/events"),
        ("post", "/api/v1/tokens/purchase"),
        ("post", "/api/v1/events/evt_main/stream"),
        ("get", "/api/v1/users/user_fan/events"),
        ("get", "/api/v1/users/user_fan/tokens"),
        ("get", "/api/v1/users/user_fan/orders"),
        ("get", "/api/v1/receipts/RCP-X-Y"),
    ])
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "UNAUTHORIZED"

    def test_rejects_token_signed_with_other_secret(self, client, db_session):
        headers = {"Authorization": f"Bearer {make_token('user_fan', secret='some-other-secret-that-is-32-bytes')}"}
        resp = client.get("/api/v1/users/user_fan/tokens", headers=headers)
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid token"

    def test_rejects_expired_token(self, client, db_session):
        headers = auth_headers("user_fan", expires_in=timedelta(seconds=-30))
        resp = client.get("/api/v1/users/user_fan/tokens", headers=headers)
        assert resp.status_code == 401

    def test_cannot_read_another_users_records(self, client, fan):
        for path in ("events", "tokens", "orders"):
            resp = client.get(f"/api/v1/users/user_other/{path}", headers=fan)
            assert resp.status_code == 403
            assert resp.get_json()["error"] == "FORBIDDEN"


class TestEventPurchaseApi:
    def test_purchase_and_stream(self, client, fan):
        resp = client.post("/api/v1/purchases/events", json={"event_id": "evt_main"}, headers=fan)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["expires_at"] == "2026-11-18T12:00:00.250Z"
        assert body["receipt_number"].startswith("RCP-")
        assert len(body["digital_signature"]) == 64

        resp = client.post("/api/v1/events/evt_main/stream", headers=fan)
        assert resp.status_code == 200
        assert resp.get_json() == {
            "stream_url": "https://stream.fightpass.test/evt_main.m3u8",
            "expires_at": "2026-11-18T12:00:00.250Z",
        }

        resp = client.get("/api/v1/users/user_fan/tokens", headers=fan)
        assert resp.get_json() == {"balance": 450, "user_id": "user_fan"}

    def test_insufficient_balance(self, client, services):
        seed(services.store, balance=10, price=50)
        resp = client.post(
            "/api/v1/purchases/events",
            json={"event_id": "evt_main"},
            headers=auth_headers("user_fan"),
        )
        assert resp.status_code == 400
        assert resp.get_json() == {
            "error": "INSUFFICIENT_BALANCE",
            "message": "Insufficient tokens",
            "required": 50,
            "current": 10,
            "shortage": 40,
        }

    def test_missing_event_id(self, client, fan):
        resp = client.post("/api/v1/purchases/events", json={}, headers=fan)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "VALIDATION_ERROR"

    def test_unknown_event(self, client, fan):
        resp = client.post("/api/v1/purchases/events", json={"event_id": "evt_missing"}, headers=fan)
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "NOT_FOUND", "message": "Event not found"}

    def test_stream_without_purchase(self, client, fan):
        resp = client.post("/api/v1/events/evt_main/stream", headers=fan)
        assert resp.status_code == 403
        assert resp.get_json()["message"] == "No valid purchase found"

    def test_user_events_listing(self, client, fan, clock):
        client.post("/api/v1/purchases/events", json={"event_id": "evt_main"}, headers=fan)
        clock.advance(days=31)

        resp = client.get("/api/v1/users/user_fan/events", headers=fan)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["total"] == 1
        assert body["events"][0]["event_id"] == "evt_main"
        assert body["events"][0]["title"] == "Championship Night"
        assert body["events"][0]["status"] == "expired"


class TestTokenPurchaseApi:
    def test_purchase_package(self, client, fan, gateway):
        resp = client.post(
            "/api/v1/tokens/purchase",
            json={"package_id": "500", "source_id": "cnon:card-nonce-ok", "verification_token": "verf:1"},
            headers=fan,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["new_balance"] == 1150
        assert body["tokens_added"] == 650
        assert body["bonus_tokens"] == 150
        assert body["square_payment_id"] == "sq_pay_1"
        assert gateway.charges[0]["amount"] == 1999

    def test_numeric_package_id_accepted(self, client, fan):
        resp = client.post(
            "/api/v1/tokens/purchase",
            json={"package_id": 100, "source_id": "cnon:ok"},
            headers=fan,
        )
        assert resp.status_code == 200
        assert resp.get_json()["tokens_added"] == 100

    def test_unknown_package(self, client, fan, gateway):
        resp = client.post("/api/v1/tokens/purchase", json={"package_id": "7", "source_id": "cnon:ok"}, headers=fan)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "UNKNOWN_PACKAGE", "message": "Invalid package"}
        assert gateway.charges == []

    def test_missing_source_id(self, client, fan, gateway):
        resp = client.post("/api/v1/tokens/purchase", json={"package_id": "100"}, headers=fan)
        assert resp.status_code == 400
        assert gateway.charges == []

    def test_declined(self, client, fan, gateway):
        gateway.error = PaymentDeclined("Card declined")
        resp = client.post("/api/v1/tokens/purchase", json={"package_id": "100", "source_id": "cnon:bad"}, headers=fan)
        assert resp.status_code == 402
        assert resp.get_json()["detail"] == "Card declined"

        resp = client.get("/api/v1/users/user_fan/tokens", headers=fan)
        assert resp.get_json()["balance"] == 500

    def test_processor_unavailable(self, client, fan, gateway):
        gateway.error = PaymentProcessorUnavailable(private_details={"http_status": 503})
        resp = client.post("/api/v1/tokens/purchase", json={"package_id": "100", "source_id": "cnon:ok"}, headers=fan)
        assert resp.status_code == 503
        assert resp.get_json() == {
            "error": "PAYMENT_PROCESSOR_UNAVAILABLE",
            "message": "Payment processing failed. Please try again.",
        }


class TestOrdersAndReceiptsApi:
    def test_order_history_newest_first(self, client, fan, clock):
        client.post("/api/v1/purchases/events", json={"event_id": "evt_main"}, headers=fan)
        clock.advance(minutes=1)
        client.post("/api/v1/tokens/purchase", json={"package_id": "250", "source_id": "cnon:ok"}, headers=fan)

        resp = client.get("/api/v1/users/user_fan/orders", headers=fan)
        body = resp.get_json()
        assert body["total"] == 2
        assert [o["type"] for o in body["orders"]] == ["Token Package", "Event Access"]
        assert [o["amount"] for o in body["orders"]] == ["$9.99", "$50.00"]
        assert all(o["status"] == "completed" for o in body["orders"])

    def test_receipt_lookup(self, client, fan):
        purchase = client.post("/api/v1/purchases/events", json={"event_id": "evt_main"}, headers=fan).get_json()

        resp = client.get(f"/api/v1/receipts/{purchase['receipt_number']}", headers=fan)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["signature_valid"] is True
        assert body["digital_signature"] == purchase["digital_signature"]
        assert body["customer_email"] == "user_fan@fightpass.test"

    def test_receipt_not_found(self, client, fan):
        resp = client.get("/api/v1/receipts/RCP-NOPE-00000000", headers=fan)
        assert resp.status_code == 404
        assert resp.get_json()["receipt_number"] == "RCP-NOPE-00000000"
