from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import json

import pytest

from fightpass.models import AccessGrant, TokenPurchase
from fightpass.services.signature_service import (
    EventPurchaseFact,
    ReceiptSigner,
    TokenPurchaseFact,
    canonical_serialize,
)


ISSUED = datetime(2026, 10, 19, 12, 0, 0, 250000)


@pytest.fixture
def signer():
    return ReceiptSigner("unit-test-key")


@pytest.fixture
def event_fact():
    return EventPurchaseFact(
        receipt_number="RCP-ABC123-XYZ98765",
        purchase_id="id_abc",
        user_id="user_fan",
        event_id="evt_main",
        access_token="tok_secret",
        tokens_spent=50,
        expires_at=ISSUED + timedelta(days=30),
        timestamp=ISSUED,
    )


@pytest.fixture
def token_fact():
    return TokenPurchaseFact(
        receipt_number="RCP-ABC124-QWE12345",
        purchase_id="id_def",
        user_id="user_fan",
        package_id="250",
        tokens=300,
        amount=Decimal("9.99"),
        square_payment_id="sq_pay_1",
        timestamp=ISSUED,
    )


class TestCanonicalSerialization:
    def test_fields_in_declaration_order(self, event_fact):
        payload = json.loads(canonical_serialize(event_fact))
        assert list(payload) == [
            "receipt_number", "purchase_id", "user_id", "event_id",
            "access_token", "tokens_spent", "expires_at", "timestamp",
        ]

    def test_compact_and_utc_millis(self, event_fact):
        raw = canonical_serialize(event_fact).decode()
        assert " " not in raw
        assert '"timestamp":"2026-10-19T12:00:00.250Z"' in raw
        assert '"expires_at":"2026-11-18T12:00:00.250Z"' in raw

    def test_amount_is_two_place_decimal_string(self, token_fact):
        payload = json.loads(canonical_serialize(token_fact))
        assert payload["amount"] == "9.99"

    def test_float_and_decimal_amounts_serialize_identically(self, token_fact):
        as_float = replace(token_fact, amount=9.99)
        assert canonical_serialize(as_float) == canonical_serialize(token_fact)


class TestSignAndVerify:
    def test_signature_is_hex_sha256(self, signer, event_fact):
        signature = signer.sign(event_fact)
        assert len(signature) == 64
        int(signature, 16)

    def test_deterministic(self, signer, event_fact):
        assert signer.sign(event_fact) == signer.sign(event_fact)

    def test_round_trip(self, signer, event_fact, token_fact):
        assert signer.verify(event_fact, signer.sign(event_fact)) is True
        assert signer.verify(token_fact, signer.sign(token_fact)) is True

    @pytest.mark.parametrize("field,value", [
        ("receipt_number", "RCP-OTHER-00000000"),
        ("purchase_id", "id_other"),
        ("user_id", "user_other"),
        ("event_id", "evt_other"),
        ("access_token", "tok_other"),
        ("tokens_spent", 49),
        ("expires_at", ISSUED + timedelta(days=31)),
        ("timestamp", ISSUED + timedelta(milliseconds=1)),
    ])
    def test_single_field_mutation_fails_event_fact(self, signer, event_fact, field, value):
        signature = signer.sign(event_fact)
        assert signer.verify(replace(event_fact, **{field: value}), signature) is False

    @pytest.mark.parametrize("field,value", [
        ("package_id", "500"),
        ("tokens", 301),
        ("amount", Decimal("19.99")),
        ("square_payment_id", "sq_pay_2"),
    ])
    def test_single_field_mutation_fails_token_fact(self, signer, token_fact, field, value):
        signature = signer.sign(token_fact)
        assert signer.verify(replace(token_fact, **{field: value}), signature) is False

    def test_other_key_does_not_verify(self, signer, event_fact):
        other = ReceiptSigner("another-key")
        assert other.verify(event_fact, signer.sign(event_fact)) is False

    @pytest.mark.parametrize("bad", [None, "", "deadbeef", 12345, "z" * 64])
    def test_malformed_signature_is_false_not_error(self, signer, event_fact, bad):
        assert signer.verify(event_fact, bad) is False

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            ReceiptSigner("")


class TestFactsFromStoredRows:
    """Drivers may hand back tz-aware timestamps; the re-derived fact must not change."""

    OFFSET = timezone(timedelta(hours=-5))

    def _aware(self, dt):
        return dt.replace(tzinfo=timezone.utc).astimezone(self.OFFSET)

    def test_grant_with_aware_timestamps(self, signer, event_fact):
        grant = AccessGrant(
            id=event_fact.purchase_id,
            user_id=event_fact.user_id,
            event_id=event_fact.event_id,
            access_token=event_fact.access_token,
            amount_paid=event_fact.tokens_spent,
            receipt_number=event_fact.receipt_number,
            purchase_date=self._aware(event_fact.timestamp),
            expires_at=self._aware(event_fact.expires_at),
        )
        derived = EventPurchaseFact.from_grant(grant)

        assert derived == event_fact
        assert derived.timestamp.tzinfo is None
        assert signer.verify(derived, signer.sign(event_fact))

    def test_token_purchase_with_aware_timestamp(self, signer, token_fact):
        purchase = TokenPurchase(
            id=token_fact.purchase_id,
            user_id=token_fact.user_id,
            package_id=token_fact.package_id,
            tokens_added=250,
            bonus_tokens=50,
            amount_paid=token_fact.amount,
            square_payment_id=token_fact.square_payment_id,
            receipt_number=token_fact.receipt_number,
            created_at=self._aware(token_fact.timestamp),
        )
        derived = TokenPurchaseFact.from_token_purchase(purchase)

        assert derived == token_fact
        assert signer.verify(derived, signer.sign(token_fact))
