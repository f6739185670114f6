import pytest
import resend

from fightpass.services.notification_service import (
    NotificationDispatcher,
    ReceiptEmail,
    ResendReceiptNotifier,
    render_receipt_html,
)


def make_email():
    return ReceiptEmail(
        to="fan@fightpass.test",
        receipt_number="RCP-ABC-12345678",
        items_html="<h4>Championship Night</h4>",
        total_display="50 tokens",
        purchase_date="2026-10-19T12:00:00.250Z",
        signature="ab" * 32,
    )


class RecordingNotifier:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send_receipt(self, email):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append(email)


def test_subject_and_html():
    email = make_email()
    assert email.subject == "Receipt RCP-ABC-12345678 - FightPass Purchase"
    html = render_receipt_html(email)
    assert "RCP-ABC-12345678" in html
    assert "ab" * 32 in html
    assert "50 tokens" in html


class TestResendNotifier:
    def test_skips_without_api_key(self, monkeypatch):
        calls = []
        monkeypatch.setattr(resend.Emails, "send", lambda params: calls.append(params))
        ResendReceiptNotifier(None, "FightPass <receipts@fightpass.test>").send_receipt(make_email())
        assert calls == []

    def test_sends_through_resend(self, monkeypatch):
        calls = []
        monkeypatch.setattr(resend.Emails, "send", lambda params: calls.append(params))
        monkeypatch.setattr(resend, "api_key", None)

        ResendReceiptNotifier("re_test", "FightPass <receipts@fightpass.test>").send_receipt(make_email())

        (params,) = calls
        assert params["to"] == ["fan@fightpass.test"]
        assert params["from"] == "FightPass <receipts@fightpass.test>"
        assert params["subject"] == "Receipt RCP-ABC-12345678 - FightPass Purchase"
        assert resend.api_key == "re_test"


class TestDispatcher:
    def test_synchronous_delivery(self):
        notifier = RecordingNotifier()
        NotificationDispatcher(notifier, synchronous=True).dispatch(make_email())
        assert len(notifier.sent) == 1

    def test_background_delivery(self):
        notifier = RecordingNotifier()
        dispatcher = NotificationDispatcher(notifier, max_workers=1)
        future = dispatcher.dispatch(make_email())
        future.result(timeout=5)
        dispatcher.shutdown()
        assert len(notifier.sent) == 1

    @pytest.mark.parametrize("synchronous", [True, False])
    def test_failures_are_swallowed(self, synchronous):
        dispatcher = NotificationDispatcher(RecordingNotifier(fail=True), synchronous=synchronous)
        future = dispatcher.dispatch(make_email())
        if future is not None:
            assert future.result(timeout=5) is None
        dispatcher.shutdown()

    def test_dispatch_after_shutdown_is_dropped(self):
        notifier = RecordingNotifier()
        dispatcher = NotificationDispatcher(notifier)
        dispatcher.shutdown()
        assert dispatcher.dispatch(make_email()) is None
        assert notifier.sent == []
