# Overview: Best-effort receipt emails, sent after the purchase has committed.

"""
Receipt Notifications

Emails are queued on a small worker pool once the purchase transaction has
committed, so delivery latency never sits on the request path. A failed
delivery is logged and dropped. It never reverses or fails the purchase.
"""

from __future__ import annotations

import html
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

import resend

from ..time_utils import to_utc_z

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptEmail:
    to: str
    receipt_number: str
    items_html: str
    total_display: str
    purchase_date: str
    signature: str

    @property
    def subject(self) -> str:
        return f"Receipt {self.receipt_number} - FightPass Purchase"


class ReceiptNotifier(Protocol):
    def send_receipt(self, email: ReceiptEmail) -> None:
        ...


def render_receipt_html(email: ReceiptEmail) -> str:
    e = html.escape
    return f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
      <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background: #FF0000; color: white; padding: 20px; text-align: center;">
          <h1>FightPass Receipt</h1>
          <p>Thank you for your purchase!</p>
        </div>
        <div style="background: #f9f9f9; padding: 20px; margin-top: 20px;">
          <div style="background: white; padding: 15px; margin: 10px 0; border-left: 4px solid #FF0000;">
            <h3>Receipt Details</h3>
            <p><strong>Receipt Number:</strong> {e(email.receipt_number)}</p>
            <p><strong>Date:</strong> {e(email.purchase_date)}</p>
            <p><strong>Email:</strong> {e(email.to)}</p>
          </div>
          <div style="background: white; padding: 15px; margin: 10px 0;">
            <h3>Items Purchased</h3>
            {email.items_html}
          </div>
          <div style="font-size: 20px; font-weight: bold; color: #FF0000; margin-top: 15px;">
            Total: {e(email.total_display)}
          </div>
          <div style="font-size: 10px; color: #666; margin-top: 20px; word-break: break-all;">
            <p><strong>Digital Signature:</strong></p>
            <p>{e(email.signature)}</p>
            <p>This signature verifies the authenticity of this receipt.</p>
          </div>
        </div>
        <div style="text-align: center; margin-top: 30px; color: #666; font-size: 12px;">
          <p>FightPass - Token-Based Streaming Platform</p>
          <p>This is an automated receipt. Please do not reply to this email.</p>
        </div>
      </div>
    </body>
    </html>
    """


def event_receipt_email(user, event, grant) -> ReceiptEmail:
    e = html.escape
    items = f"""
      <h4>{e(event.title)}</h4>
      <p>{e(event.subtitle or "")}</p>
      <ul>
        <li><strong>Access Token:</strong> {e(grant.access_token)}</li>
        <li><strong>Valid Until:</strong> {e(to_utc_z(grant.expires_at))}</li>
        <li><strong>Tokens Used:</strong> {grant.amount_paid}</li>
      </ul>
      <p><strong>Keep this receipt safe!</strong> Your access token is required to watch this event.</p>
    """
    return ReceiptEmail(
        to=user.email,
        receipt_number=grant.receipt_number,
        items_html=items,
        total_display=f"{grant.amount_paid} tokens",
        purchase_date=to_utc_z(grant.purchase_date),
        signature=grant.digital_signature,
    )


def token_receipt_email(user, package, purchase) -> ReceiptEmail:
    bonus_line = f"<li>+ {package.bonus} Bonus Tokens</li>" if package.bonus > 0 else ""
    items = f"""
      <p><strong>{html.escape(package.name)}</strong></p>
      <ul>
        <li>{package.tokens} Base Tokens</li>
        {bonus_line}
        <li><strong>Total: {package.total_tokens} Tokens</strong></li>
      </ul>
    """
    return ReceiptEmail(
        to=user.email,
        receipt_number=purchase.receipt_number,
        items_html=items,
        total_display=f"${package.price:.2f}",
        purchase_date=to_utc_z(purchase.created_at),
        signature=purchase.digital_signature,
    )


class ResendReceiptNotifier:
    """Sends receipt emails through Resend."""

    def __init__(self, api_key: str | None, from_email: str) -> None:
        self._api_key = api_key
        self._from_email = from_email

    def send_receipt(self, email: ReceiptEmail) -> None:
        if not self._api_key:
            logger.warning("RESEND_API_KEY not configured, skipping receipt %s", email.receipt_number)
            return
        resend.api_key = self._api_key
        params = {
            "from": self._from_email,
            "to": [email.to],
            "subject": email.subject,
            "html": render_receipt_html(email),
        }
        resend.Emails.send(params)
        logger.info("Receipt %s sent to %s", email.receipt_number, email.to)


class NotificationDispatcher:
    """
    Queues receipt emails on a worker pool.

    With synchronous=True delivery happens inline (tests, CLI); failures are
    still logged and swallowed.
    """

    def __init__(self, notifier: ReceiptNotifier, *, max_workers: int = 2, synchronous: bool = False) -> None:
        self._notifier = notifier
        self._synchronous = synchronous
        self._executor = None if synchronous else ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="receipt-mail"
        )

    def dispatch(self, email: ReceiptEmail) -> Future | None:
        if self._executor is None:
            self._deliver(email)
            return None
        try:
            return self._executor.submit(self._deliver, email)
        except RuntimeError:
            # Executor already shut down (process exiting)
            logger.warning("Notification queue closed, dropping receipt %s", email.receipt_number)
            return None

    def _deliver(self, email: ReceiptEmail) -> None:
        try:
            self._notifier.send_receipt(email)
        except Exception:
            logger.exception("Failed to send receipt email %s", email.receipt_number)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
