# app/services/notification_service.py
"""
NotificationDispatcher: operator alerts and customer delivery emails.

Responsibilities:
  - alert_operator(order): signed slip link (7 days), message with
    approve / reject actions, sent through the configured alert channel.
  - send_delivery_email(order_id): look the order up, sign a download link
    per book, send a text + HTML email to the customer.

Every failure surfaces as NotificationError. Whether that failure matters
is the caller's decision (the operator alert is best-effort; the delivery
email gates completion).
"""
import html
import logging
import smtplib
from typing import Protocol

import httpx

from app.core.config import Settings
from app.core.errors import NotificationError, NotFoundError, ShopError
from app.core.storage import FileStorage, split_storage_ref
from app.core.telegram_client import TelegramApiError
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OperatorAlert, OrderItemSnapshot, OrderRead

logger = logging.getLogger(__name__)


class AlertChannel(Protocol):
    def send(self, alert: OperatorAlert, text: str, reply_markup: dict) -> None:
        ...


class Mailer(Protocol):
    def send(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None:
        ...


def format_baht(amount: int) -> str:
    return f"฿{amount:,}"


class NotificationDispatcher:
    def __init__(
        self,
        settings: Settings,
        orders: OrderRepository,
        storage: FileStorage,
        alerts: AlertChannel,
        mailer: Mailer,
    ):
        self.settings = settings
        self.orders = orders
        self.storage = storage
        self.alerts = alerts
        self.mailer = mailer

    # -------- helpers --------

    def _signed(self, ref: str, ttl_seconds: int) -> str:
        """
        Signed URL for a "<bucket>/<key>" reference; other values pass through.
        """
        parts = split_storage_ref(ref)
        if parts is None:
            return ref
        bucket, key = parts
        return self.storage.signed_url(bucket, key, ttl_seconds)

    def build_alert(self, order: OrderRead) -> OperatorAlert:
        slip_url: str | None = None
        if order.slip_image_url:
            try:
                slip_url = self._signed(
                    order.slip_image_url, self.settings.SLIP_URL_TTL_SECONDS
                )
            except ShopError as exc:
                # Alert still goes out, just without the image
                logger.warning(
                    "Could not sign slip for order %s: %s", order.order_number, exc
                )

        return OperatorAlert(
            order_id=order.id,
            order_number=order.order_number,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            total_amount=order.total_amount,
            item_count=order.item_count,
            slip_image_url=slip_url,
        )

    @staticmethod
    def render_alert(alert: OperatorAlert) -> tuple[str, dict]:
        """
        Message text (Telegram HTML) and inline keyboard for an alert.
        """
        lines = [
            "🛒 <b>New payment slip</b>",
            "",
            f"Order: <b>{html.escape(alert.order_number)}</b>",
            f"Customer: {html.escape(alert.customer_name)}",
            f"Email: {html.escape(alert.customer_email)}",
            f"Phone: {html.escape(alert.customer_phone)}",
            f"Items: {alert.item_count}",
            f"Total: <b>{format_baht(alert.total_amount)}</b>",
        ]
        if not alert.slip_image_url:
            lines.append("")
            lines.append("(slip image unavailable)")

        keyboard: list[list[dict]] = [
            [
                {"text": "✅ Approve & send PDFs", "callback_data": f"approve:{alert.order_id}"},
                {"text": "❌ Reject", "callback_data": f"reject:{alert.order_id}"},
            ]
        ]
        if alert.slip_image_url:
            keyboard.append([{"text": "🧾 View slip", "url": alert.slip_image_url}])

        return "\n".join(lines), {"inline_keyboard": keyboard}

    # -------- operator alert --------

    def alert_operator(self, order: OrderRead) -> OperatorAlert:
        """
        Send the operator alert for an order with a freshly recorded slip.

        Raises:
            NotificationError: the channel failed (after its own fallback).
        """
        alert = self.build_alert(order)
        text, reply_markup = self.render_alert(alert)
        try:
            self.alerts.send(alert, text, reply_markup)
        except (httpx.HTTPError, TelegramApiError) as exc:
            raise NotificationError(
                f"Operator alert for {order.order_number} failed: {exc}"
            ) from exc

        logger.info("Operator alerted for order %s", order.order_number)
        return alert

    # -------- customer delivery email --------

    def _download_links(self, items: list[OrderItemSnapshot]) -> list[tuple[OrderItemSnapshot, str]]:
        links: list[tuple[OrderItemSnapshot, str]] = []
        for item in items:
            if not item.pdf_url:
                raise NotificationError(f"Book {item.id} has no PDF on record")
            links.append((item, self._signed(item.pdf_url, self.settings.PDF_URL_TTL_SECONDS)))
        return links

    def render_delivery_email(
        self,
        order: OrderRead,
        links: list[tuple[OrderItemSnapshot, str]],
    ) -> tuple[str, str, str]:
        """
        (subject, text body, HTML body) for the delivery email.
        """
        store = self.settings.STORE_NAME
        ttl_days = max(1, self.settings.PDF_URL_TTL_SECONDS // 86400)
        subject = f"[{store}] Your books for order {order.order_number}"

        text_lines = [
            f"Hello {order.customer_name},",
            "",
            f"Thank you for your order {order.order_number}. "
            "Your payment has been verified.",
            "",
            "Download your books:",
        ]
        for item, url in links:
            text_lines.append(f"- {item.title} (x{item.quantity}): {url}")
        text_lines += [
            "",
            f"Links expire in {ttl_days} days.",
            f"Total paid: {format_baht(order.total_amount)}",
            "",
            store,
        ]

        rows = "".join(
            f'<li><a href="{html.escape(url)}">{html.escape(item.title)}</a>'
            f" &times; {item.quantity}</li>"
            for item, url in links
        )
        html_body = f"""\
<html>
  <body style="font-family: sans-serif;">
    <p>Hello {html.escape(order.customer_name)},</p>
    <p>Thank you for your order <b>{html.escape(order.order_number)}</b>.
       Your payment has been verified.</p>
    <p>Download your books:</p>
    <ul>{rows}</ul>
    <p>Links expire in {ttl_days} days.<br/>
       Total paid: <b>{format_baht(order.total_amount)}</b></p>
    <p>{html.escape(store)}</p>
  </body>
</html>
"""
        return subject, "\n".join(text_lines), html_body

    def send_delivery_email(self, order_id: str) -> None:
        """
        Email the download links for an order to its customer.

        Raises:
            NotFoundError: no such order.
            NotificationError: link signing or sending failed.
        """
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        try:
            links = self._download_links(order.items)
        except NotificationError:
            raise
        except ShopError as exc:
            raise NotificationError(
                f"Could not sign downloads for {order.order_number}: {exc.message}"
            ) from exc

        subject, text_body, html_body = self.render_delivery_email(order, links)
        try:
            self.mailer.send(order.customer_email, subject, text_body, html_body)
        except (RuntimeError, smtplib.SMTPException, OSError) as exc:
            raise NotificationError(
                f"Delivery email for {order.order_number} failed: {exc}"
            ) from exc

        logger.info(
            "Delivery email sent for order %s to %s",
            order.order_number,
            order.customer_email,
        )
