# app/core/telegram_client.py
"""
Outbound channels for operator alerts.

  - TelegramAlertChannel : Telegram Bot API (sendPhoto / sendMessage)
  - WebhookAlertChannel  : POST the alert JSON to an external endpoint
  - LogAlertChannel      : demo / unconfigured; logs and keeps an outbox

Channels raise httpx.HTTPError (or TelegramApiError) on failure; the
notification service decides what a failure means.
"""
import logging
from typing import Any

import httpx

from app.schemas.order import OperatorAlert

logger = logging.getLogger(__name__)


class TelegramApiError(Exception):
    """Telegram answered with ok=false."""


class TelegramClient:
    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.chat_id = chat_id
        self._http = httpx.Client(
            base_url=f"{api_base.rstrip('/')}/bot{bot_token}",
            timeout=timeout,
            transport=transport,
        )

    def _call(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        response = self._http.post(f"/{method}", json=body)
        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise TelegramApiError(f"{method}: non-JSON response")
        if not data.get("ok"):
            raise TelegramApiError(f"{method}: {data.get('description', 'unknown error')}")
        return data

    def send_message(self, text: str, reply_markup: dict | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"chat_id": self.chat_id, "text": text, "parse_mode": "HTML"}
        if reply_markup:
            body["reply_markup"] = reply_markup
        return self._call("sendMessage", body)

    def send_photo(
        self,
        photo_url: str,
        caption: str,
        reply_markup: dict | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "chat_id": self.chat_id,
            "photo": photo_url,
            "caption": caption,
            "parse_mode": "HTML",
        }
        if reply_markup:
            body["reply_markup"] = reply_markup
        return self._call("sendPhoto", body)

    def answer_callback_query(self, callback_query_id: str, text: str) -> dict[str, Any]:
        return self._call(
            "answerCallbackQuery",
            {"callback_query_id": callback_query_id, "text": text},
        )


class TelegramAlertChannel:
    """
    Sends the alert as a photo with caption when a slip URL exists,
    falling back to a plain text message if the photo cannot be sent.
    """

    def __init__(self, client: TelegramClient):
        self.client = client

    def send(self, alert: OperatorAlert, text: str, reply_markup: dict) -> None:
        if alert.slip_image_url:
            try:
                self.client.send_photo(alert.slip_image_url, text, reply_markup)
                return
            except (httpx.HTTPError, TelegramApiError) as exc:
                logger.warning(
                    "sendPhoto failed for order %s, falling back to text: %s",
                    alert.order_number,
                    exc,
                )
        self.client.send_message(text, reply_markup)


class WebhookAlertChannel:
    """
    POSTs {orderId, orderNumber, ..., slipImageUrl?} to OPERATOR_WEBHOOK_URL.
    The response only acknowledges delivery.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def send(self, alert: OperatorAlert, text: str, reply_markup: dict) -> None:
        response = self._http.post(
            self.url,
            json=alert.model_dump(by_alias=True, exclude_none=True),
        )
        response.raise_for_status()


class LogAlertChannel:
    def __init__(self):
        self.outbox: list[tuple[OperatorAlert, str]] = []

    def send(self, alert: OperatorAlert, text: str, reply_markup: dict) -> None:
        self.outbox.append((alert, text))
        logger.info("Operator alert (not delivered to chat): %s", alert.order_number)
