# app/routers/integrations.py
import hmac
import logging
from typing import Any

import httpx
from fastapi import APIRouter, Body, Depends, Header

from app.core.config import Settings, get_settings
from app.core.deps import get_order_service, get_telegram_client
from app.core.errors import AuthenticationError, ShopError
from app.core.telegram_client import TelegramApiError, TelegramClient
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["Integrations"])

REJECT_NOTES = "Payment slip rejected via Telegram"


def _answer(client: TelegramClient | None, callback_id: str | None, text: str) -> None:
    if client is None or not callback_id:
        return
    try:
        client.answer_callback_query(callback_id, text)
    except (httpx.HTTPError, TelegramApiError) as exc:
        logger.warning("answerCallbackQuery failed: %s", exc)


@router.post("/telegram/webhook")
def telegram_webhook(
    update: dict[str, Any] = Body(...),
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
    service: OrderService = Depends(get_order_service),
    telegram: TelegramClient | None = Depends(get_telegram_client),
):
    """
    Handle the operator's button presses on an order alert.

    Callback data:
      - approve:<order_id> -> verify and send PDFs
      - reject:<order_id>  -> cancel (slip rejected)

    Requests must carry the secret token registered with setWebhook and
    come from the configured chat. Business failures are answered back to
    the operator and still return 200 so Telegram does not redeliver.
    """
    secret = settings.TELEGRAM_WEBHOOK_SECRET
    if not secret or not hmac.compare_digest(x_telegram_bot_api_secret_token or "", secret):
        raise AuthenticationError("Invalid webhook secret")

    callback = update.get("callback_query")
    if not callback:
        return {"ok": True, "handled": False}

    chat_id = ((callback.get("message") or {}).get("chat") or {}).get("id")
    if str(chat_id) != str(settings.TELEGRAM_CHAT_ID):
        raise AuthenticationError("Callback from an unknown chat")

    action, _, order_id = (callback.get("data") or "").partition(":")
    handled = True
    try:
        if action == "approve":
            order = service.verify_and_send(order_id)
            text = f"✅ {order.order_number}: verified, PDFs sent"
        elif action == "reject":
            order = service.cancel(order_id, REJECT_NOTES)
            text = f"❌ {order.order_number}: rejected"
        else:
            handled = False
            text = "Unknown action"
    except ShopError as exc:
        logger.warning("Telegram %s for order %s failed: %s", action, order_id, exc.message)
        text = f"⚠️ {exc.message}"

    _answer(telegram, callback.get("id"), text)
    return {"ok": True, "handled": handled, "result": text}
