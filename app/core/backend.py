# app/core/backend.py
"""
Backend selection, made once per process.

  - supabase : SQL repositories on DATABASE_URL, Supabase Storage, SMTP
  - demo     : in-memory repositories seeded with demo data, in-memory
               storage, outbox mailer

Alert channel (either mode): Telegram when TELEGRAM_BOT_TOKEN/CHAT_ID are
set, else OPERATOR_WEBHOOK_URL when set, else log only.

Services receive these collaborators and never look at the mode.
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from app.core.config import Settings, get_settings
from app.core.email_client import OutboxMailer, SmtpMailer
from app.core.storage import FileStorage, InMemoryStorage, SupabaseStorage, split_storage_ref
from app.core.telegram_client import (
    LogAlertChannel,
    TelegramAlertChannel,
    TelegramClient,
    WebhookAlertChannel,
)
from app.repositories.book_repo import BookRepository, InMemoryBookRepository, SqlBookRepository
from app.repositories.cart_repo import (
    CartStateRepository,
    InMemoryCartStateRepository,
    SqlCartStateRepository,
)
from app.repositories.demo_data import DEMO_BOOKS, demo_orders
from app.repositories.order_repo import (
    InMemoryOrderRepository,
    OrderRepository,
    SqlOrderRepository,
)

logger = logging.getLogger(__name__)

# Minimal valid PDF used as the demo download for every book
DEMO_PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


@dataclass
class Backend:
    mode: str
    orders: OrderRepository
    books: BookRepository
    carts: CartStateRepository
    storage: FileStorage
    mailer: Any
    alerts: Any
    telegram: TelegramClient | None = None


def _build_alerts(settings: Settings) -> tuple[Any, TelegramClient | None]:
    if settings.telegram_configured:
        client = TelegramClient(
            bot_token=settings.TELEGRAM_BOT_TOKEN or "",
            chat_id=settings.TELEGRAM_CHAT_ID or "",
            api_base=settings.TELEGRAM_API_BASE,
            timeout=settings.NOTIFY_TIMEOUT_SECONDS,
        )
        return TelegramAlertChannel(client), client
    if settings.OPERATOR_WEBHOOK_URL:
        return (
            WebhookAlertChannel(
                settings.OPERATOR_WEBHOOK_URL, timeout=settings.NOTIFY_TIMEOUT_SECONDS
            ),
            None,
        )
    return LogAlertChannel(), None


def _seed_demo_storage(storage: InMemoryStorage, orders: list[dict]) -> None:
    for book in DEMO_BOOKS:
        parts = split_storage_ref(book["pdf_url"])
        if parts:
            storage.upload(*parts, DEMO_PDF_BYTES, "application/pdf")
    for order in orders:
        parts = split_storage_ref(order["slip_image_url"] or "")
        if parts:
            storage.upload(*parts, b"demo-slip", "image/jpeg")


def build_backend(settings: Settings) -> Backend:
    mode = settings.resolved_backend_mode
    alerts, telegram = _build_alerts(settings)

    if mode == "supabase":
        # Imported here so demo mode never needs a database driver
        from app.core.supabase_client import supabase_admin
        from app.database import get_engine

        engine = get_engine()
        return Backend(
            mode=mode,
            orders=SqlOrderRepository(engine),
            books=SqlBookRepository(engine),
            carts=SqlCartStateRepository(engine),
            storage=SupabaseStorage(supabase_admin()),
            mailer=SmtpMailer(settings),
            alerts=alerts,
            telegram=telegram,
        )

    seed_orders = demo_orders()
    storage = InMemoryStorage()
    _seed_demo_storage(storage, seed_orders)
    return Backend(
        mode=mode,
        orders=InMemoryOrderRepository(seed_orders),
        books=InMemoryBookRepository(DEMO_BOOKS),
        carts=InMemoryCartStateRepository(),
        storage=storage,
        mailer=SmtpMailer(settings) if settings.smtp_configured else OutboxMailer(),
        alerts=alerts,
        telegram=telegram,
    )


@lru_cache
def get_backend() -> Backend:
    """
    Process-wide backend. Call get_backend.cache_clear() to rebuild.
    """
    settings = get_settings()
    backend = build_backend(settings)
    logger.info("Backend mode: %s", backend.mode)
    return backend
