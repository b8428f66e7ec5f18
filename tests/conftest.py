"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("BACKEND_MODE", "demo")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ADMIN_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("TELEGRAM_CHAT_ID", "424242")
os.environ.setdefault("TELEGRAM_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("PROMPTPAY_ID", "0812345678")

from app.core.config import Settings  # noqa: E402
from app.core.email_client import OutboxMailer  # noqa: E402
from app.core.storage import InMemoryStorage  # noqa: E402
from app.core.telegram_client import LogAlertChannel  # noqa: E402
from app.repositories.order_repo import InMemoryOrderRepository  # noqa: E402
from app.schemas.book import BookRead  # noqa: E402
from app.schemas.order import CustomerInfo, OrderDraft, OrderItemSnapshot  # noqa: E402
from app.services.notification_service import NotificationDispatcher  # noqa: E402
from app.services.order_service import OrderService  # noqa: E402

# PNG signature is enough for content-type based validation
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def settings() -> Settings:
    """Fresh settings that ignore any local .env file."""
    return Settings(_env_file=None, BACKEND_MODE="demo")


@pytest.fixture
def customer() -> CustomerInfo:
    return CustomerInfo(name="คุณสมหญิง ใจดี", email="somying@example.com", phone="081-234-5678")


@pytest.fixture
def make_book() -> Callable[..., BookRead]:
    """Factory for catalog books."""

    def _make(book_id: str = "baby-1", price: int = 299, **overrides: Any) -> BookRead:
        now = datetime.now(timezone.utc)
        data = {
            "id": book_id,
            "title": f"Book {book_id}",
            "price": price,
            "category": "baby",
            "age_range": "0-2 ปี",
            "pdf_url": f"book-pdfs/{book_id}.pdf",
            "created_at": now,
            "updated_at": now,
        }
        data.update(overrides)
        return BookRead.model_validate(data)

    return _make


@pytest.fixture
def make_draft(customer: CustomerInfo) -> Callable[..., OrderDraft]:
    """Factory for order drafts (one line per (book_id, price, qty))."""

    def _make(lines: list[tuple[str, int, int]] | None = None) -> OrderDraft:
        lines = lines or [("baby-1", 299, 1)]
        items = [
            OrderItemSnapshot(
                id=book_id,
                title=f"Book {book_id}",
                price=price,
                quantity=qty,
                pdf_url=f"book-pdfs/{book_id}.pdf",
            )
            for book_id, price, qty in lines
        ]
        return OrderDraft(
            customer=customer,
            items=items,
            total_amount=sum(price * qty for _, price, qty in lines),
            created_at=datetime.now(timezone.utc),
        )

    return _make


@pytest.fixture
def storage() -> InMemoryStorage:
    storage = InMemoryStorage()
    for book_id in ("baby-1", "preschool-1", "elementary-1"):
        storage.upload("book-pdfs", f"{book_id}.pdf", b"%PDF-1.4 test", "application/pdf")
    return storage


@pytest.fixture
def order_repo() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def mailer() -> OutboxMailer:
    return OutboxMailer()


@pytest.fixture
def alerts() -> LogAlertChannel:
    return LogAlertChannel()


@pytest.fixture
def notifier(
    settings: Settings,
    order_repo: InMemoryOrderRepository,
    storage: InMemoryStorage,
    alerts: LogAlertChannel,
    mailer: OutboxMailer,
) -> NotificationDispatcher:
    return NotificationDispatcher(settings, order_repo, storage, alerts, mailer)


@pytest.fixture
def order_service(
    settings: Settings,
    order_repo: InMemoryOrderRepository,
    storage: InMemoryStorage,
    notifier: NotificationDispatcher,
) -> OrderService:
    return OrderService(settings, order_repo, storage, notifier)


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application in demo mode.

    The backend is rebuilt for every test so demo data starts fresh.
    """
    from app.core.backend import get_backend
    from app.core.config import get_settings
    from app.main import app

    get_settings.cache_clear()
    get_backend.cache_clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    get_backend.cache_clear()
    get_settings.cache_clear()


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    """Bearer header for the demo admin account."""
    response = client.post(
        "/api/v1/admin/login",
        json={"email": "admin@popplayground.com", "password": "admin123"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
