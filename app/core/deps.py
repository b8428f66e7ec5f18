# app/core/deps.py
"""
FastAPI dependency providers for services.

Services are cheap to build; the expensive collaborators live on the
cached Backend. Tests swap any of these through app.dependency_overrides.
"""
from app.core.backend import get_backend
from app.core.config import get_settings
from app.core.telegram_client import TelegramClient
from app.services.book_service import BookService
from app.services.cart_service import CartService
from app.services.notification_service import NotificationDispatcher
from app.services.order_service import OrderService
from app.services.stats_service import StatsService


def get_notifier() -> NotificationDispatcher:
    backend = get_backend()
    return NotificationDispatcher(
        settings=get_settings(),
        orders=backend.orders,
        storage=backend.storage,
        alerts=backend.alerts,
        mailer=backend.mailer,
    )


def get_order_service() -> OrderService:
    backend = get_backend()
    return OrderService(
        settings=get_settings(),
        orders=backend.orders,
        storage=backend.storage,
        notifier=get_notifier(),
    )


def get_cart_service() -> CartService:
    backend = get_backend()
    return CartService(backend.carts, backend.books, get_settings().CART_NAMESPACE)


def get_book_service() -> BookService:
    backend = get_backend()
    return BookService(get_settings(), backend.books, backend.storage)


def get_stats_service() -> StatsService:
    return StatsService(get_backend().orders)


def get_telegram_client() -> TelegramClient | None:
    return get_backend().telegram
