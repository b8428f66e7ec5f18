# app/routers/admin_orders.py
import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlmodel import SQLModel

from app.core.auth import require_admin
from app.core.deps import get_notifier, get_order_service
from app.core.errors import NotFoundError
from app.repositories.order_repo import OrderChange
from app.schemas.order import AdminNotes, OrderRead, OrderStatus
from app.services.notification_service import NotificationDispatcher
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/orders",
    tags=["Admin Orders"],
    dependencies=[Depends(require_admin)],
)

# Seconds between SSE keep-alive comments
KEEPALIVE_SECONDS = 15.0


class SlipUrlRead(SQLModel):
    order_id: str
    url: str
    expires_in: int


@router.get("", response_model=list[OrderRead])
def list_orders(
    status: OrderStatus | None = None,
    service: OrderService = Depends(get_order_service),
):
    """
    All orders, newest first, optionally filtered by status.
    """
    return service.list_orders(status)


@router.get("/events")
async def order_events(
    request: Request,
    service: OrderService = Depends(get_order_service),
):
    """
    Server-Sent Events stream of order changes.

    Each event only says which order changed; the dashboard re-fetches.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[OrderChange] = asyncio.Queue()

    def on_change(change: OrderChange) -> None:
        # Writes happen on worker threads
        loop.call_soon_threadsafe(queue.put_nowait, change)

    unsubscribe = service.orders.subscribe(on_change)

    async def stream():
        try:
            yield ": connected\n\n"
            while not await request.is_disconnected():
                try:
                    change = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                data = json.dumps({"order_id": change.order_id, "kind": change.kind})
                yield f"event: orders\ndata: {data}\n\n"
        finally:
            unsubscribe()

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    return service.get_order(order_id)


@router.get("/{order_id}/slip-url", response_model=SlipUrlRead)
def get_slip_url(
    order_id: str,
    service: OrderService = Depends(get_order_service),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """
    Time-limited link to the order's payment slip.
    """
    order = service.get_order(order_id)
    alert = notifier.build_alert(order)
    if not alert.slip_image_url:
        raise NotFoundError(f"Order {order.order_number} has no slip")
    return SlipUrlRead(
        order_id=order.id,
        url=alert.slip_image_url,
        expires_in=service.settings.SLIP_URL_TTL_SECONDS,
    )


@router.post("/{order_id}/verify", response_model=OrderRead)
def verify_order(
    order_id: str,
    payload: AdminNotes | None = None,
    service: OrderService = Depends(get_order_service),
):
    """
    paid -> verified. On a pending order this is a manual override and is
    noted in admin_notes.
    """
    return service.verify(order_id, payload.notes if payload else None)


@router.post("/{order_id}/cancel", response_model=OrderRead)
def cancel_order(
    order_id: str,
    payload: AdminNotes | None = None,
    service: OrderService = Depends(get_order_service),
):
    """
    Cancel a pending order or reject the slip of a paid one.
    """
    return service.cancel(order_id, payload.notes if payload else None)


@router.post("/{order_id}/send-pdfs", response_model=OrderRead)
def send_pdfs(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    """
    Email the PDFs (verified -> completed). On a completed order this resends.

    502 if the email fails; the order is left unchanged.
    """
    return service.send_pdfs(order_id)


@router.post("/{order_id}/verify-and-send", response_model=OrderRead)
def verify_and_send(
    order_id: str,
    payload: AdminNotes | None = None,
    service: OrderService = Depends(get_order_service),
):
    """
    Verify and deliver in one step.

    If the email fails the order stays 'verified' (502 is returned) and
    only send-pdfs needs retrying.
    """
    return service.verify_and_send(order_id, payload.notes if payload else None)
