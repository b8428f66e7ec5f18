# app/routers/orders.py
import logging

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    UploadFile,
    status,
)

from app.core.deps import get_cart_service, get_order_service
from app.core.errors import PersistenceError
from app.core.storage import read_limited
from app.schemas.order import CheckoutRequest, OrderRead, PromptPayRead
from app.services.cart_service import CartService
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


# -------- Customer-facing endpoints --------


@router.post(
    "/checkout",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: CheckoutRequest,
    carts: CartService = Depends(get_cart_service),
    service: OrderService = Depends(get_order_service),
):
    """
    Create a pending order from a cart.

    - The customer may be sent here or set on the cart beforehand.
    - The cart keeps its items until the slip is uploaded.
    """
    draft = carts.checkout(payload.cart_id, payload.customer)
    return service.create_order(draft)


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    """
    Order status page for the customer.
    """
    return service.get_order(order_id)


@router.get("/{order_id}/promptpay", response_model=PromptPayRead)
def get_promptpay_payload(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    """
    PromptPay QR payload for a pending order (rendered as a QR by the client).
    """
    return service.promptpay_payload(order_id)


@router.post(
    "/{order_id}/slip",
    response_model=OrderRead,
    summary="Upload the bank transfer slip for an order",
)
def upload_slip(
    order_id: str,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    transfer_date: str = Form(...),
    transfer_time: str = Form(...),
    cart_id: str | None = Form(default=None),
    service: OrderService = Depends(get_order_service),
    carts: CartService = Depends(get_cart_service),
):
    """
    Upload a slip image with the transfer date (YYYY-MM-DD) and time (HH:MM).

    - Moves the order to 'paid' (re-upload on a paid order replaces the slip).
    - The operator is alerted after the response is sent.
    - When cart_id is given, that cart is cleared.
    """
    file_bytes = read_limited(file.file, service.settings.MAX_SLIP_BYTES)
    order = service.upload_slip(
        order_id=order_id,
        data=file_bytes,
        content_type=file.content_type or "",
        transfer_date=transfer_date,
        transfer_time=transfer_time,
        background_tasks=background_tasks,
    )

    if cart_id:
        try:
            carts.clear_cart(cart_id)
        except PersistenceError as exc:
            # Slip is already recorded at this point
            logger.warning("Could not clear cart %s: %s", cart_id, exc.message)

    return order
