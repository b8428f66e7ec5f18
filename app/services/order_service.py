# app/services/order_service.py
import logging
import re
import secrets
import string
import threading
import time
from collections.abc import Callable
from datetime import datetime

from fastapi import BackgroundTasks

from app.core.config import Settings
from app.core.errors import (
    DuplicateOrderNumberError,
    InvalidTransitionError,
    NotFoundError,
    ShopError,
    StorageError,
    ValidationError,
)
from app.core.storage import FileStorage, split_storage_ref, storage_ref
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderDraft, OrderRead, PromptPayRead
from app.schemas.stats import OrderStats
from app.services import promptpay
from app.services.notification_service import NotificationDispatcher
from app.services.stats_service import compute_order_stats

logger = logging.getLogger(__name__)

# Fresh order numbers tried before giving up on a create
MAX_CREATE_ATTEMPTS = 3

# Statuses a slip may be uploaded (or replaced) in
SLIP_STATUSES = ("pending", "paid")

MANUAL_VERIFY_NOTE = "Manual verification: no slip on record"
DEFAULT_CANCEL_NOTES = {
    "pending": "Cancelled by admin",
    "paid": "Payment slip rejected by admin",
}

_BASE36 = string.digits + string.ascii_uppercase
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")

_IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


class OrderNumberGenerator:
    """
    ORD-<base36 ms timestamp>-<6 random base36 chars>

    The timestamp part never repeats or goes backwards within a process:
    calls in the same millisecond get the next free millisecond.
    """

    def __init__(self, clock: Callable[[], int] | None = None):
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            stamp = self._clock()
            if stamp <= self._last:
                stamp = self._last + 1
            self._last = stamp
        suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
        return f"ORD-{to_base36(stamp)}-{suffix}"


# Shared by every OrderService in the process
generate_order_number = OrderNumberGenerator()


def _slip_extension(content_type: str) -> str:
    # Never taken from the client filename
    return _IMAGE_EXTENSIONS.get(content_type.lower(), "img")


class OrderService:
    """
    Order lifecycle controller.

    States: pending -> paid -> verified -> completed, cancelled from
    pending or paid. Both cancelled and completed are final (completed
    orders still accept PDF resends).

    Responsibilities:
      - create orders from drafts (fresh order number, retried on clash)
      - validate and store payment slips, then alert the operator
      - verify / cancel / deliver, rejecting any other transition
      - derive dashboard stats from the current order set

    Every write re-checks the status it was decided on, so of two
    concurrent actions on one order the second gets InvalidTransitionError.
    """

    def __init__(
        self,
        settings: Settings,
        orders: OrderRepository,
        storage: FileStorage,
        notifier: NotificationDispatcher,
        next_order_number: Callable[[], str] | None = None,
    ):
        self.settings = settings
        self.orders = orders
        self.storage = storage
        self.notifier = notifier
        self.next_order_number = next_order_number or generate_order_number

    # -------- Queries --------

    def get_order(self, order_id: str) -> OrderRead:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def list_orders(self, status: str | None = None) -> list[OrderRead]:
        orders = self.orders.list_orders()
        if status:
            orders = [o for o in orders if o.status == status]
        return orders

    def stats(self) -> OrderStats:
        return compute_order_stats(self.orders.list_orders())

    def promptpay_payload(self, order_id: str) -> PromptPayRead:
        """
        PromptPay QR payload for paying this order.
        """
        order = self.get_order(order_id)
        if order.status != "pending":
            raise InvalidTransitionError(order.status, "paid")
        return PromptPayRead(
            order_id=order.id,
            order_number=order.order_number,
            merchant_id=self.settings.PROMPTPAY_ID,
            amount=order.total_amount,
            payload=promptpay.encode(self.settings.PROMPTPAY_ID, order.total_amount),
        )

    # -------- Checkout --------

    def create_order(self, draft: OrderDraft) -> OrderRead:
        """
        Persist a draft as a pending order.

        A clash on order_number is retried with a fresh number, up to
        MAX_CREATE_ATTEMPTS times; other failures propagate immediately.
        """
        last_error: DuplicateOrderNumberError | None = None
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            numbered = draft.model_copy(update={"order_number": self.next_order_number()})
            try:
                order = self.orders.create(numbered)
            except DuplicateOrderNumberError as exc:
                logger.warning(
                    "Order number %s taken (attempt %d/%d)",
                    numbered.order_number,
                    attempt,
                    MAX_CREATE_ATTEMPTS,
                )
                last_error = exc
                continue

            logger.info(
                "Order %s created (%d items, total %d)",
                order.order_number,
                order.item_count,
                order.total_amount,
            )
            return order

        raise DuplicateOrderNumberError(
            f"No free order number after {MAX_CREATE_ATTEMPTS} attempts"
        ) from last_error

    # -------- Payment slip --------

    def _validate_slip(
        self,
        data: bytes,
        content_type: str,
        transfer_date: str,
        transfer_time: str,
    ) -> None:
        if not content_type or not content_type.lower().startswith("image/"):
            raise ValidationError("Slip must be an image")
        if not data:
            raise ValidationError("Slip file is empty")
        if len(data) > self.settings.MAX_SLIP_BYTES:
            raise ValidationError(
                f"Slip is larger than {self.settings.MAX_SLIP_BYTES // (1024 * 1024)} MB"
            )

        if not _DATE_RE.match(transfer_date or ""):
            raise ValidationError("transfer_date must be YYYY-MM-DD")
        if not _TIME_RE.match(transfer_time or ""):
            raise ValidationError("transfer_time must be HH:MM")
        try:
            datetime.strptime(transfer_date, "%Y-%m-%d")
            datetime.strptime(transfer_time, "%H:%M")
        except ValueError as exc:
            raise ValidationError(f"Invalid transfer date/time: {exc}") from exc

    def upload_slip(
        self,
        order_id: str,
        data: bytes,
        content_type: str,
        transfer_date: str,
        transfer_time: str,
        background_tasks: BackgroundTasks | None = None,
    ) -> OrderRead:
        """
        Store a transfer slip and move the order to paid.

        Steps:
          1. Validate file and transfer date/time (no network yet).
          2. Check the order is pending or paid (re-upload overwrites).
          3. Upload to order-slips/<order_id>-<ms>.<ext>, ext from content type.
          4. Record slip fields + status=paid in one write, guarded on the
             order still being pending or paid. If this fails, the uploaded
             object is removed and the error propagates.
          5. Remove the slip this one replaces (best-effort).
          6. Alert the operator (background task when given, else inline).
             Alert failures are logged, never raised.
        """
        self._validate_slip(data, content_type, transfer_date, transfer_time)

        order = self.get_order(order_id)
        if order.status not in SLIP_STATUSES:
            raise InvalidTransitionError(order.status, "paid")

        bucket = self.settings.SLIP_BUCKET
        key = f"{order.id}-{time.time_ns() // 1_000_000}.{_slip_extension(content_type)}"
        self.storage.upload(bucket, key, data, content_type)

        ref = storage_ref(bucket, key)
        try:
            updated = self.orders.record_slip(
                order.id, ref, transfer_date, transfer_time, allowed_from=SLIP_STATUSES
            )
        except ShopError:
            self._discard_upload(bucket, key)
            raise

        logger.info(
            "Slip recorded for order %s (%s -> paid)", updated.order_number, order.status
        )

        if order.slip_image_url and order.slip_image_url != ref:
            previous = split_storage_ref(order.slip_image_url)
            if previous is not None:
                self._discard_upload(*previous)

        if background_tasks is not None:
            background_tasks.add_task(self.notify_operator, updated)
        else:
            self.notify_operator(updated)
        return updated

    def _discard_upload(self, bucket: str, key: str) -> None:
        try:
            self.storage.remove(bucket, key)
        except StorageError as exc:
            logger.warning("Could not remove slip %s/%s: %s", bucket, key, exc)

    def notify_operator(self, order: OrderRead) -> None:
        """
        Best-effort operator alert.
        """
        try:
            self.notifier.alert_operator(order)
        except ShopError as exc:
            logger.warning(
                "Operator alert for order %s not delivered: %s",
                order.order_number,
                exc.message,
            )
        except Exception:
            logger.exception("Operator alert for order %s crashed", order.order_number)

    # -------- Admin actions --------

    def verify(self, order_id: str, notes: str | None = None) -> OrderRead:
        """
        paid -> verified. A pending order may be verified manually
        (payment confirmed outside the slip flow); that is noted in
        admin_notes.
        """
        order = self.get_order(order_id)
        if order.status not in ("pending", "paid"):
            raise InvalidTransitionError(order.status, "verified")

        if order.status == "pending":
            notes = f"{MANUAL_VERIFY_NOTE}: {notes}" if notes else MANUAL_VERIFY_NOTE
            logger.warning("Order %s verified without a slip", order.order_number)

        updated = self.orders.update_status(
            order.id, "verified", notes, allowed_from=(order.status,)
        )
        logger.info("Order %s verified", updated.order_number)
        return updated

    def cancel(self, order_id: str, notes: str | None = None) -> OrderRead:
        """
        pending -> cancelled (cancel) or paid -> cancelled (reject slip).
        """
        order = self.get_order(order_id)
        if order.status not in ("pending", "paid"):
            raise InvalidTransitionError(order.status, "cancelled")

        updated = self.orders.update_status(
            order.id,
            "cancelled",
            notes or DEFAULT_CANCEL_NOTES[order.status],
            allowed_from=(order.status,),
        )
        logger.info("Order %s cancelled (was %s)", updated.order_number, order.status)
        return updated

    def send_pdfs(self, order_id: str) -> OrderRead:
        """
        Email the PDFs; on success verified -> completed with pdfs_sent=True.

        On a completed order this is a resend and the status stays as is.
        If the email fails, nothing is written and NotificationError
        propagates so the operator can retry.
        """
        order = self.get_order(order_id)
        if order.status not in ("verified", "completed"):
            raise InvalidTransitionError(order.status, "completed")

        self.notifier.send_delivery_email(order.id)

        if order.status == "completed":
            logger.info("PDFs re-sent for order %s", order.order_number)
            return order

        # A concurrent delivery may have completed it already
        updated = self.orders.mark_delivered(order.id, allowed_from=("verified", "completed"))
        logger.info("Order %s completed", updated.order_number)
        return updated

    def verify_and_send(self, order_id: str, notes: str | None = None) -> OrderRead:
        """
        Verify then deliver in one operator step.

        A delivery failure leaves the order verified with pdfs_sent=False
        and re-raises, so only the send needs retrying. An order that is
        already verified goes straight to delivery.
        """
        order = self.get_order(order_id)
        if order.status in ("pending", "paid"):
            self.verify(order.id, notes)
        elif order.status != "verified":
            raise InvalidTransitionError(order.status, "completed")
        return self.send_pdfs(order.id)
