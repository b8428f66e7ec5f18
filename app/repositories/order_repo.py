# app/repositories/order_repo.py
"""
Data access for orders.

Two adapters share one interface:
  - SqlOrderRepository      : SQLModel over Postgres (Supabase) or SQLite
  - InMemoryOrderRepository : demo / offline mode

Rules:
  - Every operation is its own transaction; a failure leaves the row as it was.
  - Rows are validated into OrderRead when they cross this boundary.
    list_orders skips (and logs) malformed rows, get raises PersistenceError.
  - Subscribers get an OrderChange after each successful write. It only says
    that something changed; consumers re-fetch.
"""
import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.core.errors import (
    DuplicateOrderNumberError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.models.order import Order, utcnow
from app.schemas.order import OrderDraft, OrderRead

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderChange:
    order_id: str
    kind: str  # created | status | slip | delivered


OrderListener = Callable[[OrderChange], None]


def parse_order_row(row: dict[str, Any]) -> OrderRead:
    """
    Validate a raw row into OrderRead.

    Raises:
        pydantic.ValidationError if the row breaks the order invariants.
    """
    return OrderRead.model_validate(row)


def draft_to_row(draft: OrderDraft) -> dict[str, Any]:
    if not draft.order_number:
        raise ValidationError("Order draft has no order_number")
    return {
        "order_number": draft.order_number,
        "customer_name": draft.customer.name,
        "customer_email": str(draft.customer.email),
        "customer_phone": draft.customer.phone,
        "items": [it.model_dump() for it in draft.items],
        "total_amount": draft.total_amount,
        "status": "pending",
        "slip_image_url": None,
        "transfer_date": None,
        "transfer_time": None,
        "pdfs_sent": False,
        "admin_notes": None,
        "created_at": draft.created_at,
        "updated_at": draft.created_at,
    }


class OrderRepository(ABC):
    def __init__(self):
        self._listeners: list[OrderListener] = []
        self._listeners_lock = threading.Lock()

    # ---- Subscription ----

    def subscribe(self, on_change: OrderListener) -> Callable[[], None]:
        with self._listeners_lock:
            self._listeners.append(on_change)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if on_change in self._listeners:
                    self._listeners.remove(on_change)

        return unsubscribe

    def _publish(self, change: OrderChange) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                logger.exception(
                    "Order change listener failed (%s %s)", change.kind, change.order_id
                )

    # ---- Queries ----

    @abstractmethod
    def get(self, order_id: str) -> OrderRead | None:
        ...

    @abstractmethod
    def list_orders(self) -> list[OrderRead]:
        """All valid orders, newest first."""

    # ---- Writes ----

    @abstractmethod
    def create(self, draft: OrderDraft) -> OrderRead:
        """
        Insert a pending order with pdfs_sent=False.

        Raises:
            DuplicateOrderNumberError: order_number already taken.
            PersistenceError: backend failure.
        """

    # allowed_from: statuses the row must be in when the write lands. Checked
    # under the same lock / transaction as the write, so a concurrent change
    # raises InvalidTransitionError instead of being overwritten.

    @abstractmethod
    def update_status(
        self,
        order_id: str,
        status: str,
        notes: str | None = None,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        """
        Set status (and admin_notes when given). Items and amount are untouched.
        """

    @abstractmethod
    def record_slip(
        self,
        order_id: str,
        slip_ref: str,
        transfer_date: str,
        transfer_time: str,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        """
        Set the slip evidence and status=paid in one write.
        """

    @abstractmethod
    def mark_delivered(
        self,
        order_id: str,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        """
        Set pdfs_sent=True and status=completed in one write.
        """


def _check_transition(current: str, target: str, allowed_from: Collection[str] | None) -> None:
    if allowed_from is not None and current not in allowed_from:
        raise InvalidTransitionError(current, target)


def _quarantine(order_id: Any, exc: Exception) -> None:
    logger.error("Skipping malformed order row %s: %s", order_id, exc)


class SqlOrderRepository(OrderRepository):
    """
    SQLModel adapter. Opens one Session per operation.
    """

    def __init__(self, engine: Engine):
        super().__init__()
        self.engine = engine

    def _parse(self, order: Order) -> OrderRead:
        return parse_order_row(order.model_dump())

    def get(self, order_id: str) -> OrderRead | None:
        try:
            with Session(self.engine) as session:
                order = session.get(Order, order_id)
                if order is None:
                    return None
                try:
                    return self._parse(order)
                except PydanticValidationError as exc:
                    raise PersistenceError(f"Order {order_id} is malformed: {exc}") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Loading order {order_id} failed: {exc}") from exc

    def list_orders(self) -> list[OrderRead]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(select(Order).order_by(Order.created_at.desc())).all()
                result: list[OrderRead] = []
                for row in rows:
                    try:
                        result.append(self._parse(row))
                    except PydanticValidationError as exc:
                        _quarantine(row.id, exc)
                return result
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Listing orders failed: {exc}") from exc

    def create(self, draft: OrderDraft) -> OrderRead:
        order = Order(**draft_to_row(draft))
        try:
            with Session(self.engine) as session:
                session.add(order)
                session.commit()
                session.refresh(order)
                created = self._parse(order)
        except IntegrityError as exc:
            raise DuplicateOrderNumberError(
                f"Order number {draft.order_number} already exists"
            ) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Creating order failed: {exc}") from exc

        self._publish(OrderChange(created.id, "created"))
        return created

    def _mutate(
        self,
        order_id: str,
        kind: str,
        target: str,
        allowed_from: Collection[str] | None,
        apply: Callable[[Order], None],
    ) -> OrderRead:
        try:
            with Session(self.engine) as session:
                # FOR UPDATE holds the row until commit (no-op on SQLite)
                order = session.exec(
                    select(Order).where(Order.id == order_id).with_for_update()
                ).first()
                if order is None:
                    raise NotFoundError(f"Order {order_id} not found")
                _check_transition(order.status, target, allowed_from)
                apply(order)
                order.updated_at = utcnow()
                try:
                    updated = self._parse(order)
                except PydanticValidationError as exc:
                    session.rollback()
                    raise PersistenceError(
                        f"Order {order_id} would become invalid: {exc}"
                    ) from exc
                session.add(order)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Updating order {order_id} failed: {exc}") from exc

        self._publish(OrderChange(updated.id, kind))
        return updated

    def update_status(
        self,
        order_id: str,
        status: str,
        notes: str | None = None,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        def apply(order: Order) -> None:
            order.status = status
            if notes is not None:
                order.admin_notes = notes

        return self._mutate(order_id, "status", status, allowed_from, apply)

    def record_slip(
        self,
        order_id: str,
        slip_ref: str,
        transfer_date: str,
        transfer_time: str,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        def apply(order: Order) -> None:
            order.slip_image_url = slip_ref
            order.transfer_date = transfer_date
            order.transfer_time = transfer_time
            order.status = "paid"

        return self._mutate(order_id, "slip", "paid", allowed_from, apply)

    def mark_delivered(
        self,
        order_id: str,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        def apply(order: Order) -> None:
            order.pdfs_sent = True
            order.status = "completed"

        return self._mutate(order_id, "delivered", "completed", allowed_from, apply)


class InMemoryOrderRepository(OrderRepository):
    """
    Process-local adapter for demo mode and tests.

    `rows` holds raw dicts keyed by id, shaped like `orders` table rows.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None):
        super().__init__()
        self._lock = threading.Lock()
        self.rows: dict[str, dict[str, Any]] = {}
        for row in rows or []:
            self.rows[row["id"]] = copy.deepcopy(row)

    def get(self, order_id: str) -> OrderRead | None:
        with self._lock:
            row = copy.deepcopy(self.rows.get(order_id))
        if row is None:
            return None
        try:
            return parse_order_row(row)
        except PydanticValidationError as exc:
            raise PersistenceError(f"Order {order_id} is malformed: {exc}") from exc

    def list_orders(self) -> list[OrderRead]:
        with self._lock:
            rows = copy.deepcopy(list(self.rows.values()))
        result: list[OrderRead] = []
        for row in rows:
            try:
                result.append(parse_order_row(row))
            except PydanticValidationError as exc:
                _quarantine(row.get("id"), exc)
        result.sort(key=lambda o: o.created_at, reverse=True)
        return result

    def create(self, draft: OrderDraft) -> OrderRead:
        row = draft_to_row(draft)
        row["id"] = str(uuid.uuid4())
        created = parse_order_row(row)
        with self._lock:
            if any(r.get("order_number") == row["order_number"] for r in self.rows.values()):
                raise DuplicateOrderNumberError(
                    f"Order number {row['order_number']} already exists"
                )
            self.rows[row["id"]] = row
        self._publish(OrderChange(created.id, "created"))
        return created

    def _mutate(
        self,
        order_id: str,
        kind: str,
        allowed_from: Collection[str] | None,
        changes: dict[str, Any],
    ) -> OrderRead:
        with self._lock:
            current = self.rows.get(order_id)
            if current is None:
                raise NotFoundError(f"Order {order_id} not found")
            _check_transition(current.get("status"), changes["status"], allowed_from)
            candidate = {**copy.deepcopy(current), **changes, "updated_at": utcnow()}
            try:
                updated = parse_order_row(candidate)
            except PydanticValidationError as exc:
                raise PersistenceError(
                    f"Order {order_id} would become invalid: {exc}"
                ) from exc
            self.rows[order_id] = candidate
        self._publish(OrderChange(order_id, kind))
        return updated

    def update_status(
        self,
        order_id: str,
        status: str,
        notes: str | None = None,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        changes: dict[str, Any] = {"status": status}
        if notes is not None:
            changes["admin_notes"] = notes
        return self._mutate(order_id, "status", allowed_from, changes)

    def record_slip(
        self,
        order_id: str,
        slip_ref: str,
        transfer_date: str,
        transfer_time: str,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        return self._mutate(
            order_id,
            "slip",
            allowed_from,
            {
                "slip_image_url": slip_ref,
                "transfer_date": transfer_date,
                "transfer_time": transfer_time,
                "status": "paid",
            },
        )

    def mark_delivered(
        self,
        order_id: str,
        allowed_from: Collection[str] | None = None,
    ) -> OrderRead:
        return self._mutate(
            order_id,
            "delivered",
            allowed_from,
            {"pdfs_sent": True, "status": "completed"},
        )
