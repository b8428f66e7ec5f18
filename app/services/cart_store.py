# app/services/cart_store.py
"""
CartStore: in-process state container for one shopping cart.

Responsibilities:
  - Hold cart items, the checkout customer and the last order draft.
  - Apply mutations synchronously and notify subscribers after each one.
  - Build an OrderDraft snapshot from the current state.
  - Serialize to / from a plain dict (CartService persists it).

It performs no I/O of its own.
"""
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from app.schemas.book import BookRead
from app.schemas.cart import CartItem, CartSnapshot
from app.schemas.order import CustomerInfo, OrderDraft, OrderItemSnapshot

logger = logging.getLogger(__name__)

CartListener = Callable[["CartStore"], None]


class CartStore:
    def __init__(
        self,
        items: list[CartItem] | None = None,
        customer: CustomerInfo | None = None,
        current_order: OrderDraft | None = None,
    ):
        self.items: list[CartItem] = list(items or [])
        self.customer = customer
        self.current_order = current_order
        self._listeners: list[CartListener] = []

    # -------- Subscription --------

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """
        Register a listener called with the store after every mutation.
        Returns a function that removes it again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Cart listener failed")

    # -------- Mutations --------

    def _find(self, book_id: str) -> CartItem | None:
        for item in self.items:
            if item.id == book_id:
                return item
        return None

    def add_to_cart(self, book: BookRead) -> None:
        """
        Add one copy of a book. Repeated adds increment the quantity.
        """
        existing = self._find(book.id)
        if existing:
            existing.quantity += 1
        else:
            self.items.append(
                CartItem(
                    id=book.id,
                    title=book.title,
                    price=book.price,
                    quantity=1,
                    image=book.cover_image_url,
                    age_range=book.age_range,
                    pdf_url=book.pdf_url,
                )
            )
        self._notify()

    def remove_from_cart(self, book_id: str) -> None:
        # No-op when absent
        self.items = [it for it in self.items if it.id != book_id]
        self._notify()

    def update_quantity(self, book_id: str, quantity: int) -> None:
        """
        Set the quantity exactly; quantity <= 0 removes the item.
        """
        if quantity <= 0:
            self.remove_from_cart(book_id)
            return
        item = self._find(book_id)
        if item:
            item.quantity = quantity
        self._notify()

    def clear_cart(self) -> None:
        self.items = []
        self._notify()

    def set_customer(self, info: CustomerInfo) -> None:
        self.customer = info.model_copy()
        self._notify()

    # -------- Derived values --------

    def get_total_items(self) -> int:
        return sum(it.quantity for it in self.items)

    def get_total_price(self) -> int:
        return sum(it.price * it.quantity for it in self.items)

    def create_order(self) -> OrderDraft | None:
        """
        Build an order draft from the current items and customer.

        Returns None when the cart is empty or no customer is set.
        The draft holds copies: later cart edits do not change it.
        """
        if not self.items or self.customer is None:
            return None

        draft = OrderDraft(
            customer=self.customer.model_copy(),
            items=[
                OrderItemSnapshot(
                    id=it.id,
                    title=it.title,
                    price=it.price,
                    quantity=it.quantity,
                    pdf_url=it.pdf_url or "",
                )
                for it in self.items
            ],
            total_amount=self.get_total_price(),
            created_at=datetime.now(timezone.utc),
        )
        self.current_order = draft
        self._notify()
        return draft

    # -------- Serialization --------

    def to_dict(self) -> dict:
        snapshot = CartSnapshot(
            items=self.items,
            customer=self.customer,
            current_order=self.current_order,
        )
        return snapshot.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict | None) -> "CartStore":
        """
        Rebuild a store from `to_dict` output. None or {} gives an empty cart.
        """
        snapshot = CartSnapshot.model_validate(data or {})
        return cls(
            items=snapshot.items,
            customer=snapshot.customer,
            current_order=snapshot.current_order,
        )
