# app/services/cart_service.py
import logging

from app.core.errors import NotFoundError, ValidationError
from app.repositories.book_repo import BookRepository
from app.repositories.cart_repo import CartStateRepository
from app.schemas.cart import CartSummary
from app.schemas.order import CustomerInfo, OrderDraft
from app.services.cart_store import CartStore

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for carts.

    Responsibilities:
      - load a CartStore from its persisted snapshot, mutate it, save it back
      - only active books can be added; price is snapshotted on add
      - turn a cart + customer into an OrderDraft at checkout
    """

    def __init__(
        self,
        cart_repo: CartStateRepository,
        book_repo: BookRepository,
        namespace: str,
    ):
        self.cart_repo = cart_repo
        self.book_repo = book_repo
        self.namespace = namespace

    # ---- internal helpers ----

    def _key(self, cart_id: str) -> str:
        return f"{self.namespace}:{cart_id}"

    def load(self, cart_id: str) -> CartStore:
        return CartStore.from_dict(self.cart_repo.load(self._key(cart_id)))

    def _save(self, cart_id: str, store: CartStore) -> None:
        self.cart_repo.save(self._key(cart_id), store.to_dict())

    @staticmethod
    def _summary(cart_id: str, store: CartStore) -> CartSummary:
        return CartSummary(
            cart_id=cart_id,
            items=store.items,
            customer=store.customer,
            total_items=store.get_total_items(),
            total_price=store.get_total_price(),
        )

    # ---- public operations ----

    def get_cart_summary(self, cart_id: str) -> CartSummary:
        return self._summary(cart_id, self.load(cart_id))

    def add_to_cart(self, cart_id: str, book_id: str) -> CartSummary:
        """
        Add one copy of a book.

        Rules:
          - book must exist and be active
          - price is taken from the current book price
        """
        book = self.book_repo.get(book_id)
        if book is None or not book.is_active:
            raise NotFoundError(f"Book {book_id} not found")

        store = self.load(cart_id)
        store.add_to_cart(book)
        self._save(cart_id, store)
        return self._summary(cart_id, store)

    def update_quantity(self, cart_id: str, book_id: str, quantity: int) -> CartSummary:
        """
        Set an item's quantity; quantity <= 0 removes it.
        """
        store = self.load(cart_id)
        store.update_quantity(book_id, quantity)
        self._save(cart_id, store)
        return self._summary(cart_id, store)

    def remove_item(self, cart_id: str, book_id: str) -> CartSummary:
        store = self.load(cart_id)
        store.remove_from_cart(book_id)
        self._save(cart_id, store)
        return self._summary(cart_id, store)

    def set_customer(self, cart_id: str, info: CustomerInfo) -> CartSummary:
        store = self.load(cart_id)
        store.set_customer(info)
        self._save(cart_id, store)
        return self._summary(cart_id, store)

    def clear_cart(self, cart_id: str) -> CartSummary:
        """
        Drop all items and the checkout state.
        """
        self.cart_repo.delete(self._key(cart_id))
        return self._summary(cart_id, CartStore())

    def checkout(self, cart_id: str, customer: CustomerInfo | None = None) -> OrderDraft:
        """
        Build an order draft from the cart.

        Raises:
            ValidationError: cart is empty or no customer is known.
        """
        store = self.load(cart_id)
        if customer is not None:
            store.set_customer(customer)

        draft = store.create_order()
        if draft is None:
            if not store.items:
                raise ValidationError("Cart is empty")
            raise ValidationError("Customer details are required")

        self._save(cart_id, store)
        return draft
