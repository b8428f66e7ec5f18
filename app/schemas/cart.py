# app/schemas/cart.py
from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from app.schemas.order import CustomerInfo, OrderDraft


class CartItem(SQLModel):
    """
    A book in the cart, with the price snapshotted when it was added.
    """

    id: str
    title: str
    price: int = Field(gt=0)
    quantity: int = Field(ge=1)
    image: str | None = None
    age_range: str | None = None
    pdf_url: str | None = None

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


class CartSnapshot(SQLModel):
    """
    Serialized cart state (what gets persisted under the cart namespace).
    """

    items: list[CartItem] = []
    customer: CustomerInfo | None = None
    current_order: OrderDraft | None = None


class CartItemAdd(SQLModel):
    """
    Payload for adding a book to the cart (one copy per call).
    """

    model_config = ConfigDict(extra="forbid")

    book_id: str = Field(min_length=1)


class CartItemUpdate(SQLModel):
    """
    Payload for setting the quantity of a cart item.
    quantity <= 0 removes the item.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    cart_id: str
    items: list[CartItem]
    customer: CustomerInfo | None = None
    total_items: int
    total_price: int
