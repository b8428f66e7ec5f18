# app/schemas/order.py
import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator
from pydantic import Field as PydanticField
from sqlmodel import SQLModel, Field

OrderStatus = Literal["pending", "paid", "verified", "completed", "cancelled"]

ORDER_STATUSES: tuple[str, ...] = ("pending", "paid", "verified", "completed", "cancelled")

_PHONE_SEPARATORS = re.compile(r"[\s\-]")
_PHONE_DIGITS = re.compile(r"^[0-9]{9,10}$")


class CustomerInfo(SQLModel):
    """
    Contact snapshot captured at checkout.

    Validation rules:
      - name cannot be empty or whitespace
      - email must be a valid EmailStr
      - phone: separators ('-', spaces) are stripped, then 9-10 digits
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    email: EmailStr
    phone: str

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v: str) -> str:
        digits = _PHONE_SEPARATORS.sub("", v)
        if not _PHONE_DIGITS.match(digits):
            raise ValueError("phone must contain 9-10 digits")
        return digits


class OrderItemSnapshot(SQLModel):
    """
    Line item copied into an order at creation time.

    Stored inside orders.items as {id, title, price, quantity, pdf_url}.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    price: int = Field(gt=0)
    quantity: int = Field(ge=1)
    pdf_url: str = ""

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


class OrderDraft(SQLModel):
    """
    In-memory order built from cart state, before it is persisted.
    """

    customer: CustomerInfo
    items: list[OrderItemSnapshot]
    total_amount: int = Field(gt=0)
    order_number: str | None = None
    created_at: datetime

    @model_validator(mode="after")
    def total_matches_items(self) -> "OrderDraft":
        if not self.items:
            raise ValueError("an order needs at least one item")
        expected = sum(it.line_total for it in self.items)
        if self.total_amount != expected:
            raise ValueError(
                f"total_amount {self.total_amount} does not match items total {expected}"
            )
        return self


class OrderRead(SQLModel):
    """
    Validated representation of an `orders` row.

    Invariants checked on every row crossing the repository boundary:
      - total_amount == sum(price * quantity) over items
      - slip evidence fields are all set or all null
      - pdfs_sent only on verified/completed orders
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    items: list[OrderItemSnapshot]
    total_amount: int
    status: OrderStatus
    slip_image_url: str | None = None
    transfer_date: str | None = None
    transfer_time: str | None = None
    pdfs_sent: bool = False
    admin_notes: str | None = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def check_invariants(self) -> "OrderRead":
        expected = sum(it.line_total for it in self.items)
        if self.total_amount != expected:
            raise ValueError(
                f"order {self.order_number}: total_amount {self.total_amount} "
                f"!= items total {expected}"
            )

        slip = (self.slip_image_url, self.transfer_date, self.transfer_time)
        if any(v is None for v in slip) and any(v is not None for v in slip):
            raise ValueError(f"order {self.order_number}: partial slip evidence")

        if self.pdfs_sent and self.status not in ("verified", "completed"):
            raise ValueError(
                f"order {self.order_number}: pdfs_sent on a {self.status} order"
            )
        return self

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def has_slip(self) -> bool:
        return self.slip_image_url is not None


class CheckoutRequest(SQLModel):
    """
    Payload for turning a cart into an order.

    The customer may be supplied here or set earlier on the cart.
    """

    model_config = ConfigDict(extra="forbid")

    cart_id: str = Field(min_length=1, max_length=100)
    customer: CustomerInfo | None = None


class AdminNotes(SQLModel):
    """
    Optional admin note for verify / cancel actions.
    """

    model_config = ConfigDict(extra="forbid")

    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class PromptPayRead(SQLModel):
    order_id: str
    order_number: str
    merchant_id: str
    amount: int
    payload: str


class OperatorAlert(BaseModel):
    """
    Body of the operator alert webhook call (camelCase on the wire).
    """

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = PydanticField(alias="orderId")
    order_number: str = PydanticField(alias="orderNumber")
    customer_name: str = PydanticField(alias="customerName")
    customer_email: str = PydanticField(alias="customerEmail")
    customer_phone: str = PydanticField(alias="customerPhone")
    total_amount: int = PydanticField(alias="totalAmount")
    item_count: int = PydanticField(alias="itemCount")
    slip_image_url: str | None = PydanticField(default=None, alias="slipImageUrl")
