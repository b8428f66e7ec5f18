# app/models/order.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    Customer order for digital books.

    Matches the `orders` table:
      - id, order_number, customer_name, customer_email, customer_phone,
        items (JSON array of {id, title, price, quantity, pdf_url}),
        total_amount, status, slip_image_url, transfer_date, transfer_time,
        pdfs_sent, admin_notes, created_at, updated_at

    Rows are never deleted; cancellation is a status value.
    """

    __tablename__ = "orders"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        description="Human-readable order number (ORD-<ts>-<rand>)",
    )

    customer_name: str
    customer_email: str
    customer_phone: str

    items: list[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Item snapshot taken at creation time",
    )

    # Whole baht
    total_amount: int = Field(
        description="Sum of price * quantity over items",
    )

    # pending | paid | verified | completed | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    # Payment evidence, set together at pending -> paid
    slip_image_url: str | None = Field(
        default=None,
        description="Storage reference of the transfer slip (<bucket>/<key>)",
    )
    transfer_date: str | None = Field(default=None, description="YYYY-MM-DD")
    transfer_time: str | None = Field(default=None, description="HH:MM")

    pdfs_sent: bool = Field(default=False)
    admin_notes: str | None = None

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Bumped on every mutation (UTC)",
    )
