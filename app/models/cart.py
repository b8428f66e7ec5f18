# app/models/cart.py
from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from app.models.order import utcnow


class CartState(SQLModel, table=True):
    """
    Serialized cart for one browser session.

    key = "<CART_NAMESPACE>:<cart_id>", payload = CartSnapshot as JSON.
    """

    __tablename__ = "cart_states"

    key: str = Field(primary_key=True, max_length=200)

    payload: dict = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )

    updated_at: datetime = Field(default_factory=utcnow)
