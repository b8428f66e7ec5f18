# app/models/book.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from app.models.order import utcnow


class Book(SQLModel, table=True):
    """
    Catalog entry for a digital (PDF) book.

    Matches the `books` table:
      - id, title, subtitle, description, price, original_price,
        cover_image_url, pdf_url, category, age_range, pages, features,
        is_new, is_bestseller, is_active, created_at, updated_at
    """

    __tablename__ = "books"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True,
    )

    title: str = Field(max_length=255, index=True)
    subtitle: str | None = None
    description: str | None = None

    price: int = Field(gt=0, description="Unit price in baht")
    original_price: int | None = Field(
        default=None,
        description="Strike-through price shown on the storefront",
    )

    cover_image_url: str | None = Field(
        default=None,
        description="Public URL in the covers bucket",
    )
    pdf_url: str | None = Field(
        default=None,
        description="Storage reference in the private PDF bucket",
    )

    # baby | preschool | elementary | preteen
    category: str = Field(index=True)
    age_range: str
    pages: int | None = None

    features: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    is_new: bool = False
    is_bestseller: bool = False
    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this book is visible on the storefront",
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
