# app/schemas/book.py
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

AgeCategory = Literal["baby", "preschool", "elementary", "preteen"]


class BookRead(SQLModel):
    """
    Book representation for clients.

    `pdf_url` is a storage reference ("<bucket>/<key>"), never a public link;
    customers receive signed download links by email after verification.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    subtitle: str | None = None
    description: str | None = None
    price: int
    original_price: int | None = None
    cover_image_url: str | None = None
    pdf_url: str | None = None
    category: AgeCategory
    age_range: str
    pages: int | None = None
    features: list[str] = []
    is_new: bool = False
    is_bestseller: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class BookCreate(SQLModel):
    """
    Payload for creating a book.

    - id is optional: if omitted, the next free "<category>-<n>" is used.
    - cover and PDF are uploaded separately.
    """

    model_config = ConfigDict(extra="forbid")

    id: str | None = Field(default=None, max_length=100)
    title: str = Field(max_length=255)
    subtitle: str | None = None
    description: str | None = None
    price: int = Field(gt=0)
    original_price: int | None = Field(default=None, gt=0)
    category: AgeCategory
    age_range: str = Field(max_length=50)
    pages: int | None = Field(default=None, ge=0)
    features: list[str] = []
    is_new: bool = False
    is_bestseller: bool = False
    is_active: bool = True

    @field_validator("title", "age_range")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("id cannot be empty if provided")
        return v


class BookUpdate(SQLModel):
    """
    Partial update payload for books.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=255)
    subtitle: str | None = None
    description: str | None = None
    price: int | None = Field(default=None, gt=0)
    original_price: int | None = Field(default=None, gt=0)
    category: AgeCategory | None = None
    age_range: str | None = Field(default=None, max_length=50)
    pages: int | None = Field(default=None, ge=0)
    features: list[str] | None = None
    is_new: bool | None = None
    is_bestseller: bool | None = None
    is_active: bool | None = None

    @field_validator("title", "age_range")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v
