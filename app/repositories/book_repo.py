# app/repositories/book_repo.py
import copy
import threading
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.models.book import Book
from app.models.order import utcnow
from app.schemas.book import BookRead


class BookRepository(ABC):
    """
    Data access layer for the book catalog.

    - Pure persistence (CRUD + queries).
    - No FastAPI, no business logic.
    """

    @abstractmethod
    def get(self, book_id: str) -> BookRead | None:
        ...

    @abstractmethod
    def list_books(
        self,
        only_active: bool = True,
        category: str | None = None,
    ) -> list[BookRead]:
        """Newest first."""

    @abstractmethod
    def create(self, data: dict[str, Any]) -> BookRead:
        ...

    @abstractmethod
    def update(self, book_id: str, changes: dict[str, Any]) -> BookRead:
        ...


class SqlBookRepository(BookRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, book_id: str) -> BookRead | None:
        try:
            with Session(self.engine) as session:
                book = session.get(Book, book_id)
                return BookRead.model_validate(book) if book else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Loading book {book_id} failed: {exc}") from exc

    def list_books(
        self,
        only_active: bool = True,
        category: str | None = None,
    ) -> list[BookRead]:
        stmt = select(Book)
        if only_active:
            stmt = stmt.where(Book.is_active == True)  # noqa: E712
        if category:
            stmt = stmt.where(Book.category == category)
        stmt = stmt.order_by(Book.created_at.desc())
        try:
            with Session(self.engine) as session:
                return [BookRead.model_validate(b) for b in session.exec(stmt).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Listing books failed: {exc}") from exc

    def create(self, data: dict[str, Any]) -> BookRead:
        book = Book(**data)
        try:
            with Session(self.engine) as session:
                session.add(book)
                session.commit()
                session.refresh(book)
                return BookRead.model_validate(book)
        except IntegrityError as exc:
            raise ValidationError(f"Book id {data.get('id')} already exists") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Creating book failed: {exc}") from exc

    def update(self, book_id: str, changes: dict[str, Any]) -> BookRead:
        try:
            with Session(self.engine) as session:
                book = session.get(Book, book_id)
                if book is None:
                    raise NotFoundError(f"Book {book_id} not found")
                for field, value in changes.items():
                    setattr(book, field, value)
                book.updated_at = utcnow()
                session.add(book)
                session.commit()
                session.refresh(book)
                return BookRead.model_validate(book)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Updating book {book_id} failed: {exc}") from exc


class InMemoryBookRepository(BookRepository):
    """
    Static catalog for demo mode; edits live until the process exits.
    """

    def __init__(self, books: list[dict[str, Any]] | None = None):
        self._lock = threading.Lock()
        self.rows: dict[str, dict[str, Any]] = {}
        now = utcnow()
        for data in books or []:
            row = {"created_at": now, "updated_at": now, **copy.deepcopy(data)}
            self.rows[row["id"]] = row

    def get(self, book_id: str) -> BookRead | None:
        with self._lock:
            row = self.rows.get(book_id)
            return BookRead.model_validate(row) if row else None

    def list_books(
        self,
        only_active: bool = True,
        category: str | None = None,
    ) -> list[BookRead]:
        with self._lock:
            rows = list(self.rows.values())
        books = [BookRead.model_validate(r) for r in rows]
        if only_active:
            books = [b for b in books if b.is_active]
        if category:
            books = [b for b in books if b.category == category]
        # Stable sort keeps catalog order among books created together
        books.sort(key=lambda b: b.created_at, reverse=True)
        return books

    def create(self, data: dict[str, Any]) -> BookRead:
        now = utcnow()
        row = {**Book(**data).model_dump(), "created_at": now, "updated_at": now}
        with self._lock:
            if row["id"] in self.rows:
                raise ValidationError(f"Book id {row['id']} already exists")
            self.rows[row["id"]] = row
            return BookRead.model_validate(row)

    def update(self, book_id: str, changes: dict[str, Any]) -> BookRead:
        with self._lock:
            row = self.rows.get(book_id)
            if row is None:
                raise NotFoundError(f"Book {book_id} not found")
            row.update(copy.deepcopy(changes))
            row["updated_at"] = utcnow()
            return BookRead.model_validate(row)
