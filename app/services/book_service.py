# app/services/book_service.py
import logging
import re

from app.core.config import Settings
from app.core.errors import NotFoundError, ValidationError
from app.core.storage import FileStorage, storage_ref
from app.repositories.book_repo import BookRepository
from app.schemas.book import BookCreate, BookRead, BookUpdate

logger = logging.getLogger(__name__)

ALLOWED_COVER_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

PDF_CONTENT_TYPE = "application/pdf"


class BookService:
    """
    Business logic for the book catalog.

    Responsibilities:
      - book id generation & uniqueness ("<category>-<n>" like the catalog)
      - cover upload to the public bucket, PDF upload to the private bucket
      - soft delete (is_active=False) so past orders keep their snapshot
      - admin-only operations (enforced at router via require_admin)
    """

    def __init__(self, settings: Settings, repo: BookRepository, storage: FileStorage):
        self.settings = settings
        self.repo = repo
        self.storage = storage

    # ----- Helpers -----

    @staticmethod
    def _slugify(raw: str) -> str:
        """
        Basic slugification:
          - lowercase
          - non-alphanumeric -> '-'
          - collapse multiple '-'
          - strip leading/trailing '-'
        """
        value = raw.strip().lower()
        value = re.sub(r"[^a-z0-9]+", "-", value)
        value = re.sub(r"-+", "-", value)
        return value.strip("-")

    def _next_id(self, category: str) -> str:
        """
        First free "<category>-<n>", starting at 1.
        """
        i = 1
        while self.repo.get(f"{category}-{i}") is not None:
            i += 1
        return f"{category}-{i}"

    # ----- Books -----

    def list_books(
        self,
        category: str | None = None,
        only_active: bool = True,
    ) -> list[BookRead]:
        return self.repo.list_books(only_active=only_active, category=category)

    def get_book(self, book_id: str, include_inactive: bool = False) -> BookRead:
        book = self.repo.get(book_id)
        if book is None or (not book.is_active and not include_inactive):
            raise NotFoundError(f"Book {book_id} not found")
        return book

    def create_book(self, payload: BookCreate) -> BookRead:
        """
        Create a book. A given id is slugified; otherwise one is generated.
        """
        data = payload.model_dump()
        if payload.id:
            book_id = self._slugify(payload.id)
            if not book_id:
                raise ValidationError("id must contain letters or digits")
            if self.repo.get(book_id) is not None:
                raise ValidationError(f"Book id {book_id} already exists")
        else:
            book_id = self._next_id(payload.category)
        data["id"] = book_id

        book = self.repo.create(data)
        logger.info("Book %s created", book.id)
        return book

    def update_book(self, book_id: str, payload: BookUpdate) -> BookRead:
        """
        Partial update; only fields present in the payload change.
        """
        self.get_book(book_id, include_inactive=True)
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            return self.get_book(book_id, include_inactive=True)
        return self.repo.update(book_id, changes)

    def deactivate_book(self, book_id: str) -> BookRead:
        self.get_book(book_id, include_inactive=True)
        book = self.repo.update(book_id, {"is_active": False})
        logger.info("Book %s deactivated", book_id)
        return book

    # ----- Files -----

    def set_cover(self, book_id: str, content_type: str, file_bytes: bytes) -> BookRead:
        """
        Upload or replace the cover image.

        Path pattern (public bucket):
            <book_id>-cover.<ext>
        """
        self.get_book(book_id, include_inactive=True)
        ext = ALLOWED_COVER_CONTENT_TYPES.get(content_type)
        if ext is None:
            raise ValidationError("Unsupported image type. Allowed: JPEG, PNG, WEBP.")
        if not file_bytes:
            raise ValidationError("Cover file is empty")
        if len(file_bytes) > self.settings.MAX_COVER_BYTES:
            raise ValidationError("Cover image too large (max 5MB).")

        bucket, key = self.settings.COVER_BUCKET, f"{book_id}-cover.{ext}"
        self.storage.upload(bucket, key, file_bytes, content_type)
        return self.repo.update(
            book_id, {"cover_image_url": self.storage.public_url(bucket, key)}
        )

    def set_pdf(self, book_id: str, content_type: str, file_bytes: bytes) -> BookRead:
        """
        Upload or replace the book PDF (private bucket, <book_id>.pdf).
        The row stores a storage reference; customers get signed links.
        """
        self.get_book(book_id, include_inactive=True)
        if content_type != PDF_CONTENT_TYPE:
            raise ValidationError("Book file must be a PDF")
        if not file_bytes:
            raise ValidationError("PDF file is empty")
        if len(file_bytes) > self.settings.MAX_PDF_BYTES:
            raise ValidationError("PDF too large (max 50MB).")

        bucket, key = self.settings.PDF_BUCKET, f"{book_id}.pdf"
        self.storage.upload(bucket, key, file_bytes, content_type)
        return self.repo.update(book_id, {"pdf_url": storage_ref(bucket, key)})
