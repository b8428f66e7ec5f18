# app/routers/books.py
from fastapi import (
    APIRouter,
    Depends,
    File,
    UploadFile,
)

from app.core.auth import require_admin
from app.core.deps import get_book_service
from app.core.storage import read_limited
from app.schemas.book import AgeCategory, BookCreate, BookRead, BookUpdate
from app.services.book_service import BookService

router = APIRouter(prefix="/books", tags=["Books"])
admin_router = APIRouter(
    prefix="/admin/books",
    tags=["Admin Books"],
    dependencies=[Depends(require_admin)],
)


# -------- Public endpoints --------


@router.get("", response_model=list[BookRead])
def list_books(
    category: AgeCategory | None = None,
    service: BookService = Depends(get_book_service),
):
    """
    List active books, newest first.

    - Public endpoint.
    - `category` filters by age group.
    """
    return service.list_books(category=category)


@router.get("/{book_id}", response_model=BookRead)
def get_book(
    book_id: str,
    service: BookService = Depends(get_book_service),
):
    """
    Get a single active book by id.
    """
    return service.get_book(book_id)


# -------- Admin endpoints --------


@admin_router.get("", response_model=list[BookRead])
def list_all_books(
    category: AgeCategory | None = None,
    service: BookService = Depends(get_book_service),
):
    """
    List all books including inactive ones (admin only).
    """
    return service.list_books(category=category, only_active=False)


@admin_router.post("", response_model=BookRead, status_code=201)
def create_book(
    payload: BookCreate,
    service: BookService = Depends(get_book_service),
):
    """
    Create a new book (admin only).
    """
    return service.create_book(payload)


@admin_router.patch("/{book_id}", response_model=BookRead)
def update_book(
    book_id: str,
    payload: BookUpdate,
    service: BookService = Depends(get_book_service),
):
    """
    Update an existing book (admin only).
    """
    return service.update_book(book_id, payload)


@admin_router.delete("/{book_id}", response_model=BookRead)
def delete_book(
    book_id: str,
    service: BookService = Depends(get_book_service),
):
    """
    Hide a book from the storefront (soft delete).
    """
    return service.deactivate_book(book_id)


@admin_router.post(
    "/{book_id}/cover",
    response_model=BookRead,
    summary="Upload or replace the cover image of a book",
)
def upload_cover(
    book_id: str,
    file: UploadFile = File(...),
    service: BookService = Depends(get_book_service),
):
    """
    - Accepts JPEG, PNG, WEBP (max 5MB).
    - Overwrites any previous cover.
    """
    file_bytes = read_limited(file.file, service.settings.MAX_COVER_BYTES)
    return service.set_cover(book_id, file.content_type or "", file_bytes)


@admin_router.post(
    "/{book_id}/pdf",
    response_model=BookRead,
    summary="Upload or replace the PDF of a book",
)
def upload_pdf(
    book_id: str,
    file: UploadFile = File(...),
    service: BookService = Depends(get_book_service),
):
    file_bytes = read_limited(file.file, service.settings.MAX_PDF_BYTES)
    return service.set_pdf(book_id, file.content_type or "", file_bytes)
