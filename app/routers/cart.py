# app/routers/cart.py
from fastapi import APIRouter, Depends

from app.core.deps import get_cart_service
from app.schemas.cart import CartItemAdd, CartItemUpdate, CartSummary
from app.schemas.order import CustomerInfo
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("/{cart_id}", response_model=CartSummary)
def get_cart(
    cart_id: str,
    service: CartService = Depends(get_cart_service),
):
    """
    Get a cart summary. Unknown cart ids are empty carts.

    The cart id is chosen by the browser and kept across reloads.
    """
    return service.get_cart_summary(cart_id)


@router.post("/{cart_id}/items", response_model=CartSummary)
def add_to_cart(
    cart_id: str,
    payload: CartItemAdd,
    service: CartService = Depends(get_cart_service),
):
    """
    Add one copy of a book to the cart.

    Returns the updated cart summary.
    """
    return service.add_to_cart(cart_id, payload.book_id)


@router.patch("/{cart_id}/items/{book_id}", response_model=CartSummary)
def update_cart_item(
    cart_id: str,
    book_id: str,
    payload: CartItemUpdate,
    service: CartService = Depends(get_cart_service),
):
    """
    Set the quantity of a book in the cart (<= 0 removes it).

    Returns the updated cart summary.
    """
    return service.update_quantity(cart_id, book_id, payload.quantity)


@router.delete("/{cart_id}/items/{book_id}", response_model=CartSummary)
def remove_cart_item(
    cart_id: str,
    book_id: str,
    service: CartService = Depends(get_cart_service),
):
    """
    Remove a book from the cart.

    Returns the updated cart summary.
    """
    return service.remove_item(cart_id, book_id)


@router.put("/{cart_id}/customer", response_model=CartSummary)
def set_customer(
    cart_id: str,
    payload: CustomerInfo,
    service: CartService = Depends(get_cart_service),
):
    """
    Store the checkout contact details on the cart.
    """
    return service.set_customer(cart_id, payload)


@router.delete("/{cart_id}", response_model=CartSummary)
def clear_cart(
    cart_id: str,
    service: CartService = Depends(get_cart_service),
):
    """
    Empty the cart.
    """
    return service.clear_cart(cart_id)
