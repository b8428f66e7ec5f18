# app/repositories/cart_repo.py
import copy
import threading
from abc import ABC, abstractmethod

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import PersistenceError
from app.models.cart import CartState
from app.models.order import utcnow


class CartStateRepository(ABC):
    """
    Key/value store for serialized carts.

    Keys look like "<CART_NAMESPACE>:<cart_id>". Last write wins.
    """

    @abstractmethod
    def load(self, key: str) -> dict | None:
        ...

    @abstractmethod
    def save(self, key: str, payload: dict) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class SqlCartStateRepository(CartStateRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    def load(self, key: str) -> dict | None:
        try:
            with Session(self.engine) as session:
                row = session.get(CartState, key)
                return copy.deepcopy(row.payload) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Loading cart {key} failed: {exc}") from exc

    def save(self, key: str, payload: dict) -> None:
        try:
            with Session(self.engine) as session:
                row = session.get(CartState, key)
                if row is None:
                    row = CartState(key=key, payload=payload)
                else:
                    # Reassign so the JSON column is flagged dirty
                    row.payload = payload
                    row.updated_at = utcnow()
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Saving cart {key} failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            with Session(self.engine) as session:
                row = session.get(CartState, key)
                if row is not None:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Deleting cart {key} failed: {exc}") from exc


class InMemoryCartStateRepository(CartStateRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self.states: dict[str, dict] = {}

    def load(self, key: str) -> dict | None:
        with self._lock:
            payload = self.states.get(key)
            return copy.deepcopy(payload) if payload is not None else None

    def save(self, key: str, payload: dict) -> None:
        with self._lock:
            self.states[key] = copy.deepcopy(payload)

    def delete(self, key: str) -> None:
        with self._lock:
            self.states.pop(key, None)
