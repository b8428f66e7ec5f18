"""Unit tests for the order repositories (SQLite-backed and in-memory)."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import Session

from app.core.errors import (
    DuplicateOrderNumberError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
)
from app.database import build_engine, create_db_and_tables
from app.models.order import Order
from app.repositories.order_repo import (
    InMemoryOrderRepository,
    OrderChange,
    OrderRepository,
    SqlOrderRepository,
)

BAD_ITEMS = [{"id": "baby-1", "title": "Book", "price": 299, "quantity": 1, "pdf_url": ""}]


@pytest.fixture(params=["sql", "memory"])
def repo(request) -> OrderRepository:
    if request.param == "sql":
        engine = build_engine("sqlite://")
        create_db_and_tables(engine)
        return SqlOrderRepository(engine)
    return InMemoryOrderRepository()


def numbered(draft, number: str):
    return draft.model_copy(update={"order_number": number})


def insert_malformed(repo: OrderRepository) -> str:
    """Store a row whose total does not match its items, bypassing validation."""
    now = datetime.now(timezone.utc)
    row = {
        "id": "broken-1",
        "order_number": "ORD-BROKEN",
        "customer_name": "Broken",
        "customer_email": "broken@example.com",
        "customer_phone": "0800000000",
        "items": BAD_ITEMS,
        "total_amount": 999,
        "status": "pending",
        "pdfs_sent": False,
        "created_at": now,
        "updated_at": now,
    }
    if isinstance(repo, SqlOrderRepository):
        with Session(repo.engine) as session:
            session.add(Order(**row))
            session.commit()
    else:
        repo.rows[row["id"]] = row
    return row["id"]


class TestCreateAndRead:
    """Tests for create / get / list_orders."""

    def test_create_returns_pending_order(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft([("baby-1", 299, 2)]), "ORD-1"))

        assert order.id
        assert order.order_number == "ORD-1"
        assert order.status == "pending"
        assert order.pdfs_sent is False
        assert order.total_amount == 598
        assert order.items[0].pdf_url == "book-pdfs/baby-1.pdf"
        assert repo.get(order.id) == order

    def test_duplicate_order_number(self, repo: OrderRepository, make_draft) -> None:
        repo.create(numbered(make_draft(), "ORD-SAME"))

        with pytest.raises(DuplicateOrderNumberError):
            repo.create(numbered(make_draft(), "ORD-SAME"))
        assert len(repo.list_orders()) == 1

    def test_get_missing_returns_none(self, repo: OrderRepository) -> None:
        assert repo.get("nope") is None

    def test_list_is_newest_first(self, repo: OrderRepository, make_draft) -> None:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(3):
            draft = make_draft().model_copy(
                update={"order_number": f"ORD-{i}", "created_at": base + timedelta(days=i)}
            )
            repo.create(draft)

        numbers = [o.order_number for o in repo.list_orders()]

        assert numbers == ["ORD-2", "ORD-1", "ORD-0"]

    def test_malformed_row_is_skipped_in_list(self, repo: OrderRepository, make_draft) -> None:
        good = repo.create(numbered(make_draft(), "ORD-GOOD"))
        broken_id = insert_malformed(repo)

        listed = repo.list_orders()

        assert [o.id for o in listed] == [good.id]
        with pytest.raises(PersistenceError):
            repo.get(broken_id)


class TestWrites:
    """Tests for update_status / record_slip / mark_delivered."""

    def test_record_slip_sets_evidence_and_paid(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft(), "ORD-1"))

        paid = repo.record_slip(order.id, "order-slips/x.png", "2024-01-15", "14:30")

        assert paid.status == "paid"
        assert paid.slip_image_url == "order-slips/x.png"
        assert paid.transfer_date == "2024-01-15"
        assert paid.transfer_time == "14:30"

    def test_update_status_keeps_items_and_amount(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft([("baby-1", 299, 1), ("preteen-1", 399, 1)]), "ORD-1"))

        updated = repo.update_status(order.id, "cancelled", "changed mind")

        assert updated.status == "cancelled"
        assert updated.admin_notes == "changed mind"
        assert updated.items == order.items
        assert updated.total_amount == 698

    def test_update_status_without_notes_keeps_existing(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft(), "ORD-1"))
        repo.update_status(order.id, "verified", "checked")

        updated = repo.update_status(order.id, "verified")

        assert updated.admin_notes == "checked"

    def test_mark_delivered(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft(), "ORD-1"))
        repo.update_status(order.id, "verified")

        done = repo.mark_delivered(order.id)

        assert done.status == "completed"
        assert done.pdfs_sent is True

    def test_write_that_breaks_invariants_is_rejected(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft(), "ORD-1"))

        # Not a known status
        with pytest.raises(PersistenceError):
            repo.update_status(order.id, "bogus")

        assert repo.get(order.id).status == "pending"

    def test_missing_order(self, repo: OrderRepository) -> None:
        with pytest.raises(NotFoundError):
            repo.update_status("nope", "verified")

    def test_guarded_write_in_allowed_state(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft(), "ORD-1"))

        updated = repo.update_status(order.id, "verified", allowed_from=("pending", "paid"))

        assert updated.status == "verified"

    def test_slip_on_cancelled_order_is_rejected(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft(), "ORD-1"))
        repo.update_status(order.id, "cancelled", "customer gave up")
        changes: list[OrderChange] = []
        repo.subscribe(changes.append)

        with pytest.raises(InvalidTransitionError) as excinfo:
            repo.record_slip(
                order.id, "order-slips/x.png", "2024-01-15", "14:30", allowed_from=("pending", "paid")
            )

        assert (excinfo.value.current, excinfo.value.target) == ("cancelled", "paid")
        current = repo.get(order.id)
        assert current.status == "cancelled"
        assert current.slip_image_url is None
        assert changes == []

    def test_delivery_needs_verified_order(self, repo: OrderRepository, make_draft) -> None:
        order = repo.create(numbered(make_draft(), "ORD-1"))

        with pytest.raises(InvalidTransitionError):
            repo.mark_delivered(order.id, allowed_from=("verified",))

        assert repo.get(order.id).pdfs_sent is False


class TestSubscription:
    """Tests for subscribe()."""

    def test_changes_are_published(self, repo: OrderRepository, make_draft) -> None:
        changes: list[OrderChange] = []
        unsubscribe = repo.subscribe(changes.append)

        order = repo.create(numbered(make_draft(), "ORD-1"))
        repo.record_slip(order.id, "order-slips/x.png", "2024-01-15", "14:30")
        repo.update_status(order.id, "verified")
        repo.mark_delivered(order.id)
        unsubscribe()
        repo.update_status(order.id, "completed", "after unsubscribe")

        assert [c.kind for c in changes] == ["created", "slip", "status", "delivered"]
        assert {c.order_id for c in changes} == {order.id}

    def test_failed_write_publishes_nothing(self, repo: OrderRepository, make_draft) -> None:
        repo.create(numbered(make_draft(), "ORD-1"))
        changes: list[OrderChange] = []
        repo.subscribe(changes.append)

        with pytest.raises(DuplicateOrderNumberError):
            repo.create(numbered(make_draft(), "ORD-1"))

        assert changes == []

    def test_failing_listener_does_not_break_write(self, repo: OrderRepository, make_draft) -> None:
        def boom(_: OrderChange) -> None:
            raise RuntimeError("listener bug")

        repo.subscribe(boom)

        order = repo.create(numbered(make_draft(), "ORD-1"))

        assert repo.get(order.id) is not None
