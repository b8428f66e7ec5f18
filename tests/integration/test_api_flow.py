"""End-to-end API tests against the demo backend."""

from fastapi.testclient import TestClient

from app.core.backend import get_backend
from app.core.config import get_settings
from tests.conftest import PNG_BYTES

API = "/api/v1"
CUSTOMER = {"name": "คุณสมชาย ใจดี", "email": "somchai@example.com", "phone": "089-765-4321"}
WEBHOOK_HEADERS = {"X-Telegram-Bot-Api-Secret-Token": "test-webhook-secret"}


def place_order(client: TestClient, cart_id: str = "cart-1", books=("baby-1",)) -> dict:
    for book_id in books:
        response = client.post(f"{API}/cart/{cart_id}/items", json={"book_id": book_id})
        assert response.status_code == 200, response.text
    response = client.post(
        f"{API}/orders/checkout", json={"cart_id": cart_id, "customer": CUSTOMER}
    )
    assert response.status_code == 201, response.text
    return response.json()


def upload_slip(client: TestClient, order_id: str, **form):
    data = {"transfer_date": "2024-01-15", "transfer_time": "14:30", **form}
    return client.post(
        f"{API}/orders/{order_id}/slip",
        files={"file": ("slip.png", PNG_BYTES, "image/png")},
        data=data,
    )


def telegram_callback(order_id: str, action: str, chat_id: int = 424242) -> dict:
    return {
        "update_id": 1,
        "callback_query": {
            "id": "cb-1",
            "data": f"{action}:{order_id}",
            "message": {"message_id": 10, "chat": {"id": chat_id}},
        },
    }


class TestHealthAndCatalog:
    """Tests for health check and public catalog endpoints."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "service": "pop-playground-backend",
            "mode": "demo",
        }

    def test_books_list_and_filter(self, client: TestClient) -> None:
        all_books = client.get(f"{API}/books").json()
        baby = client.get(f"{API}/books", params={"category": "baby"}).json()

        assert len(all_books) == 12
        assert {b["id"] for b in baby} == {"baby-1", "baby-2", "baby-3"}

    def test_unknown_book_is_404(self, client: TestClient) -> None:
        response = client.get(f"{API}/books/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestCheckoutFlow:
    """Tests for cart -> order -> slip."""

    def test_cart_totals(self, client: TestClient) -> None:
        client.post(f"{API}/cart/c1/items", json={"book_id": "baby-1"})
        client.post(f"{API}/cart/c1/items", json={"book_id": "elementary-1"})
        response = client.patch(f"{API}/cart/c1/items/elementary-1", json={"quantity": 2})

        body = response.json()
        assert body["total_items"] == 3
        assert body["total_price"] == 1057

    def test_checkout_empty_cart_is_422(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/orders/checkout", json={"cart_id": "empty", "customer": CUSTOMER}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_checkout_creates_pending_order(self, client: TestClient) -> None:
        order = place_order(client, books=("baby-1", "preteen-1"))

        assert order["status"] == "pending"
        assert order["total_amount"] == 698
        assert order["customer_phone"] == "0897654321"
        assert order["order_number"].startswith("ORD-")

    def test_promptpay_payload(self, client: TestClient) -> None:
        order = place_order(client)

        body = client.get(f"{API}/orders/{order['id']}/promptpay").json()

        assert body["amount"] == 299
        assert body["payload"].startswith("000201010212")
        assert "5406299.00" in body["payload"]

    def test_slip_upload_marks_paid_and_clears_cart(self, client: TestClient) -> None:
        order = place_order(client, cart_id="cart-9")

        response = upload_slip(client, order["id"], cart_id="cart-9")

        assert response.status_code == 200, response.text
        assert response.json()["status"] == "paid"
        assert client.get(f"{API}/cart/cart-9").json()["total_items"] == 0
        alerts = get_backend().alerts.outbox
        assert [a.order_number for a, _ in alerts] == [order["order_number"]]

    def test_slip_with_bad_date_is_rejected(self, client: TestClient) -> None:
        order = place_order(client)

        response = upload_slip(client, order["id"], transfer_date="15/01/2024")

        assert response.status_code == 422
        assert client.get(f"{API}/orders/{order['id']}").json()["status"] == "pending"

    def test_oversized_slip_is_rejected(self, client: TestClient, monkeypatch) -> None:
        order = place_order(client)
        monkeypatch.setenv("MAX_SLIP_BYTES", "64")
        get_settings.cache_clear()

        response = client.post(
            f"{API}/orders/{order['id']}/slip",
            files={"file": ("slip.png", PNG_BYTES + b"\0" * 4096, "image/png")},
            data={"transfer_date": "2024-01-15", "transfer_time": "14:30"},
        )

        assert response.status_code == 422
        assert "larger than" in response.json()["detail"]
        assert client.get(f"{API}/orders/{order['id']}").json()["status"] == "pending"

    def test_slip_extension_ignores_client_filename(self, client: TestClient) -> None:
        order = place_order(client)

        response = client.post(
            f"{API}/orders/{order['id']}/slip",
            files={"file": ("shell.php", PNG_BYTES, "image/png")},
            data={"transfer_date": "2024-01-15", "transfer_time": "14:30"},
        )

        assert response.status_code == 200, response.text
        assert response.json()["slip_image_url"].endswith(".png")


class TestAdmin:
    """Tests for admin endpoints."""

    def test_admin_routes_require_token(self, client: TestClient) -> None:
        response = client.get(f"{API}/admin/orders")

        assert response.status_code == 401
        assert response.json()["error"] == "authentication_error"

    def test_event_stream_requires_token(self, client: TestClient) -> None:
        response = client.get(f"{API}/admin/orders/events")

        assert response.status_code == 401

    def test_wrong_password(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/admin/login",
            json={"email": "admin@popplayground.com", "password": "nope"},
        )

        assert response.status_code == 401

    def test_me(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.get(f"{API}/admin/me", headers=admin_headers)

        assert response.json() == {"email": "admin@popplayground.com", "role": "admin"}

    def test_demo_orders_and_stats(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        orders = client.get(f"{API}/admin/orders", headers=admin_headers).json()
        stats = client.get(f"{API}/admin/stats", headers=admin_headers).json()

        assert {o["order_number"] for o in orders} == {"ORD-2024-001", "ORD-2024-002"}
        assert stats == {"pending": 1, "verified": 1, "completed": 0, "total_revenue": 708}

    def test_status_filter(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        orders = client.get(
            f"{API}/admin/orders", params={"status": "verified"}, headers=admin_headers
        ).json()

        assert [o["id"] for o in orders] == ["demo-2"]

    def test_slip_url_is_signed(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        body = client.get(f"{API}/admin/orders/demo-2/slip-url", headers=admin_headers).json()

        assert "/sign/order-slips/demo-2-" in body["url"]
        assert body["expires_in"] == 7 * 24 * 3600

    def test_verify_and_send(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        order = place_order(client, books=("preschool-1", "elementary-1"))
        upload_slip(client, order["id"])

        response = client.post(
            f"{API}/admin/orders/{order['id']}/verify-and-send", headers=admin_headers
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["status"] == "completed"
        assert body["pdfs_sent"] is True
        sent = get_backend().mailer.outbox
        assert sent[-1].to_email == "somchai@example.com"

    def test_invalid_transition_is_409(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        order = place_order(client)
        client.post(f"{API}/admin/orders/{order['id']}/cancel", headers=admin_headers)

        response = client.post(f"{API}/admin/orders/{order['id']}/verify", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_cancel_with_notes(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        order = place_order(client)

        response = client.post(
            f"{API}/admin/orders/{order['id']}/cancel",
            json={"notes": "  duplicate order "},
            headers=admin_headers,
        )

        assert response.json()["admin_notes"] == "duplicate order"

    def test_book_admin(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        created = client.post(
            f"{API}/admin/books",
            json={"title": "เพื่อนใหม่", "price": 259, "category": "baby", "age_range": "0-2 ปี"},
            headers=admin_headers,
        )
        assert created.status_code == 201, created.text
        book_id = created.json()["id"]

        pdf = client.post(
            f"{API}/admin/books/{book_id}/pdf",
            files={"file": ("book.pdf", b"%PDF-1.4 x", "application/pdf")},
            headers=admin_headers,
        )
        deleted = client.delete(f"{API}/admin/books/{book_id}", headers=admin_headers)

        assert book_id == "baby-4"
        assert pdf.json()["pdf_url"] == "book-pdfs/baby-4.pdf"
        assert deleted.json()["is_active"] is False
        assert client.get(f"{API}/books/{book_id}").status_code == 404


class TestTelegramWebhook:
    """Tests for the operator's approve / reject buttons."""

    def test_rejects_missing_secret(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/integrations/telegram/webhook", json=telegram_callback("demo-1", "reject")
        )

        assert response.status_code == 401
        assert client.get(f"{API}/orders/demo-1").json()["status"] == "pending"

    def test_rejects_unknown_chat(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/integrations/telegram/webhook",
            json=telegram_callback("demo-1", "reject", chat_id=1),
            headers=WEBHOOK_HEADERS,
        )

        assert response.status_code == 401

    def test_approve_verifies_and_sends(self, client: TestClient) -> None:
        order = place_order(client)
        upload_slip(client, order["id"])

        response = client.post(
            f"{API}/integrations/telegram/webhook",
            json=telegram_callback(order["id"], "approve"),
            headers=WEBHOOK_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["handled"] is True
        assert client.get(f"{API}/orders/{order['id']}").json()["status"] == "completed"

    def test_reject_cancels(self, client: TestClient) -> None:
        order = place_order(client)
        upload_slip(client, order["id"])

        response = client.post(
            f"{API}/integrations/telegram/webhook",
            json=telegram_callback(order["id"], "reject"),
            headers=WEBHOOK_HEADERS,
        )

        body = client.get(f"{API}/orders/{order['id']}").json()
        assert response.status_code == 200
        assert body["status"] == "cancelled"
        assert body["admin_notes"] == "Payment slip rejected via Telegram"

    def test_business_error_is_answered_with_200(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/integrations/telegram/webhook",
            json=telegram_callback("demo-2", "reject"),
            headers=WEBHOOK_HEADERS,
        )

        assert response.status_code == 200
        assert "Invalid status transition" in response.json()["result"]

    def test_non_callback_update_is_ignored(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/integrations/telegram/webhook",
            json={"update_id": 2, "message": {"text": "hi"}},
            headers=WEBHOOK_HEADERS,
        )

        assert response.json() == {"ok": True, "handled": False}
