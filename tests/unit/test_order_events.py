"""Unit tests for the admin order-change event stream."""

import asyncio
import json

from app.routers import admin_orders
from app.routers.admin_orders import order_events
from app.services.order_service import OrderService


class DisconnectingRequest:
    """Reports the client as gone once `connected_checks` checks are used up."""

    def __init__(self, connected_checks: int):
        self.connected_checks = connected_checks

    async def is_disconnected(self) -> bool:
        self.connected_checks -= 1
        return self.connected_checks < 0


async def drain(response, after_first_chunk=None) -> list[str]:
    chunks = []
    async for chunk in response.body_iterator:
        chunks.append(chunk)
        if len(chunks) == 1 and after_first_chunk is not None:
            after_first_chunk()
    return chunks


class TestOrderEvents:
    """Tests for GET /admin/orders/events."""

    def test_order_change_is_streamed(self, order_service: OrderService, make_draft) -> None:
        created = []

        async def run() -> list[str]:
            response = await order_events(DisconnectingRequest(1), order_service)
            assert response.media_type == "text/event-stream"
            return await drain(
                response, lambda: created.append(order_service.create_order(make_draft()))
            )

        chunks = asyncio.run(run())

        data = json.dumps({"order_id": created[0].id, "kind": "created"})
        assert chunks == [": connected\n\n", f"event: orders\ndata: {data}\n\n"]
        assert order_service.orders._listeners == []

    def test_idle_stream_sends_keep_alive(
        self, order_service: OrderService, monkeypatch
    ) -> None:
        monkeypatch.setattr(admin_orders, "KEEPALIVE_SECONDS", 0.01)

        async def run() -> list[str]:
            response = await order_events(DisconnectingRequest(1), order_service)
            return await drain(response)

        assert asyncio.run(run()) == [": connected\n\n", ": keep-alive\n\n"]

    def test_disconnect_unsubscribes(self, order_service: OrderService, make_draft) -> None:
        async def run() -> list[str]:
            response = await order_events(DisconnectingRequest(0), order_service)
            return await drain(response)

        chunks = asyncio.run(run())
        order_service.create_order(make_draft())

        assert chunks == [": connected\n\n"]
        assert order_service.orders._listeners == []
