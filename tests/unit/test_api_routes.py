"""HTTP-level tests for the order and menu routers (service layer mocked)."""
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from src.qm_common.enums import OrderStatus
from src.qm_common.errors import (
    InvalidTransitionError,
    MenuItemNotFoundError,
    MerchantNotFoundError,
)
from src.qm_menu.api import router as menu_router_module
from src.qm_menu.application.schemas import MenuItemOut, PublicMenuResponse
from src.qm_menu.domain.models import MenuItem, MerchantProfile
from src.qm_order.api import router as order_router_module
from src.qm_order.application.schemas import (
    CheckoutResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
)
from src.qm_order.domain.models import LineItem, Order
from src.qm_order.domain.state_machine import RESTORE_WINDOW

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _order_response(**kwargs: Any) -> OrderResponse:
    defaults: dict[str, Any] = dict(
        id="o-1", display_order_id="ORD-AB12CD", merchant_public_id="m-1",
        customer_id="c-1", items=(LineItem(id="i-1", name="Dosa", price=Decimal("4.5")),),
        total=Decimal("4.5"), created_at=T0, updated_at=T0,
    )
    defaults.update(kwargs)
    return OrderResponse.from_domain(Order(**defaults), RESTORE_WINDOW)


@pytest.fixture
def order_service(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    svc = MagicMock()
    monkeypatch.setattr(order_router_module, "_service", svc)
    return svc


@pytest.fixture
def menu_service(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    svc = MagicMock()
    monkeypatch.setattr(menu_router_module, "_service", svc)
    return svc


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestOrderRoutes:
    async def test_list_merchant_orders(self, client: AsyncClient, order_service: MagicMock) -> None:
        order_service.list_merchant_orders = AsyncMock(
            return_value=OrderListResponse(items=[_order_response()])
        )
        resp = await client.get("/api/v1/merchants/m-1/orders")

        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["items"][0]["total"] == "4.50"
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_list_customer_orders(self, client: AsyncClient, order_service: MagicMock) -> None:
        order_service.list_customer_orders = AsyncMock(return_value=OrderListResponse(items=[]))
        resp = await client.get("/api/v1/merchants/m-1/customers/c-1/orders")
        assert resp.status_code == 200
        assert order_service.list_customer_orders.await_args.args[1:] == ("m-1", "c-1")

    async def test_place_order(self, client: AsyncClient, order_service: MagicMock) -> None:
        order_service.place_order = AsyncMock(return_value=_order_response())
        resp = await client.post(
            "/api/v1/merchants/m-1/orders",
            json={"customer_id": "c-1", "items": [{"menu_item_id": "i-1", "quantity": 2}]},
        )
        assert resp.status_code == 201
        assert resp.json()["message"] == "Order Placed Successfully"
        req: PlaceOrderRequest = order_service.place_order.await_args.args[3]
        assert req.items[0].quantity == 2

    async def test_place_order_rejects_bad_payload(
        self, client: AsyncClient, order_service: MagicMock
    ) -> None:
        resp = await client.post(
            "/api/v1/merchants/m-1/orders",
            json={"customer_id": "c 1", "items": [{"menu_item_id": "i-1", "quantity": 0}]},
        )
        assert resp.status_code == 422

    async def test_checkout(self, client: AsyncClient, order_service: MagicMock) -> None:
        order_service.checkout = AsyncMock(return_value=CheckoutResponse(
            order=_order_response(), payment_intent_id="pi_abc123xyz", payment_status="succeeded",
        ))
        resp = await client.post(
            "/api/v1/merchants/m-1/orders/checkout",
            json={"customer_id": "c-1", "items": [{"menu_item_id": "i-1"}]},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["payment_intent_id"] == "pi_abc123xyz"

    async def test_update_status(self, client: AsyncClient, order_service: MagicMock) -> None:
        order_service.update_order_status = AsyncMock(
            return_value=_order_response(status=OrderStatus.CANCELLED, cancelled_at=T0)
        )
        resp = await client.patch(
            "/api/v1/merchants/m-1/orders/o-1/status", json={"status": "cancelled"}
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "cancelled"
        assert data["restorable_until"] is not None
        assert order_service.update_order_status.await_args.args[2:] == ("m-1", "o-1", "cancelled")

    async def test_update_status_unknown_value(
        self, client: AsyncClient, order_service: MagicMock
    ) -> None:
        resp = await client.patch(
            "/api/v1/merchants/m-1/orders/o-1/status", json={"status": "shipped"}
        )
        assert resp.status_code == 422

    async def test_invalid_transition_maps_to_409(
        self, client: AsyncClient, order_service: MagicMock
    ) -> None:
        order_service.update_order_status = AsyncMock(
            side_effect=InvalidTransitionError("o-1", "cancelled", "pending", "restore window has expired")
        )
        resp = await client.patch(
            "/api/v1/merchants/m-1/orders/o-1/status", json={"status": "pending"}
        )
        assert resp.status_code == 409
        body = resp.json()
        assert body["code"] == 2003
        assert body["data"] is None
        assert "expired" in body["message"]


class TestMenuRoutes:
    async def test_public_menu(self, client: AsyncClient, menu_service: MagicMock) -> None:
        merchant = MerchantProfile(id="mp-1", public_merchant_id="m-1", restaurant_name="Spice Hut")
        item = MenuItem(
            id="i-1", merchant_public_id="m-1", name="Dosa", description="",
            price=Decimal("4.5"), category="Mains",
        )
        menu_service.get_public_menu = AsyncMock(
            return_value=PublicMenuResponse.build(merchant, [item])
        )
        resp = await client.get("/api/v1/merchants/m-1/menu")
        assert resp.status_code == 200
        assert resp.json()["data"]["categories"][0]["items"][0]["price_display"] == "$4.50"

    async def test_create_item(self, client: AsyncClient, menu_service: MagicMock) -> None:
        menu_service.create_menu_item = AsyncMock(return_value=MenuItemOut.from_domain(MenuItem(
            id="i-2", merchant_public_id="m-1", name="Vada", description="",
            price=Decimal("2.25"), category="Snacks",
        )))
        resp = await client.post(
            "/api/v1/merchants/m-1/menu/items",
            json={"name": "Vada", "price": "2.25", "category": "Snacks"},
        )
        assert resp.status_code == 201
        assert resp.json()["message"] == "Item Added"
        assert resp.json()["data"]["price"] == "2.25"

    async def test_create_item_rejects_non_positive_price(
        self, client: AsyncClient, menu_service: MagicMock
    ) -> None:
        resp = await client.post(
            "/api/v1/merchants/m-1/menu/items",
            json={"name": "Vada", "price": "-1", "category": "Snacks"},
        )
        assert resp.status_code == 422

    async def test_update_item(self, client: AsyncClient, menu_service: MagicMock) -> None:
        menu_service.update_menu_item = AsyncMock(return_value=MenuItemOut.from_domain(MenuItem(
            id="i-1", merchant_public_id="m-1", name="Dosa", description="",
            price=Decimal("5"), category="Mains",
        )))
        resp = await client.patch("/api/v1/merchants/m-1/menu/items/i-1", json={"price": "5"})
        assert resp.status_code == 200
        assert menu_service.update_menu_item.await_args.args[1:3] == ("m-1", "i-1")

    async def test_delete_unknown_item(self, client: AsyncClient, menu_service: MagicMock) -> None:
        menu_service.delete_menu_item = AsyncMock(side_effect=MenuItemNotFoundError("ghost"))
        resp = await client.delete("/api/v1/merchants/m-1/menu/items/ghost")
        assert resp.status_code == 404
        assert resp.json()["code"] == 1002

    async def test_delete_item(self, client: AsyncClient, menu_service: MagicMock) -> None:
        menu_service.delete_menu_item = AsyncMock(return_value=None)
        resp = await client.delete("/api/v1/merchants/m-1/menu/items/i-1")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"id": "i-1"}

    async def test_unknown_merchant(self, client: AsyncClient, menu_service: MagicMock) -> None:
        menu_service.get_public_menu = AsyncMock(side_effect=MerchantNotFoundError("nobody"))
        resp = await client.get("/api/v1/merchants/nobody/menu")
        assert resp.status_code == 404
        assert resp.json()["code"] == 1001
