# src/qm_order/application/schemas.py
from datetime import datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from src.qm_common.money import money_to_display
from src.qm_order.domain.models import LineItem, Order
from src.qm_order.domain.state_machine import restore_deadline


class OrderItemRequest(BaseModel):
    menu_item_id: str
    quantity: int = Field(default=1, ge=1)


class PlaceOrderRequest(BaseModel):
    customer_id: str
    items: list[OrderItemRequest]
    customer_name: str | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("customer_id")
    @classmethod
    def no_whitespace(cls, v: str) -> str:
        if not v or v != v.strip() or " " in v:
            raise ValueError("customer_id must not contain whitespace")
        return v


class UpdateStatusRequest(BaseModel):
    status: Literal["pending", "confirmed", "cancelled"]


class LineItemResponse(BaseModel):
    id: str
    name: str
    price: str
    quantity: int

    @classmethod
    def from_domain(cls, item: LineItem) -> "LineItemResponse":
        return cls(id=item.id, name=item.name, price=str(item.price), quantity=item.quantity)


class OrderResponse(BaseModel):
    id: str
    display_order_id: str
    merchant_public_id: str
    customer_id: str
    items: list[LineItemResponse]
    total: str
    total_display: str
    status: str
    customer_name: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime | None = None
    restorable_until: datetime | None = None

    @classmethod
    def from_domain(cls, order: Order, restore_window: timedelta) -> "OrderResponse":
        return cls(
            id=order.id,
            display_order_id=order.display_order_id,
            merchant_public_id=order.merchant_public_id,
            customer_id=order.customer_id,
            items=[LineItemResponse.from_domain(i) for i in order.items],
            total=str(order.total),
            total_display=money_to_display(order.total),
            status=order.status.value,
            customer_name=order.customer_name,
            notes=order.notes,
            created_at=order.created_at,
            cancelled_at=order.cancelled_at,
            updated_at=order.updated_at,
            restorable_until=restore_deadline(order, restore_window),
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]


class CheckoutResponse(BaseModel):
    order: OrderResponse
    payment_intent_id: str
    payment_status: str
