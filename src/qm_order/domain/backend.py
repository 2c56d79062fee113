# src/qm_order/domain/backend.py
"""Contracts for the storage/realtime collaborator the synchronizer talks to.

OrderBackendProtocol — queries and mutations (one round-trip each).
ChangeFeedProtocol   — row-level change notifications, at-least-once and
                       ordered per channel, with no ordering across channels.
"""
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel

from src.qm_common.enums import ChangeEventType
from src.qm_order.domain.models import Order, OrderDraft, StatusPatch


@dataclass(frozen=True)
class OrderFilter:
    """Which orders a view sees.

    merchant only               → merchant dashboard (all orders)
    merchant + customer         → customer's order history
    merchant + order            → customer's single pending order
    """

    merchant_public_id: str
    customer_id: str | None = None
    order_id: str | None = None

    @property
    def channel_key(self) -> str:
        if self.order_id is not None:
            return f"order-{self.order_id}"
        if self.customer_id is not None:
            return f"orders-{self.merchant_public_id}-{self.customer_id}"
        return f"orders-{self.merchant_public_id}"

    def matches(self, record: Mapping[str, Any]) -> bool:
        if record.get("merchant_public_id", self.merchant_public_id) != self.merchant_public_id:
            return False
        if self.customer_id is not None and record.get("customer_id", self.customer_id) != self.customer_id:
            return False
        if self.order_id is not None and str(record.get("id")) != self.order_id:
            return False
        return True


class OrderChange(BaseModel):
    """One realtime notification: the changed row in wire format.

    UPDATE records carry at least ``id`` and the changed columns.
    """

    event: ChangeEventType
    record: dict[str, Any]

    @property
    def order_id(self) -> str:
        return str(self.record["id"])


class OrderBackendProtocol(Protocol):
    async def fetch_orders(self, flt: OrderFilter) -> list[Order]: ...

    async def insert_order(self, draft: OrderDraft) -> Order: ...

    async def update_order(
        self, order_id: str, merchant_public_id: str, patch: StatusPatch
    ) -> Order: ...


class ChangeFeedProtocol(Protocol):
    def subscribe(self, flt: OrderFilter) -> AsyncIterator[OrderChange]: ...

    async def publish(self, change: OrderChange) -> None: ...
