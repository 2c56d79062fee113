# src/qm_order/infrastructure/memory.py
"""In-process order backend and change feed.

Stand-ins for PostgreSQL + Redis when running a board locally (demo
kiosk, development without docker). They behave like the real backend:
ids, display ids and timestamps are assigned here, mutations are scoped to
the owning merchant, and every committed change is published to the feed.
"""
import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import replace

from src.qm_common.datetime_utils import Clock, utc_now
from src.qm_common.enums import ChangeEventType
from src.qm_common.errors import OrderNotFoundError
from src.qm_common.id_generator import generate_id
from src.qm_order.domain.backend import OrderChange, OrderFilter
from src.qm_order.domain.models import Order, OrderDraft, StatusPatch
from src.qm_order.domain.transformer import merge_changes, order_to_record
from src.qm_order.infrastructure.change_feed import publish_change

logger = logging.getLogger(__name__)

# None ends the stream; an exception is raised in the subscriber.
_Item = OrderChange | BaseException | None


class InMemoryChangeFeed:
    """Fan-out of OrderChange events to per-subscriber asyncio queues."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[OrderFilter, asyncio.Queue[_Item]]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, change: OrderChange) -> None:
        for flt, queue in list(self._subscribers):
            if flt.matches(change.record):
                queue.put_nowait(change)

    async def subscribe(self, flt: OrderFilter) -> AsyncIterator[OrderChange]:
        queue: asyncio.Queue[_Item] = asyncio.Queue()
        entry = (flt, queue)
        self._subscribers.append(entry)
        try:
            while True:
                item = await queue.get()
                if item is None:
                    return
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self._subscribers.remove(entry)

    def disconnect(self, error: BaseException | None = None) -> None:
        """End every open stream, raising ``error`` in subscribers if given."""
        logger.info("Disconnecting %d change feed subscribers", len(self._subscribers))
        for _, queue in list(self._subscribers):
            queue.put_nowait(error)


class InMemoryOrderBackend:
    def __init__(self, feed: InMemoryChangeFeed | None = None, clock: Clock = utc_now) -> None:
        self._orders: dict[str, Order] = {}
        self._feed = feed
        self._clock = clock

    async def fetch_orders(self, flt: OrderFilter) -> list[Order]:
        matching = [
            o for o in self._orders.values() if flt.matches(order_to_record(o))
        ]
        return sorted(matching, key=lambda o: o.created_at, reverse=True)

    async def insert_order(self, draft: OrderDraft) -> Order:
        now = self._clock()
        order = Order(
            id=generate_id(),
            display_order_id=draft.display_order_id,
            merchant_public_id=draft.merchant_public_id,
            customer_id=draft.customer_id,
            items=draft.items,
            total=draft.total,
            status=draft.status,
            created_at=now,
            updated_at=now,
            customer_name=draft.customer_name,
            notes=draft.notes,
        )
        self._orders[order.id] = order
        await publish_change(self._feed, ChangeEventType.INSERT, order)
        return order

    async def update_order(
        self, order_id: str, merchant_public_id: str, patch: StatusPatch
    ) -> Order:
        current = self._orders.get(order_id)
        if current is None or current.merchant_public_id != merchant_public_id:
            raise OrderNotFoundError(order_id)
        updated = replace(merge_changes(current, patch), updated_at=self._clock())
        self._orders[order_id] = updated
        await publish_change(self._feed, ChangeEventType.UPDATE, updated)
        return updated
