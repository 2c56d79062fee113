"""Unit tests for InMemoryOrderBackend and InMemoryChangeFeed."""
import asyncio
from decimal import Decimal

import pytest

from src.qm_common.enums import ChangeEventType, OrderStatus
from src.qm_common.errors import OrderNotFoundError
from src.qm_order.domain.backend import OrderChange, OrderFilter
from src.qm_order.domain.models import LineItem, OrderDraft
from src.qm_order.infrastructure.memory import InMemoryChangeFeed, InMemoryOrderBackend
from tests.fakes import FakeClock


def _draft(merchant: str = "m-1", customer: str = "c-1") -> OrderDraft:
    return OrderDraft(
        merchant_public_id=merchant,
        customer_id=customer,
        display_order_id="ORD-QQQQQQ",
        items=(LineItem(id="i-1", name="Chai", price=Decimal("1.20"), quantity=3),),
        total=Decimal("3.60"),
    )


class TestInMemoryOrderBackend:
    async def test_insert_assigns_id_and_timestamps(self, clock: FakeClock) -> None:
        backend = InMemoryOrderBackend(clock=clock)
        order = await backend.insert_order(_draft())
        assert order.id
        assert order.status == OrderStatus.PENDING
        assert order.created_at == clock()
        assert order.updated_at == clock()

    async def test_fetch_filters_and_sorts(self, clock: FakeClock) -> None:
        backend = InMemoryOrderBackend(clock=clock)
        first = await backend.insert_order(_draft())
        clock.advance(1000)
        second = await backend.insert_order(_draft(customer="c-2"))
        await backend.insert_order(_draft(merchant="m-2"))

        merchant_orders = await backend.fetch_orders(OrderFilter("m-1"))
        assert [o.id for o in merchant_orders] == [second.id, first.id]

        customer_orders = await backend.fetch_orders(OrderFilter("m-1", customer_id="c-1"))
        assert [o.id for o in customer_orders] == [first.id]

        single = await backend.fetch_orders(OrderFilter("m-1", order_id=second.id))
        assert [o.id for o in single] == [second.id]

    async def test_update_sets_updated_at(self, clock: FakeClock) -> None:
        backend = InMemoryOrderBackend(clock=clock)
        order = await backend.insert_order(_draft())
        clock.advance(500)
        updated = await backend.update_order(order.id, "m-1", {"status": OrderStatus.CONFIRMED})
        assert updated.status == OrderStatus.CONFIRMED
        assert updated.updated_at == clock()
        assert updated.created_at == order.created_at

    async def test_update_scoped_to_merchant(self, clock: FakeClock) -> None:
        backend = InMemoryOrderBackend(clock=clock)
        order = await backend.insert_order(_draft())
        with pytest.raises(OrderNotFoundError):
            await backend.update_order(order.id, "m-2", {"status": OrderStatus.CONFIRMED})

    async def test_update_unknown(self) -> None:
        with pytest.raises(OrderNotFoundError):
            await InMemoryOrderBackend().update_order("ghost", "m-1", {"status": OrderStatus.CONFIRMED})

    async def test_mutations_published(self, clock: FakeClock) -> None:
        feed = InMemoryChangeFeed()
        backend = InMemoryOrderBackend(feed=feed, clock=clock)
        received: list[OrderChange] = []

        async def consume() -> None:
            async for change in feed.subscribe(OrderFilter("m-1")):
                received.append(change)
                if len(received) == 2:
                    return

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        order = await backend.insert_order(_draft())
        await backend.update_order(order.id, "m-1", {"status": OrderStatus.CONFIRMED})
        await asyncio.wait_for(task, timeout=1)

        assert [c.event for c in received] == [ChangeEventType.INSERT, ChangeEventType.UPDATE]
        assert received[1].record["status"] == "confirmed"


class TestInMemoryChangeFeed:
    async def test_publish_without_subscribers(self) -> None:
        feed = InMemoryChangeFeed()
        await feed.publish(OrderChange(event=ChangeEventType.UPDATE, record={"id": "o-1"}))
        assert feed.subscriber_count == 0

    async def test_disconnect_with_error_raises_in_subscriber(self) -> None:
        feed = InMemoryChangeFeed()

        async def consume() -> None:
            async for _ in feed.subscribe(OrderFilter("m-1")):
                pass

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        feed.disconnect(ConnectionError("lost"))
        with pytest.raises(ConnectionError, match="lost"):
            await asyncio.wait_for(task, timeout=1)

    async def test_disconnect_ends_stream_after_queued_changes(self) -> None:
        feed = InMemoryChangeFeed()
        received: list[OrderChange] = []

        async def consume() -> None:
            async for change in feed.subscribe(OrderFilter("m-1")):
                received.append(change)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        change = OrderChange(
            event=ChangeEventType.INSERT, record={"id": "o-1", "merchant_public_id": "m-1"}
        )
        await feed.publish(change)
        feed.disconnect()
        await asyncio.wait_for(task, timeout=1)

        assert received == [change]
        assert all(isinstance(c, OrderChange) for c in received)
        assert feed.subscriber_count == 0
