"""Unit tests for OrderStore (server tier + optimistic local tier)."""
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.qm_common.enums import OrderStatus
from src.qm_common.errors import FetchError, OrderNotFoundError
from src.qm_order.domain.backend import OrderFilter
from src.qm_order.domain.models import LineItem, Order
from src.qm_order.domain.transformer import order_to_record
from src.qm_sync.store import OrderStore

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
FLT = OrderFilter("m-1")


def _make_order(**kwargs: Any) -> Order:
    minute = kwargs.pop("minute", 0)
    defaults: dict[str, Any] = dict(
        id="o-1", display_order_id="ORD-AAAAAA", merchant_public_id="m-1",
        customer_id="c-1", items=(LineItem(id="i-1", name="Poha", price=Decimal("2")),),
        total=Decimal("2"), created_at=T0 + timedelta(minutes=minute),
        updated_at=T0 + timedelta(minutes=minute),
    )
    defaults.update(kwargs)
    return Order(**defaults)


def _backend(orders: list[Order] | None = None) -> MagicMock:
    backend = MagicMock()
    backend.fetch_orders = AsyncMock(return_value=orders or [])
    return backend


async def _loaded_store(*orders: Order) -> OrderStore:
    store = OrderStore(_backend(list(orders)))
    await store.load(FLT)
    return store


class TestLoad:
    async def test_sorted_newest_first(self) -> None:
        old = _make_order(id="old", minute=0)
        new = _make_order(id="new", minute=5)
        store = await _loaded_store(old, new)
        assert [o.id for o in store.snapshot()] == ["new", "old"]
        assert len(store) == 2
        assert "old" in store

    async def test_passes_filter_to_backend(self) -> None:
        backend = _backend()
        await OrderStore(backend).load(FLT)
        backend.fetch_orders.assert_awaited_once_with(FLT)

    async def test_failure_raises_fetch_error_and_keeps_state(self) -> None:
        backend = _backend([_make_order()])
        store = OrderStore(backend)
        await store.load(FLT)
        backend.fetch_orders.side_effect = ConnectionError("db unreachable")

        with pytest.raises(FetchError, match="db unreachable"):
            await store.load(FLT)
        assert [o.id for o in store.snapshot()] == ["o-1"]

    async def test_replaces_state_and_drops_local_patches(self) -> None:
        backend = _backend([_make_order()])
        store = OrderStore(backend)
        await store.load(FLT)
        store.apply_local_update("o-1", {"status": OrderStatus.CONFIRMED})

        backend.fetch_orders.return_value = [_make_order(id="o-2")]
        await store.load(FLT)
        assert [o.id for o in store.snapshot()] == ["o-2"]
        assert store.has_pending("o-1") is False

    async def test_observers_notified(self) -> None:
        store = OrderStore(_backend([_make_order()]))
        seen: list[tuple[Order, ...]] = []
        unsubscribe = store.observe(seen.append)
        await store.load(FLT)
        assert len(seen) == 1 and seen[0][0].id == "o-1"

        unsubscribe()
        await store.load(FLT)
        assert len(seen) == 1


class TestRemoteInsert:
    async def test_prepends(self) -> None:
        store = await _loaded_store(_make_order(id="a"))
        assert store.apply_remote_insert(_make_order(id="b", minute=1)) is True
        assert [o.id for o in store.snapshot()] == ["b", "a"]

    async def test_idempotent(self) -> None:
        store = await _loaded_store(_make_order(id="a"))
        assert store.apply_remote_insert(_make_order(id="a")) is False
        assert len(store) == 1


class TestRemoteUpdate:
    async def test_unknown_id_is_noop(self) -> None:
        store = await _loaded_store(_make_order())
        assert store.apply_remote_update({"id": "ghost", "status": "confirmed"}) is False
        assert len(store) == 1

    async def test_merges_partial_record(self) -> None:
        store = await _loaded_store(_make_order())
        assert store.apply_remote_update({"id": "o-1", "status": "confirmed"}) is True
        assert store.get("o-1").status == OrderStatus.CONFIRMED  # type: ignore[union-attr]

    async def test_duplicate_delivery_reports_no_change(self) -> None:
        store = await _loaded_store(_make_order())
        record = order_to_record(_make_order(status=OrderStatus.CONFIRMED))
        assert store.apply_remote_update(record) is True
        assert store.apply_remote_update(record) is False

    async def test_discards_local_patches(self) -> None:
        store = await _loaded_store(_make_order())
        store.apply_local_update("o-1", {"status": OrderStatus.CONFIRMED})
        store.apply_remote_update({"id": "o-1", "status": "cancelled", "cancelled_at": T0.isoformat()})
        assert store.has_pending("o-1") is False
        assert store.get("o-1").status == OrderStatus.CANCELLED  # type: ignore[union-attr]

    async def test_stale_update_ignored(self) -> None:
        store = await _loaded_store(_make_order(updated_at=T0 + timedelta(seconds=10)))
        stale = {"id": "o-1", "status": "confirmed", "updated_at": T0.isoformat()}
        assert store.apply_remote_update(stale) is False
        assert store.get("o-1").status == OrderStatus.PENDING  # type: ignore[union-attr]


class TestOptimisticUpdates:
    async def test_local_patch_overlays_server_state(self) -> None:
        store = await _loaded_store(_make_order())
        store.apply_local_update("o-1", {"status": OrderStatus.CONFIRMED})
        assert store.get("o-1").status == OrderStatus.CONFIRMED  # type: ignore[union-attr]
        assert store.server_state("o-1").status == OrderStatus.PENDING  # type: ignore[union-attr]
        assert store.has_pending("o-1") is True
        assert store.snapshot()[0].status == OrderStatus.CONFIRMED

    async def test_unknown_id_raises(self) -> None:
        store = await _loaded_store()
        with pytest.raises(OrderNotFoundError):
            store.apply_local_update("ghost", {"status": OrderStatus.CONFIRMED})

    async def test_discard_rolls_back(self) -> None:
        store = await _loaded_store(_make_order())
        token = store.apply_local_update("o-1", {"status": OrderStatus.CANCELLED, "cancelled_at": T0})
        assert store.discard_local("o-1", token) is True
        assert store.get("o-1") == _make_order()
        assert store.discard_local("o-1", token) is False

    async def test_confirm_installs_persisted(self) -> None:
        store = await _loaded_store(_make_order())
        token = store.apply_local_update("o-1", {"status": OrderStatus.CONFIRMED})
        persisted = replace(
            _make_order(status=OrderStatus.CONFIRMED), updated_at=T0 + timedelta(seconds=1)
        )
        store.confirm_local("o-1", token, persisted)
        assert store.has_pending("o-1") is False
        assert store.server_state("o-1") == persisted

    async def test_confirm_keeps_newer_patches(self) -> None:
        store = await _loaded_store(_make_order())
        first = store.apply_local_update("o-1", {"status": OrderStatus.CONFIRMED})
        store.apply_local_update("o-1", {"status": OrderStatus.CANCELLED, "cancelled_at": T0})

        store.confirm_local("o-1", first, _make_order(status=OrderStatus.CONFIRMED))
        assert store.has_pending("o-1") is True
        assert store.get("o-1").status == OrderStatus.CANCELLED  # type: ignore[union-attr]

    async def test_notifies_on_local_update(self) -> None:
        store = await _loaded_store(_make_order())
        observer = MagicMock()
        store.observe(observer)
        store.apply_local_update("o-1", {"status": OrderStatus.CONFIRMED})
        observer.assert_called_once()
