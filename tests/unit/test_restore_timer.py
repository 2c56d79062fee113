"""Unit tests for RestoreWindowTimer."""
import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock

from src.qm_common.datetime_utils import utc_now
from src.qm_common.enums import OrderStatus
from src.qm_order.domain.models import LineItem, Order
from src.qm_sync.restore_timer import RestoreWindowTimer
from tests.fakes import FakeClock


def _make_order(**kwargs: Any) -> Order:
    defaults: dict[str, Any] = dict(
        id="o-1", display_order_id="ORD-AAAAAA", merchant_public_id="m-1",
        customer_id="c-1", items=(LineItem(id="i-1", name="Upma", price=Decimal("2")),),
        total=Decimal("2"), created_at=datetime(2026, 1, 1, tzinfo=UTC),
    )
    defaults.update(kwargs)
    return Order(**defaults)


def _cancelled(order_id: str, at: datetime) -> Order:
    return _make_order(id=order_id, status=OrderStatus.CANCELLED, cancelled_at=at)


class TestRestorability:
    def test_follows_clock(self, clock: FakeClock) -> None:
        timer = RestoreWindowTimer(clock=clock)
        order = _cancelled("o-1", clock())
        clock.advance(4999)
        assert timer.is_restorable(order) is True
        assert timer.remaining(order) == timedelta(milliseconds=1)
        clock.advance(2)
        assert timer.is_restorable(order) is False
        assert timer.remaining(order) == timedelta(0)


class TestHandles:
    async def test_start_schedules(self, clock: FakeClock) -> None:
        timer = RestoreWindowTimer(clock=clock)
        timer.start("o-1", clock())
        assert timer.is_running("o-1")
        timer.close()

    async def test_start_after_deadline_schedules_nothing(self, clock: FakeClock) -> None:
        timer = RestoreWindowTimer(clock=clock)
        timer.start("o-1", clock() - timedelta(seconds=6))
        assert timer.is_running("o-1") is False

    async def test_stop(self, clock: FakeClock) -> None:
        timer = RestoreWindowTimer(clock=clock)
        timer.start("o-1", clock())
        timer.stop("o-1")
        assert timer.is_running("o-1") is False
        timer.stop("o-1")

    async def test_restart_replaces_existing_handle(self, clock: FakeClock) -> None:
        timer = RestoreWindowTimer(clock=clock)
        timer.start("o-1", clock())
        first = timer._handles["o-1"]
        clock.advance(1000)
        timer.start("o-1", clock())
        second = timer._handles["o-1"]

        assert second is not first
        assert first.cancelled()
        assert len(timer._handles) == 1
        timer.close()

    async def test_sync_keeps_only_restorable(self, clock: FakeClock) -> None:
        timer = RestoreWindowTimer(clock=clock)
        timer.start("gone", clock())
        orders = [
            _cancelled("fresh", clock() - timedelta(seconds=1)),
            _cancelled("expired", clock() - timedelta(seconds=10)),
            _make_order(id="pending"),
        ]
        timer.sync(orders)
        assert timer.is_running("fresh")
        assert not timer.is_running("expired")
        assert not timer.is_running("pending")
        assert not timer.is_running("gone")
        timer.close()

    async def test_sync_does_not_restart_unchanged(self, clock: FakeClock) -> None:
        timer = RestoreWindowTimer(clock=clock)
        order = _cancelled("o-1", clock())
        timer.sync([order])
        handle = timer._handles["o-1"]
        timer.sync([order])
        assert timer._handles["o-1"] is handle
        timer.close()

    async def test_resync_single_order(self, clock: FakeClock) -> None:
        timer = RestoreWindowTimer(clock=clock)
        timer.start("other", clock())
        timer.start("o-1", clock())
        timer.resync(_make_order(id="o-1"))
        assert not timer.is_running("o-1")
        assert timer.is_running("other")
        timer.resync(_cancelled("o-1", clock()))
        assert timer.is_running("o-1")
        timer.close()
        assert not timer.is_running("other")


class TestExpiry:
    async def test_on_expire_fires(self) -> None:
        on_expire = MagicMock()
        timer = RestoreWindowTimer(window=timedelta(milliseconds=20), on_expire=on_expire)
        timer.start("o-1", utc_now())
        await asyncio.sleep(0.1)
        on_expire.assert_called_once_with("o-1")
        assert timer.is_running("o-1") is False

    async def test_stopped_timer_does_not_fire(self) -> None:
        on_expire = MagicMock()
        timer = RestoreWindowTimer(window=timedelta(milliseconds=20), on_expire=on_expire)
        timer.start("o-1", utc_now())
        timer.stop("o-1")
        await asyncio.sleep(0.1)
        on_expire.assert_not_called()

    async def test_recancel_after_restore_fires_once(self) -> None:
        on_expire = MagicMock()
        timer = RestoreWindowTimer(window=timedelta(milliseconds=40), on_expire=on_expire)
        timer.start("o-1", utc_now())
        timer.stop("o-1")
        timer.start("o-1", utc_now())
        timer.start("o-1", utc_now())
        await asyncio.sleep(0.15)
        on_expire.assert_called_once_with("o-1")
        assert timer.is_running("o-1") is False
