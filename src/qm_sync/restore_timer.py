"""RestoreWindowTimer — per-order undo countdown after a cancellation.

Whether an order can be restored is always computed from its stored
``cancelled_at`` and the clock; the asyncio timer handles only drive the
``on_expire`` callback so a UI can drop the affordance on time. After a
reload, ``sync()`` rebuilds the handles from persisted state.
"""
import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from src.qm_common.datetime_utils import Clock, utc_now
from src.qm_order.domain.models import Order
from src.qm_order.domain.state_machine import (
    RESTORE_WINDOW,
    is_restorable,
    restore_remaining,
)

logger = logging.getLogger(__name__)


class RestoreWindowTimer:
    def __init__(
        self,
        window: timedelta = RESTORE_WINDOW,
        clock: Clock = utc_now,
        on_expire: Callable[[str], None] | None = None,
    ) -> None:
        self.window = window
        self._clock = clock
        self._on_expire = on_expire
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._deadlines: dict[str, datetime] = {}

    def is_restorable(self, order: Order) -> bool:
        return is_restorable(order, self._clock(), self.window)

    def remaining(self, order: Order) -> timedelta:
        return restore_remaining(order, self._clock(), self.window)

    def is_running(self, order_id: str) -> bool:
        return order_id in self._handles

    def start(self, order_id: str, cancelled_at: datetime) -> None:
        """(Re)start the countdown for ``order_id``; replaces any existing one."""
        self.stop(order_id)
        deadline = cancelled_at + self.window
        delay = (deadline - self._clock()).total_seconds()
        if delay <= 0:
            return
        loop = asyncio.get_running_loop()
        self._handles[order_id] = loop.call_later(delay, self._expire, order_id)
        self._deadlines[order_id] = deadline

    def stop(self, order_id: str) -> None:
        handle = self._handles.pop(order_id, None)
        self._deadlines.pop(order_id, None)
        if handle is not None:
            handle.cancel()

    def resync(self, order: Order) -> None:
        """Align the handle of a single order with its current state."""
        if order.cancelled_at is not None and self.is_restorable(order):
            if self._deadlines.get(order.id) != order.cancelled_at + self.window:
                self.start(order.id, order.cancelled_at)
        else:
            self.stop(order.id)

    def sync(self, orders: Iterable[Order]) -> None:
        """Make live handles match the given orders' ``cancelled_at``."""
        wanted: dict[str, datetime] = {}
        for order in orders:
            if order.cancelled_at is not None and self.is_restorable(order):
                wanted[order.id] = order.cancelled_at
        for order_id in list(self._handles):
            if order_id not in wanted:
                self.stop(order_id)
        for order_id, cancelled_at in wanted.items():
            if self._deadlines.get(order_id) != cancelled_at + self.window:
                self.start(order_id, cancelled_at)

    def close(self) -> None:
        for order_id in list(self._handles):
            self.stop(order_id)

    def _expire(self, order_id: str) -> None:
        self._handles.pop(order_id, None)
        self._deadlines.pop(order_id, None)
        logger.debug("Restore window closed for order %s", order_id)
        if self._on_expire is not None:
            self._on_expire(order_id)
