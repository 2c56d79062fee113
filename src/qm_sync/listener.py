"""RealtimeChangeListener — one dispatch task per subscription key.

Each task drains ``feed.subscribe(filter)`` and merges events into the
OrderStore. Delivery is not guaranteed: a failing or closed feed is logged
as a SubscriptionError and reported through ``on_error``; the owning view
reconciles with ``load()`` on its next mount. Duplicate events are absorbed
by the store's idempotent merge.
"""
import asyncio
import contextlib
import logging
from collections.abc import Callable

from src.qm_common.enums import ChangeEventType, NoticeVariant, OrderStatus
from src.qm_common.errors import SubscriptionError
from src.qm_notify.service import (
    DesktopNotifierProtocol,
    Notice,
    NoticeSinkProtocol,
    notify_best_effort,
)
from src.qm_order.domain.backend import ChangeFeedProtocol, OrderChange, OrderFilter
from src.qm_order.domain.transformer import record_to_order
from src.qm_sync.store import OrderStore

logger = logging.getLogger(__name__)


class RealtimeChangeListener:
    def __init__(
        self,
        feed: ChangeFeedProtocol,
        store: OrderStore,
        desktop: DesktopNotifierProtocol | None = None,
        notices: NoticeSinkProtocol | None = None,
        on_error: Callable[[SubscriptionError], None] | None = None,
    ) -> None:
        self._feed = feed
        self._store = store
        self._desktop = desktop
        self._notices = notices
        self._on_error = on_error
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self.last_error: SubscriptionError | None = None

    @property
    def active_keys(self) -> list[str]:
        return [key for key, task in self._tasks.items() if not task.done()]

    def is_active(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    async def subscribe(self, flt: OrderFilter) -> str:
        """Start (or restart) the subscription for ``flt.channel_key``."""
        key = flt.channel_key
        await self.unsubscribe(key)
        self._tasks[key] = asyncio.create_task(self._run(key, flt), name=f"realtime:{key}")
        # Let the task reach feed.subscribe() before the caller moves on.
        await asyncio.sleep(0)
        logger.debug("Subscribed %s", key)
        return key

    async def unsubscribe(self, key: str) -> None:
        task = self._tasks.pop(key, None)
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def close(self) -> None:
        for key in list(self._tasks):
            await self.unsubscribe(key)

    async def _run(self, key: str, flt: OrderFilter) -> None:
        try:
            async for change in self._feed.subscribe(flt):
                await self._dispatch(flt, change)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._report(SubscriptionError(key, str(exc) or type(exc).__name__))
            return
        self._report(SubscriptionError(key, "channel closed"))

    async def _dispatch(self, flt: OrderFilter, change: OrderChange) -> None:
        try:
            if change.event == ChangeEventType.INSERT:
                order = record_to_order(change.record)
                if (
                    self._store.apply_remote_insert(order)
                    and flt.order_id is None
                    and flt.customer_id is None
                ):
                    await notify_best_effort(
                        self._desktop,
                        "New Order Received",
                        f"Order #{order.short_code} has been added.",
                    )
            else:
                changed = self._store.apply_remote_update(change.record)
                if changed and flt.order_id is not None:
                    self._announce_status(change.record.get("status"))
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            logger.warning("Skipping malformed %s event: %s", change.event.value, exc)

    def _announce_status(self, status: object) -> None:
        if self._notices is None:
            return
        if status == OrderStatus.CONFIRMED.value:
            self._notices.emit(Notice(
                title="Order Confirmed!",
                description="Your order has been confirmed.",
            ))
        elif status == OrderStatus.CANCELLED.value:
            self._notices.emit(Notice(
                title="Order Cancelled",
                description="Your order has been cancelled.",
                variant=NoticeVariant.DESTRUCTIVE,
            ))

    def _report(self, error: SubscriptionError) -> None:
        logger.warning("%s", error.message)
        self.last_error = error
        if self._on_error is not None:
            self._on_error(error)
