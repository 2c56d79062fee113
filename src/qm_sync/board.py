"""OrderBoard — one live view of orders (merchant dashboard or customer).

Wires the store, restore timer, transition controller and realtime
listener together and owns their lifecycle:

    board = OrderBoard(OrderFilter("m-123"), backend, feed)
    await board.mount()          # load + restore timers + subscribe
    await board.transition(order_id, OrderStatus.CONFIRMED)
    board.is_restorable(order_id)
    await board.unmount()
"""
import logging
from collections.abc import Callable
from datetime import timedelta

from config.settings import settings
from src.qm_common.datetime_utils import Clock, milliseconds, utc_now
from src.qm_common.enums import NoticeVariant, OrderStatus
from src.qm_common.errors import FetchError, OrderNotFoundError, SubscriptionError
from src.qm_notify.service import (
    DesktopNotifierProtocol,
    LogNoticeSink,
    Notice,
    NoticeSinkProtocol,
)
from src.qm_order.domain.backend import ChangeFeedProtocol, OrderBackendProtocol, OrderFilter
from src.qm_order.domain.models import Order
from src.qm_sync.controller import StatusTransitionController
from src.qm_sync.listener import RealtimeChangeListener
from src.qm_sync.restore_timer import RestoreWindowTimer
from src.qm_sync.store import OrderStore

logger = logging.getLogger(__name__)


class OrderBoard:
    def __init__(
        self,
        flt: OrderFilter,
        backend: OrderBackendProtocol,
        feed: ChangeFeedProtocol,
        notices: NoticeSinkProtocol | None = None,
        desktop: DesktopNotifierProtocol | None = None,
        clock: Clock = utc_now,
        restore_window: timedelta | None = None,
        on_restore_expired: Callable[[str], None] | None = None,
    ) -> None:
        self.filter = flt
        self._notices: NoticeSinkProtocol = notices or LogNoticeSink()
        self.store = OrderStore(backend)
        self.timer = RestoreWindowTimer(
            window=restore_window or milliseconds(settings.RESTORE_WINDOW_MS),
            clock=clock,
            on_expire=on_restore_expired,
        )
        self.controller = StatusTransitionController(
            self.store, backend, self.timer, notices=self._notices, clock=clock
        )
        self.listener = RealtimeChangeListener(
            feed, self.store, desktop=desktop, notices=self._notices,
            on_error=self._on_subscription_error,
        )
        self._unobserve: Callable[[], None] | None = None
        self.stale = False
        self.mounted = False

    @property
    def orders(self) -> tuple[Order, ...]:
        return self.store.snapshot()

    async def mount(self) -> tuple[Order, ...]:
        """Load the snapshot, rebuild restore timers and subscribe.

        A FetchError is shown as a notice and re-raised so the caller can
        offer a retry; nothing is subscribed in that case.
        """
        try:
            orders = await self.store.load(self.filter)
        except FetchError as exc:
            self._notices.emit(Notice(
                title="Error Loading Orders",
                description=exc.message,
                variant=NoticeVariant.DESTRUCTIVE,
            ))
            raise
        self.timer.sync(orders)
        if self._unobserve is None:
            self._unobserve = self.store.observe(self.timer.sync)
        await self.listener.subscribe(self.filter)
        self.stale = False
        self.mounted = True
        return orders

    async def reload(self) -> tuple[Order, ...]:
        """Re-fetch and re-subscribe, e.g. after a dropped channel."""
        return await self.mount()

    async def unmount(self) -> None:
        await self.listener.close()
        self.timer.close()
        if self._unobserve is not None:
            self._unobserve()
            self._unobserve = None
        self.mounted = False

    async def transition(self, order_id: str, target: OrderStatus | str) -> Order:
        return await self.controller.transition(order_id, target)

    def is_restorable(self, order_id: str) -> bool:
        order = self.store.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return self.timer.is_restorable(order)

    def restore_remaining(self, order_id: str) -> timedelta:
        order = self.store.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return self.timer.remaining(order)

    def _on_subscription_error(self, error: SubscriptionError) -> None:
        # Fall back to the last snapshot; the next mount() reloads.
        self.stale = True
        logger.info("Board %s marked stale: %s", self.filter.channel_key, error.message)
