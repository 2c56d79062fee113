"""StatusTransitionController — validate, apply optimistically, persist.

Flow for ``transition(order_id, target)``:
  1. plan the patch with the state machine (InvalidTransitionError here
     means nothing was touched and no request was sent);
  2. overlay the patch on the store and (re)start or stop the restore timer;
  3. await the backend update;
  4. success → install the persisted order; failure → roll the patch back
     and raise PersistenceError.
"""
import logging

from src.qm_common.datetime_utils import Clock, utc_now
from src.qm_common.enums import NoticeVariant, OrderStatus
from src.qm_common.errors import OrderNotFoundError, PersistenceError
from src.qm_notify.service import LogNoticeSink, Notice, NoticeSinkProtocol
from src.qm_order.domain.backend import OrderBackendProtocol
from src.qm_order.domain.models import Order
from src.qm_order.domain.state_machine import plan_transition
from src.qm_sync.restore_timer import RestoreWindowTimer
from src.qm_sync.store import OrderStore

logger = logging.getLogger(__name__)

_SUCCESS_TEXT = {
    OrderStatus.CONFIRMED: "Order {code} has been confirmed.",
    OrderStatus.CANCELLED: "Order {code} has been cancelled.",
    OrderStatus.PENDING: "Order {code} has been restored.",
}


class StatusTransitionController:
    def __init__(
        self,
        store: OrderStore,
        backend: OrderBackendProtocol,
        timer: RestoreWindowTimer,
        notices: NoticeSinkProtocol | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._backend = backend
        self._timer = timer
        self._notices: NoticeSinkProtocol = notices or LogNoticeSink()
        self._clock = clock

    async def transition(self, order_id: str, target: OrderStatus | str) -> Order:
        order = self._store.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        patch = plan_transition(order, target, self._clock(), self._timer.window)
        new_status = patch["status"]

        token = self._store.apply_local_update(order_id, patch)
        cancelled_at = patch.get("cancelled_at")
        if new_status == OrderStatus.CANCELLED and cancelled_at is not None:
            self._timer.start(order_id, cancelled_at)
        else:
            self._timer.stop(order_id)

        try:
            persisted = await self._backend.update_order(
                order_id, order.merchant_public_id, patch
            )
        except Exception as exc:
            self._store.discard_local(order_id, token)
            rolled_back = self._store.get(order_id)
            if rolled_back is not None:
                self._timer.resync(rolled_back)
            logger.warning(
                "Persisting %s -> %s failed for order %s: %s",
                order.status.value, new_status.value, order_id, exc,
            )
            self._notices.emit(Notice(
                title="Error",
                description=f"Could not update order {order.short_code}. Please try again.",
                variant=NoticeVariant.DESTRUCTIVE,
            ))
            raise PersistenceError(order_id, str(exc)) from exc

        self._store.confirm_local(order_id, token, persisted)
        logger.info(
            "Order %s: %s -> %s", order_id, order.status.value, new_status.value
        )
        self._notices.emit(Notice(
            title="Order Updated",
            description=_SUCCESS_TEXT[new_status].format(code=order.short_code),
        ))
        return self._store.get(order_id) or persisted
