"""Order status state machine.

    pending ──► confirmed ──► cancelled
       │                        ▲   │
       └────────────────────────┘   │ (restore, only inside the window)
       ◄────────────────────────────┘

Every cancellation opens a restore window of RESTORE_WINDOW measured from
``cancelled_at``; restoring always returns the order to ``pending``.
Restorability is derived from the stored timestamp, never from a running
countdown.
"""
from datetime import datetime, timedelta

from src.qm_common.enums import OrderStatus
from src.qm_common.errors import InvalidTransitionError
from src.qm_order.domain.models import Order, StatusPatch

RESTORE_WINDOW = timedelta(milliseconds=5000)

ALLOWED_TRANSITIONS: frozenset[tuple[OrderStatus, OrderStatus]] = frozenset({
    (OrderStatus.PENDING, OrderStatus.CONFIRMED),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    (OrderStatus.CANCELLED, OrderStatus.PENDING),
})


def restore_deadline(order: Order, window: timedelta = RESTORE_WINDOW) -> datetime | None:
    if order.status != OrderStatus.CANCELLED or order.cancelled_at is None:
        return None
    return order.cancelled_at + window


def is_restorable(order: Order, now: datetime, window: timedelta = RESTORE_WINDOW) -> bool:
    deadline = restore_deadline(order, window)
    return deadline is not None and now < deadline


def restore_remaining(order: Order, now: datetime, window: timedelta = RESTORE_WINDOW) -> timedelta:
    deadline = restore_deadline(order, window)
    if deadline is None or now >= deadline:
        return timedelta(0)
    return deadline - now


def plan_transition(
    order: Order,
    target: OrderStatus | str,
    now: datetime,
    window: timedelta = RESTORE_WINDOW,
) -> StatusPatch:
    """Validate ``order.status -> target`` and return the fields to persist.

    Raises InvalidTransitionError for any edge not in the state machine and
    for restores attempted at or after the end of the window.
    """
    try:
        target = OrderStatus(target)
    except ValueError:
        raise InvalidTransitionError(
            order.id, order.status.value, str(target), "unknown status"
        ) from None

    if (order.status, target) not in ALLOWED_TRANSITIONS:
        raise InvalidTransitionError(order.id, order.status.value, target.value)

    if target == OrderStatus.CONFIRMED:
        return {"status": OrderStatus.CONFIRMED}
    if target == OrderStatus.CANCELLED:
        return {"status": OrderStatus.CANCELLED, "cancelled_at": now}

    # cancelled -> pending
    if not is_restorable(order, now, window):
        raise InvalidTransitionError(
            order.id, order.status.value, target.value, "restore window has expired"
        )
    return {"status": OrderStatus.PENDING, "cancelled_at": None}
