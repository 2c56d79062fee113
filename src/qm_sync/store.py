"""OrderStore — the orders one view can see, as a two-tier state.

    server tier   last authoritative Order per id (load / remote events /
                  persisted results)
    local tier    optimistic StatusPatches not yet acknowledged, in order

The effective order is the server order with the pending patches applied on
top. A remote update is authoritative: it replaces the server order and
discards every pending patch for that id.

All mutation happens on the event loop thread; no locking.
"""
import itertools
import logging
from collections.abc import Callable, Mapping
from typing import Any

from src.qm_common.datetime_utils import parse_datetime
from src.qm_common.errors import FetchError, OrderNotFoundError
from src.qm_order.domain.backend import OrderBackendProtocol, OrderFilter
from src.qm_order.domain.models import Order, StatusPatch
from src.qm_order.domain.transformer import merge_changes

logger = logging.getLogger(__name__)

Observer = Callable[[tuple[Order, ...]], None]


class OrderStore:
    def __init__(self, backend: OrderBackendProtocol) -> None:
        self._backend = backend
        self._ids: list[str] = []  # created_at desc
        self._server: dict[str, Order] = {}
        self._local: dict[str, list[tuple[int, StatusPatch]]] = {}
        self._tokens = itertools.count(1)
        self._observers: list[Observer] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, order_id: str) -> Order | None:
        """Effective (optimistic) view of one order."""
        order = self._server.get(order_id)
        if order is None:
            return None
        for _, patch in self._local.get(order_id, ()):
            order = merge_changes(order, patch)
        return order

    def server_state(self, order_id: str) -> Order | None:
        return self._server.get(order_id)

    def has_pending(self, order_id: str) -> bool:
        return bool(self._local.get(order_id))

    def snapshot(self) -> tuple[Order, ...]:
        orders = (self.get(order_id) for order_id in self._ids)
        return tuple(o for o in orders if o is not None)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._server

    def observe(self, observer: Observer) -> Callable[[], None]:
        """Register a snapshot observer; returns the unsubscribe callable."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load(self, flt: OrderFilter) -> tuple[Order, ...]:
        try:
            orders = await self._backend.fetch_orders(flt)
        except Exception as exc:
            logger.warning("Order load failed for %s: %s", flt.channel_key, exc)
            raise FetchError(str(exc)) from exc

        ordered = sorted(orders, key=_created_key, reverse=True)
        self._ids = [o.id for o in ordered]
        self._server = {o.id: o for o in ordered}
        self._local.clear()
        logger.debug("Loaded %d orders for %s", len(ordered), flt.channel_key)
        self._notify()
        return self.snapshot()

    # ------------------------------------------------------------------
    # Remote events
    # ------------------------------------------------------------------

    def apply_remote_insert(self, order: Order) -> bool:
        """Prepend a newly observed order; False if it was already known."""
        if order.id in self._server:
            return False
        self._ids.insert(0, order.id)
        self._server[order.id] = order
        self._notify()
        return True

    def apply_remote_update(self, changes: Mapping[str, Any]) -> bool:
        """Merge a partial record by id; False when nothing visible changed.

        Records older than the stored ``updated_at`` are stale and ignored.
        """
        order_id = str(changes["id"])
        current = self._server.get(order_id)
        if current is None:
            logger.debug("Ignoring update for unknown order %s", order_id)
            return False
        incoming_at = parse_datetime(changes.get("updated_at"))
        if incoming_at and current.updated_at and incoming_at < current.updated_at:
            logger.debug("Ignoring stale update for order %s", order_id)
            return False
        before = self.get(order_id)
        self._server[order_id] = merge_changes(current, changes)
        self._local.pop(order_id, None)
        return self._notify_if_changed(order_id, before)

    # ------------------------------------------------------------------
    # Optimistic updates
    # ------------------------------------------------------------------

    def apply_local_update(self, order_id: str, patch: StatusPatch) -> int:
        """Overlay an optimistic patch; returns a token for confirm/discard."""
        if order_id not in self._server:
            raise OrderNotFoundError(order_id)
        token = next(self._tokens)
        self._local.setdefault(order_id, []).append((token, patch))
        self._notify()
        return token

    def discard_local(self, order_id: str, token: int) -> bool:
        """Roll back one optimistic patch (persistence failed)."""
        patches = self._local.get(order_id)
        if not patches:
            return False
        before = self.get(order_id)
        remaining = [(t, p) for t, p in patches if t != token]
        if len(remaining) == len(patches):
            return False
        self._set_local(order_id, remaining)
        self._notify_if_changed(order_id, before)
        return True

    def confirm_local(self, order_id: str, token: int, persisted: Order) -> None:
        """Install the persisted order and drop ``token`` and older patches.

        Newer patches still in flight stay overlaid.
        """
        if order_id not in self._server:
            return
        before = self.get(order_id)
        self._server[order_id] = persisted
        patches = self._local.get(order_id, [])
        self._set_local(order_id, [(t, p) for t, p in patches if t > token])
        self._notify_if_changed(order_id, before)

    # ------------------------------------------------------------------

    def _set_local(self, order_id: str, patches: list[tuple[int, StatusPatch]]) -> None:
        if patches:
            self._local[order_id] = patches
        else:
            self._local.pop(order_id, None)

    def _notify_if_changed(self, order_id: str, before: Order | None) -> bool:
        if self.get(order_id) == before:
            return False
        self._notify()
        return True

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for observer in list(self._observers):
            observer(snapshot)


def _created_key(order: Order) -> float:
    return order.created_at.timestamp() if order.created_at else 0.0
