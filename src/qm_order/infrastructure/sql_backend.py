# src/qm_order/infrastructure/sql_backend.py
"""SqlOrderBackend — OrderBackendProtocol over PostgreSQL + a change feed.

Each call opens its own session, commits, and publishes the committed row
to the feed so other views converge.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.qm_common.enums import ChangeEventType
from src.qm_common.errors import OrderNotFoundError
from src.qm_order.domain.backend import ChangeFeedProtocol, OrderFilter
from src.qm_order.domain.models import Order, OrderDraft, StatusPatch
from src.qm_order.domain.repository import OrderRepositoryProtocol
from src.qm_order.infrastructure.change_feed import publish_change
from src.qm_order.infrastructure.persistence import OrderRepository


class SqlOrderBackend:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: ChangeFeedProtocol | None = None,
        repo: OrderRepositoryProtocol | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._feed = feed
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()

    async def fetch_orders(self, flt: OrderFilter) -> list[Order]:
        async with self._session_factory() as db:
            if flt.customer_id is not None:
                orders = await self._repo.list_by_customer(
                    flt.merchant_public_id, flt.customer_id, db
                )
            else:
                orders = await self._repo.list_by_merchant(flt.merchant_public_id, db)
        if flt.order_id is not None:
            orders = [o for o in orders if o.id == flt.order_id]
        return orders

    async def insert_order(self, draft: OrderDraft) -> Order:
        async with self._session_factory() as db:
            try:
                order = await self._repo.insert(draft, db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        await publish_change(self._feed, ChangeEventType.INSERT, order)
        return order

    async def update_order(
        self, order_id: str, merchant_public_id: str, patch: StatusPatch
    ) -> Order:
        async with self._session_factory() as db:
            try:
                order = await self._repo.update_status(order_id, merchant_public_id, patch, db)
                if order is None:
                    raise OrderNotFoundError(order_id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        await publish_change(self._feed, ChangeEventType.UPDATE, order)
        return order
