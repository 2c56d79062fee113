# src/qm_order/domain/repository.py
"""OrderRepository Protocol — interface contract for persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.qm_order.domain.models import Order, OrderDraft, StatusPatch


class OrderRepositoryProtocol(Protocol):
    async def insert(self, draft: OrderDraft, db: AsyncSession) -> Order: ...

    async def get_by_id(self, order_id: str, db: AsyncSession) -> Order | None: ...

    async def update_status(
        self, order_id: str, merchant_public_id: str, patch: StatusPatch, db: AsyncSession
    ) -> Order | None: ...

    async def list_by_merchant(self, merchant_public_id: str, db: AsyncSession) -> list[Order]: ...

    async def list_by_customer(
        self, merchant_public_id: str, customer_id: str, db: AsyncSession
    ) -> list[Order]: ...
