"""MenuRepository Protocol — interface contract for persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.qm_menu.domain.models import MenuItem, MerchantProfile


class MenuRepositoryProtocol(Protocol):
    async def get_merchant(
        self, db: AsyncSession, public_merchant_id: str
    ) -> MerchantProfile | None: ...

    async def list_menu_items(self, db: AsyncSession, public_merchant_id: str) -> list[MenuItem]: ...

    async def get_menu_items(
        self, db: AsyncSession, public_merchant_id: str, item_ids: list[str]
    ) -> list[MenuItem]: ...

    async def insert_menu_item(self, db: AsyncSession, item: MenuItem) -> MenuItem: ...

    async def update_menu_item(self, db: AsyncSession, item: MenuItem) -> MenuItem | None: ...

    async def delete_menu_item(
        self, db: AsyncSession, public_merchant_id: str, item_id: str
    ) -> bool: ...
