"""MenuApplicationService — public menu reads and merchant menu management.

Edits never reach placed orders: those keep the line-item snapshot taken at
placement time.
"""
import logging
from dataclasses import replace

from sqlalchemy.ext.asyncio import AsyncSession

from src.qm_common.errors import MenuItemNotFoundError, MerchantNotFoundError
from src.qm_common.id_generator import generate_id
from src.qm_menu.application.schemas import (
    MenuItemCreateRequest,
    MenuItemListResponse,
    MenuItemOut,
    MenuItemUpdateRequest,
    PublicMenuResponse,
)
from src.qm_menu.domain.models import MenuItem, MerchantProfile
from src.qm_menu.domain.repository import MenuRepositoryProtocol
from src.qm_menu.infrastructure.persistence import MenuRepository

logger = logging.getLogger(__name__)


class MenuApplicationService:
    def __init__(self, repo: MenuRepositoryProtocol | None = None) -> None:
        self._repo: MenuRepositoryProtocol = repo or MenuRepository()

    async def _require_merchant(self, db: AsyncSession, public_merchant_id: str) -> MerchantProfile:
        merchant = await self._repo.get_merchant(db, public_merchant_id)
        if merchant is None:
            raise MerchantNotFoundError(public_merchant_id)
        return merchant

    async def _require_item(
        self, db: AsyncSession, public_merchant_id: str, item_id: str
    ) -> MenuItem:
        found = await self._repo.get_menu_items(db, public_merchant_id, [item_id])
        if not found:
            raise MenuItemNotFoundError(item_id)
        return found[0]

    async def get_public_menu(self, db: AsyncSession, public_merchant_id: str) -> PublicMenuResponse:
        merchant = await self._require_merchant(db, public_merchant_id)
        items = await self._repo.list_menu_items(db, public_merchant_id)
        return PublicMenuResponse.build(merchant, items)

    async def list_menu_items(
        self, db: AsyncSession, public_merchant_id: str
    ) -> MenuItemListResponse:
        await self._require_merchant(db, public_merchant_id)
        items = await self._repo.list_menu_items(db, public_merchant_id)
        return MenuItemListResponse(items=[MenuItemOut.from_domain(i) for i in items])

    async def create_menu_item(
        self, db: AsyncSession, public_merchant_id: str, req: MenuItemCreateRequest
    ) -> MenuItemOut:
        await self._require_merchant(db, public_merchant_id)
        draft = MenuItem(
            id=generate_id(),
            merchant_public_id=public_merchant_id,
            name=req.name,
            description=req.description,
            price=req.price,
            category=req.category,
            image_url=req.image_url,
        )
        try:
            item = await self._repo.insert_menu_item(db, draft)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Menu item %s (%s) added for merchant %s", item.id, item.name, public_merchant_id)
        return MenuItemOut.from_domain(item)

    async def update_menu_item(
        self,
        db: AsyncSession,
        public_merchant_id: str,
        item_id: str,
        req: MenuItemUpdateRequest,
    ) -> MenuItemOut:
        current = await self._require_item(db, public_merchant_id, item_id)
        changes = req.changes()
        if not changes:
            return MenuItemOut.from_domain(current)
        try:
            updated = await self._repo.update_menu_item(db, replace(current, **changes))
            if updated is None:
                raise MenuItemNotFoundError(item_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Menu item %s updated: %s", item_id, ", ".join(sorted(changes)))
        return MenuItemOut.from_domain(updated)

    async def delete_menu_item(
        self, db: AsyncSession, public_merchant_id: str, item_id: str
    ) -> None:
        try:
            deleted = await self._repo.delete_menu_item(db, public_merchant_id, item_id)
            if not deleted:
                raise MenuItemNotFoundError(item_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Menu item %s removed from merchant %s", item_id, public_merchant_id)
