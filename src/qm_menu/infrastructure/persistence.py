"""MenuRepository — concrete implementation of MenuRepositoryProtocol.

All queries use raw text() SQL (no ORM).
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.qm_menu.domain.models import MenuItem, MerchantProfile

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GET_MERCHANT_SQL = text("""
    SELECT CAST(id AS TEXT) AS id, public_merchant_id, restaurant_name,
           restaurant_description, currency
    FROM merchant_profiles
    WHERE public_merchant_id = :public_merchant_id
""")

_MENU_COLUMNS = """
    CAST(id AS TEXT) AS id, merchant_public_id, name, description, price,
    category, image_url, created_at, updated_at
"""

_LIST_MENU_SQL = text(f"""
    SELECT {_MENU_COLUMNS}
    FROM menu_items
    WHERE merchant_public_id = :public_merchant_id
    ORDER BY category ASC, name ASC
""")

_GET_MENU_ITEMS_SQL = text(f"""
    SELECT {_MENU_COLUMNS}
    FROM menu_items
    WHERE merchant_public_id = :public_merchant_id
      AND CAST(id AS TEXT) = ANY(CAST(:item_ids AS TEXT[]))
""")

_INSERT_MENU_ITEM_SQL = text(f"""
    INSERT INTO menu_items (id, merchant_public_id, name, description, price,
        category, image_url)
    VALUES (CAST(:id AS UUID), :merchant_public_id, :name, :description, :price,
        :category, :image_url)
    RETURNING {_MENU_COLUMNS}
""")

_UPDATE_MENU_ITEM_SQL = text(f"""
    UPDATE menu_items
    SET name = :name,
        description = :description,
        price = :price,
        category = :category,
        image_url = :image_url
    WHERE CAST(id AS TEXT) = :id AND merchant_public_id = :merchant_public_id
    RETURNING {_MENU_COLUMNS}
""")

_DELETE_MENU_ITEM_SQL = text("""
    DELETE FROM menu_items
    WHERE CAST(id AS TEXT) = :id AND merchant_public_id = :merchant_public_id
    RETURNING CAST(id AS TEXT) AS id
""")


def _row_to_menu_item(row: Any) -> MenuItem:
    return MenuItem(
        id=row.id,
        merchant_public_id=row.merchant_public_id,
        name=row.name,
        description=row.description or "",
        price=row.price,
        category=row.category,
        image_url=row.image_url,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _menu_item_params(item: MenuItem) -> dict[str, Any]:
    return {
        "merchant_public_id": item.merchant_public_id,
        "name": item.name,
        "description": item.description,
        "price": item.price,
        "category": item.category,
        "image_url": item.image_url,
    }


class MenuRepository:
    async def get_merchant(
        self, db: AsyncSession, public_merchant_id: str
    ) -> MerchantProfile | None:
        result = await db.execute(_GET_MERCHANT_SQL, {"public_merchant_id": public_merchant_id})
        row = result.fetchone()
        if row is None:
            return None
        return MerchantProfile(
            id=row.id,
            public_merchant_id=row.public_merchant_id,
            restaurant_name=row.restaurant_name,
            restaurant_description=row.restaurant_description,
            currency=row.currency,
        )

    async def list_menu_items(self, db: AsyncSession, public_merchant_id: str) -> list[MenuItem]:
        result = await db.execute(_LIST_MENU_SQL, {"public_merchant_id": public_merchant_id})
        return [_row_to_menu_item(row) for row in result.fetchall()]

    async def get_menu_items(
        self, db: AsyncSession, public_merchant_id: str, item_ids: list[str]
    ) -> list[MenuItem]:
        if not item_ids:
            return []
        result = await db.execute(
            _GET_MENU_ITEMS_SQL,
            {"public_merchant_id": public_merchant_id, "item_ids": item_ids},
        )
        return [_row_to_menu_item(row) for row in result.fetchall()]

    async def insert_menu_item(self, db: AsyncSession, item: MenuItem) -> MenuItem:
        result = await db.execute(
            _INSERT_MENU_ITEM_SQL, {"id": item.id, **_menu_item_params(item)}
        )
        return _row_to_menu_item(result.fetchone())

    async def update_menu_item(self, db: AsyncSession, item: MenuItem) -> MenuItem | None:
        """Overwrite the editable columns; None if the item is not the merchant's."""
        result = await db.execute(
            _UPDATE_MENU_ITEM_SQL, {"id": item.id, **_menu_item_params(item)}
        )
        row = result.fetchone()
        return _row_to_menu_item(row) if row is not None else None

    async def delete_menu_item(
        self, db: AsyncSession, public_merchant_id: str, item_id: str
    ) -> bool:
        result = await db.execute(
            _DELETE_MENU_ITEM_SQL, {"id": item_id, "merchant_public_id": public_merchant_id}
        )
        return result.fetchone() is not None
