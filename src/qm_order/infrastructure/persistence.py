# src/qm_order/infrastructure/persistence.py
"""OrderRepository — raw SQL persistence implementation."""
import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.qm_order.domain.models import Order, OrderDraft, StatusPatch
from src.qm_order.domain.transformer import line_item_to_record, record_to_order

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    CAST(id AS TEXT) AS id, display_order_id, merchant_public_id, customer_id,
    items, total, status, customer_name, notes,
    created_at, cancelled_at, updated_at
"""

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO orders (display_order_id, merchant_public_id, customer_id,
        items, total, status, customer_name, notes)
    VALUES (:display_order_id, :merchant_public_id, :customer_id,
        CAST(:items AS JSONB), :total, :status, :customer_name, :notes)
    RETURNING {_SELECT_COLUMNS}
""")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE orders
    SET status = :status,
        cancelled_at = CASE WHEN :touch_cancelled_at
                            THEN CAST(:cancelled_at AS TIMESTAMPTZ)
                            ELSE cancelled_at END,
        updated_at = NOW()
    WHERE id = CAST(:id AS UUID) AND merchant_public_id = :merchant_public_id
    RETURNING {_SELECT_COLUMNS}
""")

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE id = CAST(:id AS UUID)
""")

_LIST_BY_MERCHANT_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE merchant_public_id = :merchant_public_id
    ORDER BY created_at DESC
""")

_LIST_BY_CUSTOMER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE merchant_public_id = :merchant_public_id AND customer_id = :customer_id
    ORDER BY created_at DESC
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> Order:
    """Convert a DB result row to an Order domain object."""
    return record_to_order(row._mapping)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def insert(self, draft: OrderDraft, db: AsyncSession) -> Order:
        result = await db.execute(
            _INSERT_ORDER_SQL,
            {
                "display_order_id": draft.display_order_id,
                "merchant_public_id": draft.merchant_public_id,
                "customer_id": draft.customer_id,
                "items": json.dumps([line_item_to_record(i) for i in draft.items]),
                "total": draft.total,
                "status": draft.status.value,
                "customer_name": draft.customer_name,
                "notes": draft.notes,
            },
        )
        return _row_to_order(result.fetchone())

    async def get_by_id(self, order_id: str, db: AsyncSession) -> Order | None:
        result = await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row is not None else None

    async def update_status(
        self, order_id: str, merchant_public_id: str, patch: StatusPatch, db: AsyncSession
    ) -> Order | None:
        """Apply a status patch scoped to the owning merchant; None if no row matched."""
        result = await db.execute(
            _UPDATE_STATUS_SQL,
            {
                "id": order_id,
                "merchant_public_id": merchant_public_id,
                "status": patch["status"].value,
                "touch_cancelled_at": "cancelled_at" in patch,
                "cancelled_at": patch.get("cancelled_at"),
            },
        )
        row = result.fetchone()
        return _row_to_order(row) if row is not None else None

    async def list_by_merchant(self, merchant_public_id: str, db: AsyncSession) -> list[Order]:
        result = await db.execute(
            _LIST_BY_MERCHANT_SQL, {"merchant_public_id": merchant_public_id}
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_by_customer(
        self, merchant_public_id: str, customer_id: str, db: AsyncSession
    ) -> list[Order]:
        result = await db.execute(
            _LIST_BY_CUSTOMER_SQL,
            {"merchant_public_id": merchant_public_id, "customer_id": customer_id},
        )
        return [_row_to_order(row) for row in result.fetchall()]
