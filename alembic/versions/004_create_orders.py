"""004: create orders table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # items holds menu snapshots taken at placement; total is never recomputed.
    op.execute("""
        CREATE TABLE orders (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            display_order_id    VARCHAR(16)     NOT NULL,
            merchant_public_id  VARCHAR(32)     NOT NULL
                REFERENCES merchant_profiles (public_merchant_id),
            customer_id         VARCHAR(64)     NOT NULL,
            items               JSONB           NOT NULL,
            total               NUMERIC(10, 2)  NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'pending',
            customer_name       VARCHAR(200),
            notes               VARCHAR(500),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            cancelled_at        TIMESTAMPTZ,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_status CHECK (status IN ('pending', 'confirmed', 'cancelled')),
            CONSTRAINT ck_orders_total CHECK (total >= 0),
            CONSTRAINT ck_orders_items_nonempty CHECK (jsonb_array_length(items) > 0),
            CONSTRAINT ck_orders_cancelled_at CHECK (
                (status = 'cancelled') = (cancelled_at IS NOT NULL)
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_orders_merchant_created ON orders (merchant_public_id, created_at DESC);"
    )
    op.execute("""
        CREATE INDEX idx_orders_customer_created
        ON orders (merchant_public_id, customer_id, created_at DESC);
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
