"""003: create menu_items table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE menu_items (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            merchant_public_id  VARCHAR(32)     NOT NULL
                REFERENCES merchant_profiles (public_merchant_id) ON DELETE CASCADE,
            name                VARCHAR(200)    NOT NULL,
            description         TEXT            NOT NULL DEFAULT '',
            price               NUMERIC(10, 2)  NOT NULL,
            category            VARCHAR(100)    NOT NULL,
            image_url           TEXT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_menu_items_price CHECK (price >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_menu_items_merchant ON menu_items (merchant_public_id, category, name);"
    )
    op.execute("""
        CREATE TRIGGER trg_menu_items_updated_at
            BEFORE UPDATE ON menu_items
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS menu_items CASCADE;")
