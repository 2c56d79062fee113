"""002: create merchant_profiles table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE merchant_profiles (
            id                      UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            public_merchant_id      VARCHAR(32)     NOT NULL,
            restaurant_name         VARCHAR(200)    NOT NULL,
            restaurant_description  TEXT,
            currency                VARCHAR(3)      NOT NULL DEFAULT 'USD',
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_merchant_profiles_public_id UNIQUE (public_merchant_id)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_merchant_profiles_updated_at
            BEFORE UPDATE ON merchant_profiles
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS merchant_profiles CASCADE;")
