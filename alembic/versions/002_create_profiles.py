"""002: create profiles table

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
        CREATE TABLE profiles (
            id              VARCHAR(64)     PRIMARY KEY,
            username        VARCHAR(64),
            balance         pm_amount       NOT NULL DEFAULT 1000,
            is_admin        BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_profiles_username      UNIQUE (username),
            CONSTRAINT ck_profiles_balance_gte_0 CHECK (balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_profiles_updated_at
            BEFORE UPDATE ON profiles
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE profiles IS 'Per-user coin balance; id is the identity service subject';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS profiles CASCADE;")
