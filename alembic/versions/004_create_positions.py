"""004: create positions table

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
    op.execute("""
        CREATE TABLE positions (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         VARCHAR(64)     NOT NULL REFERENCES profiles (id),
            market_id       VARCHAR(64)     NOT NULL REFERENCES markets (id),
            yes_shares      pm_amount       NOT NULL DEFAULT 0,
            no_shares       pm_amount       NOT NULL DEFAULT 0,
            total_invested  pm_amount       NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_positions_user_market UNIQUE (user_id, market_id),
            CONSTRAINT ck_positions_yes_gte_0   CHECK (yes_shares >= 0),
            CONSTRAINT ck_positions_no_gte_0    CHECK (no_shares >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_positions_market_user ON positions (market_id, user_id);")
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
