"""006: create probability_history table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE probability_history (
            id              BIGSERIAL       PRIMARY KEY,
            market_id       VARCHAR(64)     NOT NULL REFERENCES markets (id),
            probability     pm_probability NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_history_probability_range CHECK (probability >= 0 AND probability <= 1)
        );
    """)
    op.execute(
        "CREATE INDEX idx_history_market_time ON probability_history (market_id, created_at DESC, id DESC);"
    )
    op.execute("COMMENT ON TABLE probability_history IS 'Append-only chart series; 0/1 only at resolution';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS probability_history CASCADE;")
