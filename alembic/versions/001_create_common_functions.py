"""001: shared trigger function and numeric domains

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Attached as BEFORE UPDATE on profiles, markets and positions
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # Coins and shares carry 6 decimals, probabilities 12 (see pm_common.amounts)
    op.execute("CREATE DOMAIN pm_amount AS NUMERIC(20,6);")
    op.execute("""
        CREATE DOMAIN pm_probability AS NUMERIC(14,12)
            CHECK (VALUE >= 0 AND VALUE <= 1);
    """)


def downgrade() -> None:
    op.execute("DROP DOMAIN IF EXISTS pm_probability;")
    op.execute("DROP DOMAIN IF EXISTS pm_amount;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
