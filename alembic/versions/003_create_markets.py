"""003: create markets table

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
        CREATE TABLE markets (
            id                  VARCHAR(64)     PRIMARY KEY,
            question            VARCHAR(500)    NOT NULL,
            description         TEXT,
            creator_id          VARCHAR(64),
            pool_yes            pm_amount       NOT NULL,
            pool_no             pm_amount       NOT NULL,
            p                   NUMERIC(8,6)    NOT NULL,
            probability         pm_probability NOT NULL,
            total_liquidity     pm_amount       NOT NULL,
            volume              pm_amount       NOT NULL DEFAULT 0,
            status              VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            resolution          VARCHAR(32),
            resolved_at         TIMESTAMPTZ,
            version             BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_pools_gt_0        CHECK (pool_yes > 0 AND pool_no > 0),
            CONSTRAINT ck_markets_p_range           CHECK (p > 0 AND p < 1),
            CONSTRAINT ck_markets_probability_range CHECK (probability > 0 AND probability < 1),
            CONSTRAINT ck_markets_liquidity_gt_0    CHECK (total_liquidity > 0),
            CONSTRAINT ck_markets_volume_gte_0      CHECK (volume >= 0),
            CONSTRAINT ck_markets_status CHECK (
                status IN ('ACTIVE', 'RESOLVED', 'CANCELLED')
            ),
            CONSTRAINT ck_markets_resolved CHECK (
                (status = 'RESOLVED') = (resolution IS NOT NULL AND resolved_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status_created ON markets (status, created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Binary markets: CPMM pools, derived probability, resolution';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
