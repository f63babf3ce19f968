"""005: create trades table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trades (
            id              VARCHAR(64)     PRIMARY KEY,
            market_id       VARCHAR(64)     NOT NULL REFERENCES markets (id),
            user_id         VARCHAR(64)     NOT NULL REFERENCES profiles (id),
            type            VARCHAR(10)     NOT NULL,
            outcome         VARCHAR(3)      NOT NULL,
            amount          pm_amount       NOT NULL,
            shares          pm_amount       NOT NULL,
            redeemed        pm_amount       NOT NULL DEFAULT 0,
            prob_before     pm_probability NOT NULL,
            prob_after      pm_probability NOT NULL,
            is_rolled_back  BOOLEAN         NOT NULL DEFAULT FALSE,
            rolled_back_at  TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trades_type          CHECK (type IN ('BUY', 'SELL', 'REDEEM')),
            CONSTRAINT ck_trades_outcome       CHECK (outcome IN ('YES', 'NO')),
            CONSTRAINT ck_trades_amount_gte_0  CHECK (amount >= 0),
            CONSTRAINT ck_trades_shares_gt_0   CHECK (shares > 0),
            CONSTRAINT ck_trades_redeemed      CHECK (redeemed >= 0 AND redeemed <= shares),
            CONSTRAINT ck_trades_redeem_final  CHECK (type <> 'REDEEM' OR is_rolled_back = FALSE)
        );
    """)
    op.execute("CREATE INDEX idx_trades_market_time ON trades (market_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_trades_user_time ON trades (user_id, created_at DESC, id DESC);")
    op.execute("COMMENT ON TABLE trades IS 'Append-only trade log; only is_rolled_back may change';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
