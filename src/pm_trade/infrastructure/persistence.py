"""TradeRepository — append-only trade log.

Rows are never deleted or edited; the one permitted update flips
is_rolled_back from FALSE to TRUE, guarded in the WHERE clause.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_trade.domain.models import Trade

_TRADE_COLUMNS = """
    id, market_id, user_id, type, outcome, amount, shares, redeemed,
    prob_before, prob_after, is_rolled_back, rolled_back_at, created_at
"""

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (
        id, market_id, user_id, type, outcome, amount, shares, redeemed,
        prob_before, prob_after, is_rolled_back, created_at
    ) VALUES (
        :id, :market_id, :user_id, :type, :outcome, :amount, :shares, :redeemed,
        :prob_before, :prob_after, FALSE, :created_at
    )
""")

_GET_TRADE_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE id = :trade_id
""")

_GET_TRADE_FOR_UPDATE_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE id = :trade_id
    FOR UPDATE
""")

_MARK_ROLLED_BACK_SQL = text("""
    UPDATE trades
    SET is_rolled_back = TRUE,
        rolled_back_at = :rolled_back_at
    WHERE id = :trade_id AND is_rolled_back = FALSE
    RETURNING id
""")

_LIST_MARKET_TRADES_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE market_id = :market_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_USER_TRADES_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE user_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")


def _row_to_trade(row: object) -> Trade:
    return Trade(
        id=row.id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        amount=Decimal(row.amount),  # type: ignore[attr-defined]
        shares=Decimal(row.shares),  # type: ignore[attr-defined]
        redeemed=Decimal(row.redeemed),  # type: ignore[attr-defined]
        prob_before=Decimal(row.prob_before),  # type: ignore[attr-defined]
        prob_after=Decimal(row.prob_after),  # type: ignore[attr-defined]
        is_rolled_back=row.is_rolled_back,  # type: ignore[attr-defined]
        rolled_back_at=row.rolled_back_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TradeRepository:
    async def insert_trade(self, db: AsyncSession, trade: Trade) -> None:
        await db.execute(
            _INSERT_TRADE_SQL,
            {
                "id": trade.id,
                "market_id": trade.market_id,
                "user_id": trade.user_id,
                "type": trade.type,
                "outcome": trade.outcome,
                "amount": trade.amount,
                "shares": trade.shares,
                "redeemed": trade.redeemed,
                "prob_before": trade.prob_before,
                "prob_after": trade.prob_after,
                "created_at": trade.created_at,
            },
        )

    async def get_trade(self, db: AsyncSession, trade_id: str) -> Trade | None:
        row = (await db.execute(_GET_TRADE_SQL, {"trade_id": trade_id})).fetchone()
        return _row_to_trade(row) if row else None

    async def get_trade_for_update(
        self, db: AsyncSession, trade_id: str
    ) -> Trade | None:
        row = (
            await db.execute(_GET_TRADE_FOR_UPDATE_SQL, {"trade_id": trade_id})
        ).fetchone()
        return _row_to_trade(row) if row else None

    async def mark_rolled_back(
        self, db: AsyncSession, trade_id: str, at: datetime
    ) -> bool:
        result = await db.execute(
            _MARK_ROLLED_BACK_SQL, {"trade_id": trade_id, "rolled_back_at": at}
        )
        return result.fetchone() is not None

    async def list_market_trades(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[Trade]:
        result = await db.execute(
            _LIST_MARKET_TRADES_SQL, {"market_id": market_id, "limit": limit}
        )
        return [_row_to_trade(row) for row in result.fetchall()]

    async def list_user_trades(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[Trade]:
        result = await db.execute(
            _LIST_USER_TRADES_SQL, {"user_id": user_id, "limit": limit}
        )
        return [_row_to_trade(row) for row in result.fetchall()]
