"""MarketRepository — concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market, ProbabilityPoint

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, question, description, creator_id,
    pool_yes, pool_no, p, probability,
    total_liquidity, volume, status, resolution, resolved_at,
    version, created_at, updated_at
"""

_GET_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_GET_MARKET_FOR_UPDATE_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
    FOR UPDATE
""")

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_INSERT_MARKET_SQL = text("""
    INSERT INTO markets (
        id, question, description, creator_id,
        pool_yes, pool_no, p, probability,
        total_liquidity, volume, status, version, created_at, updated_at
    ) VALUES (
        :id, :question, :description, :creator_id,
        :pool_yes, :pool_no, :p, :probability,
        :total_liquidity, :volume, :status, :version, :created_at, :updated_at
    )
""")

# Compare-and-swap on version: 0 rows → someone else committed first
_UPDATE_MARKET_STATE_SQL = text("""
    UPDATE markets
    SET pool_yes    = :pool_yes,
        pool_no     = :pool_no,
        probability = :probability,
        volume      = :volume,
        status      = :status,
        resolution  = :resolution,
        resolved_at = :resolved_at,
        version     = version + 1
    WHERE id = :market_id AND version = :expected_version
    RETURNING version
""")

_INSERT_HISTORY_SQL = text("""
    INSERT INTO probability_history (market_id, probability, created_at)
    VALUES (:market_id, :probability, :created_at)
""")

# Newest `limit` samples, returned oldest-first for charting
_LIST_HISTORY_SQL = text("""
    SELECT market_id, probability, created_at
    FROM (
        SELECT id, market_id, probability, created_at
        FROM probability_history
        WHERE market_id = :market_id
        ORDER BY created_at DESC, id DESC
        LIMIT :limit
    ) recent
    ORDER BY created_at ASC, id ASC
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        question=row.question,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        creator_id=row.creator_id,  # type: ignore[attr-defined]
        pool_yes=Decimal(row.pool_yes),  # type: ignore[attr-defined]
        pool_no=Decimal(row.pool_no),  # type: ignore[attr-defined]
        p=Decimal(row.p),  # type: ignore[attr-defined]
        probability=Decimal(row.probability),  # type: ignore[attr-defined]
        total_liquidity=Decimal(row.total_liquidity),  # type: ignore[attr-defined]
        volume=Decimal(row.volume),  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        resolution=row.resolution,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def get_market_for_update(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_FOR_UPDATE_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "status": status,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def insert_market(self, db: AsyncSession, market: Market) -> None:
        await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market.id,
                "question": market.question,
                "description": market.description,
                "creator_id": market.creator_id,
                "pool_yes": market.pool_yes,
                "pool_no": market.pool_no,
                "p": market.p,
                "probability": market.probability,
                "total_liquidity": market.total_liquidity,
                "volume": market.volume,
                "status": market.status,
                "version": market.version,
                "created_at": market.created_at,
                "updated_at": market.updated_at,
            },
        )

    async def update_market_state(
        self, db: AsyncSession, market: Market, expected_version: int
    ) -> bool:
        result = await db.execute(
            _UPDATE_MARKET_STATE_SQL,
            {
                "market_id": market.id,
                "expected_version": expected_version,
                "pool_yes": market.pool_yes,
                "pool_no": market.pool_no,
                "probability": market.probability,
                "volume": market.volume,
                "status": market.status,
                "resolution": market.resolution,
                "resolved_at": market.resolved_at,
            },
        )
        row = result.fetchone()
        if row is None:
            return False
        market.version = row.version
        return True

    async def append_probability(
        self,
        db: AsyncSession,
        market_id: str,
        probability: Decimal,
        at: datetime,
    ) -> None:
        await db.execute(
            _INSERT_HISTORY_SQL,
            {"market_id": market_id, "probability": probability, "created_at": at},
        )

    async def list_probability_history(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[ProbabilityPoint]:
        result = await db.execute(
            _LIST_HISTORY_SQL, {"market_id": market_id, "limit": limit}
        )
        return [
            ProbabilityPoint(
                market_id=row.market_id,
                probability=Decimal(row.probability),
                created_at=row.created_at,
            )
            for row in result.fetchall()
        ]
