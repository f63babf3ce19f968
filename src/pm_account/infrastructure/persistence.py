"""AccountRepository — profiles (balances) and positions.

All queries use raw text() SQL. Writers always hold the row lock taken by a
*_FOR_UPDATE read (or the implicit lock of INSERT ... ON CONFLICT DO UPDATE)
in the same transaction, so absolute SET balance = :balance is safe.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.models import MarkedPosition, Position, Profile
from src.pm_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL — profiles
# ---------------------------------------------------------------------------

_PROFILE_COLUMNS = "id, username, balance, is_admin, created_at, updated_at"

_GET_PROFILE_SQL = text(f"""
    SELECT {_PROFILE_COLUMNS}
    FROM profiles
    WHERE id = :user_id
""")

_GET_PROFILE_FOR_UPDATE_SQL = text(f"""
    SELECT {_PROFILE_COLUMNS}
    FROM profiles
    WHERE id = :user_id
    FOR UPDATE
""")

# First trade of a user the identity service knows about creates the profile
_GET_OR_CREATE_PROFILE_SQL = text(f"""
    INSERT INTO profiles (id, balance)
    VALUES (:user_id, :starting_balance)
    ON CONFLICT (id) DO UPDATE
        SET updated_at = NOW()
    RETURNING {_PROFILE_COLUMNS}
""")

_UPDATE_BALANCE_SQL = text("""
    UPDATE profiles
    SET balance = :balance
    WHERE id = :user_id
""")

# ---------------------------------------------------------------------------
# SQL — positions
# ---------------------------------------------------------------------------

_POSITION_COLUMNS = """
    user_id, market_id, yes_shares, no_shares, total_invested,
    created_at, updated_at
"""

_GET_POSITION_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions
    WHERE user_id = :user_id AND market_id = :market_id
""")

_GET_OR_CREATE_POSITION_SQL = text(f"""
    INSERT INTO positions (user_id, market_id)
    VALUES (:user_id, :market_id)
    ON CONFLICT (user_id, market_id) DO UPDATE
        SET updated_at = NOW()
    RETURNING {_POSITION_COLUMNS}
""")

_SAVE_POSITION_SQL = text("""
    UPDATE positions
    SET yes_shares     = :yes_shares,
        no_shares      = :no_shares,
        total_invested = :total_invested
    WHERE user_id = :user_id AND market_id = :market_id
""")

# Fixed lock order (user_id) so concurrent sweeps cannot deadlock
_LIST_MARKET_POSITIONS_FOR_UPDATE_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions
    WHERE market_id = :market_id
    ORDER BY user_id
    FOR UPDATE
""")

# ---------------------------------------------------------------------------
# SQL — portfolio reads (positions joined with their market)
# ---------------------------------------------------------------------------

_MARKED_COLUMNS = """
    m.id AS market_id,
    COALESCE(pos.yes_shares, 0)     AS yes_shares,
    COALESCE(pos.no_shares, 0)      AS no_shares,
    COALESCE(pos.total_invested, 0) AS total_invested,
    pos.created_at, pos.updated_at,
    m.question AS market_question, m.status AS market_status, m.probability
"""

_LIST_USER_MARKED_POSITIONS_SQL = text(f"""
    SELECT {_MARKED_COLUMNS}
    FROM positions pos
    JOIN markets m ON m.id = pos.market_id
    WHERE pos.user_id = :user_id
      AND (pos.yes_shares > 0 OR pos.no_shares > 0)
    ORDER BY pos.updated_at DESC, pos.market_id
""")

_GET_MARKED_POSITION_SQL = text(f"""
    SELECT {_MARKED_COLUMNS}
    FROM markets m
    LEFT JOIN positions pos
        ON pos.market_id = m.id AND pos.user_id = :user_id
    WHERE m.id = :market_id
""")

# Per-position values are truncated to 6 decimals before summing, like position_value()
_LIST_PORTFOLIO_VALUES_SQL = text(f"""
    SELECT {_PROFILE_COLUMNS},
           COALESCE(v.positions_value, 0) AS positions_value
    FROM profiles
    LEFT JOIN (
        SELECT pos.user_id,
               SUM(TRUNC(pos.yes_shares * m.probability
                         + pos.no_shares * (1 - m.probability), 6)) AS positions_value
        FROM positions pos
        JOIN markets m ON m.id = pos.market_id
        WHERE m.status = 'ACTIVE'
        GROUP BY pos.user_id
    ) v ON v.user_id = profiles.id
    ORDER BY balance + COALESCE(v.positions_value, 0) DESC, id
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_profile(row: object) -> Profile:
    return Profile(
        user_id=row.id,  # type: ignore[attr-defined]
        username=row.username,  # type: ignore[attr-defined]
        balance=Decimal(row.balance),  # type: ignore[attr-defined]
        is_admin=row.is_admin,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_position(row: object) -> Position:
    return Position(
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        yes_shares=Decimal(row.yes_shares),  # type: ignore[attr-defined]
        no_shares=Decimal(row.no_shares),  # type: ignore[attr-defined]
        total_invested=Decimal(row.total_invested),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_marked_position(row: object, user_id: str) -> MarkedPosition:
    position = Position(
        user_id=user_id,
        market_id=row.market_id,  # type: ignore[attr-defined]
        yes_shares=Decimal(row.yes_shares),  # type: ignore[attr-defined]
        no_shares=Decimal(row.no_shares),  # type: ignore[attr-defined]
        total_invested=Decimal(row.total_invested),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )
    return MarkedPosition(
        position=position,
        market_question=row.market_question,  # type: ignore[attr-defined]
        market_status=row.market_status,  # type: ignore[attr-defined]
        probability=Decimal(row.probability),  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountRepository:
    async def get_profile(self, db: AsyncSession, user_id: str) -> Profile | None:
        row = (await db.execute(_GET_PROFILE_SQL, {"user_id": user_id})).fetchone()
        return _row_to_profile(row) if row else None

    async def get_profile_for_update(
        self, db: AsyncSession, user_id: str
    ) -> Profile | None:
        row = (
            await db.execute(_GET_PROFILE_FOR_UPDATE_SQL, {"user_id": user_id})
        ).fetchone()
        return _row_to_profile(row) if row else None

    async def get_or_create_profile_for_update(
        self, db: AsyncSession, user_id: str
    ) -> Profile:
        result = await db.execute(
            _GET_OR_CREATE_PROFILE_SQL,
            {"user_id": user_id, "starting_balance": Decimal(settings.STARTING_BALANCE)},
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Profile upsert returned no rows — this should never happen")
        return _row_to_profile(row)

    async def update_balance(self, db: AsyncSession, profile: Profile) -> None:
        await db.execute(
            _UPDATE_BALANCE_SQL, {"user_id": profile.user_id, "balance": profile.balance}
        )

    async def get_position(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> Position | None:
        row = (
            await db.execute(_GET_POSITION_SQL, {"user_id": user_id, "market_id": market_id})
        ).fetchone()
        return _row_to_position(row) if row else None

    async def get_or_create_position_for_update(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> Position:
        result = await db.execute(
            _GET_OR_CREATE_POSITION_SQL, {"user_id": user_id, "market_id": market_id}
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Position upsert returned no rows — this should never happen")
        return _row_to_position(row)

    async def save_position(self, db: AsyncSession, position: Position) -> None:
        await db.execute(
            _SAVE_POSITION_SQL,
            {
                "user_id": position.user_id,
                "market_id": position.market_id,
                "yes_shares": position.yes_shares,
                "no_shares": position.no_shares,
                "total_invested": position.total_invested,
            },
        )

    async def list_positions_for_update(
        self, db: AsyncSession, market_id: str
    ) -> list[Position]:
        result = await db.execute(
            _LIST_MARKET_POSITIONS_FOR_UPDATE_SQL, {"market_id": market_id}
        )
        return [_row_to_position(row) for row in result.fetchall()]

    async def list_marked_positions_by_user(
        self, db: AsyncSession, user_id: str
    ) -> list[MarkedPosition]:
        result = await db.execute(_LIST_USER_MARKED_POSITIONS_SQL, {"user_id": user_id})
        return [_row_to_marked_position(row, user_id) for row in result.fetchall()]

    async def get_marked_position(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> MarkedPosition | None:
        row = (
            await db.execute(
                _GET_MARKED_POSITION_SQL, {"user_id": user_id, "market_id": market_id}
            )
        ).fetchone()
        return _row_to_marked_position(row, user_id) if row else None

    async def list_portfolio_values(
        self, db: AsyncSession, limit: int
    ) -> list[tuple[Profile, Decimal]]:
        result = await db.execute(_LIST_PORTFOLIO_VALUES_SQL, {"limit": limit})
        return [
            (_row_to_profile(row), Decimal(row.positions_value))
            for row in result.fetchall()
        ]
