"""Unit tests for the raw-SQL repositories using a MagicMock AsyncSession."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_common.errors import InternalError
from src.pm_market.domain.models import Market
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_trade.infrastructure.persistence import TradeRepository

NOW = datetime(2026, 3, 1, tzinfo=UTC)


def _make_market_row(**kwargs):
    """Build a mock DB row with all market columns."""
    row = MagicMock()
    row.id = kwargs.get("id", "mkt-1")
    row.question = kwargs.get("question", "Will it rain?")
    row.description = None
    row.creator_id = "admin"
    row.pool_yes = kwargs.get("pool_yes", "909.090910")
    row.pool_no = kwargs.get("pool_no", "1100.000000")
    row.p = "0.500000000000"
    row.probability = kwargs.get("probability", "0.547511312217")
    row.total_liquidity = "1000.000000"
    row.volume = "100.000000"
    row.status = kwargs.get("status", "ACTIVE")
    row.resolution = None
    row.resolved_at = None
    row.version = kwargs.get("version", 4)
    row.created_at = NOW
    row.updated_at = NOW
    return row


def _result(row=None, rows=None):
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    return result


def _market(version: int) -> Market:
    return Market(
        id="mkt-1", question="q", description=None, creator_id=None,
        pool_yes=Decimal("909.090910"), pool_no=Decimal("1100"), p=Decimal("0.5"),
        probability=Decimal("0.547511312217"), total_liquidity=Decimal("1000"),
        volume=Decimal("100"), status="ACTIVE", resolution=None, resolved_at=None,
        created_at=NOW, updated_at=NOW, version=version,
    )


@pytest.fixture
def db():
    return MagicMock()


class TestMarketRepository:
    async def test_get_market_maps_decimals(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(_make_market_row()))

        market = await MarketRepository().get_market_by_id(db, "mkt-1")

        assert market is not None
        assert market.pool_yes == Decimal("909.090910")
        assert isinstance(market.probability, Decimal)
        assert market.version == 4

    async def test_get_market_missing(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(None))
        assert await MarketRepository().get_market_for_update(db, "nope") is None

    async def test_get_for_update_uses_row_lock(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(_make_market_row()))
        await MarketRepository().get_market_for_update(db, "mkt-1")
        sql = str(db.execute.call_args[0][0])
        assert "FOR UPDATE" in sql

    async def test_update_state_bumps_version(self, db) -> None:
        row = MagicMock()
        row.version = 5
        db.execute = AsyncMock(return_value=_result(row))
        market = _market(version=4)

        ok = await MarketRepository().update_market_state(db, market, expected_version=4)

        assert ok is True
        assert market.version == 5
        params = db.execute.call_args[0][1]
        assert params["expected_version"] == 4
        assert params["pool_yes"] == Decimal("909.090910")

    async def test_update_state_lost_race(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(None))
        market = _market(version=7)

        assert await MarketRepository().update_market_state(db, market, 7) is False
        assert market.version == 7

    async def test_list_markets_parses_cursor_timestamp(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(rows=[_make_market_row()]))

        markets = await MarketRepository().list_markets(
            db, "ACTIVE", NOW.isoformat(), "mkt-9", 21
        )

        assert [m.id for m in markets] == ["mkt-1"]
        params = db.execute.call_args[0][1]
        assert params["cursor_ts"] == NOW
        assert params["limit"] == 21


class TestTradeRepository:
    async def test_mark_rolled_back_once(self, db) -> None:
        db.execute = AsyncMock(side_effect=[_result(MagicMock()), _result(None)])
        repo = TradeRepository()

        assert await repo.mark_rolled_back(db, "t1", NOW) is True
        assert await repo.mark_rolled_back(db, "t1", NOW) is False

    async def test_get_trade_maps_row(self, db) -> None:
        row = MagicMock()
        row.id = "t1"
        row.market_id = "mkt-1"
        row.user_id = "alice"
        row.type = "BUY"
        row.outcome = "YES"
        row.amount = "100.000000"
        row.shares = "190.909090"
        row.redeemed = "0.000000"
        row.prob_before = "0.500000000000"
        row.prob_after = "0.547511312217"
        row.is_rolled_back = False
        row.rolled_back_at = None
        row.created_at = NOW
        db.execute = AsyncMock(return_value=_result(row))

        trade = await TradeRepository().get_trade(db, "t1")

        assert trade is not None
        assert trade.shares == Decimal("190.909090")
        assert trade.redeemed == 0


class TestAccountRepository:
    async def test_upsert_passes_starting_balance(self, db) -> None:
        row = MagicMock()
        row.id = "carol"
        row.username = None
        row.balance = "1000.000000"
        row.is_admin = False
        row.created_at = NOW
        row.updated_at = NOW
        db.execute = AsyncMock(return_value=_result(row))

        profile = await AccountRepository().get_or_create_profile_for_update(db, "carol")

        assert profile.user_id == "carol"
        assert profile.balance == Decimal("1000")
        params = db.execute.call_args[0][1]
        assert params["starting_balance"] == Decimal("1000")

    async def test_upsert_without_row_is_internal_error(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(None))
        with pytest.raises(InternalError):
            await AccountRepository().get_or_create_profile_for_update(db, "carol")

    async def test_missing_position_row_reads_as_empty(self, db) -> None:
        row = MagicMock()
        row.market_id = "mkt-1"
        row.yes_shares = 0
        row.no_shares = 0
        row.total_invested = 0
        row.created_at = None
        row.updated_at = None
        row.market_question = "Will it rain?"
        row.market_status = "ACTIVE"
        row.probability = "0.547511312217"
        db.execute = AsyncMock(return_value=_result(row))

        marked = await AccountRepository().get_marked_position(db, "dave", "mkt-1")

        assert marked is not None
        assert marked.position.user_id == "dave"
        assert marked.position.is_empty
        assert marked.probability == Decimal("0.547511312217")

    async def test_marked_position_unknown_market(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(None))
        assert await AccountRepository().get_marked_position(db, "dave", "nope") is None

    async def test_portfolio_values_keep_sql_order(self, db) -> None:
        rows = []
        for user_id, balance, value in [("a", "900", "300.5"), ("b", "1000", "0")]:
            row = MagicMock()
            row.id = user_id
            row.username = None
            row.balance = balance
            row.is_admin = False
            row.created_at = NOW
            row.updated_at = NOW
            row.positions_value = value
            rows.append(row)
        db.execute = AsyncMock(return_value=_result(rows=rows))

        ranked = await AccountRepository().list_portfolio_values(db, 10)

        assert [(p.user_id, v) for p, v in ranked] == [
            ("a", Decimal("300.5")), ("b", Decimal("0")),
        ]
        assert db.execute.call_args[0][1] == {"limit": 10}
