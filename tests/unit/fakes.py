"""In-memory repositories and a transactional fake session for service tests.

The fakes behave like the SQL repositories: reads return copies, writes store
copies, and FakeSession.rollback() restores the state of the last commit, so
all-or-nothing behaviour is exercised for real.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

from src.pm_account.domain.ledger import marked_value
from src.pm_account.domain.models import MarkedPosition, Position, Profile
from src.pm_amm.domain.pricing import probability_of
from src.pm_common.amounts import ZERO, quantize_probability
from src.pm_market.domain.models import Market, ProbabilityPoint
from src.pm_trade.domain.models import Trade

STARTING_BALANCE = Decimal("1000")
_T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@dataclass
class LedgerState:
    markets: dict[str, Market] = field(default_factory=dict)
    profiles: dict[str, Profile] = field(default_factory=dict)
    positions: dict[tuple[str, str], Position] = field(default_factory=dict)
    trades: dict[str, Trade] = field(default_factory=dict)
    history: list[ProbabilityPoint] = field(default_factory=list)


class FakeStore:
    """Ledger tables plus the last committed copy of them.

    Seeding helpers write straight into committed state.
    """

    def __init__(self) -> None:
        self.state = LedgerState()
        self.committed = LedgerState()

    def commit(self) -> None:
        self.committed = copy.deepcopy(self.state)

    def rollback(self) -> None:
        self.state = copy.deepcopy(self.committed)

    def snapshot(self) -> LedgerState:
        return copy.deepcopy(self.state)

    # --- seeding helpers ---

    def add_market(
        self,
        market_id: str = "mkt-1",
        pool_yes: str = "1000",
        pool_no: str = "1000",
        p: str = "0.5",
        status: str = "ACTIVE",
    ) -> Market:
        y, n, skew = Decimal(pool_yes), Decimal(pool_no), Decimal(p)
        market = Market(
            id=market_id,
            question=f"Question {market_id}?",
            description=None,
            creator_id="admin",
            pool_yes=y,
            pool_no=n,
            p=skew,
            probability=quantize_probability(probability_of(y, n, skew)),
            total_liquidity=y,
            volume=ZERO,
            status=status,
            resolution=None,
            resolved_at=None,
            created_at=_T0 + timedelta(seconds=len(self.state.markets)),
            updated_at=_T0,
        )
        self.state.markets[market_id] = copy.deepcopy(market)
        self.commit()
        return market

    def add_profile(self, user_id: str, balance: str = "1000", is_admin: bool = False) -> None:
        self.state.profiles[user_id] = Profile(
            user_id=user_id, balance=Decimal(balance), is_admin=is_admin
        )
        self.commit()

    def add_position(
        self, user_id: str, market_id: str, yes: str = "0", no: str = "0", invested: str = "0"
    ) -> None:
        self.state.positions[(user_id, market_id)] = Position(
            user_id=user_id,
            market_id=market_id,
            yes_shares=Decimal(yes),
            no_shares=Decimal(no),
            total_invested=Decimal(invested),
        )
        self.commit()

    # --- assertions helpers ---

    def market(self, market_id: str) -> Market:
        return self.state.markets[market_id]

    def profile(self, user_id: str) -> Profile:
        return self.state.profiles[user_id]

    def position(self, user_id: str, market_id: str) -> Position:
        return self.state.positions[(user_id, market_id)]


class FakeSession:
    """Stands in for AsyncSession: commit keeps, rollback restores."""

    def __init__(self, store: FakeStore) -> None:
        self._store = store
        self.commits = 0
        self.rollbacks = 0
        self.execute = AsyncMock()  # SET LOCAL lock_timeout

    async def commit(self) -> None:
        self._store.commit()
        self.commits += 1

    async def rollback(self) -> None:
        self._store.rollback()
        self.rollbacks += 1


class FakeMarketRepository:
    def __init__(self, store: FakeStore, cas_failures: int = 0) -> None:
        self._store = store
        self.cas_failures = cas_failures   # next N update_market_state calls lose the race

    async def get_market_by_id(self, db: object, market_id: str) -> Market | None:
        m = self._store.state.markets.get(market_id)
        return copy.deepcopy(m) if m else None

    async def get_market_for_update(self, db: object, market_id: str) -> Market | None:
        return await self.get_market_by_id(db, market_id)

    async def list_markets(
        self,
        db: object,
        status: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        markets = [
            m for m in self._store.state.markets.values() if status is None or m.status == status
        ]
        markets.sort(key=lambda m: (m.created_at, m.id), reverse=True)
        return copy.deepcopy(markets[:limit])

    async def insert_market(self, db: object, market: Market) -> None:
        self._store.state.markets[market.id] = copy.deepcopy(market)

    async def update_market_state(
        self, db: object, market: Market, expected_version: int
    ) -> bool:
        if self.cas_failures > 0:
            self.cas_failures -= 1
            return False
        stored = self._store.state.markets[market.id]
        if stored.version != expected_version:
            return False
        market.version = expected_version + 1
        self._store.state.markets[market.id] = copy.deepcopy(market)
        return True

    async def append_probability(
        self, db: object, market_id: str, probability: Decimal, at: datetime
    ) -> None:
        self._store.state.history.append(ProbabilityPoint(market_id, probability, at))

    async def list_probability_history(
        self, db: object, market_id: str, limit: int
    ) -> list[ProbabilityPoint]:
        points = [pt for pt in self._store.state.history if pt.market_id == market_id]
        return copy.deepcopy(points[-limit:])


class FakeAccountRepository:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def get_profile(self, db: object, user_id: str) -> Profile | None:
        p = self._store.state.profiles.get(user_id)
        return copy.deepcopy(p) if p else None

    async def get_profile_for_update(self, db: object, user_id: str) -> Profile | None:
        return await self.get_profile(db, user_id)

    async def get_or_create_profile_for_update(self, db: object, user_id: str) -> Profile:
        if user_id not in self._store.state.profiles:
            self._store.state.profiles[user_id] = Profile(
                user_id=user_id, balance=STARTING_BALANCE
            )
        return copy.deepcopy(self._store.state.profiles[user_id])

    async def update_balance(self, db: object, profile: Profile) -> None:
        self._store.state.profiles[profile.user_id].balance = profile.balance

    async def get_position(self, db: object, user_id: str, market_id: str) -> Position | None:
        p = self._store.state.positions.get((user_id, market_id))
        return copy.deepcopy(p) if p else None

    async def get_or_create_position_for_update(
        self, db: object, user_id: str, market_id: str
    ) -> Position:
        key = (user_id, market_id)
        if key not in self._store.state.positions:
            self._store.state.positions[key] = Position(user_id=user_id, market_id=market_id)
        return copy.deepcopy(self._store.state.positions[key])

    async def save_position(self, db: object, position: Position) -> None:
        key = (position.user_id, position.market_id)
        self._store.state.positions[key] = copy.deepcopy(position)

    async def list_positions_for_update(self, db: object, market_id: str) -> list[Position]:
        positions = [p for p in self._store.state.positions.values() if p.market_id == market_id]
        return copy.deepcopy(sorted(positions, key=lambda p: p.user_id))

    def _mark(self, position: Position) -> MarkedPosition:
        market = self._store.state.markets[position.market_id]
        return MarkedPosition(
            position=copy.deepcopy(position),
            market_question=market.question,
            market_status=market.status,
            probability=market.probability,
        )

    async def list_marked_positions_by_user(
        self, db: object, user_id: str
    ) -> list[MarkedPosition]:
        return [
            self._mark(p) for p in self._store.state.positions.values()
            if p.user_id == user_id and not p.is_empty
        ]

    async def get_marked_position(
        self, db: object, user_id: str, market_id: str
    ) -> MarkedPosition | None:
        if market_id not in self._store.state.markets:
            return None
        position = self._store.state.positions.get((user_id, market_id))
        return self._mark(position or Position(user_id=user_id, market_id=market_id))

    async def list_portfolio_values(
        self, db: object, limit: int
    ) -> list[tuple[Profile, Decimal]]:
        values = {user_id: ZERO for user_id in self._store.state.profiles}
        for position in self._store.state.positions.values():
            if position.user_id in values:
                values[position.user_id] += marked_value(self._mark(position))
        ranked = sorted(
            self._store.state.profiles.values(),
            key=lambda p: (-(p.balance + values[p.user_id]), p.user_id),
        )
        return [(copy.deepcopy(p), values[p.user_id]) for p in ranked[:limit]]


class FakeTradeRepository:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def insert_trade(self, db: object, trade: Trade) -> None:
        self._store.state.trades[trade.id] = copy.deepcopy(trade)

    async def get_trade(self, db: object, trade_id: str) -> Trade | None:
        t = self._store.state.trades.get(trade_id)
        return copy.deepcopy(t) if t else None

    async def get_trade_for_update(self, db: object, trade_id: str) -> Trade | None:
        return await self.get_trade(db, trade_id)

    async def mark_rolled_back(self, db: object, trade_id: str, at: datetime) -> bool:
        t = self._store.state.trades[trade_id]
        if t.is_rolled_back:
            return False
        t.is_rolled_back = True
        t.rolled_back_at = at
        return True

    async def list_market_trades(self, db: object, market_id: str, limit: int) -> list[Trade]:
        trades = [t for t in self._store.state.trades.values() if t.market_id == market_id]
        return copy.deepcopy(list(reversed(trades))[:limit])

    async def list_user_trades(self, db: object, user_id: str, limit: int) -> list[Trade]:
        trades = [t for t in self._store.state.trades.values() if t.user_id == user_id]
        return copy.deepcopy(list(reversed(trades))[:limit])
