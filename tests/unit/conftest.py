"""Fixtures wiring the application services to in-memory repositories."""

import pytest
from fakes import (
    FakeAccountRepository,
    FakeMarketRepository,
    FakeSession,
    FakeStore,
    FakeTradeRepository,
)

from src.pm_clearing.application.rollback_service import RollbackService
from src.pm_clearing.application.settlement_service import SettlementService
from src.pm_common.market_locks import MarketLockRegistry
from src.pm_market.application.service import MarketApplicationService
from src.pm_trade.application.service import TradeApplicationService


@pytest.fixture
def store() -> FakeStore:
    s = FakeStore()
    s.add_market("mkt-1")
    s.add_profile("alice")
    s.add_profile("bob")
    return s


@pytest.fixture
def db(store: FakeStore) -> FakeSession:
    return FakeSession(store)


@pytest.fixture
def market_repo(store: FakeStore) -> FakeMarketRepository:
    return FakeMarketRepository(store)


@pytest.fixture
def account_repo(store: FakeStore) -> FakeAccountRepository:
    return FakeAccountRepository(store)


@pytest.fixture
def trade_repo(store: FakeStore) -> FakeTradeRepository:
    return FakeTradeRepository(store)


@pytest.fixture
def locks() -> MarketLockRegistry:
    return MarketLockRegistry()


@pytest.fixture
def trade_service(
    market_repo: FakeMarketRepository,
    account_repo: FakeAccountRepository,
    trade_repo: FakeTradeRepository,
    locks: MarketLockRegistry,
) -> TradeApplicationService:
    return TradeApplicationService(
        market_repo=market_repo,
        account_repo=account_repo,
        trade_repo=trade_repo,
        locks=locks,
        max_retries=3,
    )


@pytest.fixture
def rollback_service(
    market_repo: FakeMarketRepository,
    account_repo: FakeAccountRepository,
    trade_repo: FakeTradeRepository,
    locks: MarketLockRegistry,
) -> RollbackService:
    return RollbackService(
        market_repo=market_repo,
        account_repo=account_repo,
        trade_repo=trade_repo,
        locks=locks,
        max_retries=3,
    )


@pytest.fixture
def settlement_service(
    market_repo: FakeMarketRepository,
    account_repo: FakeAccountRepository,
    locks: MarketLockRegistry,
) -> SettlementService:
    return SettlementService(
        market_repo=market_repo, account_repo=account_repo, locks=locks, max_retries=3
    )


@pytest.fixture
def market_service(
    market_repo: FakeMarketRepository, trade_repo: FakeTradeRepository
) -> MarketApplicationService:
    return MarketApplicationService(repo=market_repo, trade_repo=trade_repo)
