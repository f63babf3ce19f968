"""RollbackService — per-trade units of work, failures reported as data."""

from decimal import Decimal

from fakes import FakeSession, FakeStore

from src.pm_clearing.application.rollback_service import RollbackService, batch_status
from src.pm_clearing.application.schemas import RollbackItemResult
from src.pm_clearing.application.settlement_service import SettlementService
from src.pm_common.enums import RollbackBatchStatus
from src.pm_trade.application.schemas import PlaceTradeRequest
from src.pm_trade.application.service import TradeApplicationService

D = Decimal


async def _buy(
    service: TradeApplicationService,
    db: FakeSession,
    user_id: str,
    outcome: str,
    amount: str,
    market_id: str = "mkt-1",
) -> str:
    req = PlaceTradeRequest(market_id=market_id, type="BUY", outcome=outcome, amount=D(amount))
    result = await service.place_trade(db, user_id, req)
    return result.trade.id


class TestBatchStatus:
    def test_statuses(self) -> None:
        ok = RollbackItemResult(trade_id="a", success=True)
        bad = RollbackItemResult(trade_id="b", success=False, error_code=4004, error="x")
        assert batch_status([ok, ok]) == RollbackBatchStatus.ALL_SUCCEEDED
        assert batch_status([ok, bad]) == RollbackBatchStatus.PARTIAL
        assert batch_status([bad]) == RollbackBatchStatus.ALL_FAILED


class TestRollbackTrades:
    async def test_single_buy_restores_state_exactly(
        self,
        trade_service: TradeApplicationService,
        rollback_service: RollbackService,
        db: FakeSession,
        store: FakeStore,
    ) -> None:
        trade_id = await _buy(trade_service, db, "alice", "YES", "100")

        result = await rollback_service.rollback_trades(db, [trade_id])

        assert result.status == "ALL_SUCCEEDED"
        assert (result.succeeded, result.failed) == (1, 0)
        market = store.market("mkt-1")
        assert (market.pool_yes, market.pool_no) == (D("1000"), D("1000"))
        assert market.probability == D("0.5")
        assert market.volume == 0
        assert store.profile("alice").balance == D("1000")
        position = store.position("alice", "mkt-1")
        assert position.is_empty
        assert position.total_invested == 0
        trade = store.state.trades[trade_id]
        assert trade.is_rolled_back
        assert trade.rolled_back_at is not None
        # trade sample + rollback sample
        assert [pt.probability for pt in store.state.history][-1] == D("0.5")
        assert len(store.state.history) == 2

    async def test_second_rollback_fails_without_mutation(
        self,
        trade_service: TradeApplicationService,
        rollback_service: RollbackService,
        db: FakeSession,
        store: FakeStore,
    ) -> None:
        trade_id = await _buy(trade_service, db, "alice", "NO", "40")
        await rollback_service.rollback_trades(db, [trade_id])
        before = store.snapshot()

        result = await rollback_service.rollback_trades(db, [trade_id])

        assert result.status == "ALL_FAILED"
        assert result.results[0].error_code == 4007
        assert store.snapshot() == before

    async def test_partial_batch_across_markets(
        self,
        trade_service: TradeApplicationService,
        rollback_service: RollbackService,
        db: FakeSession,
        store: FakeStore,
    ) -> None:
        store.add_market("mkt-2", p="0.3")
        t1 = await _buy(trade_service, db, "alice", "YES", "10")
        t2 = await _buy(trade_service, db, "bob", "NO", "20", market_id="mkt-2")
        t3 = await _buy(trade_service, db, "bob", "YES", "5")
        await rollback_service.rollback_trades(db, [t3])

        result = await rollback_service.rollback_trades(db, [t1, t2, t3])

        assert result.status == "PARTIAL"
        assert (result.succeeded, result.failed) == (2, 1)
        assert [r.success for r in result.results] == [True, True, False]
        assert result.results[2].error_code == 4007
        assert store.market("mkt-2").pool_no == D("1000")
        assert store.market("mkt-2").probability == D("0.3")
        assert store.profile("bob").balance == D("1000")

    async def test_older_trade_reverses_only_its_own_delta(
        self,
        trade_service: TradeApplicationService,
        rollback_service: RollbackService,
        db: FakeSession,
        store: FakeStore,
    ) -> None:
        first = await _buy(trade_service, db, "alice", "YES", "100")
        await _buy(trade_service, db, "bob", "NO", "30")
        later = store.market("mkt-1")
        t = store.state.trades[first]

        await rollback_service.rollback_trades(db, [first])

        market = store.market("mkt-1")
        assert market.pool_yes == later.pool_yes - (t.amount - t.shares)
        assert market.pool_no == later.pool_no - t.amount
        assert store.position("bob", "mkt-1").no_shares > 0

    async def test_unknown_trade(
        self, rollback_service: RollbackService, db: FakeSession
    ) -> None:
        result = await rollback_service.rollback_trades(db, ["missing"])
        assert result.status == "ALL_FAILED"
        assert result.results[0].error_code == 4004

    async def test_redeem_not_reversible(
        self,
        trade_service: TradeApplicationService,
        rollback_service: RollbackService,
        db: FakeSession,
        store: FakeStore,
    ) -> None:
        store.add_position("alice", "mkt-1", yes="3", no="3")
        redeemed = await trade_service.redeem(db, "alice", "mkt-1")

        result = await rollback_service.rollback_trades(db, [redeemed.trade.id])

        assert result.results[0].error_code == 4008
        assert store.profile("alice").balance == D("1003")

    async def test_resolved_market_rejects_rollback(
        self,
        trade_service: TradeApplicationService,
        rollback_service: RollbackService,
        settlement_service: SettlementService,
        db: FakeSession,
    ) -> None:
        trade_id = await _buy(trade_service, db, "alice", "YES", "10")
        await settlement_service.resolve_market(db, "mkt-1", "YES")

        result = await rollback_service.rollback_trades(db, [trade_id])

        assert result.results[0].error_code == 3002
