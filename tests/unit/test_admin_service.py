"""AdminService — composition and the invariant sweep."""

from decimal import Decimal

import pytest
from fakes import FakeMarketRepository, FakeSession, FakeStore

from src.pm_admin.application.service import AdminService
from src.pm_clearing.application.rollback_service import RollbackService
from src.pm_clearing.application.settlement_service import SettlementService
from src.pm_market.application.schemas import CreateMarketRequest
from src.pm_market.application.service import MarketApplicationService


@pytest.fixture
def admin_service(
    market_service: MarketApplicationService,
    rollback_service: RollbackService,
    settlement_service: SettlementService,
    market_repo: FakeMarketRepository,
) -> AdminService:
    return AdminService(
        markets=market_service,
        rollback=rollback_service,
        settlement=settlement_service,
        market_repo=market_repo,
    )


async def test_sweep_clean(admin_service: AdminService, db: FakeSession) -> None:
    report = await admin_service.verify_all_invariants(db)
    assert report == {"ok": True, "markets_checked": 1, "violations": []}


async def test_sweep_reports_stale_probability(
    admin_service: AdminService, db: FakeSession, store: FakeStore
) -> None:
    store.state.markets["mkt-1"].probability = Decimal("0.6")

    report = await admin_service.verify_all_invariants(db)

    assert report["ok"] is False
    assert len(report["violations"]) == 1
    assert "mkt-1" in report["violations"][0]


async def test_sweep_skips_resolved_markets(
    admin_service: AdminService, db: FakeSession, store: FakeStore
) -> None:
    await admin_service.resolve_market(db, "mkt-1", "N/A")
    report = await admin_service.verify_all_invariants(db)
    assert report["markets_checked"] == 0


async def test_create_market_records_admin_as_creator(
    admin_service: AdminService, db: FakeSession, store: FakeStore
) -> None:
    detail = await admin_service.create_market(db, "root", CreateMarketRequest(question="Q?"))
    assert store.market(detail.id).creator_id == "root"
