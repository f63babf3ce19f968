# src/pm_admin/application/service.py
"""Admin application service — thin composition over market, rollback and settlement."""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.application.rollback_service import RollbackService
from src.pm_clearing.application.schemas import RollbackBatchResponse, ResolveResponse
from src.pm_clearing.application.settlement_service import SettlementService
from src.pm_clearing.domain.invariants import market_violations
from src.pm_market.application.schemas import CreateMarketRequest, MarketDetail
from src.pm_market.application.service import MarketApplicationService
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

_INVARIANT_SWEEP_LIMIT = 10_000


class AdminService:
    def __init__(
        self,
        markets: MarketApplicationService | None = None,
        rollback: RollbackService | None = None,
        settlement: SettlementService | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
    ) -> None:
        self._markets = markets or MarketApplicationService()
        self._rollback = rollback or RollbackService()
        self._settlement = settlement or SettlementService()
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()

    async def create_market(
        self, db: AsyncSession, admin_id: str, req: CreateMarketRequest
    ) -> MarketDetail:
        return await self._markets.create_market(db, admin_id, req)

    async def rollback_trades(
        self, db: AsyncSession, trade_ids: list[str]
    ) -> RollbackBatchResponse:
        return await self._rollback.rollback_trades(db, trade_ids)

    async def resolve_market(
        self, db: AsyncSession, market_id: str, resolution: object
    ) -> ResolveResponse:
        return await self._settlement.resolve_market(db, market_id, resolution)

    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, Any]:
        """Check pool/probability/volume invariants of every active market."""
        markets = await self._market_repo.list_markets(
            db, "ACTIVE", None, None, _INVARIANT_SWEEP_LIMIT
        )
        violations: list[str] = []
        for market in markets:
            violations.extend(market_violations(market))
        return {
            "ok": not violations,
            "markets_checked": len(markets),
            "violations": violations,
        }
