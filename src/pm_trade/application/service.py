"""TradeApplicationService — placeTrade / previewTrade / redeem + trade reads.

Writes go through run_in_market_transaction: the market row, the trader's
profile and position are read FOR UPDATE, the pure executor mutates them,
and everything is written back with a version compare-and-swap on the
market. A lost race re-reads and re-quotes; it never applies a stale quote.
"""

import logging
from dataclasses import replace
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.models import Position, Profile
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_clearing.domain.invariants import verify_trade_state
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import Outcome, TradeType
from src.pm_common.errors import ContentionError, MarketNotFoundError
from src.pm_common.id_generator import generate_id
from src.pm_common.market_locks import MarketLockRegistry, get_market_locks
from src.pm_common.unit_of_work import run_in_market_transaction
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_trade.application.schemas import (
    PlaceTradeRequest,
    PlaceTradeResponse,
    RedeemResponse,
    TradeListResponse,
    TradeOut,
    TradePreviewResponse,
)
from src.pm_trade.domain.executor import (
    TradeExecution,
    execute_redeem,
    execute_trade,
)
from src.pm_trade.domain.repository import TradeRepositoryProtocol
from src.pm_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)


class TradeApplicationService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        trade_repo: TradeRepositoryProtocol | None = None,
        locks: MarketLockRegistry | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._accounts: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()
        self._locks = locks or get_market_locks()
        self._max_retries = max_retries or settings.TRADE_MAX_RETRIES

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def place_trade(
        self, db: AsyncSession, user_id: str, req: PlaceTradeRequest
    ) -> PlaceTradeResponse:
        trade_type = TradeType(req.type)
        outcome = Outcome(req.outcome)

        async def _attempt() -> PlaceTradeResponse:
            market, position, profile = await self._load_for_update(db, user_id, req.market_id)
            expected_version = market.version
            now = utc_now()
            execution = execute_trade(
                market, position, profile, trade_type, outcome, req.quantity,
                trade_id=generate_id(), now=now,
            )
            await self._persist(db, market, expected_version, position, profile, execution)
            await self._markets.append_probability(
                db, market.id, market.probability, now
            )
            return PlaceTradeResponse.from_trade(execution.trade, profile.balance)

        result = await run_in_market_transaction(
            db, req.market_id, _attempt,
            locks=self._locks, max_retries=self._max_retries, operation="trade",
        )
        logger.info(
            "Trade %s: user=%s market=%s %s %s amount=%s shares=%s redeemed=%s prob %s→%s",
            result.trade.id, user_id, req.market_id, req.type, req.outcome,
            result.trade.amount, result.trade.shares, result.redeemed,
            result.trade.prob_before, result.trade.prob_after,
        )
        return result

    async def redeem(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> RedeemResponse:
        async def _attempt() -> RedeemResponse:
            market, position, profile = await self._load_for_update(db, user_id, market_id)
            expected_version = market.version
            execution = execute_redeem(
                market, position, profile, trade_id=generate_id(), now=utc_now()
            )
            await self._persist(db, market, expected_version, position, profile, execution)
            return RedeemResponse(
                trade=TradeOut.from_domain(execution.trade),
                redeemed=execution.redeemed,
                balance=profile.balance,
            )

        result = await run_in_market_transaction(
            db, market_id, _attempt,
            locks=self._locks, max_retries=self._max_retries, operation="redeem",
        )
        logger.info(
            "Redeem %s: user=%s market=%s pairs=%s",
            result.trade.id, user_id, market_id, result.redeemed,
        )
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def preview_trade(
        self, db: AsyncSession, user_id: str, req: PlaceTradeRequest
    ) -> TradePreviewResponse:
        """Quote without locking or writing; same validation as place_trade."""
        market = await self._markets.get_market_by_id(db, req.market_id)
        if market is None:
            raise MarketNotFoundError(req.market_id)
        profile = await self._accounts.get_profile(db, user_id) or Profile(
            user_id=user_id, balance=Decimal(settings.STARTING_BALANCE)
        )
        position = await self._accounts.get_position(db, user_id, req.market_id) or Position(
            user_id=user_id, market_id=req.market_id
        )
        execution = execute_trade(
            replace(market), replace(position), replace(profile),
            TradeType(req.type), Outcome(req.outcome), req.quantity,
            trade_id="preview", now=utc_now(),
        )
        return TradePreviewResponse.from_trade(execution.trade)

    async def list_user_trades(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> TradeListResponse:
        trades = await self._trades.list_user_trades(db, user_id, limit)
        return TradeListResponse(items=[TradeOut.from_domain(t) for t in trades])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_for_update(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> tuple[Market, Position, Profile]:
        # Lock order everywhere: market → profile → position
        market = await self._markets.get_market_for_update(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        profile = await self._accounts.get_or_create_profile_for_update(db, user_id)
        position = await self._accounts.get_or_create_position_for_update(
            db, user_id, market_id
        )
        return market, position, profile

    async def _persist(
        self,
        db: AsyncSession,
        market: Market,
        expected_version: int,
        position: Position,
        profile: Profile,
        execution: TradeExecution,
    ) -> None:
        verify_trade_state(market, position, profile)
        if not await self._markets.update_market_state(db, market, expected_version):
            raise ContentionError()
        await self._accounts.save_position(db, position)
        await self._accounts.update_balance(db, profile)
        await self._trades.insert_trade(db, execution.trade)
