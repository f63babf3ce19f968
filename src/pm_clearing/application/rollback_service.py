"""RollbackService — best-effort batch reversal of committed trades.

Each trade id is its own unit of work (own market lock, own transaction).
A failure is recorded as data in the result list and never aborts the
rest of the batch.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_clearing.application.schemas import RollbackBatchResponse, RollbackItemResult
from src.pm_clearing.domain.invariants import verify_trade_state
from src.pm_clearing.domain.rollback import reverse_trade
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import RollbackBatchStatus
from src.pm_common.errors import (
    AppError,
    ContentionError,
    InternalError,
    MarketNotFoundError,
    ProfileNotFoundError,
    TradeAlreadyRolledBackError,
    TradeNotFoundError,
)
from src.pm_common.market_locks import MarketLockRegistry, get_market_locks
from src.pm_common.unit_of_work import run_in_market_transaction
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_trade.domain.repository import TradeRepositoryProtocol
from src.pm_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)


def batch_status(results: list[RollbackItemResult]) -> RollbackBatchStatus:
    succeeded = sum(1 for r in results if r.success)
    if succeeded == len(results):
        return RollbackBatchStatus.ALL_SUCCEEDED
    if succeeded == 0:
        return RollbackBatchStatus.ALL_FAILED
    return RollbackBatchStatus.PARTIAL


class RollbackService:
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

    async def rollback_trades(
        self, db: AsyncSession, trade_ids: list[str]
    ) -> RollbackBatchResponse:
        results: list[RollbackItemResult] = []
        for trade_id in trade_ids:
            try:
                await self._rollback_one(db, trade_id)
                results.append(RollbackItemResult(trade_id=trade_id, success=True))
            except AppError as e:
                logger.warning("Rollback of trade %s failed: [%d] %s", trade_id, e.code, e.message)
                results.append(
                    RollbackItemResult(
                        trade_id=trade_id, success=False, error_code=e.code, error=e.message
                    )
                )
            except Exception:
                logger.exception("Rollback of trade %s failed unexpectedly", trade_id)
                await db.rollback()
                err = InternalError()
                results.append(
                    RollbackItemResult(
                        trade_id=trade_id, success=False, error_code=err.code, error=err.message
                    )
                )

        succeeded = sum(1 for r in results if r.success)
        status = batch_status(results)
        logger.info(
            "Rollback batch: %d requested, %d succeeded, status=%s",
            len(trade_ids), succeeded, status.value,
        )
        return RollbackBatchResponse(
            status=status.value,
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
        )

    async def _rollback_one(self, db: AsyncSession, trade_id: str) -> None:
        # Unlocked read only to learn which market lock to take
        peek = await self._trades.get_trade(db, trade_id)
        await db.rollback()
        if peek is None:
            raise TradeNotFoundError(trade_id)
        market_id = peek.market_id

        async def _attempt() -> None:
            market = await self._markets.get_market_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            trade = await self._trades.get_trade_for_update(db, trade_id)
            if trade is None:
                raise TradeNotFoundError(trade_id)
            profile = await self._accounts.get_profile_for_update(db, trade.user_id)
            if profile is None:
                raise ProfileNotFoundError(trade.user_id)
            position = await self._accounts.get_or_create_position_for_update(
                db, trade.user_id, market_id
            )
            expected_version = market.version
            now = utc_now()

            reverse_trade(trade, market, position, profile)
            verify_trade_state(market, position, profile)

            if not await self._markets.update_market_state(db, market, expected_version):
                raise ContentionError()
            if not await self._trades.mark_rolled_back(db, trade_id, now):
                raise TradeAlreadyRolledBackError(trade_id)
            await self._accounts.save_position(db, position)
            await self._accounts.update_balance(db, profile)
            await self._markets.append_probability(db, market_id, market.probability, now)

        await run_in_market_transaction(
            db, market_id, _attempt,
            locks=self._locks, max_retries=self._max_retries, operation="rollback",
        )
        logger.info("Rolled back trade %s on market %s", trade_id, market_id)
