"""SettlementService — resolveMarket.

Status check, status flip, position sweep and balance credits all happen in
one transaction under the market lock with the market row FOR UPDATE, so no
trade can commit between reading positions and closing the market.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_clearing.application.schemas import ResolveResponse
from src.pm_clearing.domain.resolution import parse_resolution, resolved_probability
from src.pm_clearing.domain.settlement import close_market, settle_positions
from src.pm_common.amounts import ZERO
from src.pm_common.datetime_utils import utc_now
from src.pm_common.errors import (
    ContentionError,
    MarketNotFoundError,
    ProfileNotFoundError,
)
from src.pm_common.market_locks import MarketLockRegistry, get_market_locks
from src.pm_common.unit_of_work import run_in_market_transaction
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class SettlementService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        locks: MarketLockRegistry | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._accounts: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._locks = locks or get_market_locks()
        self._max_retries = max_retries or settings.TRADE_MAX_RETRIES

    async def resolve_market(
        self, db: AsyncSession, market_id: str, raw_resolution: object
    ) -> ResolveResponse:
        resolution = parse_resolution(raw_resolution)

        async def _attempt() -> ResolveResponse:
            market = await self._markets.get_market_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            expected_version = market.version
            now = utc_now()
            close_market(market, resolution, now)

            positions = await self._accounts.list_positions_for_update(db, market_id)
            held = [p for p in positions if not p.is_empty]
            payouts = settle_positions(held, resolution)

            for position in held:
                await self._accounts.save_position(db, position)
            for payout in sorted(payouts, key=lambda p: p.user_id):
                profile = await self._accounts.get_profile_for_update(db, payout.user_id)
                if profile is None:
                    raise ProfileNotFoundError(payout.user_id)
                profile.balance += payout.amount
                await self._accounts.update_balance(db, profile)

            if not await self._markets.update_market_state(db, market, expected_version):
                raise ContentionError()
            await self._markets.append_probability(
                db, market_id, resolved_probability(resolution, market.probability), now
            )
            return ResolveResponse(
                market_id=market_id,
                resolution=market.resolution or "",
                positions_settled=len(held),
                total_payout=sum((p.amount for p in payouts), ZERO),
            )

        result = await run_in_market_transaction(
            db, market_id, _attempt,
            locks=self._locks, max_retries=self._max_retries, operation="resolve",
        )
        logger.info(
            "Market %s resolved %s: %d positions settled, %s paid out",
            market_id, result.resolution, result.positions_settled, result.total_payout,
        )
        return result
