"""AccountApplicationService — read-only balance, position and portfolio queries.

Balances and positions are only ever written by the trade, rollback and
settlement services; nothing here commits.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.application.schemas import (
    BalanceResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    PositionListResponse,
    PositionOut,
)
from src.pm_account.domain.models import Profile
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_common.amounts import format_coins
from src.pm_common.errors import MarketNotFoundError


class AccountApplicationService:
    def __init__(self, repo: AccountRepositoryProtocol | None = None) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        # A user who has never traded has no row yet; show the starting balance
        profile = await self._repo.get_profile(db, user_id) or Profile(
            user_id=user_id, balance=Decimal(settings.STARTING_BALANCE)
        )
        return BalanceResponse.from_domain(profile)

    async def list_positions(self, db: AsyncSession, user_id: str) -> PositionListResponse:
        marked = await self._repo.list_marked_positions_by_user(db, user_id)
        items = [PositionOut.from_domain(m) for m in marked]
        return PositionListResponse(
            items=items, total_value=sum((i.value for i in items), Decimal(0))
        )

    async def get_position(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> PositionOut:
        marked = await self._repo.get_marked_position(db, user_id, market_id)
        if marked is None:
            raise MarketNotFoundError(market_id)
        return PositionOut.from_domain(marked)

    async def get_leaderboard(self, db: AsyncSession, limit: int) -> LeaderboardResponse:
        rows = await self._repo.list_portfolio_values(db, limit)
        entries = []
        for rank, (profile, positions_value) in enumerate(rows, start=1):
            total = profile.balance + positions_value
            entries.append(
                LeaderboardEntry(
                    rank=rank,
                    user_id=profile.user_id,
                    username=profile.username,
                    balance=profile.balance,
                    positions_value=positions_value,
                    portfolio_value=total,
                    portfolio_display=format_coins(total),
                )
            )
        return LeaderboardResponse(items=entries)
