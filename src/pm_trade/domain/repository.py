"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_trade.domain.models import Trade


class TradeRepositoryProtocol(Protocol):
    async def insert_trade(self, db: AsyncSession, trade: Trade) -> None: ...

    async def get_trade(self, db: AsyncSession, trade_id: str) -> Trade | None: ...

    async def get_trade_for_update(
        self, db: AsyncSession, trade_id: str
    ) -> Trade | None: ...

    async def mark_rolled_back(
        self, db: AsyncSession, trade_id: str, at: datetime
    ) -> bool:
        """Flip is_rolled_back false → true. False if it was already true."""
        ...

    async def list_market_trades(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[Trade]: ...

    async def list_user_trades(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[Trade]: ...
