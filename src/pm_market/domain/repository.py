# src/pm_market/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market, ProbabilityPoint


class MarketRepositoryProtocol(Protocol):
    async def get_market_by_id(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> Market | None: ...

    async def get_market_for_update(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> Market | None: ...

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def insert_market(self, db: AsyncSession, market: Market) -> None: ...

    async def update_market_state(
        self,
        db: AsyncSession,
        market: Market,
        expected_version: int,
    ) -> bool:
        """Write pools/probability/volume/status/resolution if the version still matches.

        Returns False when another writer got there first; the caller must
        re-read and re-quote. On success market.version is advanced.
        """
        ...

    async def append_probability(
        self,
        db: AsyncSession,
        market_id: str,
        probability: Decimal,
        at: datetime,
    ) -> None: ...

    async def list_probability_history(
        self,
        db: AsyncSession,
        market_id: str,
        limit: int,
    ) -> list[ProbabilityPoint]: ...
