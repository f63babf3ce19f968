"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.

*_for_update methods take row locks (SELECT ... FOR UPDATE) and must only be
called inside the per-market lock of the calling service.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import MarkedPosition, Position, Profile


class AccountRepositoryProtocol(Protocol):
    async def get_profile(self, db: AsyncSession, user_id: str) -> Profile | None: ...

    async def get_or_create_profile_for_update(
        self, db: AsyncSession, user_id: str
    ) -> Profile: ...

    async def get_profile_for_update(
        self, db: AsyncSession, user_id: str
    ) -> Profile | None: ...

    async def update_balance(self, db: AsyncSession, profile: Profile) -> None: ...

    async def get_position(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> Position | None: ...

    async def get_or_create_position_for_update(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> Position: ...

    async def save_position(self, db: AsyncSession, position: Position) -> None: ...

    async def list_positions_for_update(
        self, db: AsyncSession, market_id: str
    ) -> list[Position]:
        """All positions of a market, locked, ordered by user_id."""
        ...

    async def list_marked_positions_by_user(
        self, db: AsyncSession, user_id: str
    ) -> list[MarkedPosition]:
        """Non-empty positions of a user, each with its market's status and probability."""
        ...

    async def get_marked_position(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> MarkedPosition | None:
        """None only when the market does not exist; a missing position reads as empty."""
        ...

    async def list_portfolio_values(
        self, db: AsyncSession, limit: int
    ) -> list[tuple[Profile, Decimal]]:
        """(profile, value of positions in ACTIVE markets), best total portfolio first."""
        ...
