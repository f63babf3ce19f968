"""MarketApplicationService — market creation and read-only queries.

create_market is the only write here and commits its own transaction; a new
market has no concurrent writers, so no market lock is needed.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.pricing import probability_of, seed_pools
from src.pm_common.amounts import ZERO, quantize_probability
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketNotFoundError
from src.pm_common.id_generator import generate_id
from src.pm_market.application.schemas import (
    CreateMarketRequest,
    MarketDetail,
    MarketListResponse,
    ProbabilityHistoryResponse,
    ProbabilityPointOut,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_trade.application.schemas import TradeListResponse, TradeOut
from src.pm_trade.domain.repository import TradeRepositoryProtocol
from src.pm_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        trade_repo: TradeRepositoryProtocol | None = None,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()

    async def create_market(
        self, db: AsyncSession, creator_id: str | None, req: CreateMarketRequest
    ) -> MarketDetail:
        pools, p = seed_pools(req.initial_probability, req.initial_liquidity)
        now = utc_now()
        market = Market(
            id=generate_id("mkt_"),
            question=req.question.strip(),
            description=req.description,
            creator_id=creator_id,
            pool_yes=pools.yes,
            pool_no=pools.no,
            p=p,
            probability=quantize_probability(probability_of(pools.yes, pools.no, p)),
            total_liquidity=pools.yes,
            volume=ZERO,
            status=MarketStatus.ACTIVE.value,
            resolution=None,
            resolved_at=None,
            created_at=now,
            updated_at=now,
        )
        try:
            await self._repo.insert_market(db, market)
            await self._repo.append_probability(db, market.id, market.probability, now)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Market %s created: p=%s liquidity=%s by %s",
            market.id, market.p, market.total_liquidity, creator_id,
        )
        return MarketDetail.from_domain(market)

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        # status=None → default ACTIVE; status='ALL' → no filter
        sql_status = None if status == "ALL" else (status or MarketStatus.ACTIVE.value)
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        markets = await self._repo.list_markets(db, sql_status, cursor_ts, cursor_id, limit + 1)
        has_more = len(markets) > limit
        page = markets[:limit]

        items = [MarketDetail.from_domain(m) for m in page]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return MarketListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market)

    async def get_probability_history(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> ProbabilityHistoryResponse:
        if await self._repo.get_market_by_id(db, market_id) is None:
            raise MarketNotFoundError(market_id)
        points = await self._repo.list_probability_history(db, market_id, limit)
        return ProbabilityHistoryResponse(
            market_id=market_id,
            points=[ProbabilityPointOut.from_domain(pt) for pt in points],
        )

    async def get_trade_feed(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> TradeListResponse:
        if await self._repo.get_market_by_id(db, market_id) is None:
            raise MarketNotFoundError(market_id)
        trades = await self._trades.list_market_trades(db, market_id, limit)
        return TradeListResponse(items=[TradeOut.from_domain(t) for t in trades])
