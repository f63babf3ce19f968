"""pm_market REST endpoints — public, read-only.

GET /markets                          — list with cursor pagination
GET /markets/{market_id}              — full detail incl. pools and probability
GET /markets/{market_id}/history      — probability series, oldest first
GET /markets/{market_id}/trades       — most recent trades, newest first
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.get("")
async def list_markets(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(
        None, description="Filter by status. Default: ACTIVE. Use ALL for no filter."
    ),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_markets(db, status, cursor, limit)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/{market_id}/history")
async def get_probability_history(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(settings.HISTORY_LIMIT, ge=1, le=settings.HISTORY_LIMIT),
) -> ApiResponse:
    result = await _service.get_probability_history(db, market_id, limit)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/{market_id}/trades")
async def get_trade_feed(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(settings.TRADE_FEED_LIMIT, ge=1, le=settings.TRADE_FEED_LIMIT),
) -> ApiResponse:
    result = await _service.get_trade_feed(db, market_id, limit)
    return success_response(result.model_dump(mode="json"), request)
