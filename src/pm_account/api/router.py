"""pm_account REST API — balance and positions (JWT required) and the public leaderboard.

GET /account/balance
GET /positions                     — open positions, marked to market
GET /positions/{market_id}
GET /leaderboard                   — users ranked by balance + position value
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.application.service import AccountApplicationService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id

router = APIRouter(tags=["account"])

_service = AccountApplicationService()


@router.get("/account/balance")
async def get_balance(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, user_id)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/positions")
async def list_positions(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_positions(db, user_id)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/positions/{market_id}")
async def get_position(
    market_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_position(db, user_id, market_id)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/leaderboard")
async def get_leaderboard(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(settings.LEADERBOARD_LIMIT, ge=1, le=settings.LEADERBOARD_LIMIT),
) -> ApiResponse:
    data = await _service.get_leaderboard(db, limit)
    return success_response(data.model_dump(mode="json"), request)
