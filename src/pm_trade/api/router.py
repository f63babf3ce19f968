"""pm_trade REST endpoints — all require JWT authentication.

POST /trades           — placeTrade (BUY amount | SELL shares), rate limited
POST /trades/preview   — quote only, nothing is written
POST /trades/redeem    — cash out matched YES+NO pairs
GET  /trades/mine      — caller's recent trades
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id
from src.pm_gateway.middleware.rate_limit import trade_rate_limit
from src.pm_trade.application.schemas import PlaceTradeRequest
from src.pm_trade.application.service import TradeApplicationService

router = APIRouter(prefix="/trades", tags=["trades"])

_service = TradeApplicationService()


class RedeemRequest(BaseModel):
    market_id: str = Field(..., min_length=1, max_length=64)


@router.post("")
async def place_trade(
    body: PlaceTradeRequest,
    request: Request,
    user_id: Annotated[str, Depends(trade_rate_limit)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.place_trade(db, user_id, body)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/preview")
async def preview_trade(
    body: PlaceTradeRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.preview_trade(db, user_id, body)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/redeem")
async def redeem(
    body: RedeemRequest,
    request: Request,
    user_id: Annotated[str, Depends(trade_rate_limit)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.redeem(db, user_id, body.market_id)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/mine")
async def list_my_trades(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(settings.TRADE_FEED_LIMIT, ge=1, le=settings.TRADE_FEED_LIMIT),
) -> ApiResponse:
    result = await _service.list_user_trades(db, user_id, limit)
    return success_response(result.model_dump(mode="json"), request)
