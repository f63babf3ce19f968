# src/pm_admin/api/router.py
"""Admin REST API — all endpoints require profiles.is_admin.

POST /admin/markets                       — createMarket
POST /admin/trades/rollback               — rollbackTrades (per-item results)
POST /admin/markets/{market_id}/resolve   — resolveMarket
GET  /admin/invariants                    — ledger invariant sweep
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.application.service import AdminService
from src.pm_clearing.application.schemas import ResolveRequest, RollbackRequest
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_admin
from src.pm_market.application.schemas import CreateMarketRequest

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.post("/markets")
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_market(db, admin_id, body)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/trades/rollback")
async def rollback_trades(
    body: RollbackRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.rollback_trades(db, body.trade_ids)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_market(db, market_id, body.resolution)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.verify_all_invariants(db)
    return success_response(result, request)
