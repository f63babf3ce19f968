"""Pydantic schemas for rollback and resolution results."""

from decimal import Decimal

from pydantic import BaseModel, Field


class RollbackRequest(BaseModel):
    trade_ids: list[str] = Field(..., min_length=1, max_length=500)


class RollbackItemResult(BaseModel):
    trade_id: str
    success: bool
    error_code: int | None = None
    error: str | None = None


class RollbackBatchResponse(BaseModel):
    status: str                       # RollbackBatchStatus
    succeeded: int
    failed: int
    results: list[RollbackItemResult]


class ResolveRequest(BaseModel):
    """`resolution` is "YES", "NO", "N/A", or a number in [0, 1]."""

    resolution: str | Decimal


class ResolveResponse(BaseModel):
    market_id: str
    resolution: str
    positions_settled: int
    total_payout: Decimal
