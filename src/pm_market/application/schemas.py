"""Pydantic schemas for pm_market API requests and responses.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<created_at ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string.
"""

import base64
import json
from decimal import Decimal

from pydantic import BaseModel, Field

from src.pm_common.amounts import format_coins, format_probability
from src.pm_common.datetime_utils import iso_or_none
from src.pm_market.domain.models import Market, ProbabilityPoint

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    """Encode composite cursor from last market in page."""
    payload = {
        "ts": last_market.created_at.isoformat(),
        "id": last_market.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, market_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except (ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(None, max_length=10_000)
    initial_probability: Decimal = Field(Decimal("0.5"))
    initial_liquidity: Decimal = Field(Decimal("1000"))


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class MarketDetail(BaseModel):
    id: str
    question: str
    description: str | None
    creator_id: str | None
    status: str
    probability: Decimal
    probability_display: str
    pool_yes: Decimal
    pool_no: Decimal
    p: Decimal
    total_liquidity: Decimal
    volume: Decimal
    volume_display: str
    resolution: str | None
    resolved_at: str | None
    created_at: str

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        return cls(
            id=m.id,
            question=m.question,
            description=m.description,
            creator_id=m.creator_id,
            status=m.status,
            probability=m.probability,
            probability_display=format_probability(m.probability),
            pool_yes=m.pool_yes,
            pool_no=m.pool_no,
            p=m.p,
            total_liquidity=m.total_liquidity,
            volume=m.volume,
            volume_display=format_coins(m.volume),
            resolution=m.resolution,
            resolved_at=iso_or_none(m.resolved_at),
            created_at=m.created_at.isoformat(),
        )


class MarketListResponse(BaseModel):
    items: list[MarketDetail]
    next_cursor: str | None
    has_more: bool


class ProbabilityPointOut(BaseModel):
    probability: Decimal
    created_at: str

    @classmethod
    def from_domain(cls, point: ProbabilityPoint) -> "ProbabilityPointOut":
        return cls(probability=point.probability, created_at=point.created_at.isoformat())


class ProbabilityHistoryResponse(BaseModel):
    market_id: str
    points: list[ProbabilityPointOut]
