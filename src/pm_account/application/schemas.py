"""Pydantic schemas for pm_account API responses."""

from decimal import Decimal

from pydantic import BaseModel

from src.pm_account.domain.ledger import marked_value
from src.pm_account.domain.models import MarkedPosition, Profile
from src.pm_common.amounts import format_coins, format_probability, format_shares
from src.pm_common.datetime_utils import iso_or_none


class BalanceResponse(BaseModel):
    user_id: str
    balance: Decimal
    balance_display: str

    @classmethod
    def from_domain(cls, profile: Profile) -> "BalanceResponse":
        return cls(
            user_id=profile.user_id,
            balance=profile.balance,
            balance_display=format_coins(profile.balance),
        )


class PositionOut(BaseModel):
    market_id: str
    market_question: str
    market_status: str
    probability: Decimal
    probability_display: str
    yes_shares: Decimal
    no_shares: Decimal
    total_invested: Decimal
    value: Decimal                  # mark-to-market; 0 once the market is closed
    pnl: Decimal                    # value - total_invested
    yes_shares_display: str
    no_shares_display: str
    value_display: str
    updated_at: str | None

    @classmethod
    def from_domain(cls, marked: MarkedPosition) -> "PositionOut":
        p = marked.position
        value = marked_value(marked)
        return cls(
            market_id=p.market_id,
            market_question=marked.market_question,
            market_status=marked.market_status,
            probability=marked.probability,
            probability_display=format_probability(marked.probability),
            yes_shares=p.yes_shares,
            no_shares=p.no_shares,
            total_invested=p.total_invested,
            value=value,
            pnl=value - p.total_invested,
            yes_shares_display=format_shares(p.yes_shares),
            no_shares_display=format_shares(p.no_shares),
            value_display=format_coins(value),
            updated_at=iso_or_none(p.updated_at),
        )


class PositionListResponse(BaseModel):
    items: list[PositionOut]
    total_value: Decimal


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    username: str | None
    balance: Decimal
    positions_value: Decimal
    portfolio_value: Decimal        # balance + positions_value
    portfolio_display: str


class LeaderboardResponse(BaseModel):
    items: list[LeaderboardEntry]
