"""Pydantic schemas for pm_trade API requests and responses.

Decimal fields serialize as strings under model_dump(mode="json").
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from src.pm_common.amounts import format_coins, format_probability, format_shares
from src.pm_common.datetime_utils import iso_or_none
from src.pm_common.errors import InvalidAmountError
from src.pm_trade.domain.models import Trade


class PlaceTradeRequest(BaseModel):
    """BUY takes a coin `amount`; SELL takes a share count `shares`."""

    market_id: str = Field(..., min_length=1, max_length=64)
    type: Literal["BUY", "SELL"]
    outcome: Literal["YES", "NO"]
    amount: Decimal | None = None
    shares: Decimal | None = None

    @model_validator(mode="after")
    def _quantity_matches_type(self) -> "PlaceTradeRequest":
        if self.type == "BUY" and self.amount is None:
            raise ValueError("BUY requires amount")
        if self.type == "SELL" and self.shares is None:
            raise ValueError("SELL requires shares")
        return self

    @property
    def quantity(self) -> Decimal:
        field = "amount" if self.type == "BUY" else "shares"
        value = getattr(self, field)
        if value is None:
            raise InvalidAmountError(f"{self.type} requires {field}")
        return value


class TradeOut(BaseModel):
    id: str
    market_id: str
    user_id: str
    type: str
    outcome: str
    amount: Decimal
    shares: Decimal
    redeemed: Decimal
    prob_before: Decimal
    prob_after: Decimal
    is_rolled_back: bool
    rolled_back_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, t: Trade) -> "TradeOut":
        return cls(
            id=t.id,
            market_id=t.market_id,
            user_id=t.user_id,
            type=t.type,
            outcome=t.outcome,
            amount=t.amount,
            shares=t.shares,
            redeemed=t.redeemed,
            prob_before=t.prob_before,
            prob_after=t.prob_after,
            is_rolled_back=t.is_rolled_back,
            rolled_back_at=iso_or_none(t.rolled_back_at),
            created_at=iso_or_none(t.created_at),
        )


class TradeListResponse(BaseModel):
    items: list[TradeOut]


class PlaceTradeResponse(BaseModel):
    trade: TradeOut
    shares: Decimal | None          # BUY: shares received
    payout: Decimal | None          # SELL: coins received
    redeemed: Decimal               # pairs auto-redeemed (BUY)
    new_probability: Decimal
    balance: Decimal

    @classmethod
    def from_trade(cls, trade: Trade, balance: Decimal) -> "PlaceTradeResponse":
        is_buy = trade.type == "BUY"
        return cls(
            trade=TradeOut.from_domain(trade),
            shares=trade.shares if is_buy else None,
            payout=None if is_buy else trade.amount,
            redeemed=trade.redeemed,
            new_probability=trade.prob_after,
            balance=balance,
        )


class TradePreviewResponse(BaseModel):
    market_id: str
    type: str
    outcome: str
    amount: Decimal                 # coins in (BUY) / out (SELL)
    shares: Decimal                 # shares out (BUY) / sold after clamping (SELL)
    redeemed: Decimal
    prob_before: Decimal
    prob_after: Decimal
    average_price: Decimal
    amount_display: str
    shares_display: str
    prob_after_display: str

    @classmethod
    def from_trade(cls, trade: Trade) -> "TradePreviewResponse":
        average = trade.amount / trade.shares if trade.shares else Decimal(0)
        return cls(
            market_id=trade.market_id,
            type=trade.type,
            outcome=trade.outcome,
            amount=trade.amount,
            shares=trade.shares,
            redeemed=trade.redeemed,
            prob_before=trade.prob_before,
            prob_after=trade.prob_after,
            average_price=average.quantize(Decimal("0.000001")),
            amount_display=format_coins(trade.amount),
            shares_display=format_shares(trade.shares),
            prob_after_display=format_probability(trade.prob_after),
        )


class RedeemResponse(BaseModel):
    trade: TradeOut
    redeemed: Decimal
    balance: Decimal
