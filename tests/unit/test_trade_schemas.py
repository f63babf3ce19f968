"""Tests for pm_trade request schemas."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.pm_common.errors import InvalidAmountError
from src.pm_trade.application.schemas import PlaceTradeRequest


class TestPlaceTradeRequest:
    def test_buy_quantity_is_amount(self) -> None:
        req = PlaceTradeRequest(market_id="m", type="BUY", outcome="YES", amount=Decimal("10"))
        assert req.quantity == Decimal("10")

    def test_sell_quantity_is_shares(self) -> None:
        req = PlaceTradeRequest(market_id="m", type="SELL", outcome="NO", shares=Decimal("4"))
        assert req.quantity == Decimal("4")

    def test_sell_without_shares_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlaceTradeRequest(market_id="m", type="SELL", outcome="NO", amount=Decimal("4"))

    def test_unvalidated_request_without_quantity_raises_coded_error(self) -> None:
        req = PlaceTradeRequest.model_construct(market_id="m", type="BUY", outcome="YES")
        with pytest.raises(InvalidAmountError) as exc_info:
            _ = req.quantity
        assert exc_info.value.code == 4001
