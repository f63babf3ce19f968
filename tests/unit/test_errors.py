"""Tests for pm_common.errors and pm_common.response."""

from unittest.mock import MagicMock

from src.pm_common.errors import (
    AppError,
    ContentionError,
    InsufficientBalanceError,
    LedgerIntegrityError,
    InvalidTradeTypeError,
    MarketNotActiveError,
    MarketNotFoundError,
    TradeAlreadyRolledBackError,
    TradeNotReversibleError,
)
from src.pm_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_is_exception(self) -> None:
        err = AppError(code=1001, message="test")
        assert isinstance(err, Exception)


class TestSpecificErrors:
    def test_insufficient_balance(self) -> None:
        err = InsufficientBalanceError(required="65", available="30.5")
        assert err.code == 2001
        assert err.http_status == 422
        assert "65" in err.message
        assert "30.5" in err.message

    def test_market_not_found(self) -> None:
        err = MarketNotFoundError("mkt-1")
        assert err.code == 3001
        assert err.http_status == 404

    def test_market_closed_message(self) -> None:
        err = MarketNotActiveError("mkt-1")
        assert err.code == 3002
        assert err.message.startswith("Market is closed")

    def test_rollback_errors(self) -> None:
        assert TradeAlreadyRolledBackError("t1").code == 4007
        assert TradeAlreadyRolledBackError("t1").http_status == 409
        assert TradeNotReversibleError("t1", "REDEEM").code == 4008

    def test_invalid_trade_type(self) -> None:
        err = InvalidTradeTypeError("REDEEM", "BUY or SELL")
        assert err.code == 4002
        assert err.http_status == 422

    def test_system_errors(self) -> None:
        assert ContentionError().code == 9003
        assert ContentionError().http_status == 409
        err = LedgerIntegrityError("negative pool")
        assert err.code == 9004
        assert "negative pool" in err.message


class TestResponse:
    def test_success(self) -> None:
        resp = success_response({"x": "1.5"})
        assert isinstance(resp, ApiResponse)
        assert resp.code == 0
        assert resp.data == {"x": "1.5"}
        assert resp.request_id.startswith("req_")

    def test_error(self) -> None:
        resp = error_response(3001, "Market not found")
        assert resp.code == 3001
        assert resp.data is None

    def test_request_id_taken_from_request_state(self) -> None:
        request = MagicMock()
        request.state.request_id = "req_abc"
        assert success_response(None, request).request_id == "req_abc"
        assert error_response(1, "x", request).request_id == "req_abc"
