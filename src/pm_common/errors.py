"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Identity
  2xxx: Account
  3xxx: Market
  4xxx: Trade
  5xxx: Position
  9xxx: System

Validation errors (1xxx-5xxx) never mutate state. ContentionError is the
only retryable error. LedgerIntegrityError means a computed delta would
break a ledger invariant; the operation is aborted, never clamped.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Identity ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin privileges required", 403)


# --- 2xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


class ProfileNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Profile not found for user {user_id}", 404)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketNotActiveError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3002, f"Market is closed: {market_id}", 422)


class InvalidMarketParametersError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3003, f"Invalid market parameters: {detail}", 422)


class InvalidResolutionError(AppError):
    def __init__(self, value: object) -> None:
        super().__init__(3004, f"Invalid resolution: {value!r}", 422)


# --- 4xxx: Trade ---

class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid amount: {detail}", 422)


class InvalidTradeTypeError(AppError):
    def __init__(self, trade_type: str, allowed: str) -> None:
        super().__init__(4002, f"Invalid trade type {trade_type}: expected {allowed}", 422)


class TradeNotFoundError(AppError):
    def __init__(self, trade_id: str) -> None:
        super().__init__(4004, f"Trade not found: {trade_id}", 404)


class TradeAlreadyRolledBackError(AppError):
    def __init__(self, trade_id: str) -> None:
        super().__init__(4007, f"Trade already rolled back: {trade_id}", 409)


class TradeNotReversibleError(AppError):
    def __init__(self, trade_id: str, trade_type: str) -> None:
        super().__init__(
            4008, f"Trade {trade_id} of type {trade_type} cannot be rolled back", 422
        )


# --- 5xxx: Position ---

class InsufficientSharesError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Insufficient shares: {detail}", 422)


class NothingToRedeemError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(5002, f"No YES/NO pairs to redeem in market {market_id}", 422)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ContentionError(AppError):
    def __init__(self, detail: str = "Concurrent update, please try again") -> None:
        super().__init__(9003, detail, 409)


class LedgerIntegrityError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9004, f"Ledger integrity violation: {detail}", 422)
