"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: User
  2xxx: Balance
  3xxx: Market / pool state
  4xxx: Trade / position
  6xxx: Admin
  9xxx: System
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


# --- 1xxx: User ---

class InvalidEmailError(AppError):
    def __init__(self, email: str) -> None:
        super().__init__(1001, f"Invalid email address: {email!r}", 422)


class UserNotFoundError(AppError):
    def __init__(self, email: str) -> None:
        super().__init__(1002, f"User not found: {email}", 404)


# --- 2xxx: Balance ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: float, available: float) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required €{required:.2f}, available €{available:.2f}",
            422,
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketNotActiveError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3002, f"Market is closed for trading: {market_id}", 422)


class MarketAlreadyResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Market already resolved: {market_id}", 409)


class PoolIntegrityError(AppError):
    def __init__(self, market_id: str, detail: str) -> None:
        super().__init__(
            3004, f"Pool state of market {market_id} failed integrity check: {detail}", 409
        )


class StalePoolError(AppError):
    def __init__(self, market_id: str) -> None:
        self.market_id = market_id
        super().__init__(
            3005, f"Pool state of market {market_id} changed during the operation, retry", 409
        )


class InvalidMarketParamsError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3006, f"Invalid market parameters: {detail}", 422)


# --- 4xxx: Trade / position ---

class TradeRejectedError(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__(4001, reason, 422)


class TradeNotFoundError(AppError):
    def __init__(self, trade_id: str) -> None:
        super().__init__(4004, f"Position not found: {trade_id}", 404)


class PositionClosedError(AppError):
    def __init__(self, trade_id: str, status: str) -> None:
        super().__init__(4006, f"Position {trade_id} is already closed ({status})", 409)


class NoLiquidityError(AppError):
    def __init__(self, trade_id: str) -> None:
        super().__init__(4007, f"No liquidity to redeem position {trade_id} into", 422)


# --- 6xxx: Admin ---

class AdminKeyRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(6001, "Valid X-Admin-Key header required", 403)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InvalidRequestError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Invalid request: {detail}", 422)


class StorageConflictError(AppError):
    def __init__(self, key: str) -> None:
        super().__init__(
            9004, f"Could not complete the operation on {key}, please retry", 503
        )
