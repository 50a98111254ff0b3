"""Global enums — must match DB CHECK constraints exactly.

See alembic/versions/003_create_markets.py and 004_create_trades.py.
"""

from enum import Enum


class MarketStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    RESOLVED = "RESOLVED"


class TradeSide(str, Enum):
    YES = "YES"
    NO = "NO"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    SOLD = "SOLD"
    # Settled on resolution
    WON = "WON"
    LOST = "LOST"


class ResolutionKind(str, Enum):
    """Which external data check decides a market — set once at creation."""

    STOCK_INDEX = "STOCK_INDEX"
    ELECTRICITY_PRICE = "ELECTRICITY_PRICE"
    TEMPERATURE = "TEMPERATURE"
    NEWS_TRENDING = "NEWS_TRENDING"
    SPORTS_MATCH = "SPORTS_MATCH"
    MANUAL = "MANUAL"


class ScanStatus(str, Enum):
    """Per-market result of a batch resolution scan."""

    RESOLVED = "RESOLVED"
    NO_ORACLE = "NO_ORACLE"
    MANUAL_REQUIRED = "MANUAL_REQUIRED"
    ORACLE_UNAVAILABLE = "ORACLE_UNAVAILABLE"
    ERROR = "ERROR"
