"""
Type definitions for the trading engine.

This module contains enums and type definitions used throughout
the engine: position sides, ledger accounts, venues, advisory signals
and activity log severities.
"""

from enum import Enum


class Side(str, Enum):
    """
    Direction of a leveraged position.

    - LONG: profits when the price rises
    - SHORT: profits when the price falls
    """
    LONG = "LONG"
    SHORT = "SHORT"

    def direction(self) -> int:
        """Return +1 for LONG and -1 for SHORT."""
        return 1 if self is Side.LONG else -1


class AccountType(str, Enum):
    """
    Ledger account a position is booked against.

    - DEMO: virtual funds
    - REAL: funds tracked in parallel with a real exchange account
    """
    DEMO = "DEMO"
    REAL = "REAL"


class Exchange(str, Enum):
    """Venues the operator can select. Each venue quotes with its own offset."""
    BINANCE = "BINANCE"
    BYBIT = "BYBIT"
    MEXC = "MEXC"


class StrategyType(str, Enum):
    """
    Strategy tag passed to the advisory oracle.

    - SCALP: short cycles, Bollinger bands and RSI extremes
    - DAY_TRADE: trend following on MA 21/55/200 crossings
    """
    SCALP = "SCALP"
    DAY_TRADE = "DAY_TRADE"


class Signal(str, Enum):
    """Advisory recommendation."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    def to_side(self) -> "Side | None":
        if self is Signal.BUY:
            return Side.LONG
        if self is Signal.SELL:
            return Side.SHORT
        return None


class Severity(str, Enum):
    """Activity log severities."""
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class CloseReason(str, Enum):
    """Why a position left the open set."""
    TAKE_PROFIT = "TAKE_PROFIT"
    STOP_LOSS = "STOP_LOSS"
    MANUAL = "MANUAL"


TIMEFRAMES = ("5m", "15m", "30m", "1h", "4h", "1d")
