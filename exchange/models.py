"""
Data models for the trading engine.

This module defines the basic data structures used throughout
the engine for representing market snapshots, open positions
and closed trades.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict

from core.types import AccountType, CloseReason, Exchange, Side, StrategyType


@dataclass(frozen=True)
class MACD:
    value: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


@dataclass(frozen=True)
class Bollinger:
    upper: float
    middle: float
    lower: float
    width: float  # band width as % of the middle band


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Indicator view of one instrument at the latest tick.

    Produced by the market analyzer; read-only to the core.
    """
    instrument: str
    price: float
    rsi: float
    macd: MACD
    bollinger: Bollinger
    ma21: float
    ma55: float
    ma200: float
    support: float
    resistance: float
    volatility: float        # std of tick returns, %
    change24h: float = 0.0   # % change over the retained history
    trend_up: bool = True    # price above MA200

    def ma_aligned_bullish(self) -> bool:
        return self.ma21 > self.ma55 > self.ma200

    def rsi_zone(self) -> str:
        if self.rsi > 70:
            return "OVERBOUGHT"
        if self.rsi < 30:
            return "OVERSOLD"
        return "NEUTRAL"


@dataclass(frozen=True)
class Position:
    """
    Represents an open leveraged position.

    Immutable once created; the only transition is into a ClosedTrade.
    Leverage, venue, account and exit levels are captured at open time so
    later operator changes never apply retroactively.
    """
    id: str
    instrument: str
    side: Side
    entry_price: float
    quantity: float
    leverage: int
    strategy: StrategyType
    timeframe: str
    venue: Exchange
    account: AccountType
    opened_at: datetime
    take_profit_price: float
    stop_loss_price: float
    confidence: float = 0.0

    def __post_init__(self):
        if not 0 < self.entry_price < math.inf:
            raise ValueError(f"entry_price must be positive, got {self.entry_price}")
        if not 0 < self.quantity < math.inf:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        if not 1 <= self.leverage < math.inf:
            raise ValueError(f"leverage must be >= 1, got {self.leverage}")

    def __str__(self) -> str:
        return (
            f"Position({self.instrument} {self.side.value} x{self.leverage} @ {self.entry_price:,.2f}: "
            f"qty={self.quantity:.6f}, tp={self.take_profit_price:,.2f}, sl={self.stop_loss_price:,.2f}, "
            f"{self.account.value}/{self.venue.value})"
        )

    @property
    def margin(self) -> float:
        """Capital committed to the position."""
        return self.quantity * self.entry_price / self.leverage


@dataclass(frozen=True)
class ClosedTrade:
    """A settled position. Created exactly once per position, append-only."""
    position: Position
    exit_price: float
    realized_pnl: float        # net of fee
    realized_pnl_pct: float    # leveraged ROI on margin, before fee
    fee: float
    closed_at: datetime
    reason: CloseReason = CloseReason.MANUAL

    def __post_init__(self):
        if not 0 < self.exit_price < math.inf:
            raise ValueError(f"exit_price must be positive, got {self.exit_price}")
        if not 0 <= self.fee < math.inf:
            raise ValueError(f"fee must be non-negative, got {self.fee}")
        if self.closed_at < self.position.opened_at:
            raise ValueError("closed_at precedes opened_at")

    @property
    def id(self) -> str:
        return self.position.id

    @property
    def account(self) -> AccountType:
        return self.position.account

    @property
    def instrument(self) -> str:
        return self.position.instrument

    def to_dict(self) -> Dict[str, Any]:
        """Flat, JSON-friendly row used by exports and the advisory history."""
        pos = self.position
        return {
            "id": pos.id,
            "instrument": pos.instrument,
            "side": pos.side.value,
            "entry_price": pos.entry_price,
            "exit_price": self.exit_price,
            "quantity": pos.quantity,
            "leverage": pos.leverage,
            "strategy": pos.strategy.value,
            "timeframe": pos.timeframe,
            "venue": pos.venue.value,
            "account": pos.account.value,
            "opened_at": pos.opened_at.isoformat(),
            "closed_at": self.closed_at.isoformat(),
            "realized_pnl": self.realized_pnl,
            "realized_pnl_pct": self.realized_pnl_pct,
            "fee": self.fee,
            "reason": self.reason.value,
        }


@dataclass(frozen=True)
class PerformanceStats:
    win_rate: float = 0.0
    total_pnl: float = 0.0
    total_trades: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
