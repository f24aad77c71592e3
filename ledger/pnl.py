"""
Profit and loss arithmetic.

Pure functions over positions, prices and trade history. Nothing here
holds state; equity and PnL are always recomputed from their inputs.
"""

import math
from typing import Iterable, Mapping, Optional

from core.types import Side
from exchange.models import ClosedTrade, Position

DEFAULT_FEE_RATE = 0.0004  # 4 bps, charged once per round trip


def pnl_pct(side: Side, entry_price: float, price: float, leverage: float) -> float:
    """
    Leveraged return on margin, in percent.

    LONG gains when ``price`` rises above ``entry_price``, SHORT when it
    falls below.
    """
    if not 0 < entry_price < math.inf:
        raise ValueError(f"entry_price must be positive, got {entry_price}")
    delta = (price - entry_price) * Side(side).direction()
    return delta / entry_price * 100 * leverage


def margin(quantity: float, entry_price: float, leverage: float) -> float:
    """Capital committed to a position."""
    if not 0 < leverage < math.inf:
        raise ValueError(f"leverage must be positive, got {leverage}")
    return quantity * entry_price / leverage


def position_pnl(position: Position, price: float, leverage: Optional[float] = None) -> float:
    """PnL of one position at ``price`` (before fees)."""
    lev = position.leverage if leverage is None else leverage
    pct = pnl_pct(position.side, position.entry_price, price, lev)
    return pct / 100 * margin(position.quantity, position.entry_price, lev)


def unrealized_pnl(
    positions: Iterable[Position],
    current_prices: Mapping[str, float],
    leverage: Optional[float] = None,
) -> float:
    """
    Sum of open-position PnL at current prices.

    Args:
        positions: Open positions in scope
        current_prices: Instrument -> current price. A missing or unusable
            price falls back to the entry price, contributing zero.
        leverage: Override applied to every position; by default each
            position uses the leverage captured when it was opened

    Returns:
        Total unrealized PnL
    """
    total = 0.0
    for position in positions:
        price = current_prices.get(position.instrument)
        if price is None or not 0 < price < math.inf:
            price = position.entry_price
        total += position_pnl(position, price, leverage)
    return total


def round_trip_fee(quantity: float, entry_price: float, fee_rate: float = DEFAULT_FEE_RATE) -> float:
    if fee_rate < 0:
        raise ValueError(f"fee_rate must be non-negative, got {fee_rate}")
    return quantity * entry_price * fee_rate


def win_rate(history: Iterable[ClosedTrade]) -> float:
    """Share of trades with positive realized PnL, in percent. 0 for an empty history."""
    trades = list(history)
    if not trades:
        return 0.0
    wins = sum(1 for trade in trades if trade.realized_pnl > 0)
    return wins / len(trades) * 100


def cumulative_pnl(history: Iterable[ClosedTrade]) -> float:
    return sum(trade.realized_pnl for trade in history)
