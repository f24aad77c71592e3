"""
Exchange layer for the trading engine.

This package provides the trading data model, venue pricing and
the simulated price feed.
"""

from .models import Bollinger, ClosedTrade, MACD, MarketSnapshot, PerformanceStats, Position
from .price_feed import SimulatedPriceFeed
from .venues import ExchangeConnections, VENUE_OFFSETS, mark_prices, venue_price

__all__ = [
    "Bollinger",
    "ClosedTrade",
    "ExchangeConnections",
    "MACD",
    "MarketSnapshot",
    "PerformanceStats",
    "Position",
    "SimulatedPriceFeed",
    "VENUE_OFFSETS",
    "mark_prices",
    "venue_price",
]
