"""
Market analysis package for the trading engine.

This package provides technical indicators and the snapshots
handed to the advisory oracle.
"""

from .indicators import compute_bollinger_bands, compute_macd, compute_rsi, compute_sma
from .market_analyzer import MarketAnalyzer

__all__ = [
    "compute_bollinger_bands",
    "compute_macd",
    "compute_rsi",
    "compute_sma",
    "MarketAnalyzer",
]
