"""
Technical indicators for market snapshots

Helper functions that work on a pandas Series of tick prices.
"""

from typing import Dict

import numpy as np
import pandas as pd


def compute_sma(prices: pd.Series, period: int) -> pd.Series:
    """
    Simple moving average.

    Uses whatever history is available while the window is filling up,
    so a short series still yields a usable value.
    """
    return prices.rolling(window=period, min_periods=1).mean()


def compute_rsi(prices: pd.Series, period: int = 14) -> pd.Series:
    """
    Compute Relative Strength Index

    Args:
        prices: Series of prices
        period: RSI period

    Returns:
        Series with RSI values in [0, 100]. Flat stretches read as 50,
        stretches with gains and no losses as 100.
    """
    delta = prices.diff()
    gain = delta.where(delta > 0, 0.0).rolling(window=period, min_periods=1).mean()
    loss = (-delta.where(delta < 0, 0.0)).rolling(window=period, min_periods=1).mean()

    rs = gain / loss.replace(0.0, np.nan)
    rsi = 100 - (100 / (1 + rs))

    rsi = rsi.mask((loss == 0) & (gain > 0), 100.0)
    return rsi.fillna(50.0).clip(0.0, 100.0)


def compute_macd(
    prices: pd.Series,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> Dict[str, pd.Series]:
    """
    Compute MACD line, signal line and histogram.

    Returns:
        Dictionary with 'value', 'signal', 'histogram'
    """
    ema_fast = prices.ewm(span=fast, adjust=False).mean()
    ema_slow = prices.ewm(span=slow, adjust=False).mean()

    value = ema_fast - ema_slow
    signal_line = value.ewm(span=signal, adjust=False).mean()

    return {
        'value': value,
        'signal': signal_line,
        'histogram': value - signal_line,
    }


def compute_bollinger_bands(
    prices: pd.Series,
    period: int = 20,
    num_std: float = 2.0,
) -> Dict[str, pd.Series]:
    """
    Calculate Bollinger Bands

    Args:
        prices: Series of prices
        period: Rolling window
        num_std: Band distance in standard deviations

    Returns:
        Dictionary with 'upper', 'middle', 'lower' bands and 'width'
        (upper - lower as % of middle)
    """
    middle = prices.rolling(window=period, min_periods=1).mean()
    std = prices.rolling(window=period, min_periods=1).std(ddof=0).fillna(0.0)

    upper = middle + (std * num_std)
    lower = middle - (std * num_std)
    width = ((upper - lower) / middle * 100).fillna(0.0)

    return {
        'upper': upper,
        'middle': middle,
        'lower': lower,
        'width': width,
    }


def compute_support_resistance(prices: pd.Series, window: int = 50) -> Dict[str, float]:
    """Rolling low / high over the last ``window`` prices."""
    recent = prices.tail(window)
    return {
        'support': float(recent.min()),
        'resistance': float(recent.max()),
    }


def compute_volatility(prices: pd.Series, window: int = 20) -> float:
    """Standard deviation of recent tick returns, in percent."""
    returns = prices.pct_change().dropna().tail(window)
    if len(returns) < 2:
        return 0.0
    return float(returns.std() * 100)
