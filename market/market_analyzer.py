"""
Market analyzer

Keeps a bounded tick history per instrument and derives the
MarketSnapshot handed to the advisory oracle.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import deque
from typing import Any, Deque, Dict, Mapping

import pandas as pd

from core.types import Exchange
from exchange.models import Bollinger, MACD, MarketSnapshot
from exchange.venues import VENUE_OFFSETS, venue_price
from market.indicators import (
    compute_bollinger_bands,
    compute_macd,
    compute_rsi,
    compute_sma,
    compute_support_resistance,
    compute_volatility,
)

logger = logging.getLogger("bot")


class MarketAnalyzer:
    """Derives indicator snapshots from the price feed."""

    def __init__(self, config: Dict[str, Any] | None = None) -> None:
        """
        Initialize MarketAnalyzer

        Args:
            config: ``market`` section of the configuration
        """
        config = config or {}
        self.history_size = int(config.get('history_size', 300))
        self.rsi_period = int(config.get('rsi_period', 14))
        self.bb_period = int(config.get('bb_period', 20))
        self.bb_std = float(config.get('bb_std', 2.0))
        self.sr_window = int(config.get('sr_window', 50))

        self._history: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def update(self, prices: Mapping[str, float]) -> None:
        """Append the latest feed prices. Non-positive or missing values are ignored."""
        with self._lock:
            for instrument, price in prices.items():
                if price is None or not 0 < price < math.inf:
                    continue
                history = self._history.setdefault(instrument, deque(maxlen=self.history_size))
                history.append(float(price))

    def history_length(self, instrument: str) -> int:
        with self._lock:
            return len(self._history.get(instrument, ()))

    def snapshot(self, instrument: str, venue: Exchange = Exchange.BINANCE) -> MarketSnapshot | None:
        """
        Build the indicator snapshot for ``instrument`` quoted on ``venue``.

        Every price level in the snapshot (bands, averages, support and
        resistance) is expressed on the venue's scale.

        Returns:
            MarketSnapshot, or None when no price has been seen yet
        """
        with self._lock:
            history = list(self._history.get(instrument, ()))
        if not history:
            return None

        price = venue_price(history[-1], venue)
        if price is None:
            return None
        prices = pd.Series(history, dtype=float) * (1.0 + VENUE_OFFSETS[Exchange(venue)])

        macd = compute_macd(prices)
        bands = compute_bollinger_bands(prices, self.bb_period, self.bb_std)
        levels = compute_support_resistance(prices, self.sr_window)
        ma200 = float(compute_sma(prices, 200).iloc[-1])

        return MarketSnapshot(
            instrument=instrument,
            price=price,
            rsi=float(compute_rsi(prices, self.rsi_period).iloc[-1]),
            macd=MACD(
                value=float(macd['value'].iloc[-1]),
                signal=float(macd['signal'].iloc[-1]),
                histogram=float(macd['histogram'].iloc[-1]),
            ),
            bollinger=Bollinger(
                upper=float(bands['upper'].iloc[-1]),
                middle=float(bands['middle'].iloc[-1]),
                lower=float(bands['lower'].iloc[-1]),
                width=float(bands['width'].iloc[-1]),
            ),
            ma21=float(compute_sma(prices, 21).iloc[-1]),
            ma55=float(compute_sma(prices, 55).iloc[-1]),
            ma200=ma200,
            support=levels['support'],
            resistance=levels['resistance'],
            volatility=compute_volatility(prices),
            change24h=float((prices.iloc[-1] / prices.iloc[0] - 1.0) * 100),
            trend_up=bool(prices.iloc[-1] >= ma200),
        )
