"""
Simulated price feed.

Random-walk ticks for a fixed set of instruments. Stands in for a real
market data stream; the engine only ever reads the price mapping.
"""

import logging
import math
import threading
from typing import Dict, Mapping, Optional

import numpy as np

logger = logging.getLogger("bot")

DEFAULT_TICK_VOLATILITY = 0.0004  # max fractional move per tick


class SimulatedPriceFeed:
    """
    Random-walk price generator.

    Every tick moves each price by a uniform draw in
    [-tick_volatility, +tick_volatility] of its current value.
    """

    def __init__(
        self,
        seed_prices: Mapping[str, float],
        tick_volatility: float = DEFAULT_TICK_VOLATILITY,
        seed: Optional[int] = None,
    ) -> None:
        """
        Initialize the feed.

        Args:
            seed_prices: Instrument symbol (e.g. "BTC/USDT") to starting price
            tick_volatility: Maximum fractional move per tick
            seed: Optional RNG seed for reproducible runs
        """
        if not seed_prices:
            raise ValueError("seed_prices must not be empty")
        if tick_volatility < 0:
            raise ValueError("tick_volatility must be non-negative")

        bad = [symbol for symbol, price in seed_prices.items() if not 0 < float(price) < math.inf]
        if bad:
            raise ValueError(f"Seed prices must be positive: {bad}")

        self.tick_volatility = tick_volatility
        self._rng = np.random.default_rng(seed)
        self._symbols = list(seed_prices)
        self._prices = np.array([float(seed_prices[s]) for s in self._symbols], dtype=float)
        self._lock = threading.Lock()
        self.ticks = 0

        logger.info(f"SimulatedPriceFeed initialized with {len(self._symbols)} instruments")

    @property
    def instruments(self) -> list[str]:
        return list(self._symbols)

    def tick(self) -> Dict[str, float]:
        """Advance every price by one random step and return the new mapping."""
        moves = self._rng.uniform(-self.tick_volatility, self.tick_volatility, size=len(self._prices))
        with self._lock:
            self._prices = self._prices * (1.0 + moves)
            self.ticks += 1
            return self._as_dict()

    def prices(self) -> Dict[str, float]:
        """Copy of the latest prices."""
        with self._lock:
            return self._as_dict()

    def set_price(self, instrument: str, price: float) -> None:
        """Force a price, used by the operator tooling and tests."""
        if not 0 < price < math.inf:
            raise ValueError(f"price must be positive, got {price}")
        with self._lock:
            self._prices[self._symbols.index(instrument)] = float(price)

    def _as_dict(self) -> Dict[str, float]:
        return {symbol: float(price) for symbol, price in zip(self._symbols, self._prices)}
