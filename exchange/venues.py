"""
Venue pricing and connection state.

Each venue quotes the feed price with a small fixed offset. Exchange
credentials are treated as an opaque connected / not connected flag.
"""

from __future__ import annotations

import math
import threading
from typing import Dict, Iterable, Mapping, Optional

from core.types import Exchange
from exchange.models import Position

# Fractional offset applied to the feed price
VENUE_OFFSETS: Dict[Exchange, float] = {
    Exchange.BINANCE: 0.0,
    Exchange.BYBIT: 0.0001,
    Exchange.MEXC: -0.0001,
}

MIN_CREDENTIAL_LENGTH = 6


def venue_price(base_price: Optional[float], venue: Exchange) -> Optional[float]:
    """
    Quote ``base_price`` on ``venue``.

    Returns None when the feed has no usable price, so callers can skip
    the instrument instead of trading on garbage.
    """
    if base_price is None:
        return None
    try:
        price = float(base_price)
    except (TypeError, ValueError):
        return None
    if not 0 < price < math.inf:
        return None
    return price * (1.0 + VENUE_OFFSETS[Exchange(venue)])


def mark_prices(positions: Iterable[Position], feed_prices: Mapping[str, float]) -> Dict[str, float]:
    """Instrument -> venue-adjusted price for each position that has a quote."""
    marks: Dict[str, float] = {}
    for position in positions:
        price = venue_price(feed_prices.get(position.instrument), position.venue)
        if price is not None:
            marks[position.instrument] = price
    return marks


class ExchangeConnections:
    """Per-venue connection flags. Keys are never stored."""

    def __init__(self) -> None:
        self._connected: Dict[Exchange, bool] = {venue: False for venue in Exchange}
        self._lock = threading.Lock()

    def connect(self, venue: Exchange, api_key: str, api_secret: str) -> bool:
        """
        Mark ``venue`` as connected when both credentials look plausible.

        Returns:
            True if the venue is now connected.
        """
        venue = Exchange(venue)
        ok = len(api_key or "") >= MIN_CREDENTIAL_LENGTH and len(api_secret or "") >= MIN_CREDENTIAL_LENGTH
        if ok:
            with self._lock:
                self._connected[venue] = True
        return ok

    def disconnect(self, venue: Exchange) -> None:
        with self._lock:
            self._connected[Exchange(venue)] = False

    def is_connected(self, venue: Exchange) -> bool:
        with self._lock:
            return self._connected[Exchange(venue)]

    def snapshot(self) -> Dict[str, bool]:
        with self._lock:
            return {venue.value: flag for venue, flag in self._connected.items()}
