"""
Unit tests for venue pricing, exchange connections and the simulated feed
"""

import pytest

from core.types import AccountType, Exchange
from exchange.price_feed import SimulatedPriceFeed
from exchange.venues import ExchangeConnections, mark_prices, venue_price

from factories import make_position


def test_venue_offsets():
    assert venue_price(100.0, Exchange.BINANCE) == 100.0
    assert venue_price(100.0, Exchange.BYBIT) == pytest.approx(100.01)
    assert venue_price(100.0, Exchange.MEXC) == pytest.approx(99.99)


@pytest.mark.parametrize("value", [None, 0, -1.0, "abc", float("nan"), float("inf")])
def test_venue_price_rejects_unusable_feed_values(value):
    assert venue_price(value, Exchange.BINANCE) is None


def test_mark_prices_use_each_positions_venue():
    positions = [
        make_position(instrument="BTC/USDT", venue=Exchange.BYBIT),
        make_position(instrument="ETH/USDT", entry=3400.0, quantity=1.0, venue=Exchange.MEXC),
        make_position(instrument="SOL/USDT", entry=145.0, quantity=1.0, account=AccountType.REAL),
    ]
    marks = mark_prices(positions, {"BTC/USDT": 65000.0, "ETH/USDT": 3400.0})

    assert marks["BTC/USDT"] == pytest.approx(65000 * 1.0001)
    assert marks["ETH/USDT"] == pytest.approx(3400 * 0.9999)
    assert "SOL/USDT" not in marks


def test_connections():
    connections = ExchangeConnections()
    assert connections.snapshot() == {"BINANCE": False, "BYBIT": False, "MEXC": False}

    assert not connections.connect(Exchange.BYBIT, "short", "secret-123")
    assert not connections.is_connected(Exchange.BYBIT)

    assert connections.connect(Exchange.BYBIT, "key-123", "secret-123")
    assert connections.is_connected("BYBIT")

    connections.disconnect(Exchange.BYBIT)
    assert not connections.is_connected(Exchange.BYBIT)


def test_feed_moves_within_tick_volatility():
    feed = SimulatedPriceFeed({"BTC/USDT": 65000.0, "ETH/USDT": 3400.0}, seed=42)
    previous = feed.prices()
    for _ in range(50):
        current = feed.tick()
        for instrument, price in current.items():
            assert abs(price / previous[instrument] - 1) <= 0.0004 + 1e-12
        previous = current
    assert feed.ticks == 50


def test_feed_is_reproducible_with_seed():
    a = SimulatedPriceFeed({"BTC/USDT": 65000.0}, seed=1)
    b = SimulatedPriceFeed({"BTC/USDT": 65000.0}, seed=1)
    for _ in range(10):
        assert a.tick() == b.tick()


def test_feed_set_price_and_validation():
    feed = SimulatedPriceFeed({"BTC/USDT": 65000.0})
    feed.set_price("BTC/USDT", 70000.0)
    assert feed.prices() == {"BTC/USDT": 70000.0}
    assert feed.instruments == ["BTC/USDT"]

    with pytest.raises(ValueError):
        feed.set_price("BTC/USDT", 0)
    with pytest.raises(ValueError):
        feed.set_price("BTC/USDT", float("nan"))
    with pytest.raises(ValueError):
        SimulatedPriceFeed({})
    with pytest.raises(ValueError):
        SimulatedPriceFeed({"BTC/USDT": -1.0})
