"""
Shared builders for the test modules
"""

import uuid
from datetime import datetime, timedelta, timezone

from advisory.models import AdvisoryResponse
from core.activity_log import ActivityLog
from core.settings import BotSettings
from core.types import AccountType, CloseReason, Exchange, Side, Signal, StrategyType
from exchange.models import Bollinger, MACD, MarketSnapshot, Position
from execution.lifecycle_manager import PositionLifecycleManager, build_closed_trade, exit_levels
from ledger.ledger import Ledger
from market.market_analyzer import MarketAnalyzer
from risk.risk_gate import RiskGate


T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_position(
    instrument="BTC/USDT",
    side=Side.LONG,
    entry=65000.0,
    quantity=200 * 20 / 65000,
    leverage=20,
    account=AccountType.DEMO,
    venue=Exchange.BINANCE,
    take_profit_pct=2.5,
    stop_loss_pct=1.2,
    opened_at=T0,
    position_id=None,
):
    """Position with TP/SL levels derived the same way the engine derives them"""
    tp, sl = exit_levels(side, entry, take_profit_pct, stop_loss_pct)
    return Position(
        id=position_id or uuid.uuid4().hex[:12],
        instrument=instrument,
        side=side,
        entry_price=entry,
        quantity=quantity,
        leverage=leverage,
        strategy=StrategyType.SCALP,
        timeframe="15m",
        venue=venue,
        account=account,
        opened_at=opened_at,
        take_profit_price=tp,
        stop_loss_price=sl,
        confidence=90.0,
    )


def make_trade(position, exit_price, minutes=5, reason=CloseReason.MANUAL, fee_rate=0.0004):
    return build_closed_trade(
        position, exit_price, position.opened_at + timedelta(minutes=minutes), reason, fee_rate
    )


def make_snapshot(instrument="BTC/USDT", price=65000.0):
    return MarketSnapshot(
        instrument=instrument,
        price=price,
        rsi=55.0,
        macd=MACD(12.5, 10.0, 2.5),
        bollinger=Bollinger(upper=price * 1.01, middle=price, lower=price * 0.99, width=2.0),
        ma21=price * 0.999,
        ma55=price * 0.998,
        ma200=price * 0.99,
        support=price * 0.98,
        resistance=price * 1.02,
        volatility=0.04,
    )


def advice(signal="BUY", confidence=92.0, reasoning="MA alignment confirmed"):
    return AdvisoryResponse(
        signal=Signal(signal),
        reasoning=reasoning,
        confidence=confidence,
        target_price=0.0,
        stop_loss=0.0,
    )


class FakeAdvisory:
    """
    Stand-in for AdvisoryClient

    Returns ``responses[instrument]`` (or ``default``) and records every call.
    A callable response is invoked with the instrument, so tests can act
    while the request is "in flight".
    """

    def __init__(self, default=None, responses=None):
        self.default = default or advice()
        self.responses = dict(responses or {})
        self.calls = []

    def request_signal(self, instrument, snapshot, strategy, timeframe, performance,
                       recent_history, learning_enabled):
        self.calls.append({
            "instrument": instrument,
            "strategy": strategy,
            "timeframe": timeframe,
            "performance": performance,
            "history": list(recent_history),
            "learning": learning_enabled,
        })
        response = self.responses.get(instrument, self.default)
        if callable(response):
            return response(instrument)
        return response


class Clock:
    """Deterministic clock advancing one second per call"""

    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


class Harness:
    """Lifecycle manager wired to a real ledger, gate and analyzer"""

    def __init__(self, settings=None, prices=None, advisory=None, ledger=None, **kwargs):
        self.settings = settings or BotSettings(active=True)
        self.prices = dict(prices or {"BTC/USDT": 65000.0, "ETH/USDT": 3400.0})
        self.ledger = ledger or Ledger()
        self.advisory = advisory or FakeAdvisory()
        self.analyzer = MarketAnalyzer()
        self.analyzer.update(self.prices)
        self.log = ActivityLog()
        self.clock = Clock()
        self.manager = PositionLifecycleManager(
            ledger=self.ledger,
            gate=RiskGate(),
            advisory=self.advisory,
            analyzer=self.analyzer,
            activity_log=self.log,
            get_settings=lambda: self.settings,
            price_source=lambda: dict(self.prices),
            clock=self.clock,
            **kwargs,
        )

    def configure(self, **changes):
        self.settings = self.settings.updated(**changes)

    def set_price(self, instrument, price):
        self.prices[instrument] = price
        self.analyzer.update({instrument: price})

    def tick(self):
        return self.manager.on_price_tick(dict(self.prices))

    def messages(self, severity=None):
        return [e.message for e in self.log.entries() if severity is None or e.severity == severity]
