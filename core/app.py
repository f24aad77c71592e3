"""
BotApp - Main orchestration class for the simulated trading engine.

Wires the ledger, price feed, market analyzer, risk gate, advisory
client and lifecycle manager together, runs the price-tick and
evaluation loops on their own threads, and exposes the operator
controls.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv

from advisory.client import AdvisoryClient
from core.activity_log import ActivityLog
from core.settings import BotSettings
from core.types import AccountType, CloseReason, Exchange, Severity
from exchange.models import ClosedTrade
from exchange.price_feed import SimulatedPriceFeed
from exchange.venues import ExchangeConnections, mark_prices, venue_price
from execution.lifecycle_manager import PositionLifecycleManager
from ledger.ledger import Ledger
from market.market_analyzer import MarketAnalyzer
from reports.trade_reporter import TradeReporter
from risk.risk_gate import RiskGate

logger = logging.getLogger("bot")


class BotApp:
    """
    Main orchestration class for the trading engine.

    Two loops drive the app: a fast price tick (marks and TP/SL exits)
    and a slower evaluation cycle (advisory requests and openings).
    """

    def __init__(
        self,
        config: dict[str, Any],
        advisory: Any = None,
        feed: Optional[SimulatedPriceFeed] = None,
        clock: Optional[Callable] = None,
    ) -> None:
        """
        Initialize BotApp with all required components.

        Args:
            config: Configuration dictionary loaded from config.yaml
            advisory: Optional advisory client replacing the configured one
            feed: Optional price feed replacing the simulated one
            clock: Optional UTC clock passed to the lifecycle manager
        """
        load_dotenv()
        self.config = config

        app_conf = config["app"]
        trading_conf = config["trading"]
        market_conf = config["market"]

        self.tick_interval: float = float(app_conf.get("tick_interval_seconds", 2.0))
        self.cycle_interval: float = float(app_conf.get("evaluation_interval_seconds", 15.0))

        self._settings = BotSettings.from_config(config)
        self._settings_lock = threading.Lock()

        self.activity_log = ActivityLog(int(app_conf.get("activity_log_size", 100)))
        self.ledger = Ledger(
            demo_balance=app_conf.get("demo_balance", 10_000.0),
            real_balance=app_conf.get("real_balance", 0.0),
        )
        self.feed = feed or SimulatedPriceFeed(
            market_conf["seed_prices"],
            tick_volatility=float(market_conf.get("tick_volatility", 0.0004)),
            seed=market_conf.get("seed"),
        )
        self.analyzer = MarketAnalyzer(market_conf)
        self.analyzer.update(self.feed.prices())

        self.gate = RiskGate()
        self.advisory = advisory or AdvisoryClient.from_config(config)
        self.connections = ExchangeConnections()
        self.reporter = TradeReporter(config["persistence"].get("reports_dir", "results"))

        lifecycle_kwargs: Dict[str, Any] = {}
        if clock is not None:
            lifecycle_kwargs["clock"] = clock
        self.lifecycle = PositionLifecycleManager(
            ledger=self.ledger,
            gate=self.gate,
            advisory=self.advisory,
            analyzer=self.analyzer,
            activity_log=self.activity_log,
            get_settings=lambda: self.settings,
            price_source=self.feed.prices,
            fee_rate=float(trading_conf.get("fee_rate", 0.0004)),
            confidence_threshold=float(trading_conf.get("confidence_threshold", 88)),
            history_limit=int(trading_conf.get("recent_history_limit", 10)),
            **lifecycle_kwargs,
        )

        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

        logger.info(f"BotApp initialized: {self}")

    def __str__(self) -> str:
        settings = self.settings
        state = "ACTIVE" if settings.active else "PAUSED"
        return (
            f"BotApp({state}, account={settings.account_type.value}, venue={settings.venue.value}, "
            f"instruments={len(settings.selected_instruments)}, open={self.ledger.open_count()})"
        )

    # ------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------
    @property
    def settings(self) -> BotSettings:
        with self._settings_lock:
            return self._settings

    def update_settings(self, **changes: Any) -> BotSettings:
        """
        Apply operator changes. Effective from the next decision; open
        positions keep the parameters captured at open time.

        Raises:
            ValueError: On unknown fields or invalid values; settings are unchanged
        """
        with self._settings_lock:
            new_settings = self._settings.updated(**changes)
            self._settings = new_settings
        logger.info(f"Settings updated: {sorted(changes)}")
        return new_settings

    def set_active(self, active: bool) -> None:
        """Start or pause new openings. Pausing never closes open positions."""
        self.update_settings(active=bool(active))
        if active:
            self.activity_log.append("Trading engine started", Severity.SUCCESS)
        else:
            self.activity_log.append("Trading engine paused", Severity.WARNING)

    def toggle_active(self) -> bool:
        active = not self.settings.active
        self.set_active(active)
        return active

    # ------------------------------------------------------------
    # Exchange connections
    # ------------------------------------------------------------
    def connect_exchange(self, venue: Exchange, api_key: str, api_secret: str) -> bool:
        venue = Exchange(venue)
        if self.connections.connect(venue, api_key, api_secret):
            self.activity_log.append(f"Connected to {venue.value}", Severity.SUCCESS)
            return True
        self.activity_log.append(f"Invalid credentials for {venue.value}", Severity.ERROR)
        return False

    def disconnect_exchange(self, venue: Exchange) -> None:
        venue = Exchange(venue)
        self.connections.disconnect(venue)
        self.activity_log.append(f"Disconnected from {venue.value}", Severity.WARNING)

    # ------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------
    def tick_once(self) -> list[ClosedTrade]:
        """Advance the feed one step, refresh indicators and check exits."""
        prices = self.feed.tick()
        self.analyzer.update(prices)
        return self.lifecycle.on_price_tick(prices)

    def cycle_once(self) -> list:
        """Run one evaluation cycle over the selected instruments."""
        return self.lifecycle.run_cycle()

    def close_position(self, position_id: str) -> Optional[ClosedTrade]:
        """Manually close a position at the current price of its venue."""
        position = self.ledger.get_position(position_id)
        if position is None:
            logger.info(f"Position {position_id} is not open")
            return None

        price = venue_price(self.feed.prices().get(position.instrument), position.venue)
        if price is None:
            self.activity_log.append(
                "Cannot close: no valid price from feed", Severity.WARNING, position.instrument
            )
            return None
        return self.lifecycle.close_position(position_id, price, CloseReason.MANUAL)

    def start(self) -> None:
        """Start the tick and evaluation threads."""
        if self.is_running:
            logger.warning("BotApp is already running")
            return

        self._stop_event.clear()
        self._threads = [
            threading.Thread(target=self._loop, args=("tick", self.tick_interval, self.tick_once), daemon=True),
            threading.Thread(target=self._loop, args=("cycle", self.cycle_interval, self.cycle_once), daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        logger.info(f"Loops started (tick={self.tick_interval}s, cycle={self.cycle_interval}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """Signal both loops to stop and wait for them."""
        self._stop_event.set()
        for thread in self._threads:
            if thread.is_alive():
                thread.join(timeout=timeout)
        self._threads = []
        logger.info("Loops stopped")

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def _loop(self, name: str, interval: float, step: Callable[[], Any]) -> None:
        while not self._stop_event.is_set():
            try:
                step()
            except Exception as e:
                logger.error(f"Error in {name} loop: {e}", exc_info=True)
            self._stop_event.wait(interval)

    def cleanup(self) -> None:
        """Stop the loops and release the advisory session."""
        self.stop()
        close = getattr(self.advisory, "close", None)
        if callable(close):
            close()

    # ------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------
    def status(self) -> Dict[str, Any]:
        """Point-in-time view of the engine for the operator."""
        settings = self.settings
        account = settings.account_type
        prices = self.feed.prices()

        with self.ledger.lock:
            marks = mark_prices(self.ledger.open_positions(account), prices)
            unrealized = self.ledger.unrealized_pnl(marks, account)
            balances = {a.value: self.ledger.balance(a) for a in AccountType}
            equity = balances[account.value] + unrealized
            open_positions = self.ledger.open_positions()
            stats = self.ledger.performance_stats(account)

        return {
            "active": settings.active,
            "running": self.is_running,
            "account": account.value,
            "balances": balances,
            "equity": equity,
            "unrealized_pnl": unrealized,
            "win_rate": stats.win_rate,
            "cumulative_pnl": stats.total_pnl,
            "closed_trades": stats.total_trades,
            "open_positions": len(open_positions),
            "open_in_account": sum(1 for p in open_positions if p.account is account),
            "prices": prices,
            "connections": self.connections.snapshot(),
            "settings": settings.to_dict(),
        }

    def export_history(self, fmt: str = "csv", account: Optional[AccountType] = None) -> Path:
        """Export the closed-trade history (all accounts unless ``account`` is given)."""
        trades = self.ledger.history(account)
        path = self.reporter.export(trades, fmt)
        self.activity_log.append(f"Exported {len(trades)} trades to {path}", Severity.INFO)
        return path

    def summary(self) -> str:
        status = self.status()
        trades = self.ledger.history(self.settings.account_type, newest_first=True)
        return self.reporter.generate_summary(
            trades, equity=status["equity"], title=f"{status['account']} account report"
        )
