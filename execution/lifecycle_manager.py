"""
Position lifecycle manager.

Drives each selected instrument through Idle -> AwaitingAdvisory -> Open
-> Closed. Openings happen on the evaluation cycle; closings happen on
price ticks when the take-profit or stop-loss level is crossed, or on
an explicit operator close.

Neither ``run_cycle`` nor ``on_price_tick`` raises: every branch ends in
an opened position, a skip or an activity log entry.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from core.activity_log import ActivityLog
from core.settings import BotSettings
from core.types import AccountType, CloseReason, Severity, Side
from exchange.models import ClosedTrade, Position
from exchange.venues import mark_prices, venue_price
from ledger import pnl
from ledger.ledger import Ledger
from market.market_analyzer import MarketAnalyzer
from risk.risk_gate import GateReason, RiskGate, size_position

logger = logging.getLogger("bot")

DEFAULT_CONFIDENCE_THRESHOLD = 88.0


class InstrumentState(str, Enum):
    IDLE = "IDLE"
    AWAITING_ADVISORY = "AWAITING_ADVISORY"
    OPEN = "OPEN"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def exit_levels(side: Side, entry_price: float, take_profit_pct: float, stop_loss_pct: float) -> Tuple[float, float]:
    """Take-profit and stop-loss prices for a position opened at ``entry_price``."""
    if Side(side) is Side.LONG:
        return entry_price * (1 + take_profit_pct / 100), entry_price * (1 - stop_loss_pct / 100)
    return entry_price * (1 - take_profit_pct / 100), entry_price * (1 + stop_loss_pct / 100)


def exit_reason(position: Position, price: float) -> Optional[CloseReason]:
    """Which exit level, if any, ``price`` has crossed."""
    if position.side is Side.LONG:
        if price >= position.take_profit_price:
            return CloseReason.TAKE_PROFIT
        if price <= position.stop_loss_price:
            return CloseReason.STOP_LOSS
    else:
        if price <= position.take_profit_price:
            return CloseReason.TAKE_PROFIT
        if price >= position.stop_loss_price:
            return CloseReason.STOP_LOSS
    return None


def build_closed_trade(
    position: Position,
    exit_price: float,
    closed_at: datetime,
    reason: CloseReason,
    fee_rate: float = pnl.DEFAULT_FEE_RATE,
) -> ClosedTrade:
    """
    Settle ``position`` at ``exit_price``.

    realizedPnL = PnL% / 100 * margin - fee, with the fee charged once on
    the entry notional.
    """
    pct = pnl.pnl_pct(position.side, position.entry_price, exit_price, position.leverage)
    fee = pnl.round_trip_fee(position.quantity, position.entry_price, fee_rate)
    gross = pct / 100 * position.margin

    return ClosedTrade(
        position=position,
        exit_price=exit_price,
        realized_pnl=gross - fee,
        realized_pnl_pct=pct,
        fee=fee,
        closed_at=max(closed_at, position.opened_at),
        reason=reason,
    )


class PositionLifecycleManager:
    """
    Opens positions on actionable advice and closes them on TP/SL.

    Settings are read through ``get_settings`` at every decision point, so
    operator changes take effect on the next decision and never apply to
    positions already open.
    """

    def __init__(
        self,
        ledger: Ledger,
        gate: RiskGate,
        advisory,
        analyzer: MarketAnalyzer,
        activity_log: ActivityLog,
        get_settings: Callable[[], BotSettings],
        price_source: Callable[[], Mapping[str, float]],
        fee_rate: float = pnl.DEFAULT_FEE_RATE,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        history_limit: int = 10,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the lifecycle manager.

        Args:
            ledger: Ledger owning balances and positions
            gate: Risk gate
            advisory: Object with a ``request_signal`` method (AdvisoryClient)
            analyzer: Market analyzer producing snapshots
            activity_log: Operator-facing event log
            get_settings: Returns the current bot settings
            price_source: Returns the latest feed prices
            fee_rate: Round-trip fee rate on entry notional
            confidence_threshold: Minimum advisory confidence to open
            history_limit: Closed trades sent to the oracle
            clock: Returns the current UTC datetime
        """
        if fee_rate < 0:
            raise ValueError("fee_rate must be non-negative")

        self.ledger = ledger
        self.gate = gate
        self.advisory = advisory
        self.analyzer = analyzer
        self.activity_log = activity_log
        self.get_settings = get_settings
        self.price_source = price_source
        self.fee_rate = fee_rate
        self.confidence_threshold = confidence_threshold
        self.history_limit = history_limit
        self.clock = clock

        self._awaiting: Set[Tuple[str, AccountType]] = set()
        self.cycles = 0

    # ------------------------------------------------------------
    def state(self, instrument: str, account: Optional[AccountType] = None) -> InstrumentState:
        account = AccountType(account or self.get_settings().account_type)
        if self.ledger.has_open(instrument, account):
            return InstrumentState.OPEN
        if (instrument, account) in self._awaiting:
            return InstrumentState.AWAITING_ADVISORY
        return InstrumentState.IDLE

    def _log(self, message: str, severity: Severity, instrument: Optional[str] = None) -> None:
        self.activity_log.append(message, severity, instrument)

    def _marks(self, feed_prices: Mapping[str, float]) -> Dict[str, float]:
        return mark_prices(self.ledger.open_positions(), feed_prices)

    # ------------------------------------------------------------
    # Evaluation cycle
    # ------------------------------------------------------------
    def run_cycle(self) -> List[Position]:
        """
        Evaluate the selected instruments in order.

        Stops early once the shared position cap is reached; remaining
        instruments wait for the next cycle.

        Returns:
            Positions opened in this cycle
        """
        opened: List[Position] = []
        try:
            settings = self.get_settings()
            if not settings.active:
                return opened

            self.cycles += 1
            instruments = settings.selected_instruments
            logger.debug(f"Cycle {self.cycles}: evaluating {len(instruments)} instruments")

            for index, instrument in enumerate(instruments):
                settings = self.get_settings()
                if not settings.active:
                    break
                if not self.gate.has_capacity(self.ledger, settings):
                    logger.info(
                        f"Capacity exhausted ({settings.max_open_positions} open), "
                        f"deferring {len(instruments) - index} instruments"
                    )
                    break

                try:
                    position = self._evaluate(instrument, settings)
                except Exception as e:
                    self._awaiting.discard((instrument, settings.account_type))
                    logger.error(f"Evaluation of {instrument} failed", exc_info=True)
                    self._log(f"Evaluation failed: {e}", Severity.ERROR, instrument)
                    continue

                if position is not None:
                    opened.append(position)

        except Exception as e:
            logger.error("Evaluation cycle failed", exc_info=True)
            self._log(f"Evaluation cycle failed: {e}", Severity.ERROR)

        return opened

    def _evaluate(self, instrument: str, settings: BotSettings) -> Optional[Position]:
        account = settings.account_type
        feed_prices = self.price_source()

        price = venue_price(feed_prices.get(instrument), settings.venue)
        if price is None:
            self._log("No valid price from feed, skipping this cycle", Severity.WARNING, instrument)
            return None

        decision = self.gate.check(instrument, self.ledger, settings, self._marks(feed_prices))
        if not decision:
            if decision.reason is GateReason.INSUFFICIENT_BALANCE:
                self._log(
                    f"Insufficient balance in {account.value}: margin {decision.margin:,.2f} "
                    f"with equity {decision.equity:,.2f}",
                    Severity.ERROR,
                    instrument,
                )
            else:
                logger.debug(f"[{instrument}] gate rejected: {decision.reason.value}")
            return None

        snapshot = self.analyzer.snapshot(instrument, settings.venue)
        if snapshot is None:
            self._log("No market snapshot yet, skipping this cycle", Severity.WARNING, instrument)
            return None

        key = (instrument, account)
        self._awaiting.add(key)
        try:
            advice = self.advisory.request_signal(
                instrument,
                snapshot,
                settings.strategy.value,
                settings.timeframe,
                self.ledger.performance_stats(),
                self.ledger.recent_trades(self.history_limit),
                settings.learning_mode,
            )
        finally:
            self._awaiting.discard(key)

        if advice.degraded:
            self._log(advice.reasoning, Severity.ERROR, instrument)
            return None

        if not advice.is_actionable or advice.confidence < self.confidence_threshold:
            self._log(
                f"{advice.signal.value} at {advice.confidence:.0f}% confidence, no entry",
                Severity.INFO,
                instrument,
            )
            return None

        return self._open(instrument, advice.signal.to_side(), advice.confidence)

    def _open(self, instrument: str, side: Side, confidence: float) -> Optional[Position]:
        """Re-validate the gate with fresh state and open under the ledger lock."""
        with self.ledger.lock:
            settings = self.get_settings()
            feed_prices = self.price_source()
            price = venue_price(feed_prices.get(instrument), settings.venue)
            if price is None:
                self._log("Price vanished before entry, skipping", Severity.WARNING, instrument)
                return None

            decision = self.gate.check(instrument, self.ledger, settings, self._marks(feed_prices))
            if not decision:
                self._log(
                    f"Discarding late advisory: {decision.reason.value}", Severity.INFO, instrument
                )
                return None

            try:
                quantity = size_position(decision.equity, settings.risk_per_trade_pct, settings.leverage, price)
            except ValueError as e:
                self._log(f"Cannot size position: {e}", Severity.WARNING, instrument)
                return None

            take_profit, stop_loss = exit_levels(side, price, settings.take_profit_pct, settings.stop_loss_pct)
            position = Position(
                id=uuid.uuid4().hex[:12],
                instrument=instrument,
                side=side,
                entry_price=price,
                quantity=quantity,
                leverage=settings.leverage,
                strategy=settings.strategy,
                timeframe=settings.timeframe,
                venue=settings.venue,
                account=settings.account_type,
                opened_at=self.clock(),
                take_profit_price=take_profit,
                stop_loss_price=stop_loss,
                confidence=confidence,
            )
            self.ledger.add_position(position)

        self._log(
            f"Opened {side.value} x{position.leverage} @ {price:,.2f} "
            f"(qty {quantity:.6f}, confidence {confidence:.0f}%)",
            Severity.SUCCESS,
            instrument,
        )
        return position

    # ------------------------------------------------------------
    # Exits
    # ------------------------------------------------------------
    def on_price_tick(self, feed_prices: Mapping[str, float]) -> List[ClosedTrade]:
        """
        Close every open position whose TP or SL level the tick crossed.

        Returns:
            Trades settled on this tick
        """
        closed: List[ClosedTrade] = []
        with self.ledger.lock:
            for position in self.ledger.open_positions():
                try:
                    price = venue_price(feed_prices.get(position.instrument), position.venue)
                    if price is None:
                        continue
                    reason = exit_reason(position, price)
                    if reason is None:
                        continue
                    trade = self.close_position(position.id, price, reason)
                    if trade is not None:
                        closed.append(trade)
                except Exception as e:
                    logger.error(f"Exit check for {position.id} failed", exc_info=True)
                    self._log(f"Exit check failed: {e}", Severity.ERROR, position.instrument)
        return closed

    def close_position(
        self,
        position_id: str,
        exit_price: float,
        reason: CloseReason = CloseReason.MANUAL,
    ) -> Optional[ClosedTrade]:
        """
        Close and settle one position.

        Idempotent: closing a position that is no longer open returns None
        and leaves the ledger untouched.

        Raises:
            ValueError: If ``exit_price`` is not positive
        """
        with self.ledger.lock:
            position = self.ledger.get_position(position_id)
            if position is None:
                return None

            trade = build_closed_trade(position, exit_price, self.clock(), reason, self.fee_rate)
            if not self.ledger.settle(trade):
                return None

        severity = Severity.SUCCESS if trade.realized_pnl > 0 else Severity.WARNING
        self._log(
            f"Closed {position.side.value} ({reason.value}) @ {exit_price:,.2f}: "
            f"PnL {trade.realized_pnl:+,.2f} ({trade.realized_pnl_pct:+.2f}%), fee {trade.fee:.2f}",
            severity,
            position.instrument,
        )
        return trade
