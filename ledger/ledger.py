"""
Ledger for the trading engine.

Owns both account balances, the open-position set and the closed-trade
history. All mutation goes through this object and is serialized by a
single re-entrant lock; callers that need a check-then-act sequence
(gate re-validation before open, TP/SL check before settle) hold
``ledger.lock`` around it.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Mapping, Optional

from core.types import AccountType
from exchange.models import ClosedTrade, PerformanceStats, Position
from . import pnl

logger = logging.getLogger("bot")

INITIAL_DEMO_BALANCE = 10_000.0
INITIAL_REAL_BALANCE = 0.0


class Ledger:
    """
    Balances, open positions and trade history.

    Keeps at most one open position per (instrument, account) and moves
    each position into the history exactly once.
    """

    def __init__(
        self,
        demo_balance: float = INITIAL_DEMO_BALANCE,
        real_balance: float = INITIAL_REAL_BALANCE,
    ) -> None:
        """
        Initialize the ledger.

        Args:
            demo_balance: Starting balance of the DEMO account
            real_balance: Starting balance of the REAL account
        """
        self.lock = threading.RLock()
        self._balances: Dict[AccountType, float] = {
            AccountType.DEMO: float(demo_balance),
            AccountType.REAL: float(real_balance),
        }
        self._open: Dict[str, Position] = {}   # insertion ordered, keyed by position id
        self._history: List[ClosedTrade] = []

        logger.info(f"Ledger initialized: DEMO={demo_balance:,.2f}, REAL={real_balance:,.2f}")

    def __str__(self) -> str:
        return (
            f"Ledger(DEMO={self.balance(AccountType.DEMO):,.2f}, "
            f"REAL={self.balance(AccountType.REAL):,.2f}, "
            f"open={self.open_count()}, closed={len(self._history)})"
        )

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------
    def balance(self, account: AccountType) -> float:
        with self.lock:
            return self._balances[AccountType(account)]

    def open_positions(self, account: Optional[AccountType] = None) -> List[Position]:
        """Copy of the open set, optionally filtered by account."""
        with self.lock:
            positions = list(self._open.values())
        if account is None:
            return positions
        account = AccountType(account)
        return [p for p in positions if p.account is account]

    def get_position(self, position_id: str) -> Optional[Position]:
        with self.lock:
            return self._open.get(position_id)

    def is_open(self, position_id: str) -> bool:
        with self.lock:
            return position_id in self._open

    def has_open(self, instrument: str, account: AccountType) -> bool:
        account = AccountType(account)
        with self.lock:
            return any(p.instrument == instrument and p.account is account for p in self._open.values())

    def open_count(self, account: Optional[AccountType] = None) -> int:
        return len(self.open_positions(account))

    def history(self, account: Optional[AccountType] = None, newest_first: bool = False) -> List[ClosedTrade]:
        """Closed trades in insertion order (or newest first for display)."""
        with self.lock:
            trades = list(self._history)
        if account is not None:
            account = AccountType(account)
            trades = [t for t in trades if t.account is account]
        if newest_first:
            trades.reverse()
        return trades

    def recent_trades(self, limit: int = 10) -> List[ClosedTrade]:
        """The ``limit`` most recent closed trades, newest first."""
        if limit <= 0:
            return []
        with self.lock:
            return list(reversed(self._history[-limit:]))

    # ------------------------------------------------------------
    # Derived aggregates
    # ------------------------------------------------------------
    def unrealized_pnl(
        self,
        current_prices: Mapping[str, float],
        account: Optional[AccountType] = None,
        leverage: Optional[float] = None,
    ) -> float:
        return pnl.unrealized_pnl(self.open_positions(account), current_prices, leverage)

    def equity(self, account: AccountType, current_prices: Mapping[str, float]) -> float:
        """Balance plus unrealized PnL of the account's open positions."""
        with self.lock:
            return self.balance(account) + self.unrealized_pnl(current_prices, account)

    def margin_in_use(self, account: AccountType) -> float:
        return sum(p.margin for p in self.open_positions(account))

    def available_equity(self, account: AccountType, current_prices: Mapping[str, float]) -> float:
        """Equity not already committed as margin to open positions."""
        with self.lock:
            return self.equity(account, current_prices) - self.margin_in_use(account)

    def win_rate(self, account: Optional[AccountType] = None) -> float:
        return pnl.win_rate(self.history(account))

    def cumulative_pnl(self, account: Optional[AccountType] = None) -> float:
        return pnl.cumulative_pnl(self.history(account))

    def total_fees(self, account: Optional[AccountType] = None) -> float:
        return sum(t.fee for t in self.history(account))

    def performance_stats(self, account: Optional[AccountType] = None) -> PerformanceStats:
        trades = self.history(account)
        return PerformanceStats(
            win_rate=pnl.win_rate(trades),
            total_pnl=pnl.cumulative_pnl(trades),
            total_trades=len(trades),
        )

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------
    def add_position(self, position: Position) -> None:
        """
        Add a newly opened position to the open set.

        Raises:
            ValueError: If the id is already open or the (instrument, account)
                pair already holds a position
        """
        with self.lock:
            if position.id in self._open:
                raise ValueError(f"Position {position.id} is already open")
            if self.has_open(position.instrument, position.account):
                raise ValueError(
                    f"{position.instrument} already has an open position in {position.account.value}"
                )
            self._open[position.id] = position
        logger.debug(f"Ledger opened {position}")

    def settle(self, trade: ClosedTrade) -> bool:
        """
        Book a closed trade: credit the owning account, append to history
        and drop the position from the open set.

        Idempotent: a trade whose position is no longer open is ignored.

        Returns:
            True if the trade was booked, False if it was a repeat
        """
        with self.lock:
            if trade.id not in self._open:
                logger.debug(f"Ignoring settlement of {trade.id}: not open")
                return False
            del self._open[trade.id]
            self._balances[trade.account] += trade.realized_pnl
            self._history.append(trade)
        logger.debug(f"Ledger settled {trade.id}: {trade.realized_pnl:+.2f} to {trade.account.value}")
        return True
