"""
Risk gate for opening new positions.

This module decides whether a position may be opened on an instrument
and sizes it. Rules are applied in order and the first failing rule
rejects.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from core.settings import BotSettings
from ledger.ledger import Ledger


class GateReason(str, Enum):
    OK = "ok"
    INACTIVE = "bot inactive"
    CAPACITY = "max_open_positions reached"
    DUPLICATE = "instrument already open in account"
    INSUFFICIENT_BALANCE = "insufficient balance"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: GateReason
    equity: float = 0.0
    margin: float = 0.0

    def __bool__(self) -> bool:
        return self.allowed


def size_position(equity: float, risk_per_trade_pct: float, leverage: float, price: float) -> float:
    """
    Quantity to open for the given risk budget.

    margin = equity * risk% / 100, quantity = margin * leverage / price

    Raises:
        ValueError: If price, leverage or the resulting margin is not positive
    """
    if price is None or not 0 < price < math.inf:
        raise ValueError(f"price must be positive, got {price}")
    if not 0 < leverage < math.inf:
        raise ValueError(f"leverage must be positive, got {leverage}")

    margin = equity * risk_per_trade_pct / 100
    if not 0 < margin < math.inf:
        raise ValueError(f"margin must be positive, got {margin:.2f}")

    return margin * leverage / price


class RiskGate:
    """
    Admission control for new positions.

    Stateless: every decision is reproducible from the instrument, the
    ledger and the settings passed in.
    """

    def check(
        self,
        instrument: str,
        ledger: Ledger,
        settings: BotSettings,
        current_prices: Mapping[str, float],
    ) -> GateDecision:
        """
        Check if a position on ``instrument`` may be opened.

        Args:
            instrument: Instrument symbol
            ledger: Ledger holding balances and open positions
            settings: Current bot settings
            current_prices: Venue-adjusted marks of the open positions

        Returns:
            GateDecision with the first failing reason, or OK with the
            account equity and the margin to commit
        """
        if not settings.active:
            return GateDecision(False, GateReason.INACTIVE)

        account = settings.account_type

        with ledger.lock:
            # Cap covers every open position, whichever account holds it
            if ledger.open_count() >= settings.max_open_positions:
                return GateDecision(False, GateReason.CAPACITY)

            if ledger.has_open(instrument, account):
                return GateDecision(False, GateReason.DUPLICATE)

            equity = ledger.equity(account, current_prices)
            available = equity - ledger.margin_in_use(account)

        margin = equity * settings.risk_per_trade_pct / 100
        if not 0 < margin <= available:
            return GateDecision(False, GateReason.INSUFFICIENT_BALANCE, equity=equity, margin=margin)

        return GateDecision(True, GateReason.OK, equity=equity, margin=margin)

    def can_open(
        self,
        instrument: str,
        ledger: Ledger,
        settings: BotSettings,
        current_prices: Mapping[str, float] | None = None,
    ) -> bool:
        return self.check(instrument, ledger, settings, current_prices or {}).allowed

    def has_capacity(self, ledger: Ledger, settings: BotSettings) -> bool:
        """True while the ledger, across both accounts, can take another position."""
        return ledger.open_count() < settings.max_open_positions
