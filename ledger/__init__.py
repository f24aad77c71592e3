"""
Ledger package: balances, open positions, trade history and PnL math.
"""

from . import pnl
from .ledger import Ledger, INITIAL_DEMO_BALANCE, INITIAL_REAL_BALANCE

__all__ = [
    "Ledger",
    "INITIAL_DEMO_BALANCE",
    "INITIAL_REAL_BALANCE",
    "pnl",
]
