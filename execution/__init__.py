"""
Execution package for opening, closing and settling positions.
"""

from .lifecycle_manager import (
    InstrumentState,
    PositionLifecycleManager,
    build_closed_trade,
    exit_levels,
    exit_reason,
)

__all__ = [
    "InstrumentState",
    "PositionLifecycleManager",
    "build_closed_trade",
    "exit_levels",
    "exit_reason",
]
