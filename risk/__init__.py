"""
Risk management package for the trading engine.

This package provides admission control and position sizing.
"""

from .risk_gate import GateDecision, GateReason, RiskGate, size_position

__all__ = [
    "GateDecision",
    "GateReason",
    "RiskGate",
    "size_position",
]
