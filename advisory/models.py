"""
Advisory response model and payload validation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.types import Signal


@dataclass(frozen=True)
class TechnicalDetails:
    rsi_status: str = ""
    ma_alignment: str = ""
    trend_type: str = ""


@dataclass(frozen=True)
class AdvisoryResponse:
    signal: Signal
    reasoning: str
    confidence: float
    target_price: float
    stop_loss: float
    technical_details: Optional[TechnicalDetails] = None
    degraded: bool = False

    @property
    def is_actionable(self) -> bool:
        return self.signal is not Signal.HOLD

    @classmethod
    def hold(cls, reasoning: str) -> "AdvisoryResponse":
        """Fallback used whenever the oracle cannot be trusted."""
        return cls(
            signal=Signal.HOLD,
            reasoning=reasoning,
            confidence=0.0,
            target_price=0.0,
            stop_loss=0.0,
            degraded=True,
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AdvisoryResponse":
        """
        Validate an oracle JSON payload.

        Raises:
            ValueError: On a missing field, unknown signal, non-numeric
                value or a confidence outside [0, 100]
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Expected JSON object, got {type(payload).__name__}")

        missing = [k for k in ("signal", "reasoning", "confidence", "targetPrice", "stopLoss") if k not in payload]
        if missing:
            raise ValueError(f"Advisory payload missing fields: {missing}")

        try:
            signal = Signal(str(payload["signal"]).upper())
        except ValueError:
            raise ValueError(f"Unknown advisory signal: {payload['signal']!r}")

        confidence = _as_float(payload["confidence"], "confidence")
        if not 0.0 <= confidence <= 100.0:
            raise ValueError(f"confidence out of range: {confidence}")

        details = payload.get("technicalDetails")
        technical_details = None
        if isinstance(details, dict):
            technical_details = TechnicalDetails(
                rsi_status=str(details.get("rsiStatus", "")),
                ma_alignment=str(details.get("maAlignment", "")),
                trend_type=str(details.get("trendType", "")),
            )

        return cls(
            signal=signal,
            reasoning=str(payload["reasoning"]),
            confidence=confidence,
            target_price=_as_float(payload["targetPrice"], "targetPrice"),
            stop_loss=_as_float(payload["stopLoss"], "stopLoss"),
            technical_details=technical_details,
        )


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be numeric, got {value!r}")
    if result != result:  # NaN
        raise ValueError(f"{name} is NaN")
    return result
