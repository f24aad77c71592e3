"""
Advisory oracle client.

This module provides a client for the hosted model that turns a market
snapshot and strategy context into a BUY / SELL / HOLD recommendation.
Every failure is mapped to a degraded HOLD response; callers never see
an exception from ``request_signal``.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, Optional

import requests

from exchange.models import ClosedTrade, MarketSnapshot, PerformanceStats
from .models import AdvisoryResponse
from .prompt import build_prompt
from .rate_limiter import RateLimiter

logger = logging.getLogger("bot")

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_HISTORY_LIMIT = 10

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "signal": {"type": "STRING", "enum": ["BUY", "SELL", "HOLD"]},
        "reasoning": {"type": "STRING"},
        "confidence": {"type": "NUMBER"},
        "targetPrice": {"type": "NUMBER"},
        "stopLoss": {"type": "NUMBER"},
        "technicalDetails": {
            "type": "OBJECT",
            "properties": {
                "rsiStatus": {"type": "STRING"},
                "maAlignment": {"type": "STRING"},
                "trendType": {"type": "STRING"},
            },
        },
    },
    "required": ["signal", "reasoning", "confidence", "targetPrice", "stopLoss"],
}


class AdvisoryClient:
    """
    Client for the advisory oracle (Gemini ``generateContent`` REST API).

    Requests are rate limited and bounded by a timeout. The recent trade
    history sent along is capped so the payload stays small.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        rate_limiter: Optional[RateLimiter] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize the advisory client.

        Args:
            api_key: Oracle API key. Without one every request degrades to HOLD.
            model: Model name
            base_url: API base URL
            timeout: Per-request timeout in seconds
            rate_limiter: Optional limiter applied before every call
            history_limit: Maximum closed trades included in a request
            session: Optional pre-built HTTP session
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.history_limit = history_limit
        self.session = session or requests.Session()

        self.session.headers.update({
            'User-Agent': 'leveraged-paper-trader/1.0',
            'Content-Type': 'application/json',
        })

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "AdvisoryClient":
        """Build a client from the ``advisory`` config section; the key comes from the environment."""
        aconf = config.get("advisory", {})
        api_key = os.getenv(aconf.get("api_key_env", "GEMINI_API_KEY"))
        return cls(
            api_key=api_key,
            model=aconf.get("model", DEFAULT_MODEL),
            base_url=aconf.get("base_url", DEFAULT_BASE_URL),
            timeout=float(aconf.get("timeout_seconds", 30)),
            rate_limiter=RateLimiter(int(aconf.get("max_calls_per_minute", 10)), period=60.0),
            history_limit=int(config.get("trading", {}).get("recent_history_limit", DEFAULT_HISTORY_LIMIT)),
        )

    def request_signal(
        self,
        instrument: str,
        snapshot: MarketSnapshot,
        strategy: str,
        timeframe: str,
        performance: PerformanceStats,
        recent_history: Iterable[ClosedTrade],
        learning_enabled: bool,
    ) -> AdvisoryResponse:
        """
        Ask the oracle for a recommendation on ``instrument``.

        Returns:
            The validated response, or a degraded HOLD with confidence 0
            and a diagnostic reasoning on any failure
        """
        if not self.api_key:
            return AdvisoryResponse.hold("Advisory unavailable: API key not configured.")

        history = list(recent_history)[: self.history_limit]
        prompt = build_prompt(
            instrument, snapshot, strategy, timeframe, performance, history, learning_enabled
        )

        try:
            if self.rate_limiter is not None:
                self.rate_limiter.wait()

            response = self.session.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                headers={'x-goog-api-key': self.api_key},
                json=self._request_body(prompt),
                timeout=self.timeout,
            )
            response.raise_for_status()

            payload = self._extract_payload(response.json())
            return AdvisoryResponse.from_payload(payload)

        except requests.Timeout as e:
            return self._degraded(instrument, f"Advisory timed out after {self.timeout:.0f}s: {e}")
        except requests.RequestException as e:
            return self._degraded(instrument, f"Advisory request failed: {e}")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            return self._degraded(instrument, f"Malformed advisory response: {e}")
        except Exception as e:
            logger.error(f"Unexpected advisory error for {instrument}", exc_info=True)
            return self._degraded(instrument, f"Advisory error: {e}")

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    @staticmethod
    def _request_body(prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    @staticmethod
    def _extract_payload(data: Dict[str, Any]) -> Dict[str, Any]:
        """Pull the JSON document out of the first candidate's text part."""
        text = data["candidates"][0]["content"]["parts"][0]["text"]
        return json.loads(text or "{}")

    @staticmethod
    def _degraded(instrument: str, reason: str) -> AdvisoryResponse:
        logger.warning(f"[{instrument}] {reason}")
        return AdvisoryResponse.hold(reason)
