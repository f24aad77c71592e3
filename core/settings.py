"""
Bot configuration

Operator-controlled parameters read by the risk gate and the
position lifecycle manager.
"""

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Tuple

from .types import AccountType, Exchange, StrategyType, TIMEFRAMES


MAX_LEVERAGE = 125


def _finite(value: Any) -> bool:
    """Real number that is neither NaN nor infinite."""
    try:
        return math.isfinite(value)
    except TypeError:
        return False


@dataclass(frozen=True)
class BotSettings:
    """Configuration for the trading bot"""

    active: bool = False
    strategy: StrategyType = StrategyType.SCALP
    timeframe: str = "15m"

    # Risk management
    leverage: int = 20
    risk_per_trade_pct: float = 2.0      # margin committed per trade, % of equity
    max_open_positions: int = 5          # across both accounts
    take_profit_pct: float = 2.5         # price move from entry
    stop_loss_pct: float = 1.2           # price move from entry

    # Evaluated in this order every cycle
    selected_instruments: Tuple[str, ...] = field(default_factory=lambda: ("BTC/USDT", "ETH/USDT"))

    venue: Exchange = Exchange.BINANCE
    account_type: AccountType = AccountType.DEMO
    learning_mode: bool = True

    def __post_init__(self):
        # Normalise loosely typed input (YAML, operator calls) to enums and a de-duplicated tuple
        object.__setattr__(self, "strategy", StrategyType(self.strategy))
        object.__setattr__(self, "venue", Exchange(self.venue))
        object.__setattr__(self, "account_type", AccountType(self.account_type))
        object.__setattr__(self, "selected_instruments", tuple(dict.fromkeys(self.selected_instruments)))

    def validate(self) -> bool:
        """Validate configuration parameters"""
        if self.timeframe not in TIMEFRAMES:
            raise ValueError(f"timeframe must be one of {TIMEFRAMES}")

        if isinstance(self.leverage, bool) or not _finite(self.leverage) or not 1 <= self.leverage <= MAX_LEVERAGE:
            raise ValueError(f"leverage must be between 1 and {MAX_LEVERAGE}")

        if not _finite(self.risk_per_trade_pct) or not 0 < self.risk_per_trade_pct <= 100:
            raise ValueError("risk_per_trade_pct must be in (0, 100]")

        if not _finite(self.max_open_positions) or not self.max_open_positions >= 0:
            raise ValueError("max_open_positions must be non-negative")

        if not _finite(self.take_profit_pct) or not self.take_profit_pct > 0:
            raise ValueError("take_profit_pct must be positive")

        if not _finite(self.stop_loss_pct) or not self.stop_loss_pct > 0:
            raise ValueError("stop_loss_pct must be positive")

        return True

    def updated(self, **changes: Any) -> "BotSettings":
        """
        Return a validated copy with ``changes`` applied.

        Raises:
            ValueError: On unknown fields or invalid values. The original
                settings object is left untouched.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown settings: {sorted(unknown)}")

        new_settings = replace(self, **changes)
        new_settings.validate()
        return new_settings

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "BotSettings":
        """Build settings from the ``bot`` section of the YAML config."""
        bot_conf = dict(config.get("bot", {}))
        if "selected_instruments" in bot_conf:
            bot_conf["selected_instruments"] = tuple(bot_conf["selected_instruments"])

        settings = cls().updated(**bot_conf)
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active": self.active,
            "strategy": self.strategy.value,
            "timeframe": self.timeframe,
            "leverage": self.leverage,
            "risk_per_trade_pct": self.risk_per_trade_pct,
            "max_open_positions": self.max_open_positions,
            "take_profit_pct": self.take_profit_pct,
            "stop_loss_pct": self.stop_loss_pct,
            "selected_instruments": list(self.selected_instruments),
            "venue": self.venue.value,
            "account_type": self.account_type.value,
            "learning_mode": self.learning_mode,
        }


DEFAULT_SETTINGS = BotSettings()
