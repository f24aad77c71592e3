"""
Prompt construction for the advisory oracle.
"""

from typing import Iterable

from exchange.models import ClosedTrade, MarketSnapshot, PerformanceStats


def summarize_history(trades: Iterable[ClosedTrade]) -> str:
    lines = []
    for trade in trades:
        pos = trade.position
        lines.append(
            f"- [{pos.account.value}] {pos.instrument} {pos.side.value}: "
            f"ROI {trade.realized_pnl_pct:.2f}% via {pos.strategy.value} ({trade.reason.value})"
        )
    return "\n".join(lines)


def build_prompt(
    instrument: str,
    snapshot: MarketSnapshot,
    strategy: str,
    timeframe: str,
    performance: PerformanceStats,
    recent_history: Iterable[ClosedTrade],
    learning_enabled: bool,
) -> str:
    """Render the analysis request for one instrument."""
    alignment = "BULLISH PERFECT ALIGNMENT" if snapshot.ma_aligned_bullish() else "MIXED TREND"

    if learning_enabled:
        history = summarize_history(recent_history) or "Start of cycle: collecting baseline data."
        learning = (
            "### REINFORCEMENT LEARNING MODE ACTIVE ###\n"
            "Review the wins and losses of the recent history and avoid repeating losing patterns:\n"
            f"{history}\n\n"
            f"Running performance: win rate {performance.win_rate:.1f}%, "
            f"total PnL {performance.total_pnl:.2f}, trades {performance.total_trades}.\n"
            "OPTIMIZATION FOCUS:\n"
            "1. Adjust RSI sensitivity if the latest reversal trades failed.\n"
            "2. Check whether MA 200 is acting as institutional support/resistance.\n"
            "3. Check whether Bollinger band expansion preceded false breakouts."
        )
    else:
        learning = "Standard mode: run a purely technical analysis."

    macd = snapshot.macd
    bands = snapshot.bollinger

    return f"""
You are an elite quantitative analyst specialised in crypto assets.
Analyse {instrument} on the {timeframe} timeframe for a {strategy} strategy.

CURRENT MARKET CONTEXT:
- Price: ${snapshot.price:.2f}
- Moving averages: MA21(${snapshot.ma21:.2f}), MA55(${snapshot.ma55:.2f}), MA200(${snapshot.ma200:.2f})
- MA alignment: {alignment}
- RSI (14): {snapshot.rsi:.2f} ({snapshot.rsi_zone()})
- MACD: value {macd.value:.4f} | signal {macd.signal:.4f} | histogram {macd.histogram:.4f}
- Bollinger bands: upper ${bands.upper:.2f} | lower ${bands.lower:.2f} | width {bands.width:.2f}%
- Structure: support ${snapshot.support:.2f} | resistance ${snapshot.resistance:.2f}
- Trend: {"above" if snapshot.trend_up else "below"} MA200
- Volatility: {snapshot.volatility:.2f}%

{learning}

EXECUTION RULES:
- BUY/LONG only if RSI is not extremely overbought and MACD confirms reversal or strength.
- SELL/SHORT if price is rejected at resistance or MA200 and the uptrend line is lost.
- STOP LOSS below recent support or the nearest MA.
- TAKE PROFIT at the next resistance or Bollinger expansion.

RETURN ONLY JSON:
{{
  "signal": "BUY" | "SELL" | "HOLD",
  "reasoning": "short explanation citing MAs and Bollinger",
  "confidence": 0-100,
  "targetPrice": number,
  "stopLoss": number,
  "technicalDetails": {{"rsiStatus": "string", "maAlignment": "string", "trendType": "string"}}
}}
""".strip()
