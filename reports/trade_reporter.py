"""
Trade reporter
Closed-trade history export and text summary.
"""

from typing import Dict, List, Optional, Sequence
from pathlib import Path
import pandas as pd

from exchange.models import ClosedTrade
from ledger import pnl


REPORT_COLUMNS = ["Date", "Pair", "Exchange", "Side", "Entry", "Exit", "ROI", "PnL"]
EXPORT_FORMATS = ("csv", "json")


class TradeReporter:
    """Read-only reporting over the closed-trade history"""

    def __init__(self, output_dir: str = "results"):
        """
        Initialize trade reporter

        Args:
            output_dir: Directory receiving exported files (overwritten on each export)
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def to_frame(trades: Sequence[ClosedTrade]) -> pd.DataFrame:
        """Full history as a DataFrame, one row per trade in the given order."""
        rows = [trade.to_dict() for trade in trades]
        if not rows:
            return pd.DataFrame(columns=list(_EMPTY_ROW_KEYS))
        return pd.DataFrame(rows)

    @staticmethod
    def to_report_frame(trades: Sequence[ClosedTrade]) -> pd.DataFrame:
        """Operator-facing table: date, pair, exchange, side, entry, exit, ROI, PnL."""
        rows = []
        for trade in trades:
            pos = trade.position
            rows.append({
                "Date": trade.closed_at.strftime("%Y-%m-%d %H:%M:%S"),
                "Pair": pos.instrument,
                "Exchange": pos.venue.value,
                "Side": pos.side.value,
                "Entry": round(pos.entry_price, 2),
                "Exit": round(trade.exit_price, 2),
                "ROI": f"{trade.realized_pnl_pct:.2f}%",
                "PnL": f"{trade.realized_pnl:+.2f}",
            })
        return pd.DataFrame(rows, columns=REPORT_COLUMNS)

    def generate_summary(
        self,
        trades: Sequence[ClosedTrade],
        equity: Optional[float] = None,
        title: str = "Trading report",
    ) -> str:
        """
        Render the summary text

        Args:
            trades: Closed trades, newest first for display
            equity: Current account equity, if known
            title: Report heading

        Returns:
            Summary text
        """
        total = len(trades)
        wins = sum(1 for t in trades if t.realized_pnl > 0)
        win_rate = pnl.win_rate(trades)
        total_pnl = pnl.cumulative_pnl(trades)
        total_fees = sum(t.fee for t in trades)

        lines = []
        lines.append("=" * 60)
        lines.append(f"[{title}]")
        lines.append("=" * 60)
        if equity is not None:
            lines.append(f"Equity: {equity:,.2f} USDT")
        lines.append(f"Trades: {total} ({wins} wins / {total - wins} losses)")
        lines.append(f"Win rate: {win_rate:.1f}%")
        lines.append(f"Cumulative PnL: {total_pnl:+,.2f} USDT")
        lines.append(f"Fees paid: {total_fees:,.2f} USDT")

        if total:
            lines.append("")
            lines.append(self.to_report_frame(trades).to_string(index=False))

        lines.append("=" * 60)
        return "\n".join(lines)

    def export(self, trades: Sequence[ClosedTrade], fmt: str = "csv", filename: Optional[str] = None) -> Path:
        """
        Write the history to ``output_dir``

        Args:
            trades: Closed trades to export
            fmt: "csv" or "json"
            filename: Optional file name, defaults to trades.<fmt>

        Returns:
            Path of the written file

        Raises:
            ValueError: On an unsupported format
        """
        fmt = fmt.lower()
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt} (expected one of {EXPORT_FORMATS})")

        path = self.output_dir / (filename or f"trades.{fmt}")
        df = self.to_frame(trades)
        if fmt == "csv":
            df.to_csv(path, index=False, encoding='utf-8-sig')
        else:
            df.to_json(path, orient="records", indent=2)
        return path

    def export_all(self, trades: Sequence[ClosedTrade], equity: Optional[float] = None) -> Dict[str, str]:
        """
        Export CSV, JSON and the text summary in one go

        Returns:
            {'csv': ..., 'json': ..., 'summary': ...}
        """
        paths: Dict[str, str] = {}
        for fmt in EXPORT_FORMATS:
            paths[fmt] = str(self.export(trades, fmt))

        summary_path = self.output_dir / "summary.txt"
        summary_path.write_text(self.generate_summary(trades, equity), encoding='utf-8')
        paths['summary'] = str(summary_path)
        return paths


_EMPTY_ROW_KEYS: List[str] = [
    "id", "instrument", "side", "entry_price", "exit_price", "quantity", "leverage",
    "strategy", "timeframe", "venue", "account", "opened_at", "closed_at",
    "realized_pnl", "realized_pnl_pct", "fee", "reason",
]
