"""
Unit tests for trade export and summary
"""

import json

import pandas as pd
import pytest

from core.types import CloseReason, Side
from ledger import pnl
from reports.trade_reporter import REPORT_COLUMNS, TradeReporter

from factories import make_position, make_trade


def create_sample_trades():
    win = make_trade(make_position(), 66300.0, reason=CloseReason.TAKE_PROFIT)
    loss = make_trade(
        make_position(instrument="ETH/USDT", side=Side.SHORT, entry=3400.0, quantity=1.0),
        3450.0,
        minutes=10,
        reason=CloseReason.STOP_LOSS,
    )
    return [win, loss]


def test_export_csv(tmp_path):
    reporter = TradeReporter(tmp_path / "out")
    trades = create_sample_trades()

    path = reporter.export(trades, "csv")

    df = pd.read_csv(path)
    assert path.name == "trades.csv"
    assert len(df) == 2
    assert list(df["instrument"]) == ["BTC/USDT", "ETH/USDT"]
    assert df["realized_pnl"].iloc[0] == pytest.approx(78.4)
    assert list(df["reason"]) == ["TAKE_PROFIT", "STOP_LOSS"]


def test_export_json(tmp_path):
    reporter = TradeReporter(tmp_path)
    path = reporter.export(create_sample_trades(), "JSON", filename="history.json")

    rows = json.loads(path.read_text(encoding="utf-8"))
    assert path.name == "history.json"
    assert [r["side"] for r in rows] == ["LONG", "SHORT"]
    assert rows[1]["account"] == "DEMO"


def test_export_empty_history(tmp_path):
    path = TradeReporter(tmp_path).export([], "csv")
    df = pd.read_csv(path)
    assert df.empty
    assert "realized_pnl" in df.columns


def test_export_rejects_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        TradeReporter(tmp_path).export(create_sample_trades(), "pdf")


def test_report_frame_columns():
    df = TradeReporter.to_report_frame(create_sample_trades())
    assert list(df.columns) == REPORT_COLUMNS
    assert df["ROI"].iloc[0] == "40.00%"
    assert df["PnL"].iloc[0] == "+78.40"
    assert df["Exchange"].iloc[1] == "BINANCE"


def test_summary_text(tmp_path):
    reporter = TradeReporter(tmp_path)
    text = reporter.generate_summary(create_sample_trades(), equity=10_050.0, title="DEMO account report")

    assert "[DEMO account report]" in text
    assert "Equity: 10,050.00 USDT" in text
    assert "Win rate: 50.0%" in text
    assert "BTC/USDT" in text and "ETH/USDT" in text


def test_summary_empty_history(tmp_path):
    text = TradeReporter(tmp_path).generate_summary([])
    assert "Trades: 0" in text
    assert "Win rate: 0.0%" in text


def test_export_all(tmp_path):
    paths = TradeReporter(tmp_path).export_all(create_sample_trades(), equity=10_000.0)
    assert set(paths) == {"csv", "json", "summary"}
    assert "Cumulative PnL" in open(paths["summary"], encoding="utf-8").read()


def test_summary_agrees_with_ledger_math(tmp_path):
    sol = make_position(instrument="SOL/USDT", entry=145.0, quantity=10.0)
    trades = create_sample_trades() + [make_trade(sol, 146.0)]
    text = TradeReporter(tmp_path).generate_summary(trades)

    assert f"Win rate: {pnl.win_rate(trades):.1f}%" in text
    assert f"Cumulative PnL: {pnl.cumulative_pnl(trades):+,.2f} USDT" in text
