"""
Integration tests for BotApp and the command line entry point
"""

import time

import pytest

from core.app import BotApp
from core.types import AccountType, CloseReason, Exchange, Severity

from factories import Clock, FakeAdvisory, advice


def create_config(tmp_path, **bot):
    return {
        "app": {
            "demo_balance": 10000.0,
            "real_balance": 0.0,
            "tick_interval_seconds": 0.01,
            "evaluation_interval_seconds": 0.02,
        },
        "bot": dict({"selected_instruments": ["BTC/USDT", "ETH/USDT"]}, **bot),
        "trading": {"fee_rate": 0.0004, "confidence_threshold": 88, "recent_history_limit": 10},
        "market": {"seed_prices": {"BTC/USDT": 65000.0, "ETH/USDT": 3400.0}, "seed": 5},
        "advisory": {"api_key_env": "UNSET_TEST_KEY"},
        "persistence": {"logs_dir": str(tmp_path / "logs"), "log_level": "INFO",
                        "reports_dir": str(tmp_path / "reports")},
    }


def create_app(tmp_path, advisory=None, **bot):
    return BotApp(create_config(tmp_path, **bot), advisory=advisory or FakeAdvisory(), clock=Clock())


def messages(app, severity):
    return [e.message for e in app.activity_log.entries() if e.severity == severity]


def test_paused_by_default_and_cycle_does_nothing(tmp_path):
    app = create_app(tmp_path)
    assert app.settings.active is False
    assert app.cycle_once() == []
    assert app.ledger.open_count() == 0


def test_activation_logs_and_opens_positions(tmp_path):
    app = create_app(tmp_path)
    app.set_active(True)

    opened = app.cycle_once()

    assert {p.instrument for p in opened} == {"BTC/USDT", "ETH/USDT"}
    assert "Trading engine started" in messages(app, Severity.SUCCESS)
    assert app.status()["open_positions"] == 2


def test_toggle_active(tmp_path):
    app = create_app(tmp_path)
    assert app.toggle_active() is True
    assert app.toggle_active() is False
    assert "Trading engine paused" in messages(app, Severity.WARNING)


def test_invalid_settings_update_leaves_state_unchanged(tmp_path):
    app = create_app(tmp_path)
    before = app.settings
    with pytest.raises(ValueError):
        app.update_settings(leverage=0)
    assert app.settings is before


def test_tick_closes_on_take_profit(tmp_path):
    app = create_app(tmp_path, active=True, selected_instruments=["BTC/USDT"])
    position = app.cycle_once()[0]

    app.feed.set_price("BTC/USDT", position.take_profit_price * 1.01)
    app.feed.tick_volatility = 0.0
    closed = app.tick_once()

    assert [t.reason for t in closed] == [CloseReason.TAKE_PROFIT]
    assert app.ledger.balance(AccountType.DEMO) > 10_000.0


def test_manual_close_uses_venue_price(tmp_path):
    app = create_app(tmp_path, active=True, venue="MEXC", selected_instruments=["BTC/USDT"])
    position = app.cycle_once()[0]

    app.feed.set_price("BTC/USDT", 65500.0)
    trade = app.close_position(position.id)

    assert trade.exit_price == pytest.approx(65500.0 * 0.9999)
    assert trade.reason is CloseReason.MANUAL
    assert app.close_position(position.id) is None


def test_status_reports_equity_and_connections(tmp_path):
    app = create_app(tmp_path, active=True, selected_instruments=["BTC/USDT"])
    app.cycle_once()
    app.connect_exchange(Exchange.BINANCE, "binance-key", "binance-secret")

    status = app.status()

    assert status["account"] == "DEMO"
    assert status["balances"] == {"DEMO": 10000.0, "REAL": 0.0}
    assert status["equity"] == pytest.approx(10000.0 + status["unrealized_pnl"])
    assert status["connections"]["BINANCE"] is True
    assert status["settings"]["leverage"] == 20


def test_connect_exchange_rejects_short_credentials(tmp_path):
    app = create_app(tmp_path)
    assert app.connect_exchange(Exchange.BYBIT, "abc", "secret-123") is False
    assert app.connections.is_connected(Exchange.BYBIT) is False
    app.disconnect_exchange(Exchange.BYBIT)
    assert "Disconnected from BYBIT" in messages(app, Severity.WARNING)


def test_export_history(tmp_path):
    app = create_app(tmp_path, active=True, selected_instruments=["BTC/USDT"])
    position = app.cycle_once()[0]
    app.close_position(position.id)

    path = app.export_history("json")

    assert path.exists()
    assert path.parent == tmp_path / "reports"
    assert "Trades: 1" in app.summary()


def test_loops_run_and_stop(tmp_path):
    advisory = FakeAdvisory(advice("HOLD", 0))
    app = create_app(tmp_path, advisory=advisory, active=True)

    app.start()
    assert app.is_running
    deadline = time.time() + 2.0
    while not advisory.calls and time.time() < deadline:
        time.sleep(0.01)
    app.stop()

    assert not app.is_running
    assert advisory.calls
    assert app.feed.ticks > 0


def test_main_runs_cycles_and_exports(tmp_path, monkeypatch):
    import yaml
    import main

    config = create_config(tmp_path)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(config), encoding="utf-8")

    monkeypatch.setattr(main, "BotApp", lambda cfg: BotApp(cfg, advisory=FakeAdvisory(advice("HOLD", 0))))
    main.main(["--config", str(config_path), "--cycles", "2", "--activate", "--export", "csv"])

    assert (tmp_path / "reports" / "trades.csv").exists()
