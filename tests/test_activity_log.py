"""
Unit tests for the activity log
"""

import pytest

from core.activity_log import ACTIVITY_LOG_CAPACITY, ActivityLog
from core.types import Severity


def test_entries_are_newest_first():
    log = ActivityLog()
    log.append("first")
    log.append("second", Severity.SUCCESS, "BTC/USDT")

    entries = log.entries()
    assert [e.message for e in entries] == ["second", "first"]
    assert entries[0].severity is Severity.SUCCESS
    assert entries[0].instrument == "BTC/USDT"
    assert entries[1].instrument is None


def test_capacity_evicts_oldest():
    log = ActivityLog()
    for i in range(ACTIVITY_LOG_CAPACITY + 20):
        log.append(f"event {i}")

    entries = log.entries()
    assert len(log) == ACTIVITY_LOG_CAPACITY == 100
    assert entries[0].message == f"event {ACTIVITY_LOG_CAPACITY + 19}"
    assert entries[-1].message == "event 20"


def test_clear():
    log = ActivityLog(capacity=3)
    log.append("a")
    log.append("b", Severity.ERROR)
    log.clear()
    assert len(log) == 0
    assert log.entries() == []


def test_entries_have_unique_ids_and_string_form():
    log = ActivityLog()
    a = log.append("opened", Severity.SUCCESS, "ETH/USDT")
    b = log.append("opened", Severity.SUCCESS, "ETH/USDT")
    assert a.id != b.id
    assert "SUCCESS [ETH/USDT] opened" in str(a)


def test_severity_accepts_string_value():
    entry = ActivityLog().append("careful", "WARNING")
    assert entry.severity is Severity.WARNING


def test_invalid_capacity():
    with pytest.raises(ValueError):
        ActivityLog(capacity=0)
