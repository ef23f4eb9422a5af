"""Tests for the real-time demo entry point and its env-var settings."""

from __future__ import annotations

import asyncio

import pytest

from timerlabs.runtime.run_demo import Settings, load_settings, run


def test_load_settings_defaults() -> None:
    assert load_settings({}) == Settings()


def test_load_settings_reads_environment() -> None:
    settings = load_settings(
        {
            "TIMERLABS_HOST": "127.0.0.1",
            "TIMERLABS_PORT": "9001",
            "TIMERLABS_SERVE": "0",
            "TIMERLABS_INTERVAL_MS": "5",
            "TIMERLABS_LIMIT": "2",
            "TIMERLABS_MAX_SLEEP_MS": "",
            "TIMERLABS_LOG_LEVEL": "debug",
        }
    )
    assert settings == Settings(
        host="127.0.0.1",
        port=9001,
        serve=False,
        interval_ms=5,
        limit=2,
        max_sleep_ms=50,
        log_level="DEBUG",
    )


def test_load_settings_names_bad_variable() -> None:
    with pytest.raises(ValueError, match="TIMERLABS_PORT"):
        load_settings({"TIMERLABS_PORT": "eighty"})


def test_run_without_server_prints_demo_and_exits(
    capsys: pytest.CaptureFixture[str],
) -> None:
    settings = Settings(serve=False, interval_ms=5, limit=2, max_sleep_ms=2)

    asyncio.run(asyncio.wait_for(run(settings), timeout=5))

    assert capsys.readouterr().out.splitlines() == [
        "Start setTimeout",
        "End setTimeout",
        "Start setInterval",
        "End setInterval",
        "Timeout executed",
        "Interval executed 0",
        "Interval executed 1",
        "Interval cleared",
    ]
