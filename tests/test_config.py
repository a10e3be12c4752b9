import logging

from market_analytics.core import Settings, configure_logging


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.data_provider == "yahoo"
    assert settings.cache_ttl_seconds == 300
    assert settings.risk_free_rate == 0.05
    assert settings.unusual_scan_symbols == ["AAPL", "TSLA", "NVDA", "SPY", "META"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DATA_PROVIDER", "alpaca")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "30")
    monkeypatch.setenv("UNUSUAL_SCAN_SYMBOLS", '["QQQ"]')

    settings = Settings(_env_file=None)

    assert settings.data_provider == "alpaca"
    assert settings.cache_ttl_seconds == 30
    assert settings.unusual_scan_symbols == ["QQQ"]


def test_configure_logging_quiets_http_libraries():
    configure_logging("debug")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("aiohttp").level == logging.WARNING

    configure_logging("INFO")
    assert logging.getLogger().level == logging.INFO
