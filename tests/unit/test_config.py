"""Тесты загрузки конфигурации из окружения."""

from decimal import Decimal

from commerce_i18n.config import ENV_PREFIX, EngineConfig


def _set(monkeypatch, **values):
    for name, value in values.items():
        monkeypatch.setenv(f"{ENV_PREFIX}{name}", value)


class TestEngineConfig:
    def test_defaults(self, monkeypatch):
        for name in ("RATE_PROVIDERS", "BREAKER_FAILURE_THRESHOLD", "CATALOG_PATH"):
            monkeypatch.delenv(f"{ENV_PREFIX}{name}", raising=False)
        config = EngineConfig.from_env()
        assert config.circuit_breaker.failure_threshold == 3
        assert config.circuit_breaker.cooldown_sec == 60.0
        assert config.refresh.provider_timeout_sec == 5.0
        assert config.refresh.cycle_timeout_sec == 30.0
        assert config.refresh.significant_change_threshold == Decimal("0.05")
        assert config.conversion.staleness_threshold_sec == 86400.0
        assert config.rate_providers == ("frankfurter", "open_er_api")
        assert config.catalog_path is None

    def test_overrides(self, monkeypatch):
        _set(
            monkeypatch,
            BREAKER_FAILURE_THRESHOLD="5",
            BREAKER_COOLDOWN_SEC="120",
            SIGNIFICANT_CHANGE_THRESHOLD="0.02",
            RATE_PROVIDERS="open_er_api, frankfurter",
            DEFAULT_CURRENCY="EUR",
            CATALOG_PATH="/etc/catalog.json",
        )
        config = EngineConfig.from_env()
        assert config.circuit_breaker.failure_threshold == 5
        assert config.circuit_breaker.cooldown_sec == 120.0
        assert config.refresh.significant_change_threshold == Decimal("0.02")
        assert config.rate_providers == ("open_er_api", "frankfurter")
        assert config.preference_defaults.currency == "EUR"
        assert config.catalog_path == "/etc/catalog.json"

    def test_invalid_values_fall_back_to_defaults(self, monkeypatch):
        _set(
            monkeypatch,
            BREAKER_FAILURE_THRESHOLD="three",
            PROVIDER_TIMEOUT_SEC="fast",
            SIGNIFICANT_CHANGE_THRESHOLD="lots",
        )
        config = EngineConfig.from_env()
        assert config.circuit_breaker.failure_threshold == 3
        assert config.refresh.provider_timeout_sec == 5.0
        assert config.refresh.significant_change_threshold == Decimal("0.05")

    def test_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert EngineConfig.from_env().log_level == "DEBUG"
