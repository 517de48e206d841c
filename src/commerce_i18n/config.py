"""
Engine Configuration

Конфигурации компонентов: frozen dataclasses с документированными defaults.
EngineConfig агрегирует их и умеет загружаться из переменных окружения
(префикс COMMERCE_I18N_). Некорректные значения в окружении заменяются defaults.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple


ENV_PREFIX = "COMMERCE_I18N_"


def _int(val: Optional[str], default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


def _float(val: Optional[str], default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


def _decimal(val: Optional[str], default: Decimal) -> Decimal:
    try:
        return Decimal(val) if val else default
    except InvalidOperation:
        return default


def _env(name: str) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}")


# =============================================================================
# COMPONENT CONFIGS
# =============================================================================


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """
    Конфигурация circuit breaker провайдера.

    - failure_threshold: подряд идущих сбоев до OPEN
    - cooldown_sec: время в OPEN до пробного вызова (HALF_OPEN)
    """
    failure_threshold: int = 3
    cooldown_sec: float = 60.0


@dataclass(frozen=True)
class RefreshConfig:
    """
    Конфигурация цикла обновления курсов.

    - provider_timeout_sec: таймаут одного вызова провайдера
    - cycle_timeout_sec: таймаут всего цикла refresh
    - significant_change_threshold: |new-old|/old, выше которого курс помечается
    - cancel_poll_interval_sec: как часто проверяется отмена во время ожидания провайдера
    """
    provider_timeout_sec: float = 5.0
    cycle_timeout_sec: float = 30.0
    significant_change_threshold: Decimal = Decimal("0.05")
    cancel_poll_interval_sec: float = 0.05


@dataclass(frozen=True)
class ConversionConfig:
    """Курс старше staleness_threshold_sec не используется (fail-closed)."""
    staleness_threshold_sec: float = 86400.0


@dataclass(frozen=True)
class PreferenceDefaults:
    """System defaults: последний шаг цепочки разрешения предпочтений."""
    currency: Optional[str] = None  # None → базовая валюта каталога
    locale: str = "en-US"
    timezone: str = "UTC"


# =============================================================================
# ENGINE CONFIG
# =============================================================================


@dataclass(frozen=True)
class EngineConfig:
    """Полная конфигурация движка."""

    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    preference_defaults: PreferenceDefaults = field(default_factory=PreferenceDefaults)

    refresh_interval_sec: float = 3600.0
    catalog_path: Optional[str] = None  # None → встроенный каталог
    rate_providers: Tuple[str, ...] = ("frankfurter", "open_er_api")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Загрузка конфигурации из переменных окружения."""
        breaker_defaults = CircuitBreakerConfig()
        refresh_defaults = RefreshConfig()
        conversion_defaults = ConversionConfig()
        preference_defaults = PreferenceDefaults()

        providers_raw = _env("RATE_PROVIDERS")
        providers = (
            tuple(p.strip() for p in providers_raw.split(",") if p.strip())
            if providers_raw
            else cls.rate_providers
        )

        return cls(
            circuit_breaker=CircuitBreakerConfig(
                failure_threshold=_int(_env("BREAKER_FAILURE_THRESHOLD"), breaker_defaults.failure_threshold),
                cooldown_sec=_float(_env("BREAKER_COOLDOWN_SEC"), breaker_defaults.cooldown_sec),
            ),
            refresh=RefreshConfig(
                provider_timeout_sec=_float(_env("PROVIDER_TIMEOUT_SEC"), refresh_defaults.provider_timeout_sec),
                cycle_timeout_sec=_float(_env("REFRESH_TIMEOUT_SEC"), refresh_defaults.cycle_timeout_sec),
                significant_change_threshold=_decimal(
                    _env("SIGNIFICANT_CHANGE_THRESHOLD"), refresh_defaults.significant_change_threshold
                ),
            ),
            conversion=ConversionConfig(
                staleness_threshold_sec=_float(
                    _env("STALENESS_THRESHOLD_SEC"), conversion_defaults.staleness_threshold_sec
                ),
            ),
            preference_defaults=PreferenceDefaults(
                currency=_env("DEFAULT_CURRENCY") or preference_defaults.currency,
                locale=_env("DEFAULT_LOCALE") or preference_defaults.locale,
                timezone=_env("DEFAULT_TIMEZONE") or preference_defaults.timezone,
            ),
            refresh_interval_sec=_float(_env("REFRESH_INTERVAL_SEC"), 3600.0),
            catalog_path=_env("CATALOG_PATH") or None,
            rate_providers=providers,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )
