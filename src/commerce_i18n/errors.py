"""
Errors — таксономия ошибок движка

Recoverable:
- ProviderError: сбой внешнего провайдера курсов (учитывается circuit breaker,
  никогда не пропагирует к вызывающим Convert)
- ConversionUnavailable: нет достаточно свежего курса для нужного плеча
- UnsupportedServiceLevel: зона не поддерживает уровень сервиса

Boundary:
- RequestValidationError: некорректный ввод (отрицательная сумма, неизвестный код)

Fatal (на старте / при reload каталога):
- CatalogError: нарушение инварианта каталога
- NoZoneMatch: страна не попала ни в одну зону (возможно только при битом каталоге)
"""

from enum import Enum
from typing import Optional


class CommerceI18nError(Exception):
    """Базовое исключение движка."""

    pass


# =============================================================================
# PROVIDER ERRORS
# =============================================================================


class ProviderErrorKind(str, Enum):
    """Классификация сбоя провайдера курсов."""

    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    HTTP_ERROR = "http_error"
    RATE_LIMITED = "rate_limited"
    MALFORMED_PAYLOAD = "malformed_payload"
    INCOMPLETE = "incomplete"


class ProviderError(CommerceI18nError):
    """
    Сбой внешнего провайдера курсов.

    Любой ProviderError засчитывается как failure для circuit breaker провайдера.
    """

    def __init__(self, kind: ProviderErrorKind, provider_id: str, message: str = ""):
        self.kind = kind
        self.provider_id = provider_id
        self.message = message
        super().__init__(f"[{provider_id}] {kind.value}: {message}" if message else f"[{provider_id}] {kind.value}")


# =============================================================================
# COMPUTATION ERRORS
# =============================================================================


class ConversionUnavailable(CommerceI18nError):
    """
    Нет курса (или курс старше порога staleness) для одного из плеч конверсии.

    Вызывающий код обязан деградировать (например, показать цену в базовой валюте).
    """

    def __init__(self, source: str, target: str, reason: str):
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(f"Conversion {source}->{target} unavailable: {reason}")


class UnsupportedServiceLevel(CommerceI18nError):
    """Зона не содержит тарифа для запрошенного уровня сервиса. Не ретраится."""

    def __init__(self, zone: str, service_level: str):
        self.zone = zone
        self.service_level = service_level
        super().__init__(f"Zone '{zone}' does not support service level '{service_level}'")


class NoZoneMatch(CommerceI18nError):
    """Страна не попала ни в одну зону: нарушение инварианта catch-all зоны."""

    def __init__(self, country_code: str):
        self.country_code = country_code
        super().__init__(f"No shipping zone matches country '{country_code}'")


class RequestValidationError(CommerceI18nError, ValueError):
    """Некорректный ввод на границе API (до начала вычислений)."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class CatalogError(CommerceI18nError):
    """
    Критическое нарушение инварианта каталога.

    На старте отказ запуска (fail closed). При reload новый каталог отклоняется,
    текущий продолжает обслуживать запросы.
    """

    def __init__(self, message: str, table: Optional[str] = None):
        self.table = table
        super().__init__(f"[{table}] {message}" if table else message)


class GeolocationError(CommerceI18nError):
    """Сбой geolocation lookup. Трактуется как Unknown."""

    pass
