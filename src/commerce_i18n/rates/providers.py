"""
Rate Providers — внешние источники курсов валют

Контракт провайдера: fetch(base) -> {код валюты: курс base→X} или ProviderError.
Провайдер не знает о circuit breaker и fallback: это забота оркестратора.

Реализации:
- HttpRateProvider: JSON API поверх requests.Session (Frankfurter, open.er-api)
- StaticRateProvider: фиксированная карта курсов (seed, тесты, offline режим)
"""

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import requests

from commerce_i18n.errors import ProviderError, ProviderErrorKind
from commerce_i18n.utils.logging_config import setup_logger

logger = setup_logger(__name__)


DEFAULT_HTTP_TIMEOUT_SEC = 5.0

FRANKFURTER_URL = "https://api.frankfurter.app/latest"
OPEN_ER_API_URL = "https://open.er-api.com/v6/latest/{base}"


class RateProvider(ABC):
    """Источник курсов base→X."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Идентификатор провайдера (используется в ExchangeRate.provider_id и логах)."""

    @abstractmethod
    def fetch(self, base: str) -> Mapping[str, Decimal]:
        """
        Получение курсов относительно base.

        Raises:
            ProviderError: Любой сбой (сеть, HTTP статус, некорректный payload)
        """


def parse_rate_map(provider_id: str, raw: Any, base: str) -> Dict[str, Decimal]:
    """
    Нормализация карты курсов из payload провайдера.

    Курс базовой валюты к самой себе отбрасывается. Каждый курс должен быть
    конечным положительным числом.

    Raises:
        ProviderError(MALFORMED_PAYLOAD)
    """
    if not isinstance(raw, Mapping):
        raise ProviderError(
            ProviderErrorKind.MALFORMED_PAYLOAD, provider_id, f"rates is {type(raw).__name__}, expected object"
        )

    rates: Dict[str, Decimal] = {}
    for code, value in raw.items():
        if not isinstance(code, str) or len(code) != 3 or not code.isalpha() or not code.isupper():
            raise ProviderError(ProviderErrorKind.MALFORMED_PAYLOAD, provider_id, f"invalid currency code {code!r}")
        if code == base:
            continue
        if isinstance(value, bool):
            raise ProviderError(ProviderErrorKind.MALFORMED_PAYLOAD, provider_id, f"rate for {code} is boolean")
        try:
            rate = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ProviderError(ProviderErrorKind.MALFORMED_PAYLOAD, provider_id, f"rate for {code} is not numeric")
        if not rate.is_finite() or rate <= 0:
            raise ProviderError(ProviderErrorKind.MALFORMED_PAYLOAD, provider_id, f"rate for {code} must be positive")
        rates[code] = rate
    return rates


# =============================================================================
# HTTP PROVIDER
# =============================================================================


class HttpRateProvider(RateProvider):
    """
    JSON API провайдер курсов.

    URL строится из url_template (подстановка {base}) и query параметров
    params_fn(base). Карта курсов берётся из поля rates_field ответа.
    """

    def __init__(
        self,
        provider_id: str,
        url_template: str,
        params_fn: Optional[Callable[[str], Dict[str, str]]] = None,
        rates_field: str = "rates",
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SEC,
    ):
        self._provider_id = provider_id
        self.url_template = url_template
        self.params_fn = params_fn
        self.rates_field = rates_field
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def provider_id(self) -> str:
        return self._provider_id

    def fetch(self, base: str) -> Mapping[str, Decimal]:
        url = self.url_template.format(base=base)
        params = self.params_fn(base) if self.params_fn else None

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise ProviderError(ProviderErrorKind.TIMEOUT, self.provider_id, str(e))
        except requests.RequestException as e:
            # ConnectionError, TooManyRedirects, InvalidURL и т.п.
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, self.provider_id, str(e))

        if response.status_code == 429:
            raise ProviderError(ProviderErrorKind.RATE_LIMITED, self.provider_id, "HTTP 429")
        if not 200 <= response.status_code < 300:
            raise ProviderError(
                ProviderErrorKind.HTTP_ERROR, self.provider_id, f"HTTP {response.status_code}"
            )

        try:
            payload = response.json(parse_float=Decimal)
        except ValueError as e:
            raise ProviderError(ProviderErrorKind.MALFORMED_PAYLOAD, self.provider_id, f"invalid JSON: {e}")

        if not isinstance(payload, Mapping) or self.rates_field not in payload:
            raise ProviderError(
                ProviderErrorKind.MALFORMED_PAYLOAD, self.provider_id, f"missing '{self.rates_field}' field"
            )

        rates = parse_rate_map(self.provider_id, payload[self.rates_field], base)
        logger.debug(f"{self.provider_id}: fetched {len(rates)} rates for base {base}")
        return rates

    def close(self) -> None:
        self.session.close()


def frankfurter_provider(
    session: Optional[requests.Session] = None, timeout: float = DEFAULT_HTTP_TIMEOUT_SEC
) -> HttpRateProvider:
    """Frankfurter (ECB reference rates): GET /latest?from=BASE → {"rates": {...}}."""
    return HttpRateProvider(
        provider_id="frankfurter",
        url_template=FRANKFURTER_URL,
        params_fn=lambda base: {"from": base},
        session=session,
        timeout=timeout,
    )


def open_er_api_provider(
    session: Optional[requests.Session] = None, timeout: float = DEFAULT_HTTP_TIMEOUT_SEC
) -> HttpRateProvider:
    """open.er-api.com: GET /v6/latest/BASE → {"rates": {...}}."""
    return HttpRateProvider(
        provider_id="open_er_api",
        url_template=OPEN_ER_API_URL,
        session=session,
        timeout=timeout,
    )


# =============================================================================
# STATIC PROVIDER
# =============================================================================


class StaticRateProvider(RateProvider):
    """Провайдер с фиксированными курсами base→X."""

    def __init__(self, provider_id: str, base: str, rates: Mapping[str, Any]):
        self._provider_id = provider_id
        self.base = base
        self.rates = parse_rate_map(provider_id, dict(rates), base)

    @property
    def provider_id(self) -> str:
        return self._provider_id

    def fetch(self, base: str) -> Mapping[str, Decimal]:
        if base != self.base:
            raise ProviderError(
                ProviderErrorKind.UNAVAILABLE,
                self.provider_id,
                f"static rates are published for base {self.base}, not {base}",
            )
        return dict(self.rates)


_HTTP_FACTORIES = {
    "frankfurter": frankfurter_provider,
    "open_er_api": open_er_api_provider,
}


def build_providers(
    names: Iterable[str],
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT_SEC,
) -> List[RateProvider]:
    """
    Провайдеры по именам в порядке приоритета.

    Raises:
        ValueError: Неизвестное имя провайдера
    """
    providers: List[RateProvider] = []
    for name in names:
        factory = _HTTP_FACTORIES.get(name)
        if factory is None:
            raise ValueError(f"unknown rate provider '{name}', expected one of {sorted(_HTTP_FACTORIES)}")
        providers.append(factory(session=session, timeout=timeout))
    return providers
