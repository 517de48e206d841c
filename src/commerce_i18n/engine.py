"""
CommerceI18nEngine — фасад движка для остальной части маркетплейса

Downstream операции:
- list_currencies / convert / display_price / format_price
- get_shipping_options / calculate_tax
- resolve_preferences / update_preferences
- refresh_rates / circuit_status / reset_circuits
- reload_catalog

Ввод валидируется на границе (RequestValidationError) до любых вычислений.

Каталог и все зависящие от него компоненты собираются в один immutable
bundle; reload строит и валидирует новый bundle целиком и подменяет ссылку
одним присваиванием. Запрос, начавшийся до reload, дорабатывает на старом bundle.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from commerce_i18n.catalog import Catalog, load_catalog
from commerce_i18n.config import EngineConfig
from commerce_i18n.conversion import ConversionEngine, format_amount, format_exchange_rate
from commerce_i18n.core.domain import (
    Country,
    Currency,
    ExchangeRate,
    Preference,
    RequestContext,
    ResolvedPreferences,
    validate_amount_minor,
)
from commerce_i18n.errors import CatalogError, ConversionUnavailable, RequestValidationError
from commerce_i18n.preferences import GeoLocator, InMemoryPreferenceStore, PreferenceResolver, PreferenceStore
from commerce_i18n.rates import (
    CircuitStatus,
    RateProvider,
    RateProviderOrchestrator,
    RateRefreshScheduler,
    RateStore,
    RateTrend,
    RefreshResult,
    build_providers,
)
from commerce_i18n.rates.orchestrator import utc_now
from commerce_i18n.shipping import ShippingQuote, ShippingRateCalculator, ShippingZoneResolver
from commerce_i18n.tax import TaxCalculation, TaxEngine
from commerce_i18n.utils.logging_config import set_log_level, setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class DisplayPrice:
    """
    Цена для отображения.

    degraded=True: курс в предпочитаемую валюту недоступен, сумма показана
    в базовой валюте (или в исходной, если недоступен и курс к базовой).
    """

    amount_minor: int
    currency: str
    formatted: str
    degraded: bool
    requested_currency: str


@dataclass(frozen=True)
class _Components:
    """Компоненты, построенные над одним снапшотом каталога."""

    catalog: Catalog
    conversion: ConversionEngine
    zones: ShippingZoneResolver
    shipping: ShippingRateCalculator
    tax: TaxEngine
    preferences: PreferenceResolver


class CommerceI18nEngine:
    """Фасад: currency, shipping, tax и preferences."""

    def __init__(
        self,
        catalog: Catalog,
        providers: Sequence[RateProvider],
        config: Optional[EngineConfig] = None,
        preference_store: Optional[PreferenceStore] = None,
        geolocator: Optional[GeoLocator] = None,
        seed_rates: Iterable[ExchangeRate] = (),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            catalog: Валидный каталог
            providers: Провайдеры курсов в порядке приоритета
            config: Конфигурация движка
            preference_store: Хранилище предпочтений (по умолчанию in-memory)
            geolocator: Geolocation lookup (None: шаг geolocation пропускается)
            seed_rates: Начальный снапшот курсов
            clock: Источник текущего времени (UTC aware)
        """
        self.config = config or EngineConfig()
        self.clock = clock or utc_now
        self.preference_store = preference_store or InMemoryPreferenceStore()
        self.geolocator = geolocator

        self.rate_store = RateStore(catalog.base_currency.code, seed=seed_rates)
        self.orchestrator = RateProviderOrchestrator(
            providers,
            self.rate_store,
            config=self.config.refresh,
            breaker_config=self.config.circuit_breaker,
            conversion_config=self.config.conversion,
            clock=self.clock,
        )
        self._reload_lock = threading.Lock()
        self._components = self._build_components(catalog)
        self._scheduler: Optional[RateRefreshScheduler] = None

    @classmethod
    def from_config(
        cls,
        config: Optional[EngineConfig] = None,
        preference_store: Optional[PreferenceStore] = None,
        geolocator: Optional[GeoLocator] = None,
    ) -> "CommerceI18nEngine":
        """
        Сборка движка из конфигурации (каталог из catalog_path или встроенный,
        HTTP провайдеры из rate_providers, уровень логов пакета из log_level).

        Raises:
            CatalogError: Каталог невалиден (fail closed)
        """
        config = config or EngineConfig.from_env()
        set_log_level(config.log_level)
        catalog = load_catalog(config.catalog_path)
        providers = build_providers(config.rate_providers, timeout=config.refresh.provider_timeout_sec)
        return cls(
            catalog,
            providers,
            config=config,
            preference_store=preference_store,
            geolocator=geolocator,
        )

    def _build_components(self, catalog: Catalog) -> _Components:
        zones = ShippingZoneResolver.from_catalog(catalog)
        return _Components(
            catalog=catalog,
            conversion=ConversionEngine(catalog, self.rate_store, self.config.conversion, clock=self.clock),
            zones=zones,
            shipping=ShippingRateCalculator(zones, catalog.shipping_rates),
            tax=TaxEngine(catalog),
            preferences=PreferenceResolver(
                catalog,
                self.preference_store,
                geolocator=self.geolocator,
                defaults=self.config.preference_defaults,
            ),
        )

    @property
    def catalog(self) -> Catalog:
        return self._components.catalog

    # -------------------------------------------------------------------------
    # CURRENCY
    # -------------------------------------------------------------------------

    def list_currencies(self) -> List[Currency]:
        return list(self._components.catalog.currencies)

    def convert(self, amount_minor: int, source: str, target: str) -> int:
        """
        Raises:
            RequestValidationError: Некорректный ввод
            ConversionUnavailable: Нет свежего курса
        """
        components = self._components
        self._validate_amount(amount_minor)
        self._require_currency(components.catalog, source, "source")
        self._require_currency(components.catalog, target, "target")
        return components.conversion.convert(amount_minor, source, target)

    def display_price(self, amount_minor: int, source: str, preferred: str) -> DisplayPrice:
        """
        Цена в предпочитаемой валюте с деградацией при ConversionUnavailable.

        Raises:
            RequestValidationError: Некорректный ввод
        """
        components = self._components
        catalog = components.catalog
        self._validate_amount(amount_minor)
        self._require_currency(catalog, source, "source")
        self._require_currency(catalog, preferred, "preferred")

        base = catalog.base_currency.code
        fallbacks = [preferred] + [code for code in (base, source) if code != preferred]
        for position, code in enumerate(fallbacks):
            try:
                converted = components.conversion.convert(amount_minor, source, code)
            except ConversionUnavailable as e:
                logger.warning(f"Display price degraded: {e}")
                continue
            return DisplayPrice(
                amount_minor=converted,
                currency=code,
                formatted=format_amount(converted, catalog.currency(code)),
                degraded=position > 0,
                requested_currency=preferred,
            )

        # convert(x, A, A) не обращается к курсам, сюда попасть нельзя
        raise ConversionUnavailable(source, preferred, "no display currency available")

    def format_price(self, amount_minor: int, currency: str) -> str:
        catalog = self._components.catalog
        if isinstance(amount_minor, bool) or not isinstance(amount_minor, int):
            raise RequestValidationError("amount_minor", "amount must be an integer")
        return format_amount(amount_minor, self._require_currency(catalog, currency, "currency"))

    def format_rate(self, source: str, target: str) -> str:
        """
        Raises:
            RequestValidationError, ConversionUnavailable
        """
        components = self._components
        src = self._require_currency(components.catalog, source, "source")
        dst = self._require_currency(components.catalog, target, "target")
        return format_exchange_rate(src, dst, components.conversion.rate_between(source, target))

    def rate_trend(self, target: str) -> Optional[RateTrend]:
        self._require_currency(self._components.catalog, target, "target")
        return self.rate_store.trend(target, self.clock())

    # -------------------------------------------------------------------------
    # SHIPPING / TAX
    # -------------------------------------------------------------------------

    def get_shipping_options(self, country_code: str, weight_grams: int) -> List[ShippingQuote]:
        """
        Доступные уровни сервиса для страны (economy → overnight).

        Стоимость: в minor units базовой валюты. Страна без права доставки: [].

        Raises:
            RequestValidationError: Неизвестная страна или некорректный вес
        """
        components = self._components
        country = self._require_country(components.catalog, country_code)
        if isinstance(weight_grams, bool) or not isinstance(weight_grams, int) or weight_grams < 0:
            raise RequestValidationError("weight_grams", f"must be a non-negative integer, got {weight_grams!r}")
        if not country.shipping_eligible:
            return []
        return components.shipping.options(country.code, weight_grams)

    def calculate_tax(
        self,
        country_code: str,
        category: Optional[str],
        amount_minor: int,
        inclusive: Optional[bool] = None,
        region_code: Optional[str] = None,
    ) -> TaxCalculation:
        """
        Raises:
            RequestValidationError: Неизвестная страна или некорректная сумма
        """
        components = self._components
        self._validate_amount(amount_minor)
        self._require_country(components.catalog, country_code)
        return components.tax.calculate(country_code, category, amount_minor, inclusive, region_code)

    # -------------------------------------------------------------------------
    # PREFERENCES
    # -------------------------------------------------------------------------

    def resolve_preferences(
        self, principal: Optional[str], context: Optional[RequestContext] = None
    ) -> ResolvedPreferences:
        return self._components.preferences.resolve(principal, context)

    def update_preferences(
        self,
        principal: str,
        currency: Optional[str] = None,
        locale: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> Preference:
        return self._components.preferences.update(principal, currency=currency, locale=locale, timezone=timezone)

    # -------------------------------------------------------------------------
    # RATES
    # -------------------------------------------------------------------------

    def refresh_rates(self, cancel_event: Optional[threading.Event] = None) -> RefreshResult:
        """Один цикл обновления курсов для всех небазовых валют каталога."""
        catalog = self._components.catalog
        return self.orchestrator.refresh(
            catalog.base_currency.code,
            expected_currencies=catalog.non_base_currency_codes(),
            cancel_event=cancel_event,
        )

    def circuit_status(self) -> Dict[str, CircuitStatus]:
        return self.orchestrator.circuit_status()

    def reset_circuits(self) -> None:
        self.orchestrator.reset_circuits()

    @property
    def healthy(self) -> bool:
        return self.orchestrator.healthy

    def start_scheduler(self, run_immediately: bool = True) -> RateRefreshScheduler:
        """Фоновый refresh каждые refresh_interval_sec."""
        if self._scheduler is None:
            self._scheduler = RateRefreshScheduler(
                self.orchestrator,
                self.rate_store.base_currency,
                interval_sec=self.config.refresh_interval_sec,
                expected_currencies=lambda: self._components.catalog.non_base_currency_codes(),
                run_immediately=run_immediately,
            )
        self._scheduler.start()
        return self._scheduler

    def close(self) -> None:
        if self._scheduler is not None:
            self._scheduler.stop()
        self.orchestrator.close()

    # -------------------------------------------------------------------------
    # CATALOG RELOAD
    # -------------------------------------------------------------------------

    def reload_catalog(self, source: Any = None) -> Catalog:
        """
        Перезагрузка каталога без простоя.

        Новый каталог полностью валидируется до подмены; при ошибке текущий
        каталог продолжает обслуживать запросы.

        Args:
            source: Путь к файлу, документ или None (config.catalog_path / встроенный)

        Raises:
            CatalogError: Новый каталог невалиден или меняет базовую валюту
        """
        with self._reload_lock:
            try:
                catalog = load_catalog(source if source is not None else self.config.catalog_path)
                if catalog.base_currency.code != self.rate_store.base_currency:
                    raise CatalogError(
                        f"reload changes base currency {self.rate_store.base_currency} → "
                        f"{catalog.base_currency.code}",
                        table="currencies",
                    )
                try:
                    components = self._build_components(catalog)
                except ValueError as e:
                    raise CatalogError(f"catalog is incompatible with engine config: {e}")
            except CatalogError as e:
                logger.error(f"Catalog reload rejected: {e}")
                raise

            self._components = components
            logger.info("Catalog reload accepted")
            return catalog

    # -------------------------------------------------------------------------
    # BOUNDARY VALIDATION
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_amount(amount_minor: int) -> None:
        try:
            validate_amount_minor(amount_minor)
        except (TypeError, ValueError) as e:
            raise RequestValidationError("amount_minor", str(e))

    @staticmethod
    def _require_currency(catalog: Catalog, code: str, field: str) -> Currency:
        currency = catalog.currency(code) if isinstance(code, str) else None
        if currency is None:
            raise RequestValidationError(field, f"unknown currency {code!r}")
        return currency

    @staticmethod
    def _require_country(catalog: Catalog, code: str) -> Country:
        country = catalog.country(code) if isinstance(code, str) else None
        if country is None:
            raise RequestValidationError("country_code", f"unknown country {code!r}")
        return country
