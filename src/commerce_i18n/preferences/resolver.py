"""
PreferenceResolver — эффективные currency / locale / timezone

Каждое поле разрешается НЕЗАВИСИМО по одной цепочке:
1. Сохранённое предпочтение (если задано и валидно)
2. Geolocation: IP → страна → значение страны по умолчанию
3. Запрос: объявленное клиентом значение / Accept-Language
4. System default

Повреждённое сохранённое значение одного поля пропускается (WARNING)
и не влияет на остальные поля. resolve() не имеет побочных эффектов;
изменение сохранённых предпочтений: только через update().
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from commerce_i18n.catalog import Catalog
from commerce_i18n.config import PreferenceDefaults
from commerce_i18n.core.domain import (
    Country,
    Preference,
    PreferenceSource,
    RequestContext,
    ResolvedPreferences,
    is_valid_timezone,
)
from commerce_i18n.errors import GeolocationError, RequestValidationError
from commerce_i18n.utils.logging_config import setup_logger

from .geolocation import GeoLocator
from .store import PreferenceStore

logger = setup_logger(__name__)


_LANGUAGE_RANGE_RE = re.compile(r"^([A-Za-z]{2,3})(?:[-_]([A-Za-z]{2}))?$")


# =============================================================================
# HELPERS
# =============================================================================


@dataclass(frozen=True)
class LanguageRange:
    """Элемент Accept-Language."""

    language: str
    region: Optional[str]
    quality: float

    @property
    def tag(self) -> str:
        return f"{self.language}-{self.region}" if self.region else self.language


def parse_accept_language(header: Optional[str]) -> List[LanguageRange]:
    """
    Разбор Accept-Language в порядке убывания q (при равных q: порядок заголовка).

    Некорректные элементы, "*" и q=0 пропускаются.

    Example:
        "de-DE,de;q=0.9,en;q=0.8" → [de-DE (1.0), de (0.9), en (0.8)]
    """
    if not header:
        return []

    ranges: List[LanguageRange] = []
    for part in header.split(","):
        pieces = [p.strip() for p in part.split(";")]
        match = _LANGUAGE_RANGE_RE.match(pieces[0])
        if not match:
            continue
        quality = 1.0
        for param in pieces[1:]:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        if quality <= 0:
            continue
        language, region = match.group(1).lower(), match.group(2)
        ranges.append(LanguageRange(language, region.upper() if region else None, min(quality, 1.0)))

    return sorted(ranges, key=lambda r: r.quality, reverse=True)


# =============================================================================
# RESOLVER
# =============================================================================


class PreferenceResolver:
    """Разрешение предпочтений principal для запроса."""

    def __init__(
        self,
        catalog: Catalog,
        store: PreferenceStore,
        geolocator: Optional[GeoLocator] = None,
        defaults: Optional[PreferenceDefaults] = None,
    ):
        self.catalog = catalog
        self.store = store
        self.geolocator = geolocator
        self.defaults = defaults or PreferenceDefaults()

        self._default_currency = self.defaults.currency or catalog.base_currency.code
        if not catalog.has_currency(self._default_currency):
            raise ValueError(f"default currency {self._default_currency} is not in the catalog")
        if self.defaults.locale not in catalog.supported_locales():
            raise ValueError(f"default locale {self.defaults.locale} is not a catalog locale")
        if not is_valid_timezone(self.defaults.timezone):
            raise ValueError(f"default timezone {self.defaults.timezone} is not a known IANA timezone")

    # -------------------------------------------------------------------------
    # RESOLVE (pure)
    # -------------------------------------------------------------------------

    def resolve(self, principal: Optional[str], context: Optional[RequestContext] = None) -> ResolvedPreferences:
        """
        Эффективные предпочтения.

        Args:
            principal: Идентификатор пользователя (None: анонимный запрос)
            context: Контекст запроса
        """
        context = context or RequestContext()
        saved = self.store.get(principal) if principal is not None else None
        saved = saved or Preference()
        geo_country = self._geolocate(context.ip_address)
        languages = parse_accept_language(context.accept_language)

        currency, currency_source = self._first(
            "currency",
            principal,
            saved=(saved.currency, self.catalog.has_currency),
            geo=lambda: geo_country.default_currency if geo_country else None,
            request=lambda: self._request_currency(context, languages),
            default=self._default_currency,
        )
        locale, locale_source = self._first(
            "locale",
            principal,
            saved=(saved.locale, self.is_supported_locale),
            geo=lambda: geo_country.locale if geo_country else None,
            request=lambda: self.negotiate_locale(languages),
            default=self.defaults.locale,
        )
        timezone, timezone_source = self._first(
            "timezone",
            principal,
            saved=(saved.timezone, is_valid_timezone),
            geo=lambda: geo_country.timezone if geo_country else None,
            request=lambda: context.declared_timezone if is_valid_timezone(context.declared_timezone) else None,
            default=self.defaults.timezone,
        )

        return ResolvedPreferences(
            currency=currency,
            locale=locale,
            timezone=timezone,
            currency_source=currency_source,
            locale_source=locale_source,
            timezone_source=timezone_source,
        )

    def _first(
        self,
        field: str,
        principal: Optional[str],
        saved: Tuple[Optional[str], Callable[[str], bool]],
        geo: Callable[[], Optional[str]],
        request: Callable[[], Optional[str]],
        default: str,
    ) -> Tuple[str, PreferenceSource]:
        """Первое значение цепочки для одного поля."""
        saved_value, is_valid = saved
        if saved_value is not None:
            if isinstance(saved_value, str) and is_valid(saved_value):
                return saved_value, PreferenceSource.SAVED
            logger.warning(f"Ignoring corrupt saved {field} {saved_value!r} for principal {principal}")

        value = geo()
        if value is not None:
            return value, PreferenceSource.GEOLOCATION

        value = request()
        if value is not None:
            return value, PreferenceSource.REQUEST

        return default, PreferenceSource.DEFAULT

    def _geolocate(self, ip_address: Optional[str]) -> Optional[Country]:
        if self.geolocator is None or not ip_address:
            return None
        try:
            code = self.geolocator.lookup(ip_address)
        except GeolocationError as e:
            logger.warning(f"Geolocation failed for {ip_address}: {e}")
            return None
        if code is None:
            return None
        country = self.catalog.country(code)
        if country is None:
            logger.debug(f"Geolocated country {code} is not in the catalog")
        return country

    def _request_currency(self, context: RequestContext, languages: List[LanguageRange]) -> Optional[str]:
        """Объявленная валюта, иначе валюта страны из региона Accept-Language."""
        declared = context.declared_currency
        if declared and self.catalog.has_currency(declared.upper()):
            return declared.upper()
        for language_range in languages:
            if language_range.region:
                country = self.catalog.country(language_range.region)
                if country is not None:
                    return country.default_currency
        return None

    # -------------------------------------------------------------------------
    # LOCALES
    # -------------------------------------------------------------------------

    def is_supported_locale(self, locale: str) -> bool:
        return locale in self.catalog.supported_locales()

    def negotiate_locale(self, languages: List[LanguageRange]) -> Optional[str]:
        """
        Первый поддерживаемый locale по Accept-Language.

        Точное совпадение тега, затем совпадение языка (первый по алфавиту
        поддерживаемый locale этого языка).
        """
        supported = self.catalog.supported_locales()
        for language_range in languages:
            if language_range.region and language_range.tag in supported:
                return language_range.tag
            same_language = sorted(
                loc for loc in supported if loc.split("-")[0] == language_range.language
            )
            if same_language:
                return same_language[0]
        return None

    # -------------------------------------------------------------------------
    # UPDATE (write path)
    # -------------------------------------------------------------------------

    def update(
        self,
        principal: str,
        currency: Optional[str] = None,
        locale: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> Preference:
        """
        Изменение сохранённых предпочтений.

        Переданные поля валидируются и заменяют сохранённые; остальные
        сохраняются как есть.

        Raises:
            RequestValidationError: Некорректное значение поля или пустой principal
        """
        if not principal:
            raise RequestValidationError("principal", "principal is required")
        if currency is not None and not self.catalog.has_currency(currency):
            raise RequestValidationError("currency", f"unknown currency {currency!r}")
        if locale is not None and not self.is_supported_locale(locale):
            raise RequestValidationError("locale", f"unsupported locale {locale!r}")
        if timezone is not None and not is_valid_timezone(timezone):
            raise RequestValidationError("timezone", f"unknown timezone {timezone!r}")

        current = self.store.get(principal) or Preference()
        updated = Preference(
            currency=currency if currency is not None else current.currency,
            locale=locale if locale is not None else current.locale,
            timezone=timezone if timezone is not None else current.timezone,
        )
        self.store.save(principal, updated)
        logger.info(f"Preferences updated for principal {principal}")
        return updated
