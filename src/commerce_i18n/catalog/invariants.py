"""
Catalog Invariants — проверки целостности каталога

Любое нарушение: CatalogError (fatal): на старте процесс отказывается
обслуживать запросы, при reload новый каталог отклоняется.

Проверяется:
1. Ровно одна базовая валюта, уникальные коды валют
2. Уникальные коды стран, default_currency ссылается на валюту каталога,
   timezone известен базе IANA
3. Зоны: уникальные имена, ровно одна catch-all с наибольшим priority,
   зоны с равным priority не пересекаются, страны зон известны
4. Тарифы: зона существует, пара (zone, service_level) уникальна
5. Налоги: страна существует, пара (country, region) уникальна
"""

from collections import Counter
from typing import Iterable, List, Sequence

from commerce_i18n.core.domain import ShippingZone, is_valid_timezone
from commerce_i18n.errors import CatalogError

from .model import Catalog


def _duplicates(keys: Iterable) -> List:
    return sorted((k for k, n in Counter(keys).items() if n > 1), key=str)


# =============================================================================
# ZONES
# =============================================================================


def validate_zones(zones: Sequence[ShippingZone]) -> ShippingZone:
    """
    Проверка набора зон доставки.

    Args:
        zones: Зоны каталога

    Returns:
        Catch-all зона

    Raises:
        CatalogError: Нет catch-all / несколько catch-all / catch-all не последняя
            по priority / пересечение зон с равным priority / дубликаты имён
    """
    dup_names = _duplicates(z.name for z in zones)
    if dup_names:
        raise CatalogError(f"duplicate zone names: {dup_names}", table="shipping_zones")

    catch_alls = [z for z in zones if z.catch_all]
    if not catch_alls:
        raise CatalogError("no catch-all shipping zone defined", table="shipping_zones")
    if len(catch_alls) > 1:
        names = sorted(z.name for z in catch_alls)
        raise CatalogError(f"multiple catch-all zones: {names}", table="shipping_zones")

    catch_all = catch_alls[0]
    for zone in zones:
        if zone is not catch_all and zone.priority >= catch_all.priority:
            raise CatalogError(
                f"catch-all zone '{catch_all.name}' (priority {catch_all.priority}) must have "
                f"the highest priority number; zone '{zone.name}' has priority {zone.priority}",
                table="shipping_zones",
            )

    # Пересечения внутри одного priority (catch-all уже исключён проверкой выше)
    by_priority: dict = {}
    for zone in zones:
        by_priority.setdefault(zone.priority, []).append(zone)
    for priority, group in sorted(by_priority.items()):
        for i, left in enumerate(group):
            for right in group[i + 1:]:
                overlap = left.countries & right.countries
                if overlap:
                    raise CatalogError(
                        f"zones '{left.name}' and '{right.name}' share priority {priority} "
                        f"and overlap on {sorted(overlap)}",
                        table="shipping_zones",
                    )

    return catch_all


# =============================================================================
# FULL CATALOG
# =============================================================================


def validate_catalog(catalog: Catalog) -> None:
    """
    Проверка всех инвариантов каталога.

    Raises:
        CatalogError: При первом найденном нарушении
    """
    # 1. Валюты
    dup = _duplicates(c.code for c in catalog.currencies)
    if dup:
        raise CatalogError(f"duplicate currency codes: {dup}", table="currencies")
    catalog.base_currency  # ровно одна базовая валюта

    # 2. Страны
    dup = _duplicates(c.code for c in catalog.countries)
    if dup:
        raise CatalogError(f"duplicate country codes: {dup}", table="countries")
    for country in catalog.countries:
        if not catalog.has_currency(country.default_currency):
            raise CatalogError(
                f"country {country.code} references unknown currency {country.default_currency}",
                table="countries",
            )
        if not is_valid_timezone(country.timezone):
            raise CatalogError(
                f"country {country.code} has unknown timezone {country.timezone!r}",
                table="countries",
            )

    # 3. Зоны
    validate_zones(catalog.shipping_zones)
    for zone in catalog.shipping_zones:
        unknown = sorted(code for code in zone.countries if not catalog.has_country(code))
        if unknown:
            raise CatalogError(
                f"zone '{zone.name}' references unknown countries {unknown}",
                table="shipping_zones",
            )

    # 4. Тарифы
    for rate in catalog.shipping_rates:
        if catalog.zone(rate.zone) is None:
            raise CatalogError(
                f"rate {rate.service_level.value} references unknown zone '{rate.zone}'",
                table="shipping_rates",
            )
    dup = _duplicates((r.zone, r.service_level.value) for r in catalog.shipping_rates)
    if dup:
        raise CatalogError(f"duplicate (zone, service_level) rates: {dup}", table="shipping_rates")

    # 5. Налоги
    for tax in catalog.tax_rates:
        if not catalog.has_country(tax.country_code):
            raise CatalogError(
                f"tax rate references unknown country {tax.country_code}", table="tax_rates"
            )
    dup = _duplicates(t.key for t in catalog.tax_rates)
    if dup:
        raise CatalogError(f"duplicate (country, region) tax rates: {dup}", table="tax_rates")
