"""
ShippingZoneResolver — страна → зона доставки

Детерминированность: среди зон, содержащих страну, выбирается зона
с наименьшим priority. Равные priority с пересечением стран и отсутствие
catch-all зоны отклоняются при создании (CatalogError), поэтому resolve
тотален для любого принятого набора зон.
"""

from typing import Iterable, Tuple

from commerce_i18n.catalog import Catalog, validate_zones
from commerce_i18n.core.domain import ShippingZone
from commerce_i18n.errors import NoZoneMatch


class ShippingZoneResolver:
    """Разрешение зоны по коду страны."""

    def __init__(self, zones: Iterable[ShippingZone]):
        """
        Raises:
            CatalogError: Набор зон нарушает инварианты (см. validate_zones)
        """
        zones = tuple(zones)
        self.catch_all = validate_zones(zones)
        # Порядок проверки: priority, затем имя (имена уникальны)
        self.zones: Tuple[ShippingZone, ...] = tuple(sorted(zones, key=lambda z: (z.priority, z.name)))

    @classmethod
    def from_catalog(cls, catalog: Catalog) -> "ShippingZoneResolver":
        return cls(catalog.shipping_zones)

    def resolve(self, country_code: str) -> ShippingZone:
        """
        Зона с наименьшим priority, содержащая страну.

        Raises:
            NoZoneMatch: Недостижимо для валидного набора зон
        """
        for zone in self.zones:
            if zone.matches(country_code):
                return zone
        raise NoZoneMatch(country_code)
