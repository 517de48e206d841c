"""
Geolocation — IP адрес → код страны

Контракт: lookup(ip) -> код страны или None (Unknown).
Реализация может бросить GeolocationError; PreferenceResolver трактует
это как Unknown.
"""

import ipaddress
from abc import ABC, abstractmethod
from typing import List, Mapping, Optional, Tuple, Union

from commerce_i18n.errors import GeolocationError
from commerce_i18n.utils.logging_config import setup_logger

logger = setup_logger(__name__)


IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class GeoLocator(ABC):
    """Источник geolocation."""

    @abstractmethod
    def lookup(self, ip_address: str) -> Optional[str]:
        """
        Returns:
            ISO 3166-1 alpha-2 код страны или None

        Raises:
            GeolocationError: Сбой источника
        """


class StaticGeoLocator(GeoLocator):
    """
    Таблица CIDR сетей → страна.

    При пересечении сетей побеждает более специфичная (длиннее префикс).
    """

    def __init__(self, networks: Mapping[str, str]):
        """
        Args:
            networks: {"203.0.113.0/24": "GB", ...}

        Raises:
            ValueError: Некорректная сеть или код страны
        """
        table: List[Tuple[IPNetwork, str]] = []
        for cidr, country in networks.items():
            if len(country) != 2 or not country.isalpha() or not country.isupper():
                raise ValueError(f"invalid country code {country!r} for network {cidr}")
            table.append((ipaddress.ip_network(cidr, strict=False), country))
        table.sort(key=lambda item: item[0].prefixlen, reverse=True)
        self._table = tuple(table)

    def lookup(self, ip_address: str) -> Optional[str]:
        try:
            address = ipaddress.ip_address(ip_address.strip())
        except ValueError as e:
            raise GeolocationError(f"invalid IP address {ip_address!r}") from e

        for network, country in self._table:
            if address.version == network.version and address in network:
                return country
        logger.debug(f"No geolocation match for {address}")
        return None
