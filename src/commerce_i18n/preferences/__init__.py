"""
Preferences — разрешение currency / locale / timezone пользователя.
"""

from .geolocation import GeoLocator, StaticGeoLocator
from .resolver import LanguageRange, PreferenceResolver, is_valid_timezone, parse_accept_language
from .store import InMemoryPreferenceStore, PreferenceStore

__all__ = [
    "GeoLocator",
    "StaticGeoLocator",
    "PreferenceResolver",
    "LanguageRange",
    "parse_accept_language",
    "is_valid_timezone",
    "PreferenceStore",
    "InMemoryPreferenceStore",
]
