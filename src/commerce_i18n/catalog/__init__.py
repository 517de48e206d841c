"""
Catalog — справочные таблицы движка (валюты, страны, зоны, тарифы, налоги).
"""

from .invariants import validate_catalog, validate_zones
from .loader import (
    DEFAULT_CATALOG_PATH,
    build_catalog,
    load_catalog,
    load_default_catalog,
    read_catalog_document,
)
from .model import Catalog

__all__ = [
    "Catalog",
    "DEFAULT_CATALOG_PATH",
    "build_catalog",
    "load_catalog",
    "load_default_catalog",
    "read_catalog_document",
    "validate_catalog",
    "validate_zones",
]
