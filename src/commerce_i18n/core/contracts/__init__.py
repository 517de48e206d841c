"""
Contract Validation Module

Модуль для валидации табличных записей каталога против JSON Schema.
"""

from .validators import (
    TABLE_VALIDATORS,
    CatalogDocumentValidator,
    ContractValidator,
    CountryValidator,
    CurrencyValidator,
    SchemaLoader,
    ShippingRateValidator,
    ShippingZoneValidator,
    TaxRateValidator,
    collect_catalog_errors,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "CatalogDocumentValidator",
    "CurrencyValidator",
    "CountryValidator",
    "ShippingZoneValidator",
    "ShippingRateValidator",
    "TaxRateValidator",
    "TABLE_VALIDATORS",
    # Functions
    "collect_catalog_errors",
]
