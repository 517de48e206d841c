"""
Catalog Loader — загрузка каталога из табличных записей

Источник: JSON документ (файл или уже разобранный dict) с массивом записей
на каждую таблицу. Дробные числа читаются как Decimal (без float).

Порядок:
1. JSON Schema валидация документа и каждой записи
2. Построение Pydantic моделей (frozen)
3. Проверка инвариантов каталога

Ошибка на любом шаге: CatalogError; частично загруженный каталог не возвращается.
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from commerce_i18n.core.contracts import collect_catalog_errors
from commerce_i18n.core.domain import (
    Country,
    Currency,
    ShippingRate,
    ShippingZone,
    TaxRate,
)
from commerce_i18n.errors import CatalogError
from commerce_i18n.utils.logging_config import setup_logger

from .invariants import validate_catalog
from .model import Catalog

logger = setup_logger(__name__)


DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "default_catalog.json"

CatalogSource = Union[str, Path, Mapping[str, Any]]

_TABLE_MODELS = {
    "currencies": Currency,
    "countries": Country,
    "shipping_zones": ShippingZone,
    "shipping_rates": ShippingRate,
    "tax_rates": TaxRate,
}


def read_catalog_document(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Чтение JSON документа каталога (дробные числа → Decimal).

    Raises:
        CatalogError: Файл не найден или не является валидным JSON
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f, parse_float=Decimal)
    except FileNotFoundError:
        raise CatalogError(f"catalog file not found: {path}")
    except json.JSONDecodeError as e:
        raise CatalogError(f"catalog file {path} is not valid JSON: {e}")


def build_catalog(document: Mapping[str, Any]) -> Catalog:
    """
    Построение и валидация каталога из документа.

    Args:
        document: Документ каталога

    Returns:
        Валидный Catalog

    Raises:
        CatalogError: Нарушение схемы, модели или инварианта
    """
    document = dict(document)

    errors = collect_catalog_errors(document)
    if errors:
        preview = "; ".join(errors[:5])
        more = f" (+{len(errors) - 5} more)" if len(errors) > 5 else ""
        raise CatalogError(f"schema validation failed: {preview}{more}")

    tables: Dict[str, tuple] = {}
    for table, model in _TABLE_MODELS.items():
        rows = []
        for index, record in enumerate(document[table]):
            try:
                rows.append(model.model_validate(record))
            except ValidationError as e:
                first = e.errors()[0]
                location = ".".join(str(p) for p in first["loc"])
                raise CatalogError(f"record {index} {location}: {first['msg']}", table=table)
        tables[table] = tuple(rows)

    catalog = Catalog(
        currencies=tables["currencies"],
        countries=tables["countries"],
        shipping_zones=tables["shipping_zones"],
        shipping_rates=tables["shipping_rates"],
        tax_rates=tables["tax_rates"],
    )
    validate_catalog(catalog)

    logger.info(
        f"Catalog loaded: {len(catalog.currencies)} currencies, {len(catalog.countries)} countries, "
        f"{len(catalog.shipping_zones)} zones, {len(catalog.shipping_rates)} shipping rates, "
        f"{len(catalog.tax_rates)} tax rates (base={catalog.base_currency.code})"
    )
    return catalog


def load_catalog(source: Optional[CatalogSource] = None) -> Catalog:
    """
    Загрузка каталога из файла, dict или встроенного каталога (source=None).

    Raises:
        CatalogError: См. build_catalog / read_catalog_document
    """
    if source is None:
        document = read_catalog_document(DEFAULT_CATALOG_PATH)
    elif isinstance(source, (str, Path)):
        document = read_catalog_document(source)
    else:
        document = source
    return build_catalog(document)


def load_default_catalog() -> Catalog:
    """Встроенный каталог (USD base)."""
    return load_catalog(None)
