"""
JSON Schema Catalog Validators

Модуль для валидации табличных записей каталога согласно формальным
JSON Schema контрактам. Использует библиотеку jsonschema (Draft 2020-12).

Схемы (core/contracts/schema/):
- catalog.json       : структура документа каталога
- currency.json      : запись таблицы currencies
- country.json       : запись таблицы countries
- shipping_zone.json : запись таблицы shipping_zones
- shipping_rate.json : запись таблицы shipping_rates
- tax_rate.json      : запись таблицы tax_rates
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются внутри пакета (package data) в contracts/schema/.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'currency')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема сама по себе невалидна
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Meta-validation
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[ValidationError]:
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)


class CatalogDocumentValidator(ContractValidator):
    def __init__(self):
        super().__init__("catalog")


class CurrencyValidator(ContractValidator):
    def __init__(self):
        super().__init__("currency")


class CountryValidator(ContractValidator):
    def __init__(self):
        super().__init__("country")


class ShippingZoneValidator(ContractValidator):
    def __init__(self):
        super().__init__("shipping_zone")


class ShippingRateValidator(ContractValidator):
    def __init__(self):
        super().__init__("shipping_rate")


class TaxRateValidator(ContractValidator):
    def __init__(self):
        super().__init__("tax_rate")


# Таблица каталога → валидатор записи
TABLE_VALIDATORS = {
    "currencies": CurrencyValidator,
    "countries": CountryValidator,
    "shipping_zones": ShippingZoneValidator,
    "shipping_rates": ShippingRateValidator,
    "tax_rates": TaxRateValidator,
}


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def collect_catalog_errors(document: Dict[str, Any]) -> List[str]:
    """
    Полная проверка документа каталога: структура + каждая запись каждой таблицы.

    Args:
        document: Документ каталога (dict)

    Returns:
        Список сообщений об ошибках вида "currencies[2].code: ..." (пустой список, если валиден)
    """
    errors: List[str] = []

    document_validator = CatalogDocumentValidator()
    for error in document_validator.iter_errors(document):
        location = ".".join(str(p) for p in error.absolute_path) or "<document>"
        errors.append(f"{location}: {error.message}")

    if errors:
        return errors

    for table, validator_cls in TABLE_VALIDATORS.items():
        validator = validator_cls()
        for index, record in enumerate(document[table]):
            for error in validator.iter_errors(record):
                field = ".".join(str(p) for p in error.absolute_path)
                suffix = f".{field}" if field else ""
                errors.append(f"{table}[{index}]{suffix}: {error.message}")

    return errors
