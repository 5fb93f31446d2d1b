"""
Unit Catalog — декларативный каталог единиц

Immutable Pydantic модели JSON-каталога (схема unit_catalog.json) и его
применение к реестру в порядке объявления:

    dimensions → derived_dimensions → base_units → derived_units

Числовые значения в каталоге:
- JSON-число (int / float) берётся как есть: 0.45359237 остаётся float
- строка разбирается как ТОЧНАЯ дробь: "5/9", "273.15" → Fraction

Поэтому точные определения (inch = 127/50 cm) записываются строками.
"""

import json
import logging
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field, field_validator

from unitcore.core.contracts.validators import validate_unit_catalog
from unitcore.core.domain.atoms import NO_UNITS, Units
from unitcore.core.math.factors import SynthesisConfig
from unitcore.core.math.numerical_safeguards import ExactNumber, normalize_exact
from unitcore.registry.registry import UnitRegistry

logger = logging.getLogger(__name__)

CatalogNumber = Union[int, float, str]
CatalogExponent = Union[int, str]


def parse_number(raw: CatalogNumber) -> Union[ExactNumber, float]:
    """
    Числовое значение каталога.

    Examples:
        >>> parse_number("5/9")
        Fraction(5, 9)
        >>> parse_number("273.15")
        Fraction(5463, 20)
        >>> parse_number(12)
        12
    """
    if isinstance(raw, str):
        return normalize_exact(Fraction(raw))
    return raw


def parse_exponent(raw: CatalogExponent) -> Fraction:
    """Показатель степени каталога: 2 или "1/2"."""
    return Fraction(raw)


# =============================================================================
# NESTED MODELS
# =============================================================================


class DimensionDefinition(BaseModel):
    """Базовая размерность (Length, Mass, ...)."""

    name: str = Field(..., min_length=1, description="Имя атома размерности")
    abbreviation: str = Field(..., min_length=1, description="Сокращение ('L')")

    model_config = {"frozen": True}


class DerivedDimensionDefinition(BaseModel):
    """Производная размерность через степени объявленных размерностей."""

    name: str = Field(..., min_length=1, description="Имя размерности ('Area')")
    exponents: Dict[str, CatalogExponent] = Field(
        ..., min_length=1, description="Имя размерности → показатель степени"
    )

    model_config = {"frozen": True}

    @field_validator("exponents")
    @classmethod
    def validate_exponents(cls, v: Dict[str, CatalogExponent]) -> Dict[str, CatalogExponent]:
        """Показатели должны быть ненулевыми рациональными числами"""
        for dimension, raw in v.items():
            if parse_exponent(raw) == 0:
                raise ValueError(f"Exponent of {dimension} must be non-zero")
        return v

    def exponent_map(self) -> Dict[str, Fraction]:
        return {dimension: parse_exponent(raw) for dimension, raw in self.exponents.items()}


class BaseUnitDefinition(BaseModel):
    """Базовая единица размерности; объявляется со всеми SI-префиксами."""

    symbol: str = Field(..., min_length=1, description="Символ ('m')")
    abbreviation: str = Field(..., min_length=1, description="Сокращение для отображения")
    name: str = Field(..., min_length=1, description="Имя атома ('Meter')")
    dimension: str = Field(..., min_length=1, description="Имя объявленной размерности")

    model_config = {"frozen": True}


class UnitTerm(BaseModel):
    """Сомножитель определяющего выражения: символ единицы в степени."""

    symbol: str = Field(..., min_length=1, description="Символ объявленной единицы")
    power: CatalogExponent = Field(1, description="Показатель степени")

    model_config = {"frozen": True}

    @field_validator("power")
    @classmethod
    def validate_power(cls, v: CatalogExponent) -> CatalogExponent:
        """Нулевая степень не несёт информации"""
        if parse_exponent(v) == 0:
            raise ValueError("power must be non-zero")
        return v


class DerivedUnitDefinition(BaseModel):
    """
    Производная единица: symbol = value * Π(units[i].symbol ** units[i].power).

    Пустой список units — безразмерная единица (радиан).
    """

    symbol: str = Field(..., min_length=1, description="Символ ('ft')")
    abbreviation: str = Field(..., min_length=1, description="Сокращение для отображения")
    name: str = Field(..., min_length=1, description="Имя атома ('Foot')")
    value: CatalogNumber = Field(..., description="Числовое значение определения")
    units: List[UnitTerm] = Field(default_factory=list, description="Определяющие единицы")
    prefixes: bool = Field(False, description="Объявлять ли SI-префиксы")
    offset: CatalogNumber = Field(0, description="Смещение шкалы (только температура)")

    model_config = {"frozen": True}

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: CatalogNumber) -> CatalogNumber:
        """Определяющее значение должно быть положительным"""
        if parse_number(v) <= 0:
            raise ValueError(f"value must be positive, got {v}")
        return v

    @field_validator("offset")
    @classmethod
    def validate_offset(cls, v: CatalogNumber) -> CatalogNumber:
        """Смещение должно разбираться как число"""
        parse_number(v)
        return v

    @property
    def exact_value(self) -> Union[ExactNumber, float]:
        return parse_number(self.value)

    @property
    def exact_offset(self) -> Union[ExactNumber, float]:
        return parse_number(self.offset)


# =============================================================================
# CATALOG MODEL
# =============================================================================


class UnitCatalog(BaseModel):
    """
    Каталог размерностей и единиц.

    Immutable модель (frozen=True). Ссылки между записями (размерность
    базовой единицы, символы в определяющих выражениях) проверяются при
    применении к реестру.
    """

    version: str = Field(..., description="Версия формата каталога")
    dimensions: List[DimensionDefinition] = Field(default_factory=list)
    derived_dimensions: List[DerivedDimensionDefinition] = Field(default_factory=list)
    base_units: List[BaseUnitDefinition] = Field(default_factory=list)
    derived_units: List[DerivedUnitDefinition] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("derived_units")
    @classmethod
    def validate_unique_unit_names(
        cls, v: List[DerivedUnitDefinition], info
    ) -> List[DerivedUnitDefinition]:
        """Имена атомов единиц уникальны в пределах каталога"""
        names = [unit.name for unit in info.data.get("base_units", [])]
        names.extend(unit.name for unit in v)
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate unit names in catalog: {duplicates}")
        return v

    @property
    def unit_count(self) -> int:
        return len(self.base_units) + len(self.derived_units)


# =============================================================================
# LOADING / APPLYING
# =============================================================================


def load_catalog(source: Union[str, Path, Dict[str, Any]]) -> UnitCatalog:
    """
    Загрузка каталога: JSON Schema валидация, затем Pydantic модель.

    Args:
        source: Путь к JSON-файлу или уже разобранный документ

    Returns:
        UnitCatalog

    Raises:
        jsonschema.ValidationError: Документ не соответствует unit_catalog.json
        pydantic.ValidationError: Смысловые ошибки (значение <= 0, дубликаты)
    """
    if isinstance(source, dict):
        data = source
        origin = "<dict>"
    else:
        path = Path(source)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        origin = str(path)

    validate_unit_catalog(data)
    catalog = UnitCatalog.model_validate(data)
    logger.info(
        "Loaded unit catalog %s (version %s): %d dimensions, %d units",
        origin,
        catalog.version,
        len(catalog.dimensions) + len(catalog.derived_dimensions),
        catalog.unit_count,
    )
    return catalog


def defining_units(terms: List[UnitTerm], registry: UnitRegistry) -> Units:
    """Композит определяющего выражения из символов реестра."""
    if not terms:
        return NO_UNITS
    return Units.product(*(registry.units(term.symbol) ** parse_exponent(term.power) for term in terms))


def apply_catalog(catalog: UnitCatalog, registry: UnitRegistry) -> UnitRegistry:
    """
    Объявление всех записей каталога в реестре (в порядке каталога).

    Raises:
        UnknownUnit: Ссылка на необъявленную размерность или символ
        DuplicateDeclaration: Коллизия имён или символов с уже объявленными
        RegistryFrozen: Реестр уже заморожен
    """
    for dimension in catalog.dimensions:
        registry.declare_dimension(dimension.name, dimension.abbreviation)

    for derived in catalog.derived_dimensions:
        registry.declare_derived_dimension(derived.name, derived.exponent_map())

    for base in catalog.base_units:
        registry.declare_base_unit(base.symbol, base.abbreviation, base.name, base.dimension)

    for unit in catalog.derived_units:
        registry.declare_derived_unit(
            unit.symbol,
            unit.abbreviation,
            unit.name,
            (unit.exact_value, defining_units(unit.units, registry)),
            prefixes=unit.prefixes,
            offset=unit.exact_offset,
        )

    logger.debug("Applied unit catalog version %s", catalog.version)
    return registry


def build_registry(
    source: Union[str, Path, Dict[str, Any], UnitCatalog],
    config: SynthesisConfig | None = None,
    freeze: bool = True,
) -> UnitRegistry:
    """
    Новый реестр из каталога.

    Args:
        source: Каталог, путь к нему или документ
        config: Конфигурация синтеза множителей
        freeze: Заморозить ли реестр после заполнения

    Returns:
        Заполненный UnitRegistry
    """
    catalog = source if isinstance(source, UnitCatalog) else load_catalog(source)
    registry = apply_catalog(catalog, UnitRegistry(config))
    if freeze:
        registry.freeze()
    return registry
