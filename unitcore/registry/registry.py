"""
UnitRegistry — реестр единиц и размерностей

Процессный реестр с семантикой «заполнить один раз, затем только читать»:

    OPEN ──freeze()──▶ FROZEN

В состоянии OPEN принимаются объявления:
- declare_dimension(name, abbreviation)
- declare_derived_dimension(name, exponents)
- declare_base_unit(symbol, abbreviation, name, dimension) — с полным
  семейством SI-префиксов (y … Y)
- declare_derived_unit(symbol, abbreviation, name, equals, prefixes, offset)

В любом состоянии доступны запросы, которыми пользуется ядро:
- abbreviation_of(atom), dimension_of(atom | units),
  base_factor_of(atom), offset_of(atom | units)

После freeze() любое объявление → RegistryFrozen. Повторное объявление
имени или символа → DuplicateDeclaration (ранее синтезированные множители
поэтому никогда не устаревают).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from numbers import Number
from typing import Dict, Final, Iterator, Mapping, Tuple, Union

from unitcore.core.domain.atoms import NO_DIMENSIONS, Atom, Dimensions, Exponent, Units
from unitcore.core.domain.temperature import ZERO_OFFSET, QuantityKind, kind_of
from unitcore.core.exceptions import (
    DuplicateDeclaration,
    InvalidPrefix,
    RegistryFrozen,
    UnknownUnit,
)
from unitcore.core.math.factors import (
    IDENTITY_BASE_FACTOR,
    BaseFactor,
    FactorSynthesizer,
    SynthesisConfig,
    composite_base_factor,
    tens_exponent,
)
from unitcore.core.math.numerical_safeguards import (
    ExactNumber,
    fits_exact_int,
    is_exact,
    is_valid_float,
    normalize_exact,
    normalize_power,
    pow10_fits_exact,
    scale_by_pow10,
)

logger = logging.getLogger(__name__)

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Показатель степени десяти → символ SI-префикса
PREFIXES: Final[Dict[int, str]] = {
    -24: "y",
    -21: "z",
    -18: "a",
    -15: "f",
    -12: "p",
    -9: "n",
    -6: "μ",
    -3: "m",
    -2: "c",
    -1: "d",
    0: "",
    1: "da",
    2: "h",
    3: "k",
    6: "M",
    9: "G",
    12: "T",
    15: "P",
    18: "E",
    21: "Z",
    24: "Y",
}

# Сокращение для атомов без зарегистрированных данных
MISSING_ABBREVIATION: Final[str] = "???"


# =============================================================================
# RECORDS
# =============================================================================


class RegistryState(str, Enum):
    """Состояние жизненного цикла реестра."""

    OPEN = "OPEN"
    FROZEN = "FROZEN"


@dataclass(frozen=True)
class UnitRecord:
    """Зарегистрированные данные одной единицы (в степени 1, без префикса)."""

    name: str
    abbreviation: str
    dimension: Dimensions
    base_factor: BaseFactor
    offset: ExactNumber = ZERO_OFFSET
    prefixed: bool = False


EqualsSpec = Union[Units, Tuple[object, Units], object]


# =============================================================================
# REGISTRY
# =============================================================================


class UnitRegistry:
    """
    Реестр единиц: таблицы сокращений, размерностей, базовых множителей,
    смещений и символов.

    Каждый реестр владеет своим FactorSynthesizer (кэш множителей).
    """

    def __init__(self, config: SynthesisConfig | None = None):
        """
        Args:
            config: Конфигурация синтеза множителей конверсии
        """
        self._state = RegistryState.OPEN

        # Размерности: имя атома → сокращение; имя (в т.ч. производной) → композит
        self._dimension_abbreviations: Dict[str, str] = {}
        self._named_dimensions: Dict[str, Dimensions] = {}

        # Единицы: имя атома → запись; символ → композит
        self._units: Dict[str, UnitRecord] = {}
        self._symbols: Dict[str, Units] = {}

        # Кэш размерностей композитов (только дописывается)
        self._dimension_cache: Dict[Units, Dimensions] = {}

        self.synthesizer = FactorSynthesizer(self, config)

    # -------------------------------------------------------------------------
    # Жизненный цикл
    # -------------------------------------------------------------------------

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def is_frozen(self) -> bool:
        return self._state is RegistryState.FROZEN

    def freeze(self) -> None:
        """Перевод реестра в режим только для чтения (идемпотентно)."""
        if self._state is RegistryState.FROZEN:
            return
        self._state = RegistryState.FROZEN
        logger.info(
            "Unit registry frozen: %d dimensions, %d units, %d symbols",
            len(self._named_dimensions),
            len(self._units),
            len(self._symbols),
        )

    def _require_open(self, what: str) -> None:
        if self._state is RegistryState.FROZEN:
            raise RegistryFrozen(f"Cannot declare {what}: registry is frozen")

    def _claim_dimension_name(self, name: str) -> None:
        if name in self._named_dimensions:
            raise DuplicateDeclaration(f"Dimension {name!r} is already declared")

    def _claim_unit_name(self, name: str) -> None:
        if name in self._units:
            raise DuplicateDeclaration(f"Unit {name!r} is already declared")

    # -------------------------------------------------------------------------
    # Объявления размерностей
    # -------------------------------------------------------------------------

    def declare_dimension(self, name: str, abbreviation: str) -> Dimensions:
        """
        Объявление базовой размерности.

        Args:
            name: Имя атома размерности ("Length")
            abbreviation: Сокращение для отображения ("L")

        Returns:
            Dimensions из одного атома в степени 1
        """
        self._require_open(f"dimension {name!r}")
        self._claim_dimension_name(name)

        dimensions = Dimensions((Atom(name),))
        self._dimension_abbreviations[name] = abbreviation
        self._named_dimensions[name] = dimensions
        logger.debug("Declared dimension %s (%s)", name, abbreviation)
        return dimensions

    def declare_derived_dimension(
        self,
        name: str,
        exponents: Union[Mapping[str, Exponent], Dimensions],
    ) -> Dimensions:
        """
        Объявление производной размерности через уже известные.

        Args:
            name: Имя ("Area")
            exponents: {"Length": 2} или готовый композит Dimensions

        Returns:
            Канонический композит размерности

        Raises:
            UnknownUnit: Если в exponents есть необъявленная размерность
        """
        self._require_open(f"derived dimension {name!r}")
        self._claim_dimension_name(name)

        if isinstance(exponents, Dimensions):
            dimensions = exponents
        else:
            parts = [self.named_dimension(dim) ** power for dim, power in exponents.items()]
            dimensions = Dimensions.product(*parts) if parts else NO_DIMENSIONS

        self._named_dimensions[name] = dimensions
        logger.debug("Declared derived dimension %s = %r", name, dimensions)
        return dimensions

    # -------------------------------------------------------------------------
    # Объявления единиц
    # -------------------------------------------------------------------------

    def declare_base_unit(
        self,
        symbol: str,
        abbreviation: str,
        name: str,
        dimension: Union[Dimensions, str],
    ) -> Units:
        """
        Объявление базовой единицы с семейством SI-префиксов.

        Базовый множитель — (1.0, 1). Для символа "m" объявляются
        ym, zm, am, fm, pm, nm, μm, mm, cm, dm, m, dam, hm, km, Mm, ... Ym.

        Args:
            symbol: Символ без префикса ("m")
            abbreviation: Сокращение для отображения ("m")
            name: Имя атома ("Meter")
            dimension: Размерность (композит или имя объявленной размерности)

        Returns:
            Units для символа без префикса
        """
        self._require_open(f"unit {name!r}")
        self._claim_unit_name(name)

        dimensions = self._resolve_dimension(dimension)
        record = UnitRecord(name, abbreviation, dimensions, IDENTITY_BASE_FACTOR, prefixed=True)
        return self._register(symbol, record)

    def declare_derived_unit(
        self,
        symbol: str,
        abbreviation: str,
        name: str,
        equals: EqualsSpec,
        prefixes: bool = False,
        offset: ExactNumber = ZERO_OFFSET,
    ) -> Units:
        """
        Объявление единицы через уже известные: ft = 3048/10000 m.

        Базовый множитель новой единицы — базовый множитель единиц equals,
        умноженный на числовое значение equals (точное значение идёт в
        exact-часть, float — в inexact-часть) и на 10**tens единиц equals.

        Args:
            symbol: Символ ("ft")
            abbreviation: Сокращение ("ft")
            name: Имя атома ("Foot")
            equals: Определяющее выражение: Quantity, Units или (value, Units)
            prefixes: Объявлять ли семейство SI-префиксов
            offset: Аддитивное смещение шкалы (только для температуры)

        Returns:
            Units для символа без префикса

        Raises:
            ValueError: Если значение не положительно или смещение задано
                для нетемпературной единицы
        """
        self._require_open(f"unit {name!r}")
        self._claim_unit_name(name)

        value, units = _split_equals(equals)
        base_factor = self._derived_base_factor(value, units)
        dimensions = self.dimension_of(units)

        if offset != 0 and kind_of(dimensions) is not QuantityKind.AFFINE:
            raise ValueError(f"Offset is only allowed for temperature units, got {name!r}")

        record = UnitRecord(
            name,
            abbreviation,
            dimensions,
            base_factor,
            offset=normalize_exact(Fraction(offset)) if is_exact(offset) else offset,
            prefixed=prefixes,
        )
        return self._register(symbol, record)

    def _derived_base_factor(self, value, units: Units) -> BaseFactor:
        if isinstance(value, bool) or not isinstance(value, Number):
            raise TypeError(f"Defining value must be a number, got {type(value).__name__}")
        if value <= 0 or (isinstance(value, float) and not is_valid_float(value)):
            raise ValueError(f"Defining value must be a positive finite number, got {value}")

        inexact, exact = composite_base_factor(units, self)
        exact = Fraction(exact)
        if is_exact(value):
            exact *= Fraction(value)
        else:
            inexact *= float(value)

        tens = tens_exponent(units)
        if pow10_fits_exact(tens):
            candidate = exact * Fraction(10) ** tens
            if fits_exact_int(candidate.numerator) and fits_exact_int(candidate.denominator):
                exact = candidate
            else:
                inexact = scale_by_pow10(inexact, tens)
        elif tens != 0:
            inexact = scale_by_pow10(inexact, tens)

        return BaseFactor(inexact, normalize_exact(exact))

    def _resolve_dimension(self, dimension: Union[Dimensions, str]) -> Dimensions:
        if isinstance(dimension, Dimensions):
            return dimension
        return self.named_dimension(dimension)

    def _register(self, symbol: str, record: UnitRecord) -> Units:
        if record.prefixed:
            family = {
                prefix + symbol: Units((Atom(record.name, tens),), self) for tens, prefix in PREFIXES.items()
            }
        else:
            family = {symbol: Units((Atom(record.name),), self)}

        # Семейство объявляется целиком или не объявляется вовсе;
        # о символе без префикса сообщается в первую очередь
        taken = sorted((name for name in family if name in self._symbols), key=lambda name: name != symbol)
        if taken:
            raise DuplicateDeclaration(f"Unit symbol {taken[0]!r} is already declared")
        self._symbols.update(family)

        self._units[record.name] = record
        logger.debug(
            "Declared unit %s (%s): dimension=%r, base_factor=%r, offset=%s",
            record.name,
            symbol,
            record.dimension,
            record.base_factor,
            record.offset,
        )
        return self._symbols[symbol]

    # -------------------------------------------------------------------------
    # Запросы (контракт для ядра)
    # -------------------------------------------------------------------------

    def _record(self, atom: Atom) -> UnitRecord:
        record = self._units.get(atom.name)
        if record is None:
            raise UnknownUnit(atom.name)
        return record

    def abbreviation_of(self, atom: Atom) -> str:
        """Сокращение атома единицы или размерности; "???" если неизвестно."""
        record = self._units.get(atom.name)
        if record is not None:
            return record.abbreviation
        return self._dimension_abbreviations.get(atom.name, MISSING_ABBREVIATION)

    def dimension_of(self, units: Union[Atom, Units]) -> Dimensions:
        """
        Естественная размерность атома (с учётом его степени) или композита.

        Raises:
            UnknownUnit: Если атом не зарегистрирован
        """
        if isinstance(units, Atom):
            return self._record(units).dimension ** units.power

        cached = self._dimension_cache.get(units)
        if cached is not None:
            return cached

        dimensions = Dimensions.product(*(self.dimension_of(atom) for atom in units))
        self._dimension_cache[units] = dimensions
        return dimensions

    def base_factor_of(self, atom: Atom) -> BaseFactor:
        """
        Зарегистрированный BaseFactor атома в степени 1 (без префикса).

        Raises:
            UnknownUnit: Если атом не зарегистрирован
        """
        return self._record(atom).base_factor

    def offset_of(self, units: Union[Atom, Units]) -> ExactNumber:
        """
        Смещение шкалы для аффинной конверсии.

        Смещение имеет только композит из одного атома в степени 1 без
        префикса (°C, °F). Для всего остального — 0.
        """
        if isinstance(units, Units):
            if len(units) != 1:
                return ZERO_OFFSET
            (units,) = units.atoms

        if units.tens != 0 or units.power != 1:
            return ZERO_OFFSET
        record = self._units.get(units.name)
        return record.offset if record is not None else ZERO_OFFSET

    # -------------------------------------------------------------------------
    # Поиск символов
    # -------------------------------------------------------------------------

    def units(self, symbol: str) -> Units:
        """
        Units по символу ("km", "degC").

        Raises:
            UnknownUnit: Если символ не объявлен
        """
        try:
            return self._symbols[symbol]
        except KeyError:
            raise UnknownUnit(symbol) from None

    def __getitem__(self, symbol: str) -> Units:
        return self.units(symbol)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._symbols

    def symbols(self) -> Iterator[str]:
        """Все объявленные символы в порядке объявления."""
        return iter(self._symbols)

    def named_dimension(self, name: str) -> Dimensions:
        """
        Композит объявленной (базовой или производной) размерности.

        Raises:
            UnknownUnit: Если размерность не объявлена
        """
        try:
            return self._named_dimensions[name]
        except KeyError:
            raise UnknownUnit(name, what="dimension") from None

    def unit_record(self, name: str) -> UnitRecord:
        """Запись единицы по имени атома."""
        return self._record(Atom(name))

    @staticmethod
    def prefix_for(tens: int) -> str:
        """
        Символ SI-префикса для показателя степени десяти.

        Raises:
            InvalidPrefix: Если префикс для tens не определён
        """
        try:
            return PREFIXES[tens]
        except KeyError:
            raise InvalidPrefix(tens) from None

    # -------------------------------------------------------------------------
    # Отображение
    # -------------------------------------------------------------------------

    def format_units(self, units: Units) -> str:
        """Простое текстовое представление: "km s^-1"."""
        return " ".join(self._format_atom(atom, with_prefix=True) for atom in units)

    def format_dimensions(self, dimensions: Dimensions) -> str:
        """Простое текстовое представление размерности: "L T^-1"."""
        return " ".join(self._format_atom(atom, with_prefix=False) for atom in dimensions)

    def _format_atom(self, atom: Atom, with_prefix: bool) -> str:
        text = self.abbreviation_of(atom)
        if with_prefix and atom.tens != 0:
            text = PREFIXES.get(atom.tens, f"10^{atom.tens}*") + text
        power = normalize_power(atom.power)
        if power != 1:
            text += f"^{power}" if isinstance(power, int) else f"^({power})"
        return text


def _split_equals(equals: EqualsSpec) -> Tuple[object, Units]:
    """Разбор определяющего выражения на (значение, единицы)."""
    if isinstance(equals, Units):
        return 1, equals
    if isinstance(equals, tuple) and len(equals) == 2 and isinstance(equals[1], Units):
        return equals
    value = getattr(equals, "value", None)
    units = getattr(equals, "units", None)
    if value is not None and isinstance(units, Units):
        return value, units
    if isinstance(equals, Number):
        return equals, Units()
    raise TypeError(f"Cannot interpret {equals!r} as a defining quantity")
