"""
Temperature Affine Handler — линейные и аффинные величины

Вид величины (QuantityKind) определяется один раз, при создании Quantity,
по канонической размерности её единиц:
- AFFINE: размерность ровно Temperature^1 (K, °C, °F, Ra)
- LINEAR: всё остальное (m, kg·m/s², K/s, K², ...)

Конверсия:
    LINEAR: target_value = value * factor
    AFFINE: target_value = (value + source_offset) * factor - target_offset

Смещения задаются в шкале самой единицы (°C: 273.15, °F: 459.67) и
применяются ТОЛЬКО при конверсии. Арифметика двух температур в одной
и той же единице смещения не учитывает (10°C + 20°C = 30°C).
"""

from enum import Enum
from fractions import Fraction
from typing import Callable, Dict, Final

from unitcore.core.domain.atoms import Atom, Dimensions
from unitcore.core.math.factors import ConversionFactor, ExactFactor
from unitcore.core.math.numerical_safeguards import (
    ExactNumber,
    decimal_fraction,
    is_exact,
    is_valid_float,
    normalize_exact,
)

# Имя размерности температуры
TEMPERATURE_DIMENSION_NAME: Final[str] = "Temperature"

# Размерность, при которой величина становится аффинной
TEMPERATURE_DIMENSIONS: Final[Dimensions] = Dimensions((Atom(TEMPERATURE_DIMENSION_NAME),))

# Смещение абсолютных шкал (K, Ra) и всех нетемпературных единиц
ZERO_OFFSET: Final[int] = 0


# =============================================================================
# ENUMS
# =============================================================================


class QuantityKind(str, Enum):
    """Вид величины: чисто масштабная или масштаб + смещение."""

    LINEAR = "LINEAR"
    AFFINE = "AFFINE"


def kind_of(dimensions: Dimensions) -> QuantityKind:
    """
    Вид величины по её канонической размерности.

    Examples:
        >>> kind_of(TEMPERATURE_DIMENSIONS)
        <QuantityKind.AFFINE: 'AFFINE'>
        >>> kind_of(TEMPERATURE_DIMENSIONS ** 2)
        <QuantityKind.LINEAR: 'LINEAR'>
    """
    if dimensions == TEMPERATURE_DIMENSIONS:
        return QuantityKind.AFFINE
    return QuantityKind.LINEAR


# =============================================================================
# CONVERTERS
# =============================================================================


def convert_linear(value, factor: ConversionFactor, source_offset=ZERO_OFFSET, target_offset=ZERO_OFFSET):
    """Линейная конверсия: value * factor. Смещения игнорируются."""
    return factor.scale(value)


def convert_affine(
    value,
    factor: ConversionFactor,
    source_offset: ExactNumber = ZERO_OFFSET,
    target_offset: ExactNumber = ZERO_OFFSET,
):
    """
    Аффинная конверсия: (value + source_offset) * factor - target_offset.

    При точном множителе выражение считается в дробях:
    - точное значение → точный результат (32 °F → 0 °C ровно)
    - float → значение читается по своей десятичной записи (273.15, а не
      ближайшая к нему двоичная дробь), расчёт точный, округление одно:
      0.0 °C → 273.15 K → 0.0 °C
    Иначе вычисление идёт во float.

    Args:
        value: Значение в исходных единицах
        factor: Множитель конверсии из исходных единиц в целевые
        source_offset: Смещение исходной шкалы (в её единицах)
        target_offset: Смещение целевой шкалы (в её единицах)

    Returns:
        Значение в целевых единицах
    """
    if isinstance(factor, ExactFactor):
        if is_exact(value):
            shifted = (Fraction(value) + Fraction(source_offset)) * Fraction(factor.value)
            return normalize_exact(shifted - Fraction(target_offset))
        if isinstance(value, float) and is_valid_float(value):
            shifted = (decimal_fraction(value) + Fraction(source_offset)) * Fraction(factor.value)
            return float(shifted - Fraction(target_offset))

    return (value + float(source_offset)) * float(factor) - float(target_offset)


Converter = Callable[..., object]

# Диспетчеризация конверсии по виду величины
CONVERTERS: Final[Dict[QuantityKind, Converter]] = {
    QuantityKind.LINEAR: convert_linear,
    QuantityKind.AFFINE: convert_affine,
}


def converter_for(kind: QuantityKind) -> Converter:
    """Функция конверсии для вида величины."""
    return CONVERTERS[kind]
