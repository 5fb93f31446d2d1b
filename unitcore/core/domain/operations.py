"""
Quantity Operations — функции над величинами

- convert / conversion_factor: явная конверсия (единственное место, где
  применяется множитель конверсии)
- div, fld, cld: первый операнд в единицы второго → безразмерное число
- mod, rem: первый операнд в единицы второго → Quantity в единицах второго
- min_quantity / max_quantity: сравнение в общей базовой системе,
  возвращается ИСХОДНЫЙ операнд (его единицы сохраняются)
- isapprox, sqrt, округление и предикаты значения
- quantity_range: арифметическая прогрессия величин
- ustrip / unit / dimension: доступ к составляющим

Деление на величину с нулевым значением ведёт себя как соответствующая
числовая операция Python (ZeroDivisionError).
"""

import math
from fractions import Fraction
from numbers import Real
from typing import Callable, Iterator, Tuple, Union

from unitcore.core.domain.atoms import Dimensions, Units
from unitcore.core.domain.quantity import Quantity, convert, wrap
from unitcore.core.domain.temperature import converter_for
from unitcore.core.exceptions import DimensionMismatch
from unitcore.core.math.factors import ConversionFactor
from unitcore.core.math.numerical_safeguards import (
    EPS_FLOAT_COMPARE_ABS,
    EPS_FLOAT_COMPARE_REL,
    is_close,
    is_exact,
    normalize_exact,
)

__all__ = [
    "convert",
    "conversion_factor",
    "div",
    "fld",
    "cld",
    "mod",
    "rem",
    "min_quantity",
    "max_quantity",
    "min_units",
    "max_units",
    "isapprox",
    "sqrt",
    "sign",
    "signbit",
    "isfinite",
    "isinf",
    "isinteger",
    "isreal",
    "zero",
    "one",
    "prevfloat",
    "nextfloat",
    "frexp",
    "float_quantity",
    "integer_quantity",
    "rational_quantity",
    "quantity_range",
    "ustrip",
    "unit",
    "dimension",
]


# =============================================================================
# CONVERSION
# =============================================================================


def conversion_factor(target: Units, source: Units) -> ConversionFactor:
    """
    Множитель конверсии из source в target (кэшированный).

    Examples:
        >>> conversion_factor(cm, m)
        ExactFactor(value=100)

    Raises:
        DimensionMismatch: Если размерности различаются
    """
    registry = source.resolve_registry() if source.registry is not None else target.resolve_registry()
    return registry.synthesizer.factor(target, source)


def base_value(quantity: Quantity):
    """Значение величины в базовой системе (SI), с учётом смещения шкалы."""
    registry = quantity.registry
    factor = registry.synthesizer.to_base(quantity.units)
    return converter_for(quantity.kind)(quantity.value, factor, registry.offset_of(quantity.units))


# =============================================================================
# DIVISION FAMILY
# =============================================================================


def _is_finite_real(value) -> bool:
    return is_exact(value) or (isinstance(value, float) and math.isfinite(value))


def _quotient(a, b, rounding: Callable):
    """
    Округлённое частное a / b.

    Конечные вещественные значения делятся точно (через Fraction), поэтому
    fld(0.3, 0.1) == 2.0, как и у //. Результат float, если хотя бы один
    операнд float.
    """
    if _is_finite_real(a) and _is_finite_real(b):
        quotient = rounding(Fraction(a) / Fraction(b))
        if isinstance(a, float) or isinstance(b, float):
            return float(quotient)
        return quotient
    return rounding(a / b)


def _aligned_values(x: Quantity, y: Quantity, operation: str) -> Tuple[object, object]:
    """Значения x (в единицах y) и y."""
    if not (isinstance(x, Quantity) and isinstance(y, Quantity)):
        raise TypeError(f"{operation} expects two quantities")
    if x.dimensions != y.dimensions:
        raise DimensionMismatch(x, y, operation)
    return convert(y.units, x).value, y.value


def div(x: Quantity, y: Quantity):
    """Частное с усечением к нулю; x конвертируется в единицы y."""
    a, b = _aligned_values(x, y, "div")
    return _quotient(a, b, math.trunc)


def fld(x: Quantity, y: Quantity):
    """Частное с округлением вниз; x конвертируется в единицы y."""
    a, b = _aligned_values(x, y, "fld")
    return _quotient(a, b, math.floor)


def cld(x: Quantity, y: Quantity):
    """Частное с округлением вверх; x конвертируется в единицы y."""
    a, b = _aligned_values(x, y, "cld")
    return _quotient(a, b, math.ceil)


def mod(x: Quantity, y: Quantity) -> Quantity:
    """
    Остаток со знаком делителя (как % в Python), в единицах y.

    Examples:
        >>> mod(1 * m, 30 * cm)
        Quantity(10, cm)
    """
    a, b = _aligned_values(x, y, "mod")
    return Quantity(a % b, y.units)


def rem(x: Quantity, y: Quantity) -> Quantity:
    """Остаток со знаком делимого (a - b * div(a, b)), в единицах y."""
    a, b = _aligned_values(x, y, "rem")
    if _is_finite_real(a) and _is_finite_real(b):
        remainder = Fraction(a) - Fraction(b) * math.trunc(Fraction(a) / Fraction(b))
        if isinstance(a, float) or isinstance(b, float):
            return Quantity(float(remainder), y.units)
        return Quantity(normalize_exact(remainder), y.units)
    return Quantity(math.fmod(a, b), y.units)


# =============================================================================
# MIN / MAX
# =============================================================================


def _extremum(x: Quantity, y: Quantity, operation: str, pick_first: Callable) -> Quantity:
    if not (isinstance(x, Quantity) and isinstance(y, Quantity)):
        raise TypeError(f"{operation} expects two quantities")
    if x.dimensions != y.dimensions:
        raise DimensionMismatch(x, y, operation)
    return x if pick_first(base_value(x), base_value(y)) else y


def min_quantity(x: Quantity, y: Quantity) -> Quantity:
    """
    Меньшая из двух величин в её собственных единицах.

    Сравнение ведётся в общей базовой системе, результат не конвертируется:
    min_quantity(1 m, 50 cm) → 50 cm. Температуры сравниваются в абсолютной
    шкале со смещениями (0 °C больше 100 K), а не по одному масштабу.

    Raises:
        DimensionMismatch: Если размерности различаются
    """
    return _extremum(x, y, "min", lambda a, b: a < b)


def max_quantity(x: Quantity, y: Quantity) -> Quantity:
    """Большая из двух величин в её собственных единицах."""
    return _extremum(x, y, "max", lambda a, b: a > b)


def min_units(x: Units, y: Units) -> Units:
    """Меньшая из двух единиц одной размерности (min_units(m, cm) → cm)."""
    return min_quantity(Quantity(1.0, x), Quantity(1.0, y)).units


def max_units(x: Units, y: Units) -> Units:
    """Большая из двух единиц одной размерности."""
    return max_quantity(Quantity(1.0, x), Quantity(1.0, y)).units


# =============================================================================
# APPROXIMATE EQUALITY, ROOTS
# =============================================================================


def isapprox(
    x: Quantity,
    y: Quantity,
    rel_tol: float = EPS_FLOAT_COMPARE_REL,
    abs_tol: float = EPS_FLOAT_COMPARE_ABS,
) -> bool:
    """
    Приближённое равенство: y конвертируется в единицы x.

    Raises:
        DimensionMismatch: Если размерности различаются
    """
    if x.dimensions != y.dimensions:
        raise DimensionMismatch(x, y, "isapprox")
    rhs = y.value if y.units == x.units else convert(x.units, y).value
    return is_close(float(x.value), float(rhs), rel_tol=rel_tol, abs_tol=abs_tol)


def sqrt(x: Union[Quantity, Units]):
    """
    Квадратный корень: значение через math.sqrt, степени единиц — точно.

    sqrt(4 m^2) → 2.0 m
    """
    if isinstance(x, Units):
        return x.sqrt()
    return wrap(math.sqrt(x.value), x.units.sqrt())


# =============================================================================
# VALUE PREDICATES
# =============================================================================


def sign(x: Quantity):
    """Знак значения (-1, 0, 1) без единиц; NaN сохраняется."""
    value = x.value
    if isinstance(value, float) and math.isnan(value):
        return value
    result = (value > 0) - (value < 0)
    return float(result) if isinstance(value, float) else result


def signbit(x: Quantity) -> bool:
    """Установлен ли знаковый бит значения (в т.ч. у -0.0)."""
    return math.copysign(1.0, x.value) < 0


def isfinite(x: Quantity) -> bool:
    return math.isfinite(x.value)


def isinf(x: Quantity) -> bool:
    return math.isinf(x.value)


def isinteger(x: Quantity) -> bool:
    """Является ли значение целым (5.0 m → True)."""
    value = x.value
    if is_exact(value):
        return Fraction(value).denominator == 1
    if isinstance(value, float):
        return value.is_integer()
    return False


def isreal(x: Quantity) -> bool:
    """Вещественно ли значение (complex → False)."""
    return isinstance(x.value, Real)


def zero(x: Quantity) -> Quantity:
    """Ноль того же числового типа и в тех же единицах."""
    return Quantity(type(x.value)(0), x.units)


def one(x: Quantity):
    """Мультипликативная единица: безразмерное число того же типа."""
    return type(x.value)(1)


def prevfloat(x: Quantity) -> Quantity:
    """Предыдущее представимое float-значение в тех же единицах."""
    return Quantity(math.nextafter(float(x.value), -math.inf), x.units)


def nextfloat(x: Quantity) -> Quantity:
    """Следующее представимое float-значение в тех же единицах."""
    return Quantity(math.nextafter(float(x.value), math.inf), x.units)


def frexp(x: Quantity) -> Tuple[Quantity, int]:
    """Мантисса (с единицами x) и показатель степени двойки."""
    mantissa, exponent = math.frexp(x.value)
    return Quantity(mantissa, x.units), exponent


def float_quantity(x: Quantity) -> Quantity:
    """Та же величина с float-значением."""
    return Quantity(float(x.value), x.units)


def integer_quantity(x: Quantity) -> Quantity:
    """
    Та же величина с int-значением.

    Raises:
        ValueError: Если значение не целое (2.5 m)
    """
    if not isinteger(x):
        raise ValueError(f"Cannot represent {x.value!r} exactly as an integer")
    return Quantity(int(x.value), x.units)


def rational_quantity(x: Quantity) -> Quantity:
    """Та же величина с точным значением Fraction (0.5 m → 1/2 m)."""
    return Quantity(Fraction(x.value), x.units)


# =============================================================================
# RANGES
# =============================================================================


def quantity_range(start: Quantity, step: Quantity, stop: Quantity) -> Iterator[Quantity]:
    """
    Прогрессия start, start + step, ... не дальше stop, в единицах start.

    stop переводится в единицы start как точка шкалы, step — как разность
    (только множитель, без смещения): 0 °C … 2 °C с шагом 1 K даёт
    0, 1, 2 °C. stop входит в прогрессию, если попадает на шаг.

    Examples:
        >>> [q.value for q in quantity_range(0 * m, 50 * cm, 1 * m)]
        [0, Fraction(1, 2), 1]

    Raises:
        DimensionMismatch: Если размерности различаются
        ValueError: Если шаг нулевой
    """
    for operand in (start, step, stop):
        if not isinstance(operand, Quantity):
            raise TypeError("range expects three quantities")
    for operand in (step, stop):
        if operand.dimensions != start.dimensions:
            raise DimensionMismatch(start, operand, "range")

    units = start.units
    step_value = step.value
    if step.units != units:
        step_value = start.registry.synthesizer.factor(units, step.units).scale(step.value)
    if step_value == 0:
        raise ValueError("Range step cannot be zero")
    stop_value = stop.value if stop.units == units else convert(units, stop).value

    count = int(_quotient(stop_value - start.value, step_value, math.floor))
    return (Quantity(start.value + i * step_value, units) for i in range(max(count + 1, 0)))


# =============================================================================
# ACCESSORS
# =============================================================================


def ustrip(x):
    """Значение без единиц; обычные числа возвращаются как есть."""
    if isinstance(x, Quantity):
        return x.value
    return x


def unit(x: Union[Quantity, Units]) -> Units:
    """Единицы величины (Units возвращаются как есть)."""
    if isinstance(x, Units):
        return x
    return x.units


def dimension(x: Union[Quantity, Units]) -> Dimensions:
    """Каноническая размерность величины или единиц."""
    if isinstance(x, Quantity):
        return x.dimensions
    return x.resolve_registry().dimension_of(x)
