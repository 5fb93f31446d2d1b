"""
Quantity — величина с единицами и специализация арифметики

Quantity = (value, units) с производными полями:
- dimensions: каноническая размерность единиц (вычисляется при создании)
- kind: LINEAR или AFFINE (см. core.domain.temperature)

Контракты операторов:
- +, -      : равные размерности, иначе DimensionMismatch; правый операнд
              конвертируется в единицы левого (левоориентированный результат)
- *, /      : чисто символическое объединение единиц, множитель конверсии
              НЕ применяется; результат без единиц возвращается как число
- **        : значение в степень, степени всех атомов умножаются
- ==        : тотальна: другой тип или другая размерность → False;
              точное значение и float сравниваются во float
- <, <=, ...: правый операнд в единицы левого; разные размерности → DimensionMismatch
- //, %     : fld / mod (см. core.domain.operations)

Величины неизменяемы и не хэшируются (1 km == 1000 m при разных значениях).
Размерность, множители и смещения берутся из реестра, которому
принадлежат единицы величины (Units.resolve_registry()).
"""

import math
from dataclasses import dataclass, field
from numbers import Number
from typing import Any

from unitcore.core.domain.atoms import Dimensions, Exponent, Units
from unitcore.core.domain.temperature import QuantityKind, converter_for, kind_of
from unitcore.core.exceptions import DimensionMismatch
from unitcore.core.math.numerical_safeguards import is_exact


# =============================================================================
# QUANTITY
# =============================================================================


@dataclass(frozen=True, eq=False)
class Quantity:
    """
    Физическая величина: числовое значение и канонические единицы.

    Создаётся умножением числа на Units (5 * km) или напрямую
    Quantity(5, km). Вид (LINEAR/AFFINE) и размерность определяются
    один раз при создании по реестру единиц.
    """

    value: Any
    units: Units
    dimensions: Dimensions = field(init=False, repr=False)
    kind: QuantityKind = field(init=False, repr=False)
    registry: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.units, Units):
            raise TypeError(f"Quantity units must be Units, got {type(self.units).__name__}")
        if isinstance(self.value, (Quantity, Units)):
            raise TypeError("Quantity value must be a plain number")

        registry = self.units.resolve_registry()
        dimensions = registry.dimension_of(self.units)
        object.__setattr__(self, "registry", registry)
        object.__setattr__(self, "dimensions", dimensions)
        object.__setattr__(self, "kind", kind_of(dimensions))

    # -------------------------------------------------------------------------
    # Конверсия
    # -------------------------------------------------------------------------

    def to(self, units: Units) -> "Quantity":
        """Та же величина в других единицах (см. convert)."""
        return convert(units, self)

    # -------------------------------------------------------------------------
    # Сложение / вычитание
    # -------------------------------------------------------------------------

    def _aligned(self, other: object, operation: str):
        """Значение other в единицах self; разные размерности → DimensionMismatch."""
        if isinstance(other, Quantity):
            if other.dimensions != self.dimensions:
                raise DimensionMismatch(self, other, operation)
            if other.units == self.units:
                return other.value
            return convert(self.units, other).value
        if isinstance(other, Number):
            raise DimensionMismatch(self, other, operation)
        return NotImplemented

    def __add__(self, other: object):
        rhs = self._aligned(other, "addition")
        if rhs is NotImplemented:
            return NotImplemented
        return Quantity(self.value + rhs, self.units)

    def __radd__(self, other: object):
        if isinstance(other, Number):
            raise DimensionMismatch(other, self, "addition")
        return NotImplemented

    def __sub__(self, other: object):
        rhs = self._aligned(other, "subtraction")
        if rhs is NotImplemented:
            return NotImplemented
        return Quantity(self.value - rhs, self.units)

    def __rsub__(self, other: object):
        if isinstance(other, Number):
            raise DimensionMismatch(other, self, "subtraction")
        return NotImplemented

    def __neg__(self) -> "Quantity":
        return Quantity(-self.value, self.units)

    def __pos__(self) -> "Quantity":
        return Quantity(+self.value, self.units)

    def __abs__(self) -> "Quantity":
        return Quantity(abs(self.value), self.units)

    # -------------------------------------------------------------------------
    # Умножение / деление
    # -------------------------------------------------------------------------

    def __mul__(self, other: object):
        if isinstance(other, bool):
            return self if other else Quantity(_signed_zero(self.value), self.units)
        if isinstance(other, Quantity):
            return wrap(self.value * other.value, self.units * other.units)
        if isinstance(other, Units):
            return wrap(self.value, self.units * other)
        if isinstance(other, Number):
            return Quantity(self.value * other, self.units)
        return NotImplemented

    def __rmul__(self, other: object):
        if isinstance(other, bool):
            return self if other else Quantity(_signed_zero(self.value), self.units)
        if isinstance(other, Units):
            return wrap(self.value, other * self.units)
        if isinstance(other, Number):
            return Quantity(other * self.value, self.units)
        return NotImplemented

    def __truediv__(self, other: object):
        if isinstance(other, Quantity):
            return wrap(self.value / other.value, self.units / other.units)
        if isinstance(other, Units):
            return wrap(self.value, self.units / other)
        if isinstance(other, Number):
            return Quantity(self.value / other, self.units)
        return NotImplemented

    def __rtruediv__(self, other: object):
        if isinstance(other, Units):
            return wrap(1 / self.value, other / self.units)
        if isinstance(other, Number):
            return Quantity(other / self.value, self.units.inv())
        return NotImplemented

    def __floordiv__(self, other: object):
        if isinstance(other, Quantity):
            from unitcore.core.domain.operations import fld

            return fld(self, other)
        return NotImplemented

    def __mod__(self, other: object):
        if isinstance(other, Quantity):
            from unitcore.core.domain.operations import mod

            return mod(self, other)
        return NotImplemented

    def __divmod__(self, other: object):
        if isinstance(other, Quantity):
            return (self // other, self % other)
        return NotImplemented

    # -------------------------------------------------------------------------
    # Возведение в степень
    # -------------------------------------------------------------------------

    def __pow__(self, exponent: Exponent):
        if isinstance(exponent, bool) or not isinstance(exponent, Number):
            return NotImplemented
        return wrap(self.value**exponent, self.units**exponent)

    # -------------------------------------------------------------------------
    # Сравнения
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return False
        if other.dimensions != self.dimensions:
            return False
        rhs = other.value if other.units == self.units else convert(self.units, other).value
        lhs, rhs = _comparable(self.value, rhs)
        return lhs == rhs

    def __lt__(self, other: object):
        rhs = self._aligned(other, "comparison")
        if rhs is NotImplemented:
            return NotImplemented
        lhs, rhs = _comparable(self.value, rhs)
        return lhs < rhs

    def __le__(self, other: object):
        rhs = self._aligned(other, "comparison")
        if rhs is NotImplemented:
            return NotImplemented
        lhs, rhs = _comparable(self.value, rhs)
        return lhs <= rhs

    def __gt__(self, other: object):
        rhs = self._aligned(other, "comparison")
        if rhs is NotImplemented:
            return NotImplemented
        lhs, rhs = _comparable(self.value, rhs)
        return lhs > rhs

    def __ge__(self, other: object):
        rhs = self._aligned(other, "comparison")
        if rhs is NotImplemented:
            return NotImplemented
        lhs, rhs = _comparable(self.value, rhs)
        return lhs >= rhs

    # -------------------------------------------------------------------------
    # Округление и снятие единиц
    # -------------------------------------------------------------------------

    def __round__(self, ndigits: int | None = None) -> "Quantity":
        return Quantity(round(self.value, ndigits), self.units)

    def __trunc__(self) -> "Quantity":
        return Quantity(math.trunc(self.value), self.units)

    def __floor__(self) -> "Quantity":
        return Quantity(math.floor(self.value), self.units)

    def __ceil__(self) -> "Quantity":
        return Quantity(math.ceil(self.value), self.units)

    def __float__(self) -> float:
        return float(self.value)

    def __int__(self) -> int:
        return int(self.value)

    # -------------------------------------------------------------------------
    # Представление
    # -------------------------------------------------------------------------

    def __repr__(self) -> str:
        return f"Quantity({self.value!r}, {self.registry.format_units(self.units)})"

    def __str__(self) -> str:
        return f"{self.value} {self.registry.format_units(self.units)}"


# =============================================================================
# HELPERS
# =============================================================================


def wrap(value, units: Units):
    """
    Quantity из значения и единиц; при пустых единицах — само значение.

    m * m^-1 сокращается до безразмерного числа, а не до Quantity без единиц.
    """
    if units.is_identity:
        return value
    return Quantity(value, units)


def _signed_zero(value):
    """Ноль со знаком value (false * -3.0 m → -0.0 m)."""
    if isinstance(value, float):
        return math.copysign(0.0, value)
    return value * 0


def _comparable(a, b):
    """
    Пара значений для сравнения.

    Точное число сравнивается с float после округления до float:
    0 °C → 5463/20 K равно 273.15 K, хотя float 273.15 не равен 5463/20.
    """
    if isinstance(a, float) and is_exact(b):
        return a, float(b)
    if isinstance(b, float) and is_exact(a):
        return float(a), b
    return a, b


def convert(target: Units, quantity: Quantity) -> Quantity:
    """
    Конверсия величины в другие единицы той же размерности.

    LINEAR: value * factor
    AFFINE: (value + offset_source) * factor - offset_target

    Args:
        target: Целевые единицы
        quantity: Исходная величина

    Returns:
        Новая Quantity в единицах target

    Raises:
        DimensionMismatch: Если размерности различаются

    Examples:
        >>> convert(m, 5 * km)
        Quantity(5000, m)
    """
    if not isinstance(quantity, Quantity):
        raise TypeError(f"Can only convert Quantity, got {type(quantity).__name__}")
    if target == quantity.units:
        return quantity

    registry = quantity.registry
    target = target.bind(registry) if target.registry is None else target
    factor = registry.synthesizer.factor(target, quantity.units)
    converter = converter_for(quantity.kind)
    value = converter(
        quantity.value,
        factor,
        registry.offset_of(quantity.units),
        registry.offset_of(target),
    )
    return Quantity(value, target)
