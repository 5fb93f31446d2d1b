"""
Numerical Safeguards — численная политика точной и приближённой арифметики

Модуль определяет, когда множитель конверсии может оставаться точной
рациональной дробью, а когда его нужно «понизить» до float:
- Ограничение точных целых (имитация machine int): числитель и знаменатель
  не должны превышать MAX_EXACT_INT
- Проверка возведения дроби в степень без переполнения
- Epsilon-сравнения float (в т.ч. распознавание единичного множителя)
- Нормализация точных результатов (Fraction(5000, 1) → 5000)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Переполнение точной арифметики никогда не является ошибкой:
   вызывающий код детерминированно переходит на float
2. Точные значения (int, Fraction) никогда не смешиваются с float неявно
3. Все операции детерминированы и воспроизводимы
"""

import math
from fractions import Fraction
from numbers import Rational
from typing import Final, Union

ExactNumber = Union[int, Fraction]

# =============================================================================
# ГРАНИЦЫ ТОЧНОЙ АРИФМЕТИКИ
# =============================================================================

# Максимальное представимое точное целое (typemax(Int64))
# Числитель и знаменатель точного множителя не должны его превышать
MAX_EXACT_INT: Final[int] = 2**63 - 1

# То же ограничение в битах, для проверок через log2
MAX_EXACT_BITS: Final[float] = math.log2(MAX_EXACT_INT)

# Максимальный знаменатель при переводе float-показателя степени в дробь
FLOAT_POWER_MAX_DENOMINATOR: Final[int] = 10_000

# =============================================================================
# EPSILON-ПАРАМЕТРЫ
# =============================================================================

# Относительная толерантность для сравнения float (sqrt(machine eps))
EPS_FLOAT_COMPARE_REL: Final[float] = 1.4901161193847656e-08

# Абсолютная толерантность для сравнения float
EPS_FLOAT_COMPARE_ABS: Final[float] = 0.0

# Толерантность, при которой приближённый множитель считается равным 1
IDENTITY_REL_TOL: Final[float] = EPS_FLOAT_COMPARE_REL


# =============================================================================
# ПРОВЕРКИ ТОЧНЫХ ЗНАЧЕНИЙ
# =============================================================================


def is_exact(value: object) -> bool:
    """
    Является ли значение точным рациональным числом (int или Fraction).

    bool тоже считается точным (подкласс int).
    """
    return isinstance(value, Rational)


def fits_exact_int(value: ExactNumber) -> bool:
    """
    Проверка, что модуль точного значения не превышает MAX_EXACT_INT.

    Args:
        value: int или Fraction

    Returns:
        True если abs(value) <= MAX_EXACT_INT
    """
    return abs(value) <= MAX_EXACT_INT


def exact_power_fits(base: ExactNumber, power: int) -> bool:
    """
    Проверка, что base**power можно вычислить точно без переполнения.

    Проверяются числитель, знаменатель и их обратные величины:
    как base**power, так и base**-power должны оставаться в границах
    MAX_EXACT_INT. Нулевое основание точно возвести нельзя (обратная
    величина не определена).

    Args:
        base: Точное основание (int или Fraction)
        power: Целый показатель степени

    Returns:
        True если точное возведение безопасно

    Examples:
        >>> exact_power_fits(Fraction(1, 1000), 3)
        True
        >>> exact_power_fits(Fraction(1, 1000), 7)
        False
    """
    if base == 0:
        return False

    frac = Fraction(base)
    if not (fits_exact_int(frac) and fits_exact_int(1 / frac)):
        return False

    num_bits = math.log2(abs(frac.numerator))
    den_bits = math.log2(frac.denominator)
    return abs(power) * max(num_bits, den_bits) < MAX_EXACT_BITS


def normalize_exact(value: ExactNumber) -> ExactNumber:
    """
    Приведение точного значения к каноническому виду.

    Fraction с единичным знаменателем превращается в int, чтобы
    5 km → 5000 m оставалось целым числом.

    Examples:
        >>> normalize_exact(Fraction(5000, 1))
        5000
        >>> normalize_exact(Fraction(1, 3))
        Fraction(1, 3)
    """
    if isinstance(value, Fraction) and value.denominator == 1:
        return value.numerator
    return value


def normalize_power(power: ExactNumber) -> ExactNumber:
    """Целочисленный показатель степени как int, иначе Fraction."""
    return normalize_exact(Fraction(power))


def decimal_fraction(value: float) -> Fraction:
    """
    Дробь по кратчайшей десятичной записи float.

    Fraction(273.15) == 273.149999999999977262632..., а
    decimal_fraction(273.15) == Fraction(5463, 20).

    Raises:
        ValueError: Если value NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"Cannot represent {value} as a fraction")
    return Fraction(repr(value))


def rationalize(value: float, max_denominator: int = FLOAT_POWER_MAX_DENOMINATOR) -> Fraction:
    """
    Перевод float в ближайшую дробь с ограниченным знаменателем.

    Используется для показателей степени: 0.5 → 1/2, 1/3 (float) → 1/3.

    Raises:
        ValueError: Если value NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"Exponent must be a finite number, got {value}")
    return Fraction(value).limit_denominator(max_denominator)


# =============================================================================
# NaN/Inf И EPSILON-СРАВНЕНИЯ FLOAT
# =============================================================================


def is_valid_float(value: float) -> bool:
    """
    Проверка, является ли float валидным (не NaN, не Inf).

    Returns:
        True если значение конечное
    """
    return math.isfinite(value)


def is_close(
    a: float,
    b: float,
    rel_tol: float = EPS_FLOAT_COMPARE_REL,
    abs_tol: float = EPS_FLOAT_COMPARE_ABS,
) -> bool:
    """
    Сравнение float с учётом машинной точности.

    Алгоритм:
        abs(a - b) <= max(rel_tol * max(abs(a), abs(b)), abs_tol)

    Examples:
        >>> is_close(1.0, 1.0 + 1e-10)
        True
        >>> is_close(1.0, 1.1)
        False
    """
    return math.isclose(a, b, rel_tol=rel_tol, abs_tol=abs_tol)


def is_identity_factor(value: float, rel_tol: float = IDENTITY_REL_TOL) -> bool:
    """
    Является ли приближённый множитель единицей в пределах толерантности.

    Пример: inexact-части π/π после деления дают 1.0000000000000002.
    """
    return is_close(value, 1.0, rel_tol=rel_tol)


# =============================================================================
# СТЕПЕНИ ДЕСЯТИ
# =============================================================================


def scale_by_pow10(value: float, exponent: ExactNumber) -> float:
    """
    Умножение float на 10**exponent без промежуточного переполнения.

    Для целого показателя произведение считается точно и округляется
    один раз: 1e-300 * 10**400 даёт 1e100, а не OverflowError.
    Дробный показатель вычисляется в float.

    Args:
        value: Множитель (float)
        exponent: Показатель степени десяти (int или Fraction)

    Returns:
        value * 10**exponent

    Raises:
        OverflowError: Если результат не представим в float
    """
    exponent = normalize_power(exponent)
    if isinstance(exponent, int):
        return float(Fraction(value) * Fraction(10) ** exponent)
    return value * 10.0 ** float(exponent)


def pow10_fits_exact(exponent: ExactNumber) -> bool:
    """
    Можно ли представить 10**exponent точной дробью в границах MAX_EXACT_INT.

    Дробный показатель (например, tens от sqrt(km)) точно не представим.
    """
    exponent = normalize_power(exponent)
    if not isinstance(exponent, int):
        return False
    return exact_power_fits(10, exponent)
