"""
Conversion Factor Synthesizer — множители конверсии между композитами единиц

Множитель от единиц source к единицам target складывается из трёх частей:
    factor = (inexact_src / inexact_tgt) * (exact_src / exact_tgt) * 10**(tens_src - tens_tgt)

- inexact (float): иррациональные составляющие (π, ...), никогда не смешиваются
  с точными единицами
- exact (Fraction): рациональные составляющие (5/9 для Rankine, 3048/10000 для ft)
- tens: накопленный показатель степени десяти, применяется один раз в конце,
  чтобы не переполнять каждое базовое значение префиксами

ПОЛИТИКА ПЕРЕПОЛНЕНИЯ:
Если точное возведение в степень (атома или 10**Δtens) вышло бы за MAX_EXACT_INT,
точная часть переносится во float. Это не ошибка, а документированная потеря
точности: результат конечен и приближённо верен.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Разные размерности → DimensionMismatch
2. Одинаковые композиты → ExactFactor(1) без синтеза
3. Приближённый множитель в пределах толерантности от 1.0 → ExactFactor(1)
4. Синтез — чистая функция; кэш только дописывается, никогда не инвалидируется
"""

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, Final, NamedTuple, Protocol, Tuple, Union

from unitcore.core.domain.atoms import Atom, Dimensions, Units
from unitcore.core.exceptions import DimensionMismatch
from unitcore.core.math.numerical_safeguards import (
    IDENTITY_REL_TOL,
    ExactNumber,
    exact_power_fits,
    fits_exact_int,
    is_exact,
    is_identity_factor,
    is_valid_float,
    normalize_exact,
    normalize_power,
    pow10_fits_exact,
    scale_by_pow10,
)

logger = logging.getLogger(__name__)

# =============================================================================
# ОПРЕДЕЛИТЕЛЬНЫЕ КОНСТАНТЫ
# =============================================================================

# Базовая единица массы. Базовая единица SI — килограмм, т.е. грамм
# уже несёт встроенный префикс kilo-, который компенсируется поправкой.
MASS_BASE_UNIT_NAME: Final[str] = "Gram"

# Поправка к tens для атома базовой единицы массы (на единицу степени)
MASS_TENS_CORRECTION: Final[int] = -3


# =============================================================================
# TYPES
# =============================================================================


class BaseFactor(NamedTuple):
    """
    Множитель от атома к базовой единице, разделённый на две части.

    Attributes:
        inexact: Приближённая (иррациональная) часть, float
        exact: Точная рациональная часть, int или Fraction
    """

    inexact: float
    exact: ExactNumber


IDENTITY_BASE_FACTOR: Final[BaseFactor] = BaseFactor(1.0, 1)


@dataclass(frozen=True)
class ExactFactor:
    """Точный рациональный множитель конверсии."""

    value: ExactNumber

    @property
    def is_exact(self) -> bool:
        return True

    def scale(self, value):
        """
        Применение множителя к значению.

        - int/Fraction → точный результат (Fraction(5000) нормализуется в 5000)
        - float → точное произведение, округлённое один раз
        - прочие числа (complex, ...) → умножение на float(value)
        """
        if is_exact(value):
            return normalize_exact(Fraction(value) * self.value)
        if isinstance(value, float) and is_valid_float(value):
            return float(Fraction(value) * self.value)
        return value * float(self.value)

    def __float__(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class ApproximateFactor:
    """Приближённый (float) множитель конверсии."""

    value: float

    @property
    def is_exact(self) -> bool:
        return False

    def scale(self, value):
        """Применение множителя: всегда float-умножение."""
        return value * self.value

    def __float__(self) -> float:
        return self.value


ConversionFactor = Union[ExactFactor, ApproximateFactor]

UNIT_FACTOR: Final[ExactFactor] = ExactFactor(1)


class FactorSource(Protocol):
    """Контракт регистрационного слоя, необходимый для синтеза множителей."""

    def base_factor_of(self, atom: Atom) -> BaseFactor:
        ...

    def dimension_of(self, units: Union[Atom, Units]) -> Dimensions:
        ...


@dataclass(frozen=True)
class SynthesisConfig:
    """Конфигурация синтезатора множителей."""

    # Толерантность, в пределах которой приближённый множитель считается 1
    identity_rel_tol: float = IDENTITY_REL_TOL

    # Кэширование множителей по паре (target, source)
    cache_enabled: bool = True


# =============================================================================
# PER-ATOM BASE FACTORS
# =============================================================================


def atom_base_factor(atom: Atom, registered: BaseFactor) -> BaseFactor:
    """
    Возведение зарегистрированного BaseFactor атома в степень атома.

    Точная часть остаётся точной, только если степень целая и
    числитель/знаменатель (и обратные величины) после возведения
    не превышают MAX_EXACT_INT. Иначе точная часть сворачивается во float.

    Args:
        atom: Атом единицы (степень берётся из него)
        registered: BaseFactor атома в степени 1

    Returns:
        BaseFactor атома в его степени

    Examples:
        >>> atom_base_factor(Atom("Foot", 0, 2), BaseFactor(1.0, Fraction(3048, 10000)))
        BaseFactor(inexact=1.0, exact=Fraction(145161, 1562500))
    """
    inexact, exact = registered
    power = normalize_power(atom.power)

    if isinstance(power, int) and exact_power_fits(exact, power):
        return BaseFactor(inexact**power, Fraction(exact) ** power)

    logger.debug(
        "Exact base factor of %s (power %s) does not fit, folding into float",
        atom.name,
        power,
    )
    folded = float(Fraction(exact) * Fraction(inexact))
    return BaseFactor(folded ** float(power), 1)


def composite_base_factor(units: Units, source: FactorSource) -> BaseFactor:
    """
    BaseFactor композита: произведение inexact и exact частей атомов независимо.

    Степени десяти сюда НЕ входят (см. tens_exponent).
    """
    inexact = 1.0
    exact: ExactNumber = 1
    for atom in units:
        factor = atom_base_factor(atom, source.base_factor_of(atom))
        inexact *= factor.inexact
        exact = Fraction(exact) * Fraction(factor.exact)
    return BaseFactor(inexact, normalize_exact(Fraction(exact)))


def atom_tens(atom: Atom) -> ExactNumber:
    """
    Вклад атома в показатель степени десяти: tens * power.

    Для базовой единицы массы добавляется MASS_TENS_CORRECTION * power
    (g → 10^-3 kg, kg → 10^0 kg).
    """
    tens = atom.tens * atom.power
    if atom.name == MASS_BASE_UNIT_NAME:
        tens += MASS_TENS_CORRECTION * atom.power
    return normalize_power(tens)


def tens_exponent(units: Units) -> ExactNumber:
    """Суммарный показатель степени десяти композита."""
    return normalize_power(sum((Fraction(atom_tens(atom)) for atom in units), Fraction(0)))


# =============================================================================
# SYNTHESIS
# =============================================================================


def _assemble(
    inexact: float,
    exact: Fraction,
    tens: ExactNumber,
    identity_rel_tol: float,
) -> ConversionFactor:
    """
    Сборка итогового множителя inexact * exact * 10**tens.

    1. exact, вышедший за границы, сворачивается во float
    2. 10**tens остаётся точным, если и он, и итоговая дробь помещаются
       в границы; иначе применяется к float-части
    3. float-часть ≈ 1 → точный множитель
    """
    if not (fits_exact_int(exact.numerator) and fits_exact_int(exact.denominator)):
        logger.debug("Exact factor %s exceeds bounds, folding into float", exact)
        inexact = float(Fraction(inexact) * exact)
        exact = Fraction(1)

    if pow10_fits_exact(tens):
        candidate = exact * Fraction(10) ** tens
        if fits_exact_int(candidate.numerator) and fits_exact_int(candidate.denominator):
            exact = candidate
        else:
            logger.debug("10^%s would overflow exact factor %s, folding into float", tens, exact)
            inexact = scale_by_pow10(inexact, tens)
    elif tens != 0:
        logger.debug("10^%s is not exactly representable, folding into float", tens)
        inexact = scale_by_pow10(inexact, tens)

    if is_identity_factor(inexact, rel_tol=identity_rel_tol):
        return ExactFactor(normalize_exact(exact))

    return ApproximateFactor(float(Fraction(inexact) * exact))


def synthesize_factor(
    target: Units,
    source: Units,
    factor_source: FactorSource,
    config: SynthesisConfig | None = None,
) -> ConversionFactor:
    """
    Множитель конверсии из единиц source в единицы target (без кэша).

    Значение в source, умноженное на множитель, даёт значение в target:
    synthesize_factor(m, km) = 1000.

    Args:
        target: Целевые единицы
        source: Исходные единицы
        factor_source: Регистрационный слой (base_factor_of, dimension_of)
        config: Конфигурация (default: SynthesisConfig())

    Returns:
        ExactFactor или ApproximateFactor

    Raises:
        DimensionMismatch: Если размерности target и source различаются
    """
    config = config or SynthesisConfig()

    if target == source:
        return UNIT_FACTOR

    source_dims = factor_source.dimension_of(source)
    target_dims = factor_source.dimension_of(target)
    if source_dims != target_dims:
        raise DimensionMismatch(source, target, "conversion")

    inexact_src, exact_src = composite_base_factor(source, factor_source)
    inexact_tgt, exact_tgt = composite_base_factor(target, factor_source)

    return _assemble(
        inexact_src / inexact_tgt,
        Fraction(exact_src) / Fraction(exact_tgt),
        tens_exponent(source) - tens_exponent(target),
        config.identity_rel_tol,
    )


def base_frame_factor(
    units: Units,
    factor_source: FactorSource,
    config: SynthesisConfig | None = None,
) -> ConversionFactor:
    """
    Множитель от единиц к общей базовой системе (SI), без проверки размерности.

    Используется там, где значения сравниваются в общей системе отсчёта
    (min/max), а результат не конвертируется.
    """
    config = config or SynthesisConfig()
    inexact, exact = composite_base_factor(units, factor_source)
    return _assemble(inexact, Fraction(exact), tens_exponent(units), config.identity_rel_tol)


# =============================================================================
# FACTOR SYNTHESIZER (memoized)
# =============================================================================


class FactorSynthesizer:
    """
    Синтезатор множителей с процессным кэшем.

    Кэш ключуется парой (target, source), заполняется лениво и только
    дописывается. Синтез — чистая функция, поэтому повторное вычисление
    одного ключа конкурентными вызовами даёт идентичный результат;
    блокировка не требуется.
    """

    def __init__(self, factor_source: FactorSource, config: SynthesisConfig | None = None):
        """
        Args:
            factor_source: Регистрационный слой
            config: Конфигурация синтеза
        """
        self.factor_source = factor_source
        self.config = config or SynthesisConfig()

        self._factors: Dict[Tuple[Units, Units], ConversionFactor] = {}
        self._base_factors: Dict[Units, ConversionFactor] = {}

    def factor(self, target: Units, source: Units) -> ConversionFactor:
        """
        Множитель из source в target (кэшированный).

        Raises:
            DimensionMismatch: Если размерности различаются
        """
        if target == source:
            return UNIT_FACTOR

        key = (target, source)
        cached = self._factors.get(key)
        if cached is not None:
            return cached

        result = synthesize_factor(target, source, self.factor_source, self.config)
        if self.config.cache_enabled:
            logger.debug("Cached conversion factor %r for %r -> %r", result, source, target)
            self._factors[key] = result
        return result

    def to_base(self, units: Units) -> ConversionFactor:
        """Множитель от units к базовой системе (кэшированный)."""
        cached = self._base_factors.get(units)
        if cached is not None:
            return cached

        result = base_frame_factor(units, self.factor_source, self.config)
        if self.config.cache_enabled:
            self._base_factors[units] = result
        return result

    @property
    def cache_size(self) -> int:
        """Количество закэшированных пар (target, source)."""
        return len(self._factors)
