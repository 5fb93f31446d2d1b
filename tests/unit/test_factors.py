"""
Тесты для Conversion Factor Synthesizer

Проверяет:
1. Точные множители для префиксов и рациональных определений
2. Раздельный учёт inexact / exact / tens
3. Поправку tens для базовой единицы массы (g vs kg)
4. Переход на float при переполнении точной арифметики
5. Распознавание единичного приближённого множителя
6. Кэширование и DimensionMismatch
"""

import math
from fractions import Fraction

import pytest

from unitcore.core.domain.atoms import NO_UNITS, Atom, Units
from unitcore.core.exceptions import DimensionMismatch, UnknownUnit
from unitcore.core.math.factors import (
    UNIT_FACTOR,
    ApproximateFactor,
    BaseFactor,
    ExactFactor,
    FactorSynthesizer,
    SynthesisConfig,
    atom_base_factor,
    atom_tens,
    composite_base_factor,
    synthesize_factor,
    tens_exponent,
)
from unitcore.registry.registry import UnitRegistry


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def registry() -> UnitRegistry:
    """Небольшой реестр: длина, масса, время, углы."""
    reg = UnitRegistry()
    reg.declare_dimension("Length", "L")
    reg.declare_dimension("Mass", "M")
    reg.declare_dimension("Time", "T")

    m = reg.declare_base_unit("m", "m", "Meter", "Length")
    reg.declare_base_unit("s", "s", "Second", "Time")
    reg.declare_base_unit("g", "g", "Gram", "Mass")

    reg.declare_derived_unit("ft", "ft", "Foot", (Fraction(3048, 10000), m))
    reg.declare_derived_unit("approx_m", "m~", "ApproxMeter", (1.001, m))

    rad = reg.declare_derived_unit("rad", "rad", "Radian", (1, NO_UNITS))
    deg = reg.declare_derived_unit("deg", "°", "Degree", (math.pi / 180, rad))
    reg.declare_derived_unit("arcmin", "′", "ArcMinute", (Fraction(1, 60), deg))
    return reg


def factor(registry: UnitRegistry, target: Units, source: Units):
    return registry.synthesizer.factor(target, source)


# =============================================================================
# ФАКТОРЫ АТОМОВ
# =============================================================================


class TestAtomBaseFactor:
    """Тесты для atom_base_factor / atom_tens"""

    def test_exact_power(self) -> None:
        result = atom_base_factor(Atom("Foot", 0, 2), BaseFactor(1.0, Fraction(3048, 10000)))
        assert result == BaseFactor(1.0, Fraction(145161, 1562500))

    def test_overflowing_power_folds_into_float(self) -> None:
        result = atom_base_factor(Atom("Foot", 0, 10), BaseFactor(1.0, Fraction(3048, 10000)))
        assert result.exact == 1
        assert result.inexact == pytest.approx(0.3048**10, rel=1e-12)

    def test_fractional_power_folds_into_float(self) -> None:
        result = atom_base_factor(Atom("Foot", 0, Fraction(1, 2)), BaseFactor(1.0, Fraction(3048, 10000)))
        assert result.exact == 1
        assert result.inexact == pytest.approx(math.sqrt(0.3048))

    def test_inexact_part_raised(self) -> None:
        result = atom_base_factor(Atom("Degree", 0, 2), BaseFactor(0.5, 1))
        assert result == BaseFactor(0.25, 1)


class TestTensExponent:
    """Тесты для tens_exponent (включая поправку массы)"""

    def test_prefix_times_power(self) -> None:
        assert atom_tens(Atom("Meter", 3, 2)) == 6

    def test_kilogram_is_base(self) -> None:
        assert tens_exponent(Units((Atom("Gram", 3),))) == 0

    def test_gram_is_milli_base(self) -> None:
        assert tens_exponent(Units((Atom("Gram"),))) == -3

    def test_correction_scales_with_power(self) -> None:
        assert tens_exponent(Units((Atom("Gram", 0, 2),))) == -6
        assert tens_exponent(Units((Atom("Gram", 3, -1),))) == 0

    def test_composite_sum(self) -> None:
        km_per_ms = Units((Atom("Meter", 3), Atom("Second", -3, -1)))
        assert tens_exponent(km_per_ms) == 6


# =============================================================================
# СИНТЕЗ
# =============================================================================


class TestExactSynthesis:
    """Точные множители"""

    def test_identical_units_short_circuit(self, registry: UnitRegistry) -> None:
        assert factor(registry, registry["km"], registry["km"]) is UNIT_FACTOR

    def test_prefix_down(self, registry: UnitRegistry) -> None:
        assert factor(registry, registry["m"], registry["km"]) == ExactFactor(1000)

    def test_prefix_up(self, registry: UnitRegistry) -> None:
        assert factor(registry, registry["km"], registry["m"]) == ExactFactor(Fraction(1, 1000))

    def test_rational_definition(self, registry: UnitRegistry) -> None:
        assert factor(registry, registry["m"], registry["ft"]) == ExactFactor(Fraction(381, 1250))

    def test_mass_correction(self, registry: UnitRegistry) -> None:
        assert factor(registry, registry["kg"], registry["g"]) == ExactFactor(Fraction(1, 1000))
        assert factor(registry, registry["g"], registry["kg"]) == ExactFactor(1000)
        assert factor(registry, registry["mg"], registry["kg"]) == ExactFactor(1_000_000)

    def test_compound_units(self, registry: UnitRegistry) -> None:
        km_per_s = registry["km"] / registry["s"]
        m_per_ms = registry["m"] / registry["ms"]
        assert factor(registry, m_per_ms, km_per_s) == ExactFactor(1)

    def test_power_of_rational(self, registry: UnitRegistry) -> None:
        result = factor(registry, registry["m"] ** 3, registry["ft"] ** 3)
        assert result == ExactFactor(Fraction(381, 1250) ** 3)

    def test_inexact_parts_cancel(self, registry: UnitRegistry) -> None:
        """π/180 сокращается, остаётся точная 1/60"""
        assert factor(registry, registry["deg"], registry["arcmin"]) == ExactFactor(Fraction(1, 60))

    def test_transitivity(self, registry: UnitRegistry) -> None:
        m, ft, km = registry["m"], registry["ft"], registry["km"]
        chained = factor(registry, km, m).value * factor(registry, m, ft).value
        assert chained == factor(registry, km, ft).value


class TestApproximateSynthesis:
    """Приближённые множители"""

    def test_irrational_definition(self, registry: UnitRegistry) -> None:
        result = factor(registry, registry["rad"], registry["deg"])
        assert isinstance(result, ApproximateFactor)
        assert result.value == pytest.approx(math.pi / 180)

    def test_exact_power_overflow_falls_back(self, registry: UnitRegistry) -> None:
        result = factor(registry, registry["m"] ** 10, registry["ft"] ** 10)
        assert isinstance(result, ApproximateFactor)
        assert result.value == pytest.approx(0.3048**10, rel=1e-12)

    def test_tens_overflow_falls_back(self, registry: UnitRegistry) -> None:
        """Δtens = 72: 10**72 не помещается в MAX_EXACT_INT"""
        result = factor(registry, registry["am"] ** 2, registry["Em"] ** 2)
        assert isinstance(result, ApproximateFactor)
        assert math.isfinite(result.value)
        assert result.value == pytest.approx(1e72)

    def test_fractional_tens(self, registry: UnitRegistry) -> None:
        result = factor(registry, registry["m"].sqrt(), registry["km"].sqrt())
        assert isinstance(result, ApproximateFactor)
        assert result.value == pytest.approx(10**1.5)


class TestIdentityTolerance:
    """Приближённый множитель ≈ 1 становится точным"""

    def test_default_tolerance_keeps_real_factor(self, registry: UnitRegistry) -> None:
        result = synthesize_factor(registry["m"], registry["approx_m"], registry)
        assert result == ApproximateFactor(1.001)

    def test_custom_tolerance_collapses_to_exact(self, registry: UnitRegistry) -> None:
        config = SynthesisConfig(identity_rel_tol=0.01)
        result = synthesize_factor(registry["m"], registry["approx_m"], registry, config)
        assert result == ExactFactor(1)


class TestSynthesisErrors:
    """Ошибки синтеза"""

    def test_dimension_mismatch(self, registry: UnitRegistry) -> None:
        with pytest.raises(DimensionMismatch, match="conversion"):
            factor(registry, registry["s"], registry["m"])

    def test_unknown_atom(self, registry: UnitRegistry) -> None:
        with pytest.raises(UnknownUnit, match="Furlong"):
            factor(registry, registry["m"], Units((Atom("Furlong"),)))


class TestCompositeBaseFactor:
    """Тесты для composite_base_factor"""

    def test_parts_kept_apart(self, registry: UnitRegistry) -> None:
        result = composite_base_factor(registry["deg"] * registry["ft"], registry)
        assert result.inexact == pytest.approx(math.pi / 180)
        assert result.exact == Fraction(381, 1250)


# =============================================================================
# ПРИМЕНЕНИЕ МНОЖИТЕЛЕЙ И КЭШ
# =============================================================================


class TestFactorScale:
    """Тесты для ExactFactor.scale / ApproximateFactor.scale"""

    def test_exact_input_stays_exact(self) -> None:
        result = ExactFactor(1000).scale(5)
        assert result == 5000
        assert type(result) is int

    def test_fraction_result(self) -> None:
        assert ExactFactor(Fraction(1, 3)).scale(1) == Fraction(1, 3)

    def test_float_rounded_once(self) -> None:
        assert ExactFactor(Fraction(1, 3)).scale(3.0) == 1.0

    def test_approximate_always_float(self) -> None:
        assert ApproximateFactor(0.5).scale(4) == 2.0

    def test_float_conversion(self) -> None:
        assert float(ExactFactor(Fraction(1, 4))) == 0.25
        assert ExactFactor(3).is_exact
        assert not ApproximateFactor(3.0).is_exact


class TestFactorSynthesizerCache:
    """Тесты для FactorSynthesizer"""

    def test_cached_once(self, registry: UnitRegistry) -> None:
        synthesizer = FactorSynthesizer(registry)
        first = synthesizer.factor(registry["m"], registry["ft"])
        second = synthesizer.factor(registry["m"], registry["ft"])
        assert first is second
        assert synthesizer.cache_size == 1

    def test_identity_not_cached(self, registry: UnitRegistry) -> None:
        synthesizer = FactorSynthesizer(registry)
        synthesizer.factor(registry["m"], registry["m"])
        assert synthesizer.cache_size == 0

    def test_cache_disabled(self, registry: UnitRegistry) -> None:
        synthesizer = FactorSynthesizer(registry, SynthesisConfig(cache_enabled=False))
        synthesizer.factor(registry["m"], registry["ft"])
        assert synthesizer.cache_size == 0

    def test_direction_matters(self, registry: UnitRegistry) -> None:
        synthesizer = FactorSynthesizer(registry)
        down = synthesizer.factor(registry["m"], registry["km"])
        up = synthesizer.factor(registry["km"], registry["m"])
        assert down.value * up.value == 1
        assert synthesizer.cache_size == 2

    def test_to_base(self, registry: UnitRegistry) -> None:
        synthesizer = FactorSynthesizer(registry)
        assert synthesizer.to_base(registry["g"]) == ExactFactor(Fraction(1, 1000))
        assert synthesizer.to_base(registry["kg"]) == ExactFactor(1)
        assert synthesizer.to_base(registry["ft"]) == ExactFactor(Fraction(381, 1250))
