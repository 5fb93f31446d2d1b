"""
Тесты для UnitRegistry

Проверяет:
1. Объявление размерностей, базовых и производных единиц
2. Семейство SI-префиксов и InvalidPrefix
3. Базовые множители производных единиц (включая tens и поправку массы)
4. Смещения шкал и их ограничение температурой
5. Жизненный цикл: OPEN → FROZEN, DuplicateDeclaration
6. Отображение единиц
7. Величины с единицами собственного реестра
8. Публикацию реестра по умолчанию только после полной загрузки
"""

import math
import threading
from fractions import Fraction

import pytest

from unitcore import units as u
from unitcore.core.domain.atoms import NO_DIMENSIONS, NO_UNITS, Atom, Dimensions, Units
from unitcore.core.domain.quantity import convert
from unitcore.core.exceptions import (
    DuplicateDeclaration,
    InvalidPrefix,
    RegistryFrozen,
    UnknownUnit,
)
from unitcore.core.math.factors import BaseFactor
from unitcore.registry import PREFIXES, RegistryState, UnitRegistry, build_registry, catalog, defaults, get_registry


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def registry() -> UnitRegistry:
    """Реестр с длиной, массой, временем и температурой."""
    reg = UnitRegistry()
    reg.declare_dimension("Length", "L")
    reg.declare_dimension("Mass", "M")
    reg.declare_dimension("Time", "T")
    reg.declare_dimension("Temperature", "Θ")
    reg.declare_base_unit("m", "m", "Meter", "Length")
    reg.declare_base_unit("g", "g", "Gram", "Mass")
    reg.declare_base_unit("s", "s", "Second", "Time")
    reg.declare_base_unit("K", "K", "Kelvin", "Temperature")
    return reg


LENGTH = Dimensions((Atom("Length"),))
TIME = Dimensions((Atom("Time"),))


# =============================================================================
# РАЗМЕРНОСТИ
# =============================================================================


class TestDimensions:
    """Объявление размерностей"""

    def test_base_dimension(self, registry: UnitRegistry) -> None:
        assert registry.named_dimension("Length") == LENGTH

    def test_derived_from_mapping(self, registry: UnitRegistry) -> None:
        velocity = registry.declare_derived_dimension("Velocity", {"Length": 1, "Time": -1})
        assert velocity == LENGTH / TIME
        assert registry.named_dimension("Velocity") == velocity

    def test_derived_from_derived(self, registry: UnitRegistry) -> None:
        registry.declare_derived_dimension("Area", {"Length": 2})
        volume = registry.declare_derived_dimension("Volume", {"Area": 1, "Length": 1})
        assert volume == LENGTH**3

    def test_derived_from_composite(self, registry: UnitRegistry) -> None:
        assert registry.declare_derived_dimension("Frequency", TIME**-1) == TIME**-1

    def test_unknown_dimension(self, registry: UnitRegistry) -> None:
        with pytest.raises(UnknownUnit, match="dimension"):
            registry.declare_derived_dimension("Charge", {"Current": 1, "Time": 1})

    def test_duplicate_dimension(self, registry: UnitRegistry) -> None:
        with pytest.raises(DuplicateDeclaration, match="Length"):
            registry.declare_dimension("Length", "L")


# =============================================================================
# ЕДИНИЦЫ
# =============================================================================


class TestBaseUnits:
    """Базовые единицы и SI-префиксы"""

    def test_symbol_lookup(self, registry: UnitRegistry) -> None:
        assert registry.units("m") == Units((Atom("Meter"),))
        assert registry["km"] == Units((Atom("Meter", 3),))

    def test_full_prefix_family(self, registry: UnitRegistry) -> None:
        for tens, prefix in PREFIXES.items():
            assert registry[prefix + "m"] == Units((Atom("Meter", tens),))
        assert "ym" in registry
        assert "Ym" in registry
        assert "dam" in registry

    def test_identity_base_factor(self, registry: UnitRegistry) -> None:
        assert registry.base_factor_of(Atom("Meter", 3)) == BaseFactor(1.0, 1)

    def test_dimension_of_atom_with_power(self, registry: UnitRegistry) -> None:
        assert registry.dimension_of(Atom("Meter", 3, 2)) == LENGTH**2

    def test_dimension_of_composite(self, registry: UnitRegistry) -> None:
        assert registry.dimension_of(registry["km"] / registry["ms"]) == LENGTH / TIME
        assert registry.dimension_of(NO_UNITS) == NO_DIMENSIONS

    def test_unknown_symbol(self, registry: UnitRegistry) -> None:
        with pytest.raises(UnknownUnit, match="furlong"):
            registry.units("furlong")

    def test_unknown_is_key_error(self, registry: UnitRegistry) -> None:
        with pytest.raises(KeyError):
            registry["furlong"]

    def test_unknown_atom(self, registry: UnitRegistry) -> None:
        with pytest.raises(UnknownUnit):
            registry.base_factor_of(Atom("Furlong"))

    def test_record(self, registry: UnitRegistry) -> None:
        record = registry.unit_record("Meter")
        assert record.prefixed
        assert record.abbreviation == "m"
        assert record.dimension == LENGTH


class TestDerivedUnits:
    """Производные единицы"""

    def test_rational_definition(self, registry: UnitRegistry) -> None:
        registry.declare_derived_unit("ft", "ft", "Foot", (Fraction(3048, 10000), registry["m"]))
        assert registry.base_factor_of(Atom("Foot")) == BaseFactor(1.0, Fraction(381, 1250))

    def test_float_definition_goes_to_inexact(self, registry: UnitRegistry) -> None:
        rad = registry.declare_derived_unit("rad", "rad", "Radian", NO_UNITS)
        registry.declare_derived_unit("deg", "°", "Degree", (math.pi / 180, rad))
        base = registry.base_factor_of(Atom("Degree"))
        assert base.inexact == pytest.approx(math.pi / 180)
        assert base.exact == 1

    def test_prefixed_definition_folds_tens(self, registry: UnitRegistry) -> None:
        registry.declare_derived_unit("Å", "Å", "Angstrom", (Fraction(1, 10), registry["nm"]))
        assert registry.base_factor_of(Atom("Angstrom")) == BaseFactor(1.0, Fraction(1, 10**10))

    def test_mass_definition_relative_to_kilogram(self, registry: UnitRegistry) -> None:
        registry.declare_derived_unit("t", "t", "Tonne", (1000, registry["kg"]))
        registry.declare_derived_unit("ct", "ct", "Carat", (200, registry["mg"]))
        assert registry.base_factor_of(Atom("Tonne")).exact == 1000
        assert registry.base_factor_of(Atom("Carat")).exact == Fraction(1, 5000)

    def test_units_only_definition(self, registry: UnitRegistry) -> None:
        registry.declare_derived_unit("Hz", "Hz", "Hertz", registry["s"] ** -1)
        assert registry.dimension_of(registry["Hz"]) == TIME**-1

    def test_quantity_definition(self, registry: UnitRegistry) -> None:
        registry.declare_derived_unit("ft", "ft", "Foot", Fraction(3048, 10000) * u.m)
        assert registry.base_factor_of(Atom("Foot")).exact == Fraction(381, 1250)

    def test_not_prefixed_by_default(self, registry: UnitRegistry) -> None:
        registry.declare_derived_unit("ft", "ft", "Foot", (Fraction(3048, 10000), registry["m"]))
        assert "kft" not in registry

    def test_prefixed_on_request(self, registry: UnitRegistry) -> None:
        registry.declare_derived_unit(
            "L", "L", "Liter", (Fraction(1, 1000), registry["m"] ** 3), prefixes=True
        )
        assert registry["mL"] == Units((Atom("Liter", -3),))

    def test_non_positive_value(self, registry: UnitRegistry) -> None:
        with pytest.raises(ValueError, match="positive"):
            registry.declare_derived_unit("x", "x", "Nothing", (0, registry["m"]))

    def test_non_number_value(self, registry: UnitRegistry) -> None:
        with pytest.raises(TypeError, match="number"):
            registry.declare_derived_unit("x", "x", "Nothing", ("1", registry["m"]))

    def test_uninterpretable_definition(self, registry: UnitRegistry) -> None:
        with pytest.raises(TypeError, match="defining"):
            registry.declare_derived_unit("x", "x", "Nothing", "1 m")


class TestOffsets:
    """Смещения шкал"""

    def test_temperature_offset(self, registry: UnitRegistry) -> None:
        celsius = registry.declare_derived_unit(
            "degC", "°C", "Celsius", registry["K"], offset=Fraction(5463, 20)
        )
        assert registry.offset_of(celsius) == Fraction(5463, 20)
        assert registry.offset_of(Atom("Celsius")) == Fraction(5463, 20)

    def test_offset_only_for_temperature(self, registry: UnitRegistry) -> None:
        with pytest.raises(ValueError, match="temperature"):
            registry.declare_derived_unit("x", "x", "Shifted", registry["m"], offset=1)

    def test_default_offset_zero(self, registry: UnitRegistry) -> None:
        assert registry.offset_of(registry["K"]) == 0
        assert registry.offset_of(registry["m"]) == 0
        assert registry.offset_of(Units((Atom("Unknown"),))) == 0


# =============================================================================
# ЖИЗНЕННЫЙ ЦИКЛ
# =============================================================================


class TestLifecycle:
    """OPEN → FROZEN"""

    def test_initial_state(self) -> None:
        registry = UnitRegistry()
        assert registry.state is RegistryState.OPEN
        assert not registry.is_frozen

    def test_freeze_blocks_declarations(self, registry: UnitRegistry) -> None:
        registry.freeze()
        assert registry.state is RegistryState.FROZEN
        with pytest.raises(RegistryFrozen):
            registry.declare_dimension("Current", "I")
        with pytest.raises(RegistryFrozen):
            registry.declare_derived_unit("ft", "ft", "Foot", registry["m"])

    def test_freeze_idempotent(self, registry: UnitRegistry) -> None:
        registry.freeze()
        registry.freeze()
        assert registry.is_frozen

    def test_lookups_after_freeze(self, registry: UnitRegistry) -> None:
        registry.freeze()
        assert registry["km"] == Units((Atom("Meter", 3),))

    def test_duplicate_unit_name(self, registry: UnitRegistry) -> None:
        with pytest.raises(DuplicateDeclaration, match="Meter"):
            registry.declare_base_unit("mtr", "mtr", "Meter", "Length")

    def test_duplicate_symbol(self, registry: UnitRegistry) -> None:
        with pytest.raises(DuplicateDeclaration, match="'km'"):
            registry.declare_derived_unit("km", "km", "KiloThing", registry["m"])

    def test_prefixed_symbol_collision(self, registry: UnitRegistry) -> None:
        """"mm" уже занят миллиметром"""
        with pytest.raises(DuplicateDeclaration):
            registry.declare_base_unit("m", "m", "Minim", "Length")

    def test_collision_declares_nothing(self, registry: UnitRegistry) -> None:
        """"am" (аттометр) занят — ни один символ семейства не объявлен"""
        with pytest.raises(DuplicateDeclaration, match="'am'"):
            registry.declare_derived_unit("am", "am", "Ampoule", registry["m"], prefixes=True)
        assert "kam" not in registry
        with pytest.raises(UnknownUnit):
            registry.unit_record("Ampoule")

    def test_default_registry_frozen_singleton(self) -> None:
        assert get_registry() is get_registry()
        assert get_registry().is_frozen


# =============================================================================
# ПРЕФИКСЫ И ОТОБРАЖЕНИЕ
# =============================================================================


class TestPrefixes:
    """prefix_for"""

    def test_known(self) -> None:
        assert UnitRegistry.prefix_for(3) == "k"
        assert UnitRegistry.prefix_for(-6) == "μ"
        assert UnitRegistry.prefix_for(1) == "da"
        assert UnitRegistry.prefix_for(0) == ""

    def test_invalid(self) -> None:
        with pytest.raises(InvalidPrefix, match="10\\^4"):
            UnitRegistry.prefix_for(4)

    def test_invalid_is_key_error(self) -> None:
        with pytest.raises(KeyError):
            UnitRegistry.prefix_for(27)

    def test_twenty_one_prefixes(self) -> None:
        assert len(PREFIXES) == 21


class TestFormatting:
    """Простое текстовое представление"""

    def test_abbreviations(self, registry: UnitRegistry) -> None:
        assert registry.abbreviation_of(Atom("Meter", 3)) == "m"
        assert registry.abbreviation_of(Atom("Length")) == "L"
        assert registry.abbreviation_of(Atom("Furlong")) == "???"

    def test_format_units(self, registry: UnitRegistry) -> None:
        assert registry.format_units(registry["km"] / registry["s"] ** 2) == "km s^-2"
        assert registry.format_units(registry["m"].sqrt()) == "m^(1/2)"
        assert registry.format_units(NO_UNITS) == ""

    def test_format_dimensions(self, registry: UnitRegistry) -> None:
        assert registry.format_dimensions(LENGTH / TIME**2) == "L T^-2"

    def test_symbols(self, registry: UnitRegistry) -> None:
        symbols = set(registry.symbols())
        assert {"m", "km", "kg", "ms", "K"} <= symbols


class TestUnitsModule:
    """Доступ к единицам реестра по умолчанию через атрибуты"""

    def test_attribute_access(self) -> None:
        assert u.km == get_registry()["km"]
        assert u.degC == get_registry()["degC"]

    def test_unknown_attribute(self) -> None:
        with pytest.raises(AttributeError, match="furlong"):
            u.furlong

    def test_dir_lists_symbols(self) -> None:
        assert {"m", "km", "degF", "psi"} <= set(dir(u))


# =============================================================================
# ВЕЛИЧИНЫ СОБСТВЕННОГО РЕЕСТРА
# =============================================================================


class TestRegistryBoundQuantities:
    """Величины разрешаются через реестр, которому принадлежат их единицы"""

    @pytest.fixture
    def widgets(self, registry: UnitRegistry) -> UnitRegistry:
        registry.declare_base_unit("wd", "wd", "Widget", "Length")
        registry.declare_derived_unit("crate", "crate", "Crate", 12 * registry["wd"])
        registry.declare_derived_unit("degW", "°W", "DegreeWidget", registry["K"], offset=100)
        return registry

    def test_units_carry_registry(self, widgets: UnitRegistry) -> None:
        assert widgets["wd"].registry is widgets
        assert (widgets["kwd"] / widgets["s"]).registry is widgets
        assert (widgets["wd"] ** 2).registry is widgets
        assert Units.product(widgets["wd"], widgets["s"]).registry is widgets

    def test_registry_ignored_by_equality(self, widgets: UnitRegistry) -> None:
        assert widgets["m"] == u.m
        assert hash(widgets["m"]) == hash(u.m)

    def test_quantity_from_custom_units(self, widgets: UnitRegistry) -> None:
        q = 2 * widgets["wd"]
        assert q.registry is widgets
        assert q.dimensions == LENGTH
        assert str(q) == "2 wd"

    def test_arithmetic(self, widgets: UnitRegistry) -> None:
        total = 1 * widgets["crate"] + 6 * widgets["wd"]
        assert total.units == widgets["crate"]
        assert total.value == Fraction(3, 2)
        assert 1 * widgets["kwd"] == 1000 * widgets["wd"]
        assert 1 * widgets["crate"] > 11 * widgets["wd"]

    def test_convert(self, widgets: UnitRegistry) -> None:
        assert convert(widgets["wd"], 2 * widgets["crate"]).value == 24
        assert convert(widgets["K"], 0 * widgets["degW"]).value == 100

    def test_unbound_target_uses_quantity_registry(self, widgets: UnitRegistry) -> None:
        target = Units((Atom("Widget"),))
        result = convert(target, 1 * widgets["crate"])
        assert result.value == 12
        assert result.registry is widgets

    def test_quantity_defining_value(self, widgets: UnitRegistry) -> None:
        assert widgets.base_factor_of(Atom("Crate")) == BaseFactor(1.0, 12)

    def test_catalog_registry_quantities(self) -> None:
        catalog = {
            "version": "1.0",
            "dimensions": [{"name": "Length", "abbreviation": "L"}],
            "base_units": [{"symbol": "m", "abbreviation": "m", "name": "Meter", "dimension": "Length"}],
            "derived_units": [
                {
                    "symbol": "fur",
                    "abbreviation": "fur",
                    "name": "Furlong",
                    "value": "201168/1000",
                    "units": [{"symbol": "m"}],
                }
            ],
        }
        reg = build_registry(catalog)
        assert (1 * reg["fur"]).to(reg["m"]).value == Fraction(25146, 125)
        assert 1 * reg["fur"] + 0 * reg["km"] == 1 * reg["fur"]


# =============================================================================
# РЕЕСТР ПО УМОЛЧАНИЮ: ЗАГРУЗКА
# =============================================================================


class TestDefaultRegistryLoading:
    """Реестр по умолчанию публикуется только полностью загруженным"""

    def test_not_published_during_catalog_load(self, monkeypatch) -> None:
        published_during_load = []
        original_apply = catalog.apply_catalog

        def observing_apply(loaded, registry):
            published_during_load.append(defaults._REGISTRY)
            return original_apply(loaded, registry)

        monkeypatch.setattr(defaults, "_REGISTRY", None)
        monkeypatch.setattr(catalog, "apply_catalog", observing_apply)

        registry = defaults.get_registry()
        assert published_during_load == [None]
        assert registry.is_frozen
        assert defaults._REGISTRY is registry

    def test_failed_load_publishes_nothing(self, monkeypatch) -> None:
        def failing_apply(loaded, registry):
            raise RuntimeError("broken catalog")

        monkeypatch.setattr(defaults, "_REGISTRY", None)
        monkeypatch.setattr(catalog, "apply_catalog", failing_apply)

        with pytest.raises(RuntimeError, match="broken catalog"):
            defaults.get_registry()
        assert defaults._REGISTRY is None

    def test_concurrent_first_access(self, monkeypatch) -> None:
        monkeypatch.setattr(defaults, "_REGISTRY", None)
        barrier = threading.Barrier(8)
        results = []
        errors = []

        def worker() -> None:
            barrier.wait()
            try:
                registry = defaults.get_registry()
                results.append((registry, registry.units("km")))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len({id(registry) for registry, _ in results}) == 1
        assert all(registry.is_frozen for registry, _ in results)
