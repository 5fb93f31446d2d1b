"""
unitcore — физические величины с единицами и размерностями

Числа несут единицы; арифметика несовместимых величин (длина + время)
отклоняется, конверсии между совместимыми единицами (km → m, °C → °F)
вычисляются корректно и, где возможно, точно.

    >>> from unitcore import convert, units as u
    >>> convert(u.m, 5 * u.km)
    Quantity(5000, m)
"""

from unitcore.core.exceptions import (
    DimensionMismatch,
    DuplicateDeclaration,
    InvalidPrefix,
    RegistryFrozen,
    UnitcoreError,
    UnknownUnit,
)
from unitcore.core.domain.atoms import (
    NO_DIMENSIONS,
    NO_UNITS,
    Atom,
    Dimensions,
    Units,
    canonicalize,
)
from unitcore.core.math.factors import (
    ApproximateFactor,
    BaseFactor,
    ExactFactor,
    FactorSynthesizer,
    SynthesisConfig,
)
from unitcore.core.domain.temperature import QuantityKind, kind_of
from unitcore.core.domain.quantity import Quantity, convert
from unitcore.core.domain.operations import (
    cld,
    conversion_factor,
    dimension,
    div,
    fld,
    isapprox,
    max_quantity,
    max_units,
    min_quantity,
    min_units,
    mod,
    quantity_range,
    rem,
    sqrt,
    unit,
    ustrip,
)
from unitcore.registry import (
    UnitCatalog,
    UnitRegistry,
    build_registry,
    get_registry,
    load_catalog,
)
from unitcore import units

__all__ = [
    # Errors
    "UnitcoreError",
    "DimensionMismatch",
    "DuplicateDeclaration",
    "InvalidPrefix",
    "RegistryFrozen",
    "UnknownUnit",
    # Algebra
    "Atom",
    "Dimensions",
    "Units",
    "NO_DIMENSIONS",
    "NO_UNITS",
    "canonicalize",
    # Factors
    "BaseFactor",
    "ExactFactor",
    "ApproximateFactor",
    "FactorSynthesizer",
    "SynthesisConfig",
    # Quantities
    "Quantity",
    "QuantityKind",
    "kind_of",
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
    "quantity_range",
    "isapprox",
    "sqrt",
    "ustrip",
    "unit",
    "dimension",
    # Registry
    "UnitRegistry",
    "UnitCatalog",
    "build_registry",
    "get_registry",
    "load_catalog",
    "units",
]
