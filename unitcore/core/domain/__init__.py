"""
Domain models: atoms, canonical composites, quantities.

Quantity и функции над величинами зависят от реестра единиц и
импортируются из core.domain.quantity / core.domain.operations.
"""

from unitcore.core.domain.atoms import (
    NO_DIMENSIONS,
    NO_UNITS,
    Atom,
    Composite,
    Dimensions,
    Units,
    canonicalize,
)

__all__ = [
    "NO_DIMENSIONS",
    "NO_UNITS",
    "Atom",
    "Composite",
    "Dimensions",
    "Units",
    "canonicalize",
]
