"""
Registry Module

Реестр размерностей и единиц, декларативный каталог и процессный
реестр по умолчанию.
"""

from .catalog import UnitCatalog, apply_catalog, build_registry, load_catalog
from .defaults import get_registry
from .registry import PREFIXES, RegistryState, UnitRecord, UnitRegistry

__all__ = [
    "PREFIXES",
    "RegistryState",
    "UnitRecord",
    "UnitRegistry",
    "UnitCatalog",
    "apply_catalog",
    "build_registry",
    "load_catalog",
    "get_registry",
]
