"""
Contract Validation Module

Валидация декларативных JSON-каталогов единиц по JSON Schema.
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    UnitCatalogValidator,
    validate_unit_catalog,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "UnitCatalogValidator",
    # Functions
    "validate_unit_catalog",
]
