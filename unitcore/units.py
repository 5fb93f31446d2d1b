"""
Доступ к единицам реестра по умолчанию как к атрибутам модуля.

    >>> from unitcore import units as u
    >>> 5 * u.km
    Quantity(5, km)
"""

from typing import List

from unitcore.core.domain.atoms import Units
from unitcore.core.exceptions import UnknownUnit
from unitcore.registry.defaults import get_registry


def __getattr__(symbol: str) -> Units:
    if symbol.startswith("__"):
        raise AttributeError(symbol)
    try:
        return get_registry().units(symbol)
    except UnknownUnit as e:
        raise AttributeError(f"module {__name__!r} has no unit {symbol!r}") from e


def __dir__() -> List[str]:
    return sorted(get_registry().symbols())
