"""
Default Registry — процессный реестр единиц по умолчанию

get_registry() лениво строит реестр из встроенного каталога
(registry/data/default_catalog.json) ровно один раз и замораживает его.

Реестр публикуется только полностью загруженным и замороженным: быстрый
путь без блокировки никогда не видит наполовину применённый каталог.
Если загрузка каталога падает, ничего не публикуется и следующий вызов
повторит построение.
"""

import logging
import threading
from pathlib import Path
from typing import Final

from unitcore.registry.registry import UnitRegistry

logger = logging.getLogger(__name__)

# Встроенный каталог единиц
DEFAULT_CATALOG_PATH: Final[Path] = Path(__file__).parent / "data" / "default_catalog.json"

_REGISTRY: UnitRegistry | None = None
_LOCK = threading.RLock()


def get_registry() -> UnitRegistry:
    """
    Процессный реестр единиц (создаётся при первом обращении).

    Returns:
        Замороженный UnitRegistry со встроенным каталогом
    """
    global _REGISTRY

    registry = _REGISTRY
    if registry is not None:
        return registry

    with _LOCK:
        if _REGISTRY is not None:
            return _REGISTRY

        # Отложенный импорт: catalog → contracts → jsonschema
        from unitcore.registry.catalog import apply_catalog, load_catalog

        registry = UnitRegistry()
        apply_catalog(load_catalog(DEFAULT_CATALOG_PATH), registry)
        registry.freeze()
        _REGISTRY = registry
        logger.info("Default unit registry initialized from %s", DEFAULT_CATALOG_PATH.name)
        return registry
