from __future__ import annotations

"""
Holder for the live catalog index.

Readers take :attr:`IndexStore.current` once per request and keep using
that snapshot; a reload builds a complete new index first and only
then replaces the reference, so no reader ever sees a half-built one.
If the build raises, the previous index stays live.
"""

import threading
from typing import Iterable, Optional

from loguru import logger

from .catalog_index import CatalogError, CatalogIndex, CatalogItem


class IndexStore:
    def __init__(self, index: Optional[CatalogIndex] = None):
        self._index = index if index is not None else CatalogIndex.build(())
        self._generation = 0
        # serializes writers only; reads are a single attribute load
        self._reload_lock = threading.Lock()

    @property
    def current(self) -> CatalogIndex:
        return self._index

    @property
    def generation(self) -> int:
        """Incremented on every successful swap."""
        return self._generation

    def reload(self, items: Iterable[CatalogItem]) -> CatalogIndex:
        """
        Build a new index from ``items`` and swap it in.  Construction
        errors are re-raised and leave the current index untouched.
        """
        with self._reload_lock:
            try:
                fresh = CatalogIndex.build(items)
            except CatalogError as e:
                logger.error("Catalog reload rejected, keeping previous index: {}", e)
                raise
            self._index = fresh
            self._generation += 1
            logger.info("Catalog index swapped (generation {}, {} items)", self._generation, len(fresh))
            return fresh
