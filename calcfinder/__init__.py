"""
Top-level package for the calculator finder.

This package resolves a free-text request ("convert psi to bar", "how
long until I retire") to the single best-matching calculator in a
catalog.  It contains the catalog index, a deterministic lexical
scorer, an optional hosted semantic first pass, the resolution policy,
and thin HTTP and CLI surfaces.  There are no side effects on import.
"""

from .catalog_index import (
    CatalogError,
    CatalogIndex,
    CatalogItem,
    DuplicateIdentifierError,
    InvalidItemError,
)
from .config import ResolverConfig
from .resolver import Alternate, ResolutionResult, resolve

__all__ = [
    "Alternate",
    "CatalogError",
    "CatalogIndex",
    "CatalogItem",
    "DuplicateIdentifierError",
    "InvalidItemError",
    "ResolutionResult",
    "ResolverConfig",
    "resolve",
]
