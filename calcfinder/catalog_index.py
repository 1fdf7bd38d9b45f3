from __future__ import annotations

"""
Searchable index over the calculator catalog.

A :class:`CatalogIndex` is built once from the full set of
:class:`CatalogItem` records and is read-only afterwards, so any number
of resolver calls may share it without locking.  Rebuilding produces a
brand-new index; see :mod:`calcfinder.store` for the swap.

The build is deterministic for a given item set regardless of input
order: items are keyed by identifier in sorted order and the inverted
token map is sorted by token.

Example::

    from calcfinder.catalog_index import CatalogIndex, CatalogItem
    index = CatalogIndex.build([
        CatalogItem("bmi-calculator", "BMI Calculator",
                    "Calculate body mass index from height and weight", "health"),
    ])
    index.tokens("bmi-calculator")

"""

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Tuple

from loguru import logger

from .normalize import tokenize, tokenize_fields, unique_tokens


class CatalogError(Exception):
    """Base class for catalog construction errors."""


class DuplicateIdentifierError(CatalogError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Duplicate catalog identifier: {identifier!r}")


class InvalidItemError(CatalogError):
    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Invalid catalog item {identifier!r}: {reason}")


@dataclass(frozen=True)
class CatalogItem:
    """One discoverable calculator."""

    identifier: str
    display_name: str
    description: str
    category: str
    keywords: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # accept any iterable of keywords but store an immutable set
        if not isinstance(self.keywords, frozenset):
            object.__setattr__(self, "keywords", frozenset(self.keywords or ()))


@dataclass(frozen=True)
class IndexedItem:
    """Pre-tokenized view of one catalog item used by the scorer."""

    item: CatalogItem
    tokens: Tuple[str, ...]
    name_tokens: FrozenSet[str]
    description_tokens: FrozenSet[str]
    keyword_tokens: FrozenSet[str]
    name_token_count: int
    length_norm: float


def _validate(item: CatalogItem) -> None:
    if not isinstance(item.identifier, str) or not item.identifier.strip():
        raise InvalidItemError(str(item.identifier), "identifier must be a non-empty string")
    if not isinstance(item.display_name, str) or not item.display_name.strip():
        raise InvalidItemError(item.identifier, "displayName must be non-empty")
    if not isinstance(item.description, str) or not item.description.strip():
        raise InvalidItemError(item.identifier, "description must be non-empty")
    if not isinstance(item.category, str):
        raise InvalidItemError(item.identifier, "category must be a string")


def _index_item(item: CatalogItem) -> IndexedItem:
    # sorted so the keyword text, and therefore token order, is stable
    keywords = sorted(item.keywords)
    name_list = tokenize(item.display_name)
    description_list = tokenize(item.description)
    keyword_list = tokenize(" ".join(keywords))
    tokens = unique_tokens(tokenize_fields(item.display_name, item.description, *keywords))
    # keywords are aliases; only the authored text counts toward length
    content_size = len(set(name_list) | set(description_list))
    return IndexedItem(
        item=item,
        tokens=tuple(tokens),
        name_tokens=frozenset(name_list),
        description_tokens=frozenset(description_list),
        keyword_tokens=frozenset(keyword_list),
        name_token_count=len(name_list),
        length_norm=math.sqrt(max(content_size, 1)),
    )


class CatalogIndex:
    """
    Immutable lookup structures over a fixed catalog.

    Use :meth:`build` rather than the constructor.
    """

    __slots__ = ("_entries", "_postings", "_vocabulary", "_by_category")

    def __init__(
        self,
        entries: Mapping[str, IndexedItem],
        postings: Mapping[str, FrozenSet[str]],
        by_category: Mapping[str, Tuple[str, ...]],
    ):
        self._entries = entries
        self._postings = postings
        self._vocabulary: Tuple[str, ...] = tuple(postings)
        self._by_category = by_category

    @classmethod
    def build(cls, items: Iterable[CatalogItem]) -> "CatalogIndex":
        """
        Validate and index a set of catalog items.

        Raises :class:`DuplicateIdentifierError` if two items share an
        identifier and :class:`InvalidItemError` if an item lacks a
        display name or description.
        """
        staged: Dict[str, IndexedItem] = {}
        for item in items:
            _validate(item)
            if item.identifier in staged:
                raise DuplicateIdentifierError(item.identifier)
            staged[item.identifier] = _index_item(item)

        entries: Dict[str, IndexedItem] = {}
        postings: Dict[str, set] = {}
        by_category: Dict[str, List[str]] = {}
        for ident in sorted(staged):
            entry = staged[ident]
            entries[ident] = entry
            for tok in entry.tokens:
                postings.setdefault(tok, set()).add(ident)
            by_category.setdefault(entry.item.category, []).append(ident)

        frozen_postings = {tok: frozenset(postings[tok]) for tok in sorted(postings)}
        frozen_categories = {cat: tuple(by_category[cat]) for cat in sorted(by_category)}
        logger.info(
            "Built catalog index: {} items, {} distinct tokens, {} categories",
            len(entries),
            len(frozen_postings),
            len(frozen_categories),
        )
        return cls(
            MappingProxyType(entries),
            MappingProxyType(frozen_postings),
            MappingProxyType(frozen_categories),
        )

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------

    def tokens(self, identifier: str) -> Tuple[str, ...]:
        """Token set for one item, in first-seen order.  KeyError if unknown."""
        return self._entries[identifier].tokens

    def all_identifiers(self) -> FrozenSet[str]:
        return frozenset(self._entries)

    def item(self, identifier: str) -> CatalogItem:
        return self._entries[identifier].item

    def entry(self, identifier: str) -> IndexedItem:
        return self._entries[identifier]

    def entries(self) -> Iterable[IndexedItem]:
        """All indexed items, ordered by identifier."""
        return self._entries.values()

    def postings(self, token: str) -> FrozenSet[str]:
        return self._postings.get(token, frozenset())

    @property
    def vocabulary(self) -> Tuple[str, ...]:
        """Every distinct token in the catalog, sorted."""
        return self._vocabulary

    def categories(self) -> List[str]:
        return list(self._by_category)

    def identifiers_in(self, category: str) -> Tuple[str, ...]:
        return self._by_category.get(category, ())

    def filter_category(self, category: str, text: str = "") -> List[CatalogItem]:
        """
        Browse one category, keeping items whose display name or
        description contains ``text`` (case-insensitive).  Empty text
        keeps every item.  Ordered by display name, then identifier.
        """
        needle = (text or "").strip().lower()
        hits: List[CatalogItem] = []
        for ident in self.identifiers_in(category):
            item = self._entries[ident].item
            if not needle or needle in item.display_name.lower() or needle in item.description.lower():
                hits.append(item)
        hits.sort(key=lambda i: (i.display_name.lower(), i.identifier))
        return hits

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __repr__(self) -> str:
        return f"CatalogIndex(items={len(self._entries)}, tokens={len(self._vocabulary)})"
