from __future__ import annotations

"""
Mapping utilities for the calculator finder API.

Converts resolver output and catalog items into the strict Pydantic
objects defined in :mod:`calcfinder.config`, attaching the display
fields and page path the presentation layer needs.
"""

from typing import List, Sequence

from loguru import logger

from .catalog_index import CatalogIndex, CatalogItem
from .config import (
    ROUTE_TEMPLATE,
    AlternateOut,
    CalculatorOut,
    CategorySearchResponse,
    ResolveResponse,
)
from .resolver import ResolutionResult


def route_for(item: CatalogItem) -> str:
    """Page path for a calculator.  String assembly only; no routing happens here."""
    return ROUTE_TEMPLATE.format(category=item.category, identifier=item.identifier)


def to_calculator_out(item: CatalogItem) -> CalculatorOut:
    return CalculatorOut(
        identifier=item.identifier,
        display_name=item.display_name,
        description=item.description,
        category=item.category,
        path=route_for(item),
    )


def map_result_to_response(result: ResolutionResult, index: CatalogIndex) -> ResolveResponse:
    """
    Enrich a :class:`ResolutionResult` with catalog fields.  ``index``
    must be the snapshot the result was computed against.
    """
    alternates: List[AlternateOut] = []
    for alt in result.alternates:
        if alt.identifier not in index:
            logger.warning("Alternate {} not in catalog; skipping", alt.identifier)
            continue
        item = index.item(alt.identifier)
        alternates.append(
            AlternateOut(
                identifier=item.identifier,
                score=alt.score,
                display_name=item.display_name,
                category=item.category,
                path=route_for(item),
            )
        )

    if result.identifier is None or result.identifier not in index:
        return ResolveResponse(identifier=None, confidence=result.confidence, alternates=alternates)

    item = index.item(result.identifier)
    return ResolveResponse(
        identifier=item.identifier,
        confidence=result.confidence,
        display_name=item.display_name,
        category=item.category,
        path=route_for(item),
        alternates=alternates,
    )


def map_category_search(category: str, items: Sequence[CatalogItem]) -> CategorySearchResponse:
    return CategorySearchResponse(
        category=category,
        calculators=[to_calculator_out(i) for i in items],
    )
