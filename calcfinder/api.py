from __future__ import annotations

"""
FastAPI application for the calculator finder.

- /resolve maps free text to one calculator plus alternates
- /categories/{category}/search is the per-category browse filter
- /reload rebuilds the index from the catalog file; a bad catalog is
  rejected and the previous index keeps serving
"""

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .catalog_build import CatalogLoadError, load_catalog_items
from .catalog_index import CatalogError
from .config import (
    CATALOG_PATH,
    CategorySearchResponse,
    HealthResponse,
    ReloadResponse,
    ResolveRequest,
    ResolveResponse,
    ResolverConfig,
)
from .mapping import map_category_search, map_result_to_response
from .resolver import DEFAULT_CONFIG, resolve
from .semantic import scorer_from_env
from .store import IndexStore

app = FastAPI(title="calcfinder")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

store = IndexStore()
semantic_scorer = None


def reload_catalog(path: Optional[Path] = None) -> ReloadResponse:
    items = load_catalog_items(path or CATALOG_PATH)
    index = store.reload(items)
    return ReloadResponse(items=len(index), categories=len(index.categories()))


@app.on_event("startup")
def startup_event() -> None:
    global semantic_scorer
    logger.info("Starting app warmup...")
    try:
        loaded = reload_catalog()
        logger.info("Loaded catalog with {} items", loaded.items)
    except (CatalogLoadError, CatalogError) as e:
        logger.warning("Catalog not loaded at startup: {}", e)
    semantic_scorer = scorer_from_env()
    logger.info("Warmup complete.")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy", items=len(store.current))


@app.post("/resolve", response_model=ResolveResponse)
def resolve_endpoint(req: ResolveRequest) -> ResolveResponse:
    if store.generation == 0:
        raise HTTPException(status_code=503, detail="Catalog not loaded")
    index = store.current
    config = DEFAULT_CONFIG
    if req.category is not None or req.top_k is not None:
        overrides = {}
        if req.category is not None:
            overrides["category"] = req.category
        if req.top_k is not None:
            overrides["top_k"] = req.top_k
        config = DEFAULT_CONFIG.model_copy(update=overrides)
    result = resolve(req.query, index, config, semantic=semantic_scorer)
    logger.info("Resolved query to {} (confidence={:.3f})", result.identifier, result.confidence)
    return map_result_to_response(result, index)


@app.get("/categories/{category}/search", response_model=CategorySearchResponse)
def category_search(category: str, q: str = Query(default="", max_length=512)) -> CategorySearchResponse:
    index = store.current
    if category not in index.categories():
        raise HTTPException(status_code=404, detail=f"Unknown category: {category}")
    return map_category_search(category, index.filter_category(category, q))


@app.post("/reload", response_model=ReloadResponse)
def reload_endpoint() -> ReloadResponse:
    try:
        return reload_catalog()
    except (CatalogLoadError, CatalogError) as e:
        raise HTTPException(status_code=422, detail=str(e))


def resolve_single_query(query: str, config: ResolverConfig = DEFAULT_CONFIG):
    """In-process helper for the CLI: resolve against the live store."""
    return resolve(query, store.current, config, semantic=semantic_scorer)
