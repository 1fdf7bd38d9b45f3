from __future__ import annotations

"""
Load calculator catalog definitions into :class:`CatalogItem` records.

Catalog files are exported by the content side of the site in one of
three shapes: a JSON list of records, a CSV, or a Parquet snapshot.
Column names drift between exports, so we map several likely variants
onto a canonical schema, clean the text fields, and parse keyword
lists that may arrive as real lists, stringified lists, or separated
strings.

The loader performs no de-duplication or validation of its own: that
is the index builder's job, and its errors must reach whoever ships a
broken catalog.
"""

import json
import re
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional

import pandas as pd
from loguru import logger

from .catalog_index import CatalogItem
from .config import CATALOG_PATH
from .normalize import basic_clean


class CatalogLoadError(Exception):
    """The catalog file is unreadable or lacks required columns."""


# ---------------------------
# Column detection / standardisation
# ---------------------------

COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "identifier": ["identifier", "slug", "id", "Slug", "ID"],
    "display_name": ["display_name", "displayName", "name", "Name", "title", "Title"],
    "description": ["description", "Description", "summary", "Summary"],
    "category": ["category", "Category", "category_slug", "categorySlug"],
    "keywords": ["keywords", "Keywords", "tags", "Tags", "synonyms", "aliases"],
}
REQUIRED_COLUMNS = ["identifier", "display_name", "description", "category"]


def _standardise_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename columns from a raw export to the canonical internal schema.
    The first matching candidate wins; matching falls back to
    case-insensitive comparison.
    """
    col_map: Dict[str, str] = {}
    lower_to_original = {str(c).lower(): c for c in df.columns}

    for canon, candidates in COLUMN_CANDIDATES.items():
        for candidate in candidates:
            if candidate in df.columns:
                col_map[candidate] = canon
                break
            cand_lower = candidate.lower()
            if cand_lower in lower_to_original:
                col_map[lower_to_original[cand_lower]] = canon
                break

    logger.info("Standardising catalog columns with map: {}", col_map)
    df_std = df.rename(columns=col_map)

    missing = [c for c in REQUIRED_COLUMNS if c not in df_std.columns]
    if missing:
        raise CatalogLoadError(f"Catalog is missing required columns: {missing}")
    return df_std


# ---------------------------
# Field parsing helpers
# ---------------------------

def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return False


def parse_keywords_field(raw) -> FrozenSet[str]:
    """
    Robustly convert a keywords value into a set of strings.

    Handles sequences, numpy arrays (from Parquet), stringified lists
    (e.g. ``"['psi', 'bar']"``), and comma/semicolon/pipe separated
    strings.
    """
    if _is_missing(raw):
        return frozenset()
    if hasattr(raw, "tolist") and not isinstance(raw, str):
        raw = raw.tolist()
    if isinstance(raw, (list, tuple, set, frozenset)):
        labels = [str(x).strip() for x in raw if not _is_missing(x)]
    else:
        s = str(raw).strip()
        if s.startswith("["):
            try:
                parsed = json.loads(s)
            except ValueError:
                parsed = re.findall(r"'([^']+)'", s)
            labels = [str(x).strip() for x in parsed] if isinstance(parsed, list) else []
        else:
            labels = [p.strip() for p in re.split(r"[;,|]+", s)]
    return frozenset(lbl for lbl in labels if lbl)


def _text(value) -> str:
    return "" if _is_missing(value) else basic_clean(str(value))


def row_to_item(row: pd.Series) -> CatalogItem:
    """Convert one standardised row into a :class:`CatalogItem`."""
    return CatalogItem(
        identifier="" if _is_missing(row.get("identifier")) else str(row.get("identifier")).strip(),
        display_name=_text(row.get("display_name")),
        description=_text(row.get("description")),
        category="" if _is_missing(row.get("category")) else str(row.get("category")).strip(),
        keywords=parse_keywords_field(row.get("keywords")),
    )


def catalog_df_to_items(df_raw: pd.DataFrame) -> List[CatalogItem]:
    """Standardise a raw catalog frame and convert every row."""
    df = _standardise_columns(df_raw)
    df = df.dropna(how="all")
    items = [row_to_item(row) for _, row in df.iterrows()]
    logger.info("Parsed {} catalog items", len(items))
    return items


# ---------------------------
# IO helpers
# ---------------------------

def read_catalog_frame(path: Path) -> pd.DataFrame:
    """Read a catalog export, choosing the reader from the file suffix."""
    if not path.exists():
        raise CatalogLoadError(f"Catalog file not found: {path}")
    ext = path.suffix.lower()
    logger.info("Loading catalog from {}", path)
    try:
        if ext == ".json":
            with path.open("r", encoding="utf-8") as f:
                records = json.load(f)
            if isinstance(records, dict):
                records = records.get("calculators", [])
            return pd.DataFrame.from_records(records)
        if ext == ".parquet":
            return pd.read_parquet(path)
        if ext in {".csv", ".tsv"}:
            return pd.read_csv(path, sep="\t" if ext == ".tsv" else ",", dtype=str, keep_default_na=False)
    except (OSError, ValueError) as e:
        raise CatalogLoadError(f"Could not read catalog {path}: {e}") from e
    raise CatalogLoadError(f"Unsupported catalog format: {path.suffix}")


def load_catalog_items(path: Optional[Path] = None) -> List[CatalogItem]:
    """End-to-end: read file -> standardise -> CatalogItem list."""
    path = Path(path) if path is not None else CATALOG_PATH
    return catalog_df_to_items(read_catalog_frame(path))


if __name__ == "__main__":
    # python -m calcfinder.catalog_build
    for it in load_catalog_items()[:10]:
        print(it.identifier, "|", it.display_name, "|", sorted(it.keywords))
