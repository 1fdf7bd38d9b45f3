# calcfinder/cli.py
"""
Command-line runner for the calculator finder.

Resolves a single query (``--query``) or a whole file of queries
(``--in``) without starting the HTTP server.

- De-duplicates identical queries (runs once, fans out)
- Writes a CSV with headers: Query, Identifier, Confidence, Alternates
"""

from __future__ import annotations
import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from loguru import logger

from calcfinder import api
from calcfinder.api import reload_catalog, resolve_single_query
from calcfinder.catalog_build import CatalogLoadError
from calcfinder.catalog_index import CatalogError
from calcfinder.config import LOG_DIR, ResolverConfig
from calcfinder.resolver import ResolutionResult
from calcfinder.semantic import scorer_from_env


def load_queries(path: Path) -> List[str]:
    ext = path.suffix.lower()
    df = pd.read_excel(path) if ext in {".xlsx", ".xls"} else pd.read_csv(path)
    cols = {str(c).lower(): c for c in df.columns}
    qcol = cols.get("query")
    if not qcol:
        raise ValueError(f"Expected column 'Query' in {path}. Found: {list(df.columns)}")
    return df[qcol].fillna("").astype(str).tolist()


def _dedup_preserve_order(seq: List[str]) -> List[str]:
    return list(dict.fromkeys(seq))


def results_frame(queries: List[str], results: Dict[str, ResolutionResult]) -> pd.DataFrame:
    rows = []
    for q in queries:
        r = results[q]
        rows.append(
            {
                "Query": q,
                "Identifier": r.identifier or "",
                "Confidence": round(r.confidence, 6),
                "Alternates": ";".join(a.identifier for a in r.alternates),
            }
        )
    return pd.DataFrame(rows, columns=["Query", "Identifier", "Confidence", "Alternates"])


def _print_result(query: str, result: ResolutionResult) -> None:
    if result.identifier is None:
        print(f"{query!r}: no confident match")
    else:
        print(f"{query!r}: {result.identifier} (confidence {result.confidence:.4f})")
    for alt in result.alternates:
        print(f"    alt {alt.identifier} ({alt.score:.4f})")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="calcfinder", description="Resolve free text to a calculator.")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--query", "-q", type=str, help="resolve a single query")
    src.add_argument("--in", dest="inp", type=str, help="CSV/XLSX file with a 'Query' column")
    ap.add_argument("--out", dest="out", type=str, default=None, help="output CSV for --in (default artifacts/resolutions.csv)")
    ap.add_argument("--catalog", type=str, default=None, help="catalog file (JSON, CSV or Parquet)")
    ap.add_argument("--category", type=str, default=None, help="restrict matching to one category")
    ap.add_argument("--topk", type=int, default=None, help="number of results including the chosen one")
    ap.add_argument("--min-confidence", type=float, default=None)
    ap.add_argument("--log-file", action="store_true", help=f"also log to {LOG_DIR}/calcfinder.log")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.log_file:
        LOG_DIR.mkdir(exist_ok=True)
        logger.add(LOG_DIR / "calcfinder.log", rotation="10 MB")

    overrides = {}
    if args.category is not None:
        overrides["category"] = args.category
    if args.topk is not None:
        overrides["top_k"] = args.topk
    if args.min_confidence is not None:
        overrides["min_confidence"] = args.min_confidence
    config = ResolverConfig(**overrides)

    try:
        loaded = reload_catalog(Path(args.catalog) if args.catalog else None)
    except (CatalogLoadError, CatalogError) as e:
        print(f"Catalog error: {e}", file=sys.stderr)
        return 2
    logger.info("Catalog ready with {} items", loaded.items)
    api.semantic_scorer = scorer_from_env()

    if args.query is not None:
        _print_result(args.query, resolve_single_query(args.query, config))
        return 0

    inp = Path(args.inp)
    out = Path(args.out) if args.out else Path("artifacts/resolutions.csv")
    queries = load_queries(inp)
    print(f"Loaded {len(queries)} queries from {inp}")

    unique_queries = _dedup_preserve_order(queries)
    print(f"Unique queries to resolve: {len(unique_queries)}")
    results = {q: resolve_single_query(q, config) for q in unique_queries}

    df = results_frame(queries, results)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    matched = int((df["Identifier"] != "").sum())
    print(f"Wrote {len(df)} rows to {out} ({matched} matched)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
