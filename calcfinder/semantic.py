from __future__ import annotations

"""
Optional semantic first pass backed by a hosted language model.

The hosted service receives the query together with the candidate
calculators and answers with a ranked list of identifiers.  The
scorer satisfies the same :class:`~calcfinder.scoring.Scorer` contract
as the lexical scorer but, unlike it, can fail: every failure mode is
raised as :class:`SemanticScorerError` so the resolver can log it and
fall back to lexical scoring.

Wire format::

    POST <url>
    {"query": "...", "candidates": [{"identifier": "...", "name": "...",
                                      "description": "...", "category": "..."}]}

    200 {"matches": [{"identifier": "...", "score": 0.93}, ...]}

"""

import math
from typing import List, Optional

import httpx
from loguru import logger

from .catalog_index import CatalogIndex
from .config import (
    HTTP_USER_AGENT,
    SEMANTIC_API_KEY,
    SEMANTIC_MAX_RETRIES,
    SEMANTIC_TIMEOUT,
    SEMANTIC_URL,
    ResolverConfig,
)
from .normalize import clamp_text_length
from .scoring import ScoredItem


class SemanticScorerError(Exception):
    """The external scorer could not produce a usable ranking."""


class HttpSemanticScorer:
    """
    Calls a hosted ranking endpoint with a per-attempt timeout and at
    most one retry on timeouts or transport errors.  Each call uses its
    own client, so a slow request never holds up another resolution.
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = SEMANTIC_TIMEOUT,
        max_retries: int = SEMANTIC_MAX_RETRIES,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max(0, min(max_retries, 1))
        self._transport = transport

    def _headers(self) -> dict:
        headers = {"User-Agent": HTTP_USER_AGENT}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _payload(self, query: str, index: CatalogIndex, config: ResolverConfig) -> dict:
        if config.category is not None:
            idents = index.identifiers_in(config.category)
        else:
            idents = tuple(e.item.identifier for e in index.entries())
        candidates = []
        for ident in idents:
            item = index.item(ident)
            candidates.append(
                {
                    "identifier": item.identifier,
                    "name": item.display_name,
                    "description": item.description,
                    "category": item.category,
                }
            )
        return {"query": clamp_text_length(query, config.max_query_chars), "candidates": candidates}

    def _post(self, payload: dict) -> httpx.Response:
        attempts = 1 + self.max_retries
        last_exc: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                with httpx.Client(
                    timeout=httpx.Timeout(self.timeout),
                    transport=self._transport,
                ) as client:
                    return client.post(self.url, json=payload, headers=self._headers())
            except (httpx.TimeoutException, httpx.TransportError) as e:
                last_exc = e
                logger.warning(
                    "Semantic scorer attempt {}/{} failed: {}", attempt, attempts, e
                )
        raise SemanticScorerError(f"semantic scorer unreachable: {last_exc}") from last_exc

    def rank(self, query: str, index: CatalogIndex, config: ResolverConfig) -> List[ScoredItem]:
        payload = self._payload(query, index, config)
        response = self._post(payload)
        if response.status_code >= 400:
            raise SemanticScorerError(f"semantic scorer returned HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as e:
            raise SemanticScorerError("semantic scorer returned non-JSON body") from e
        return parse_matches(body, index, {c["identifier"] for c in payload["candidates"]})


def parse_matches(body: object, index: CatalogIndex, allowed: set) -> List[ScoredItem]:
    """
    Validate a ``{"matches": [...]}`` payload.  Any identifier outside the
    catalog (or outside the candidates sent) invalidates the whole answer.
    """
    if not isinstance(body, dict) or not isinstance(body.get("matches"), list):
        raise SemanticScorerError("semantic scorer response lacks a 'matches' list")
    known = index.all_identifiers()
    out: List[ScoredItem] = []
    seen = set()
    for raw in body["matches"]:
        if not isinstance(raw, dict):
            raise SemanticScorerError(f"malformed match entry: {raw!r}")
        ident = raw.get("identifier")
        score = raw.get("score")
        if not isinstance(ident, str):
            raise SemanticScorerError(f"match entry without identifier: {raw!r}")
        if ident not in known or ident not in allowed:
            raise SemanticScorerError(f"semantic scorer returned unknown identifier {ident!r}")
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
            raise SemanticScorerError(f"match {ident!r} has invalid score {score!r}")
        if ident in seen:
            continue
        seen.add(ident)
        out.append(ScoredItem(ident, float(score)))
    return out


def check_ranking(matches: object, allowed: frozenset) -> List[ScoredItem]:
    """
    Validate what a :class:`~calcfinder.scoring.Scorer` handed back: a
    list or tuple of :class:`ScoredItem` with finite scores whose
    identifiers are all in ``allowed``.
    """
    if not isinstance(matches, (list, tuple)):
        raise SemanticScorerError(f"scorer returned {type(matches).__name__}, not a list")
    for m in matches:
        if not isinstance(m, ScoredItem) or not isinstance(m.identifier, str):
            raise SemanticScorerError(f"malformed ranking entry: {m!r}")
        score = m.score
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
            raise SemanticScorerError(f"match {m.identifier!r} has invalid score {score!r}")
    stray = [m.identifier for m in matches if m.identifier not in allowed]
    if stray:
        raise SemanticScorerError(f"identifiers outside the catalog: {stray}")
    return list(matches)


def scorer_from_env() -> Optional[HttpSemanticScorer]:
    """Build the configured semantic scorer, or None when no URL is set."""
    if not SEMANTIC_URL:
        return None
    logger.info("Semantic scorer enabled at {}", SEMANTIC_URL)
    return HttpSemanticScorer(SEMANTIC_URL, api_key=SEMANTIC_API_KEY)
