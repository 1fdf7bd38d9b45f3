from __future__ import annotations

"""
Lexical scoring for the calculator finder.

Every catalog item is scored against the query tokens with fixed field
weights (keywords > display name > description) plus a small bonus for
near-miss tokens within a short edit distance, which absorbs plurals
and typos.  Raw scores are divided by the square root of the item's
content token count so that long descriptions do not win by volume.

This scorer is deterministic and never fails for string input.  It is
the baseline every other :class:`Scorer` falls back to.

Example::

    from calcfinder.scoring import LexicalScorer
    ranked = LexicalScorer().rank("body mass index", index, ResolverConfig())
    for hit in ranked[:5]:
        print(hit.identifier, hit.score)

"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from .catalog_index import CatalogIndex, IndexedItem
from .config import ResolverConfig
from .normalize import clamp_text_length, tokenize


@dataclass(frozen=True)
class ScoredItem:
    identifier: str
    score: float


class Scorer(Protocol):
    """Ranks catalog items for a query; best first."""

    def rank(self, query: str, index: CatalogIndex, config: ResolverConfig) -> List[ScoredItem]:
        ...


def query_tokens(query: str, config: ResolverConfig) -> List[str]:
    """Tokens of an incoming query, truncated to the configured length.  Repeats kept."""
    return tokenize(clamp_text_length(query, config.max_query_chars))


def _field_weights(entry: IndexedItem, token: str, config: ResolverConfig) -> Tuple[float, float]:
    """Return (sum of exact field weights, largest single field weight) for a token."""
    total = 0.0
    best = 0.0
    for tokens, weight in (
        (entry.keyword_tokens, config.keyword_weight),
        (entry.name_tokens, config.name_weight),
        (entry.description_tokens, config.description_weight),
    ):
        if token in tokens:
            total += weight
            best = max(best, weight)
    return total, best


def _near_tokens(token: str, index: CatalogIndex, config: ResolverConfig) -> List[Tuple[str, float]]:
    """Vocabulary tokens within the edit-distance budget, with their similarity bonus."""
    max_dist = config.near_miss_max_distance
    min_len = config.near_miss_min_length
    if max_dist <= 0 or len(token) < min_len:
        return []
    out: List[Tuple[str, float]] = []
    for cand in index.vocabulary:
        if cand == token or len(cand) < min_len or abs(len(cand) - len(token)) > max_dist:
            continue
        dist = Levenshtein.distance(token, cand, score_cutoff=max_dist)
        if dist > max_dist:
            continue
        bonus = config.near_miss_weight * (1.0 - dist / max(len(token), len(cand)))
        if bonus > 0:
            out.append((cand, bonus))
    return out


def raw_scores(
    tokens: Sequence[str],
    index: CatalogIndex,
    config: ResolverConfig,
    candidates: Optional[frozenset] = None,
) -> Dict[str, float]:
    """
    Un-normalized lexical score per item.  Items without any exact or
    near-miss hit are absent from the result.
    """
    raw: Dict[str, float] = {}
    for token, count in Counter(tokens).items():
        exact = index.postings(token)
        for ident in sorted(exact):
            if candidates is not None and ident not in candidates:
                continue
            weight, _ = _field_weights(index.entry(ident), token, config)
            raw[ident] = raw.get(ident, 0.0) + count * weight

        near: Dict[str, float] = {}
        for cand, bonus in _near_tokens(token, index, config):
            for ident in index.postings(cand):
                if ident in exact or (candidates is not None and ident not in candidates):
                    continue
                # a near miss never outweighs an exact hit in the same field
                _, field_cap = _field_weights(index.entry(ident), cand, config)
                capped = min(bonus, field_cap)
                if capped > near.get(ident, 0.0):
                    near[ident] = capped
        for ident in sorted(near):
            raw[ident] = raw.get(ident, 0.0) + count * near[ident]
    return raw


def rank_key(entry: IndexedItem, score: float, n_query_tokens: int) -> Tuple[float, int, str]:
    """Sort key: score desc, then name length closest to the query, then identifier."""
    return (-score, abs(entry.name_token_count - n_query_tokens), entry.item.identifier)


class LexicalScorer:
    """The deterministic baseline scorer."""

    def rank(self, query: str, index: CatalogIndex, config: ResolverConfig) -> List[ScoredItem]:
        tokens = query_tokens(query, config)
        if not tokens or len(index) == 0:
            return []
        return self.rank_tokens(tokens, index, config)

    def rank_tokens(
        self, tokens: Sequence[str], index: CatalogIndex, config: ResolverConfig
    ) -> List[ScoredItem]:
        candidates = None
        if config.category is not None:
            candidates = frozenset(index.identifiers_in(config.category))
        raw = raw_scores(tokens, index, config, candidates)
        scored: List[Tuple[Tuple[float, int, str], ScoredItem]] = []
        for entry in index.entries():
            ident = entry.item.identifier
            if candidates is not None and ident not in candidates:
                continue
            score = raw.get(ident, 0.0) / entry.length_norm
            scored.append((rank_key(entry, score, len(tokens)), ScoredItem(ident, score)))
        scored.sort(key=lambda pair: pair[0])
        return [hit for _, hit in scored]
