from __future__ import annotations

"""
Query resolution: free text in, one calculator identifier out.

:func:`resolve` is a pure function of ``(query, index, config)``: it
holds no state between calls and never mutates the index, so it can be
called from any number of threads at once.  When a semantic scorer is
supplied it is consulted first; any failure, timeout, or answer that
names an identifier outside the catalog is logged and the lexical
ranking is used instead.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from .catalog_index import CatalogIndex
from .config import ResolverConfig
from .scoring import LexicalScorer, ScoredItem, Scorer, query_tokens, rank_key
from .semantic import SemanticScorerError, check_ranking

DEFAULT_CONFIG = ResolverConfig()
_LEXICAL = LexicalScorer()


@dataclass(frozen=True)
class Alternate:
    identifier: str
    score: float


@dataclass(frozen=True)
class ResolutionResult:
    """``identifier`` is None when nothing cleared the confidence threshold."""

    identifier: Optional[str]
    confidence: float
    alternates: Tuple[Alternate, ...] = ()

    @property
    def matched(self) -> bool:
        return self.identifier is not None


NO_MATCH = ResolutionResult(identifier=None, confidence=0.0, alternates=())


def _alternates(hits: Sequence[ScoredItem]) -> Tuple[Alternate, ...]:
    return tuple(Alternate(h.identifier, h.score) for h in hits)


def apply_confidence_policy(ranked: Sequence[ScoredItem], config: ResolverConfig) -> ResolutionResult:
    """
    Turn a best-first lexical ranking into a result.  Zero-score items
    are never chosen nor offered as alternates.
    """
    hits = [h for h in ranked if h.score > 0]
    if not hits:
        return NO_MATCH
    top = hits[0]
    if top.score < config.min_confidence:
        return ResolutionResult(None, 0.0, _alternates(hits[: config.top_k]))
    return ResolutionResult(top.identifier, top.score, _alternates(hits[1 : config.top_k]))


def _allowed_identifiers(index: CatalogIndex, config: ResolverConfig) -> frozenset:
    if config.category is not None:
        return frozenset(index.identifiers_in(config.category))
    return index.all_identifiers()


def _semantic_first(
    query: str,
    index: CatalogIndex,
    config: ResolverConfig,
    semantic: Scorer,
    lexical: List[ScoredItem],
    n_tokens: int,
) -> Optional[ResolutionResult]:
    """Semantic ranking with lexical tie-breaks, or None to fall back."""
    try:
        matches = check_ranking(
            semantic.rank(query, index, config), _allowed_identifiers(index, config)
        )
    except SemanticScorerError as e:
        logger.warning("Semantic scorer failed, using lexical ranking: {}", e)
        return None
    except Exception as e:
        logger.exception("Semantic scorer raised unexpectedly, using lexical ranking: {}", e)
        return None

    if not matches:
        logger.info("Semantic scorer returned no matches; using lexical ranking")
        return None

    lexical_score: Dict[str, float] = {h.identifier: h.score for h in lexical}

    def _key(m: ScoredItem):
        lex = lexical_score.get(m.identifier, 0.0)
        return (-m.score,) + rank_key(index.entry(m.identifier), lex, n_tokens)

    ordered = sorted(matches, key=_key)
    top = ordered[0]
    if top.score < config.semantic_min_confidence:
        logger.info(
            "Semantic top score {:.3f} below {:.3f}; using lexical ranking",
            top.score,
            config.semantic_min_confidence,
        )
        return None

    tail: List[ScoredItem] = list(ordered[1:])
    seen = {m.identifier for m in ordered}
    tail += [h for h in lexical if h.score > 0 and h.identifier not in seen]
    return ResolutionResult(top.identifier, top.score, _alternates(tail[: config.top_k - 1]))


def resolve(
    query: str,
    index: CatalogIndex,
    config: Optional[ResolverConfig] = None,
    semantic: Optional[Scorer] = None,
) -> ResolutionResult:
    """
    Resolve ``query`` to the best-matching calculator in ``index``.

    Empty or whitespace-only queries and empty catalogs yield
    :data:`NO_MATCH`.  Queries longer than ``config.max_query_chars``
    are truncated.
    """
    if index is None:
        raise TypeError("resolve() requires a CatalogIndex")
    if config is None:
        config = DEFAULT_CONFIG
    tokens = query_tokens(query, config)
    if not tokens or len(index) == 0:
        return NO_MATCH

    lexical = _LEXICAL.rank_tokens(tokens, index, config)
    if semantic is not None:
        layered = _semantic_first(query, index, config, semantic, lexical, len(tokens))
        if layered is not None:
            return layered
    return apply_confidence_policy(lexical, config)
