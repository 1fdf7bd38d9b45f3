from __future__ import annotations
"""
Configuration for the calculator finder.
"""

import os
from pathlib import Path
from typing import FrozenSet, List, Optional
from pydantic import BaseModel, ConfigDict, Field

# Paths
PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = PROJECT_ROOT / "data"
CATALOG_PATH = Path(os.getenv("CALCFINDER_CATALOG_PATH", str(DATA_DIR / "catalog.json")))
LOG_DIR = PROJECT_ROOT / "logs"

# Scoring weights (tunable, not sacred)
KEYWORD_WEIGHT = 3.0
NAME_WEIGHT = 2.0
DESCRIPTION_WEIGHT = 1.0
NEAR_MISS_WEIGHT = 0.5
NEAR_MISS_MAX_DISTANCE = 2
# one- and two-letter tokens are two edits away from almost any short word
NEAR_MISS_MIN_LENGTH = 3

# Result policy
DEFAULT_TOP_K = int(os.getenv("CALCFINDER_TOP_K", "5"))
DEFAULT_MIN_CONFIDENCE = float(os.getenv("CALCFINDER_MIN_CONFIDENCE", "0.0"))

# Text processing
MAX_QUERY_CHARS = 512
MAX_CATALOG_TEXT_CHARS = 4_000

STOP_WORDS: FrozenSet[str] = frozenset(
    {"a", "the", "of", "to", "is", "in", "for", "and"}
)

# Route scheme used by the site for calculator pages
ROUTE_TEMPLATE = "/category/{category}/{identifier}"

# External semantic scorer (disabled unless a URL is configured)
SEMANTIC_URL: Optional[str] = os.getenv("CALCFINDER_SEMANTIC_URL") or None
SEMANTIC_API_KEY: Optional[str] = os.getenv("CALCFINDER_SEMANTIC_API_KEY") or None
SEMANTIC_TIMEOUT = float(os.getenv("CALCFINDER_SEMANTIC_TIMEOUT", "2.0"))
SEMANTIC_MAX_RETRIES = 1
SEMANTIC_MIN_CONFIDENCE = 0.5
HTTP_USER_AGENT = "calcfinder/1.0"


class ResolverConfig(BaseModel):
    """Per-call knobs for resolution.  Frozen so one instance can be shared."""

    model_config = ConfigDict(frozen=True)

    min_confidence: float = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0.0)
    top_k: int = Field(default=DEFAULT_TOP_K, ge=1)
    keyword_weight: float = Field(default=KEYWORD_WEIGHT, ge=0.0)
    name_weight: float = Field(default=NAME_WEIGHT, ge=0.0)
    description_weight: float = Field(default=DESCRIPTION_WEIGHT, ge=0.0)
    near_miss_weight: float = Field(default=NEAR_MISS_WEIGHT, ge=0.0)
    near_miss_max_distance: int = Field(default=NEAR_MISS_MAX_DISTANCE, ge=0)
    near_miss_min_length: int = Field(default=NEAR_MISS_MIN_LENGTH, ge=1)
    max_query_chars: int = Field(default=MAX_QUERY_CHARS, ge=1)
    semantic_min_confidence: float = Field(default=SEMANTIC_MIN_CONFIDENCE)
    category: Optional[str] = None


# Pydantic schemas
class AlternateOut(BaseModel):
    identifier: str
    score: float
    display_name: str
    category: str
    path: str


class ResolveRequest(BaseModel):
    query: str = Field(..., max_length=10 * MAX_QUERY_CHARS)
    category: Optional[str] = None
    top_k: Optional[int] = Field(default=None, ge=1, le=50)


class ResolveResponse(BaseModel):
    identifier: Optional[str]
    confidence: float
    display_name: Optional[str] = None
    category: Optional[str] = None
    path: Optional[str] = None
    alternates: List[AlternateOut]


class CalculatorOut(BaseModel):
    identifier: str
    display_name: str
    description: str
    category: str
    path: str


class CategorySearchResponse(BaseModel):
    category: str
    calculators: List[CalculatorOut]


class ReloadResponse(BaseModel):
    items: int
    categories: int


class HealthResponse(BaseModel):
    status: str
    items: int = 0
