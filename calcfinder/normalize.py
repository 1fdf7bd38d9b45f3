from __future__ import annotations

"""
Text normalization utilities used across the calculator finder.

These helpers perform basic cleaning (HTML stripping, unicode
normalization, whitespace collapsing) and the lexical tokenization
shared by the catalog index and the query resolver.  Keeping the
token rule in one place guarantees that queries and catalog content
are split identically.
"""

import re
import unicodedata
from typing import Iterable, List

from bs4 import BeautifulSoup

from .config import MAX_CATALOG_TEXT_CHARS, STOP_WORDS


# ---------------------------
# Basic helpers
# ---------------------------

def clamp_text_length(text: str, max_chars: int) -> str:
    """
    Hard cap on input size.  Longer input is truncated silently.
    """
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def strip_html(raw: str) -> str:
    """
    Strip HTML tags using BeautifulSoup.  Catalog descriptions are
    authored by hand and occasionally carry inline markup.
    """
    if not raw:
        return ""
    # Fast path: if there's no '<', it's almost certainly not HTML
    if "<" not in raw:
        return raw
    soup = BeautifulSoup(raw, "lxml")
    return soup.get_text(" ", strip=True)


def normalize_unicode(text: str) -> str:
    """
    Fold compatibility characters (fancy quotes, ligatures, full-width
    digits) into their plain forms.
    """
    if not text:
        return ""
    return unicodedata.normalize("NFKC", text)


def normalize_whitespace(text: str) -> str:
    """
    Collapse all whitespace runs into a single space and strip edges.
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def basic_clean(text: str) -> str:
    """
    Cleaning applied to catalog fields when they are loaded:

    - clamp length
    - strip HTML
    - normalize unicode
    - normalize whitespace
    """
    if text is None:
        return ""
    text = clamp_text_length(str(text), MAX_CATALOG_TEXT_CHARS)
    text = strip_html(text)
    text = normalize_unicode(text)
    return normalize_whitespace(text)


# ---------------------------
# Tokenization
# ---------------------------

# Apostrophes join the parts of a word ("what's" -> "whats"); any other
# character that is not a word character or whitespace separates words
# ("km/h" -> "km h").
APOSTROPHE_RE = re.compile(r"['’]")
PUNCT_RE = re.compile(r"[^\w\s]+")


def tokenize(text: str) -> List[str]:
    """
    Lower-case, strip punctuation, collapse whitespace, split, and drop
    stop words.  Token order and repeats are preserved; callers that
    want presence only deduplicate themselves.
    """
    if not text:
        return []
    text = PUNCT_RE.sub(" ", APOSTROPHE_RE.sub("", text.lower()))
    text = normalize_whitespace(text)
    if not text:
        return []
    return [t for t in text.split(" ") if t not in STOP_WORDS]


def unique_tokens(tokens: Iterable[str]) -> List[str]:
    """Deduplicate while keeping first-seen order."""
    seen = set()
    out: List[str] = []
    for tok in tokens:
        if tok not in seen:
            seen.add(tok)
            out.append(tok)
    return out


def tokenize_fields(*fields: str) -> List[str]:
    """Space-join the fields and tokenize the result as one text."""
    return tokenize(" ".join(f for f in fields if f))


if __name__ == "__main__":
    sample = "What's my <b>Body-Mass</b> Index?  (BMI) for the kids"
    print("RAW:", sample)
    print("BASIC CLEAN:", basic_clean(sample))
    print("TOKENS:", tokenize(basic_clean(sample)))
