"""Venue name normalization and edit-distance similarity."""

from __future__ import annotations

import math
from typing import Iterable, Optional

from rapidfuzz.distance import Levenshtein


def normalize_name(value: Optional[str]) -> str:
    """Lowercase, trim, spell out ``&`` and drop everything but letters, digits and whitespace."""
    if not value:
        return ""
    text = value.lower().strip().replace("&", "and")
    return "".join(ch for ch in text if ch.isalnum() or ch.isspace())


def similarity(a: Optional[str], b: Optional[str]) -> int:
    """Score two names 0..100 after normalization; equal normalized names are always 100."""
    return normalized_similarity(normalize_name(a), normalize_name(b))


def normalized_similarity(a: str, b: str) -> int:
    if a == b:
        return 100
    max_len = max(len(a), len(b))
    distance = Levenshtein.distance(a, b)
    # Half-up rounding: 62.5 scores 63.
    return int(math.floor(100 * (max_len - distance) / max_len + 0.5))


def best_similarity(name: str, others: Iterable[str]) -> int:
    """Highest similarity between an already-normalized name and any of ``others``."""
    best = 0
    for other in others:
        score = normalized_similarity(name, other)
        if score > best:
            best = score
            if best == 100:
                break
    return best
