"""Shared text utilities for the linking engine."""

from __future__ import annotations

import hashlib
import math
import unicodedata
from collections import Counter
from typing import Iterable, List, Mapping

# Letters, marks and numbers survive tokenization; marks keep Devanagari words whole.
_WORD_CATEGORIES = ("L", "M", "N")


def tokenize(text: str, min_length: int = 1) -> List[str]:
    """Return lower-cased word tokens at least ``min_length`` characters long."""

    cleaned = "".join(
        char if unicodedata.category(char)[0] in _WORD_CATEGORIES else " " for char in text.lower()
    )
    return [token for token in cleaned.split() if len(token) >= min_length]


def term_frequencies(tokens: Iterable[str]) -> Counter[str]:
    """Return term frequencies for the tokens."""

    return Counter(tokens)


def cosine_similarity(vector_a: Mapping[str, float], vector_b: Mapping[str, float]) -> float:
    """Cosine similarity between two sparse weighted term vectors."""

    if not vector_a or not vector_b:
        return 0.0
    if len(vector_b) < len(vector_a):
        vector_a, vector_b = vector_b, vector_a
    dot = sum(weight * vector_b.get(term, 0.0) for term, weight in vector_a.items())
    norm_a = math.sqrt(sum(value * value for value in vector_a.values()))
    norm_b = math.sqrt(sum(value * value for value in vector_b.values()))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def fingerprint(*parts: str) -> str:
    """Return a short stable digest of the given text parts."""

    digest = hashlib.md5()
    for part in parts:
        digest.update(part.encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()[:16]


def shannon_entropy(counter: Mapping[str, int]) -> float:
    """Return the normalized Shannon entropy of a count distribution."""

    total = sum(counter.values())
    if total == 0 or len(counter) <= 1:
        return 0.0
    entropy = 0.0
    for count in counter.values():
        if not count:
            continue
        probability = count / total
        entropy -= probability * math.log(probability)
    return entropy / math.log(len(counter))


def head_terms(title: str, size: int = 4) -> str:
    words = title.split()
    if len(words) <= size:
        return title.strip()
    return " ".join(words[:size])
