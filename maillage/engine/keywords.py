"""Weighted keyword extraction for content items."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .config import KeywordPolicy
from .ports import CacheStore, Clock, utcnow
from .stopwords import get_stopwords
from .text import fingerprint, term_frequencies, tokenize
from .types import ContentItem, KeywordVector

logger = logging.getLogger(__name__)


class KeywordExtractor:
    """Compute title/content weighted keyword vectors, cached per content revision."""

    def __init__(self, policy: KeywordPolicy, cache: Optional[CacheStore] = None, clock: Clock = utcnow) -> None:
        self.policy = policy
        self.cache = cache
        self.clock = clock

    def extract(self, item: ContentItem) -> KeywordVector:
        """Return a fresh keyword vector for ``item`` without touching the cache."""

        stopwords = get_stopwords(item.language)
        min_length = self.policy.min_word_length

        title_tf = term_frequencies(
            token for token in tokenize(item.title, min_length) if token not in stopwords
        )
        body_tf = term_frequencies(
            token for token in tokenize(item.body, min_length) if token not in stopwords
        )

        weights: Dict[str, float] = {}
        for term in set(title_tf) | set(body_tf):
            weights[term] = (
                title_tf.get(term, 0) * self.policy.title_weight
                + body_tf.get(term, 0) * self.policy.content_weight
            )

        ranked = sorted(
            ((term, weight) for term, weight in weights.items() if weight > 0),
            key=lambda pair: (-pair[1], pair[0]),
        )
        capped = dict(ranked[: self.policy.max_keywords])
        return KeywordVector(item_id=item.id, weights=capped, computed_at=self.clock())

    def vector_for(self, item: ContentItem) -> KeywordVector:
        """Return the cached vector for the item's current revision, computing it on a miss."""

        if self.cache is None:
            return self.extract(item)

        key = self.cache_key(item)
        cached = self.cache.get(key)
        if isinstance(cached, KeywordVector):
            return cached

        vector = self.extract(item)
        self.cache.set(key, vector, self.policy.cache_ttl)
        logger.debug("Computed %d keywords for item %s", len(vector.weights), item.id)
        return vector

    @staticmethod
    def cache_key(item: ContentItem) -> str:
        return f"maillage:keywords:{item.id}:{fingerprint(item.title, *item.paragraphs)}"
