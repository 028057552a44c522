"""Relevance scoring and ranking of linking candidates."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Tuple

from .config import InternalPolicy
from .text import cosine_similarity
from .types import ContentItem, KeywordVector, ScoredCandidate

logger = logging.getLogger(__name__)

AuthorityLookup = Callable[[str], float]


def _no_authority(_: str) -> float:
    return 0.0


class RelevanceScorer:
    """Combine keyword similarity with categorical boosts on a 0-100 scale."""

    def __init__(self, policy: InternalPolicy, authority: AuthorityLookup = _no_authority) -> None:
        self.policy = policy
        self.authority = authority

    def score(self, source: ContentItem, source_vector: KeywordVector, target: ContentItem, target_vector: KeywordVector) -> ScoredCandidate:
        similarity = cosine_similarity(source_vector.weights, target_vector.weights)
        total = similarity * 100.0
        if source.country and source.country == target.country:
            total += self.policy.same_country_boost
        if source.theme and source.theme == target.theme:
            total += self.policy.same_theme_boost
        if source.is_pillar or target.is_pillar:
            total += self.policy.pillar_bonus
        return ScoredCandidate(
            item=target,
            score=round(total, 4),
            similarity=similarity,
            authority=self.authority(target.id),
            keywords=tuple(target_vector.top_terms(5)),
        )

    def rank(
        self,
        source: ContentItem,
        source_vector: KeywordVector,
        candidates: Iterable[Tuple[ContentItem, KeywordVector]],
    ) -> Tuple[List[ScoredCandidate], int]:
        """Return accepted candidates best-first and the number dropped below threshold."""

        accepted: List[ScoredCandidate] = []
        rejected = 0
        for target, vector in candidates:
            scored = self.score(source, source_vector, target, vector)
            if scored.score < self.policy.min_relevance_score:
                rejected += 1
                logger.debug("Dropping %s -> %s: relevance %.2f below threshold", source.id, target.id, scored.score)
                continue
            accepted.append(scored)
        accepted.sort(key=ranking_key)
        return accepted, rejected


def ranking_key(candidate: ScoredCandidate) -> Tuple[float, float, float, str]:
    """Higher score, then higher similarity, then lower target authority."""

    return (-candidate.score, -candidate.similarity, candidate.authority, candidate.item.id)


def link_context(source: ContentItem, target: ContentItem) -> str:
    """Label the editorial relationship between two linked items."""

    if source.is_pillar and not target.is_pillar:
        return "pillar_to_article"
    if target.is_pillar and not source.is_pillar:
        return "article_to_pillar"
    if source.country and source.country == target.country:
        return "same_country"
    if source.theme and source.theme == target.theme:
        return "same_theme"
    return "related"
