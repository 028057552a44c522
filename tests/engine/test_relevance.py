"""Relevance scoring and ranking tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from maillage.engine.rank import RelevanceScorer, link_context
from maillage.engine.types import KeywordVector

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _vector(item_id: str, **weights: float) -> KeywordVector:
    return KeywordVector(item_id=item_id, weights=dict(weights), computed_at=NOW)


def test_threshold_keeps_boosted_candidates_only(engine_config, make_item):
    source = make_item("S", country="DE", theme="visa", paragraphs=[f"p{index}" for index in range(6)])
    a = make_item("A", country="DE", theme="work")
    b = make_item("B", country="FR", theme="visa")
    c = make_item("C", country="FR", theme="tax")
    candidates = [
        (c, _vector("C", a=0.38, d=0.924987)),
        (b, _vector("B", a=0.4, c=0.916515)),
        (a, _vector("A", a=0.62, b=0.7846)),
    ]

    ranked, rejected = RelevanceScorer(engine_config.internal).rank(source, _vector("S", a=1.0), candidates)

    assert [candidate.item.id for candidate in ranked] == ["A", "B"]
    assert ranked[0].score == pytest.approx(72.0, abs=0.01)
    assert ranked[1].score == pytest.approx(55.0, abs=0.01)
    assert rejected == 1


def test_pillar_bonus_applies_to_either_side(engine_config, make_item):
    scorer = RelevanceScorer(engine_config.internal)
    vector = _vector("x", visa=1.0)
    article = make_item("article", country="FR", theme="tax")
    pillar = make_item("pillar", country="US", theme="health", is_pillar=True)

    to_pillar = scorer.score(article, vector, pillar, vector)
    from_pillar = scorer.score(pillar, vector, article, vector)

    assert to_pillar.score == pytest.approx(120.0)
    assert from_pillar.score == pytest.approx(120.0)


def test_equal_scores_prefer_higher_similarity(engine_config, make_item):
    source = make_item("S", country="DE", theme="visa")
    x = make_item("X", country="DE", theme="work")
    y = make_item("Y", country="FR", theme="visa")
    candidates = [
        (y, _vector("Y", a=0.45, z=0.893029)),
        (x, _vector("X", a=0.5, z=0.866025)),
    ]

    ranked, _ = RelevanceScorer(engine_config.internal).rank(source, _vector("S", a=1.0), candidates)

    assert ranked[0].score == pytest.approx(ranked[1].score, abs=0.01)
    assert [candidate.item.id for candidate in ranked] == ["X", "Y"]


def test_equal_similarity_prefers_lower_authority(engine_config, make_item):
    authority = {"P": 0.3, "Q": 0.1}
    source = make_item("S")
    vector = _vector("v", visa=1.0)
    candidates = [(make_item("P"), vector), (make_item("Q"), vector)]

    ranked, _ = RelevanceScorer(engine_config.internal, authority=authority.get).rank(source, vector, candidates)

    assert [candidate.item.id for candidate in ranked] == ["Q", "P"]
    assert ranked[0].authority == 0.1


@pytest.mark.parametrize(
    "source_kwargs, target_kwargs, expected",
    [
        ({"is_pillar": True}, {}, "pillar_to_article"),
        ({}, {"is_pillar": True}, "article_to_pillar"),
        ({"country": "DE"}, {"country": "DE", "theme": "tax"}, "same_country"),
        ({"country": "DE"}, {"country": "FR"}, "same_theme"),
        ({"country": "DE", "theme": "visa"}, {"country": "FR", "theme": "tax"}, "related"),
    ],
)
def test_link_context_labels(make_item, source_kwargs, target_kwargs, expected):
    assert link_context(make_item("s", **source_kwargs), make_item("t", **target_kwargs)) == expected
