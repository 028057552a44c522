"""Keyword extraction tests."""

from __future__ import annotations

from maillage.engine.keywords import KeywordExtractor
from maillage.engine.ports import InMemoryCache
from maillage.engine.text import tokenize


def test_title_terms_outweigh_body_terms(engine_config, make_item):
    item = make_item(
        "a1",
        "Germany Visa Guide",
        ["The visa process in Germany takes weeks.", "Apply for the visa early."],
    )

    vector = KeywordExtractor(engine_config.keywords).extract(item)

    assert vector.weights["visa"] == 5.0
    assert vector.weights["germany"] == 4.0
    assert vector.weights["guide"] == 3.0
    assert vector.weights["process"] == 1.0
    assert "the" not in vector.weights
    assert "in" not in vector.weights
    assert vector.top_terms(2) == ["visa", "germany"]


def test_weights_non_negative_and_capped(config_data, build_config, make_item):
    config_data["keywords"]["max_keywords"] = 5
    config = build_config(config_data)
    paragraphs = [" ".join(f"term{index}x{offset}" for offset in range(12)) for index in range(6)]
    item = make_item("a1", "Residence permit renewal", paragraphs)

    vector = KeywordExtractor(config.keywords).extract(item)

    assert len(vector.weights) == 5
    assert all(weight >= 0 for weight in vector.weights.values())
    assert {"residence", "permit", "renewal"} <= set(vector.weights)


def test_language_specific_stopwords(engine_config, make_item):
    item = make_item(
        "fr1",
        "Les démarches pour le visa",
        ["Les formalités sont faites avec le consulat dans votre pays."],
        language="fr",
    )

    vector = KeywordExtractor(engine_config.keywords).extract(item)

    assert "les" not in vector.weights
    assert "pour" not in vector.weights
    assert "avec" not in vector.weights
    assert vector.weights["visa"] == 3.0
    assert vector.weights["consulat"] == 1.0


def test_extraction_is_idempotent(engine_config, make_item, clock):
    item = make_item("a1", "Health insurance for expats")
    extractor = KeywordExtractor(engine_config.keywords, clock=clock)

    assert extractor.extract(item) == extractor.extract(item)


def test_devanagari_words_stay_whole():
    assert tokenize("वीज़ा आवेदन प्रक्रिया", min_length=3) == ["वीज़ा", "आवेदन", "प्रक्रिया"]


def test_cache_hit_until_content_changes(engine_config, make_item, clock):
    cache = InMemoryCache(clock)
    extractor = KeywordExtractor(engine_config.keywords, cache=cache, clock=clock)
    item = make_item("a1", "Tax residency rules", ["Residency depends on days spent."])

    first = extractor.vector_for(item)
    clock.advance(minutes=5)
    assert extractor.vector_for(item) is first

    edited = make_item("a1", "Tax residency rules", ["Residency depends on your tax domicile."])
    assert extractor.cache_key(edited) != extractor.cache_key(item)
    refreshed = extractor.vector_for(edited)
    assert refreshed is not first
    assert "domicile" in refreshed.weights


def test_cached_vector_expires(engine_config, make_item, clock):
    cache = InMemoryCache(clock)
    extractor = KeywordExtractor(engine_config.keywords, cache=cache, clock=clock)
    item = make_item("a1", "Work permit")

    first = extractor.vector_for(item)
    clock.advance(seconds=engine_config.keywords.cache_ttl + 1)

    assert cache.get(extractor.cache_key(item)) is None
    assert extractor.vector_for(item) is not first
