"""End-to-end tests of the internal linking coordinator over in-memory ports."""

from __future__ import annotations

from collections import Counter

import pytest

from maillage.engine.authority import AuthorityPropagator, RecomputeScheduler
from maillage.engine.graph import AuthorityGraph
from maillage.engine.index import LinkingEngine
from maillage.engine.placement import validate_links
from maillage.engine.ports import InMemoryContentRepository, InMemoryLinkStore
from maillage.engine.types import AnchorCategory


@pytest.fixture()
def corpus(make_item):
    source = make_item(
        "s",
        "Germany visa guide for students",
        [f"Students planning a stay in Germany need the right visa, step {index}." for index in range(20)],
    )
    related = [make_item(f"c{index}", f"Germany visa guide part {index}") for index in range(6)]
    elsewhere = make_item("fr-tax", "French tax return", country="FR", theme="tax")
    return source, related, elsewhere


@pytest.fixture()
def build_engine(engine_config, clock, fake_timers, corpus):
    def build(config=None):
        config = config or engine_config
        source, related, elsewhere = corpus
        graph = AuthorityGraph()
        scheduler = RecomputeScheduler(
            AuthorityPropagator(graph, config.authority, clock),
            config.authority.debounce_seconds,
            timer_factory=fake_timers,
        )
        return LinkingEngine(
            InMemoryContentRepository([source, *related, elsewhere]),
            InMemoryLinkStore(),
            config,
            graph=graph,
            scheduler=scheduler,
            clock=clock,
        )

    return build


def test_generated_links_respect_placement_rules(build_engine, corpus, engine_config, clock):
    source, related, _ = corpus
    engine = build_engine()

    report = engine.generate_internal_links(source)

    assert report.created == 6
    assert report.unplaced == 0
    assert report.candidates_found == 6
    assert sorted(link.target_id for link in report.links) == sorted(item.id for item in related)
    assert [link.paragraph_index for link in report.links] == [1, 3, 5, 7, 9, 11]
    assert all(link.context == "same_country" for link in report.links)
    assert all(link.relevance_score >= engine_config.internal.min_relevance_score for link in report.links)
    assert all(link.created_at == clock.now for link in report.links)
    assert {link.anchor_category for link in report.links} <= set(AnchorCategory)
    validate_links(report.links, len(source.paragraphs), engine_config.placement)
    assert engine.links.outbound("s") == report.links


def test_generation_updates_graph_and_schedules_one_recompute(build_engine, corpus, fake_timers):
    source, related, _ = corpus
    engine = build_engine()

    engine.generate_internal_links(source)

    assert engine.graph.snapshot().edges["s"] == frozenset(item.id for item in related)
    assert engine.scheduler.pending
    assert len(fake_timers.created) == 1

    fake_timers.created[0].fire()

    assert engine.propagator.state.value == "converged"
    assert engine.graph.score("c0") > engine.graph.score("s")


def test_existing_links_are_kept_unless_forced(build_engine, corpus, make_item):
    source, _, _ = corpus
    engine = build_engine()
    first = engine.generate_internal_links(source)

    skipped = engine.generate_internal_links(source)
    assert skipped.skipped
    assert engine.links.outbound("s") == first.links

    engine.content.add(make_item("c9", "Germany visa guide appendix", is_pillar=True))
    forced = engine.generate_internal_links(source, force=True)

    assert not forced.skipped
    assert "c9" in {link.target_id for link in forced.links}
    assert len(engine.links.outbound("s")) == forced.created


def _short_source(make_item, paragraphs: int = 6):
    return make_item(
        "short",
        "Germany visa guide for students",
        [f"Students planning a stay in Germany need the right visa, step {index}." for index in range(paragraphs)],
    )


def test_anchor_mix_follows_distribution_when_placement_drops_links(build_engine, engine_config, make_item):
    engine = build_engine()

    report = engine.plan_internal_links(_short_source(make_item))

    assert report.created == 2
    assert report.unplaced >= 3
    counts = Counter(link.anchor_category for link in report.links)
    for category, percent in engine_config.anchors.distribution:
        assert abs(counts[category] - report.created * percent / 100) <= 1
    assert counts == {AnchorCategory.EXACT_MATCH: 1, AnchorCategory.LONG_TAIL: 1}


def test_parent_pillar_below_threshold_is_still_linked(build_engine, engine_config, make_item):
    engine = build_engine()
    hub = make_item(
        "hub",
        "Living abroad overview",
        ["Pension, healthcare and schooling abroad are covered in separate chapters."] * 8,
        theme="expat",
        is_pillar=True,
    )
    engine.content.add(hub)
    source = _short_source(make_item)

    report = engine.plan_internal_links(source)

    pillar_links = [link for link in report.links if link.target_id == "hub"]
    assert len(pillar_links) == 1
    assert pillar_links[0].relevance_score < engine_config.internal.min_relevance_score
    assert pillar_links[0].context == "article_to_pillar"
    assert report.created == 2
    validate_links(report.links, len(source.paragraphs), engine_config.placement)


def test_parent_pillar_survives_max_links_truncation(config_data, build_config, build_engine, corpus, make_item):
    config_data["internal"].update(max_links=2, min_links=1)
    engine = build_engine(build_config(config_data))
    engine.content.add(make_item("hub", "Relocation checklist", ["Moving abroad step by step."] * 8, is_pillar=True))

    report = engine.plan_internal_links(corpus[0])

    assert report.created == 2
    assert "hub" in {link.target_id for link in report.links}


def test_pillar_source_gets_no_parent_pillar(build_engine, make_item):
    engine = build_engine()
    engine.content.add(make_item("hub", "Living abroad overview", ["Pension abroad."] * 8, theme="expat", is_pillar=True))
    source = make_item("pillar-src", "Germany visa guide", [f"Visa step {index} in Germany." for index in range(20)], is_pillar=True)

    report = engine.plan_internal_links(source)

    assert "hub" not in {link.target_id for link in report.links}


def test_no_candidates_yields_empty_report(build_engine, make_item):
    engine = build_engine()
    lonely = make_item("lonely", "Japanese pension rules", country="JP", theme="pension")

    report = engine.generate_internal_links(lonely)

    assert report.created == 0
    assert report.candidates_found == 0
    assert engine.links.outbound("lonely") == []


def test_max_links_truncates_ranked_candidates(config_data, build_config, build_engine, corpus):
    config_data["internal"].update(max_links=3, min_links=1)
    engine = build_engine(build_config(config_data))

    report = engine.plan_internal_links(corpus[0])

    assert report.created == 3
    assert engine.links.outbound("s") == []


def test_auto_recompute_can_be_disabled(build_engine, corpus, fake_timers):
    engine = build_engine()
    engine.auto_recompute = False

    engine.generate_internal_links(corpus[0])

    assert fake_timers.created == []
    assert not engine.scheduler.pending


def test_link_balance_report_summarizes_batch(build_engine, corpus):
    source, related, elsewhere = corpus
    engine = build_engine()

    summary = engine.link_balance_report([source, *related, elsewhere])

    assert set(summary) == {
        "coverage",
        "orphan_rate",
        "anchor_category_counts",
        "anchor_diversity_index",
        "mean_relevance",
        "links_planned",
        "below_threshold",
        "unplaced",
    }
    assert summary["links_planned"] == sum(summary["anchor_category_counts"].values())
    assert summary["coverage"] == pytest.approx(7 / 8)
    assert summary["orphan_rate"] == pytest.approx(2 / 8)
    assert 0.0 < summary["anchor_diversity_index"] <= 1.0
    assert engine.links.all_edges() == []
