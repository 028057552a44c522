"""Placement planner tests."""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import combinations

import pytest

from maillage.engine.placement import PlacementPlanner, PlacementViolation, eligible_paragraphs, validate_links
from maillage.engine.types import AnchorCategory, InternalLink, ScoredCandidate


def _candidate(make_item, item_id: str, score: float) -> ScoredCandidate:
    return ScoredCandidate(item=make_item(item_id), score=score, similarity=0.5, authority=0.0)


def _link(target: str, paragraph: int) -> InternalLink:
    return InternalLink(
        source_id="s",
        target_id=target,
        anchor_text="learn more",
        anchor_category=AnchorCategory.GENERIC,
        paragraph_index=paragraph,
        relevance_score=50.0,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


def test_excluded_zones(engine_config, config_data, build_config):
    assert eligible_paragraphs(6, engine_config.placement) == [1, 2, 3, 4]
    assert eligible_paragraphs(1, engine_config.placement) == []

    config_data["placement"]["excluded_zones"] = ["first"]
    assert eligible_paragraphs(3, build_config(config_data).placement) == [1, 2]


def test_strongest_links_choose_first(engine_config, make_item):
    candidates = [_candidate(make_item, "weak", 45.0), _candidate(make_item, "strong", 80.0)]

    plan = PlacementPlanner(engine_config.placement).plan(6, candidates)

    assert [(candidate.item.id, slot) for candidate, slot in plan.placed] == [("strong", 1), ("weak", 3)]
    assert plan.unplaced == []


def test_links_that_do_not_fit_are_dropped(engine_config, make_item):
    candidates = [_candidate(make_item, f"t{index}", 90.0 - index) for index in range(4)]

    plan = PlacementPlanner(engine_config.placement).plan(6, candidates)

    assert len(plan.placed) == 2
    assert [candidate.item.id for candidate in plan.unplaced] == ["t2", "t3"]


@pytest.mark.parametrize("max_per_paragraph, gap, paragraphs", [(1, 2, 20), (2, 3, 15), (1, 1, 9), (3, 0, 5)])
def test_accepted_slots_respect_all_rules(config_data, build_config, make_item, max_per_paragraph, gap, paragraphs):
    config_data["placement"]["max_per_paragraph"] = max_per_paragraph
    config_data["placement"]["min_paragraph_gap"] = gap
    policy = build_config(config_data).placement
    candidates = [_candidate(make_item, f"t{index:02d}", 99.0 - index) for index in range(12)]

    plan = PlacementPlanner(policy).plan(paragraphs, candidates)
    slots = [slot for _, slot in plan.placed]

    assert slots
    assert 0 not in slots and paragraphs - 1 not in slots
    assert all(slots.count(slot) <= max_per_paragraph for slot in slots)
    for left, right in combinations(sorted(set(slots)), 2):
        assert right - left >= gap
    assert len(plan.placed) + len(plan.unplaced) == len(candidates)


def test_same_target_is_placed_once(engine_config, make_item):
    candidates = [_candidate(make_item, "dup", 70.0), _candidate(make_item, "dup", 60.0)]

    plan = PlacementPlanner(engine_config.placement).plan(10, candidates)

    assert len(plan.placed) == 1
    assert len(plan.unplaced) == 1


def test_priority_targets_choose_before_stronger_links(engine_config, make_item):
    candidates = [_candidate(make_item, f"t{index}", 90.0 - index) for index in range(3)]
    candidates.append(_candidate(make_item, "hub", 30.0))

    plan = PlacementPlanner(engine_config.placement).plan(6, candidates, priority={"hub"})

    assert plan.slot_for("hub") == 1
    assert plan.slot_for("t0") == 3
    assert [candidate.item.id for candidate in plan.unplaced] == ["t1", "t2"]


def test_validate_links_accepts_a_planned_set(engine_config):
    validate_links([_link("a", 1), _link("b", 3), _link("c", 5)], 8, engine_config.placement)


@pytest.mark.parametrize(
    "links, message",
    [
        ([_link("a", 0)], "eligible"),
        ([_link("a", 7)], "eligible"),
        ([_link("a", 2), _link("b", 3)], "closer"),
        ([_link("a", 2), _link("b", 2)], "exceeds"),
        ([_link("a", 2), _link("a", 2)], "duplicate"),
    ],
)
def test_validate_links_rejects_violations(engine_config, links, message):
    with pytest.raises(PlacementViolation, match=message):
        validate_links(links, 8, engine_config.placement)
