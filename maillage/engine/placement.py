"""Paragraph slot selection for internal links."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Collection, Iterable, List, Optional, Sequence, Set, Tuple

from .config import PlacementPolicy
from .types import InternalLink, ScoredCandidate

logger = logging.getLogger(__name__)


class PlacementViolation(ValueError):
    """Raised when a link breaks the zone, gap or density rules."""


@dataclass
class PlacementPlan:
    placed: List[Tuple[ScoredCandidate, int]] = field(default_factory=list)
    unplaced: List[ScoredCandidate] = field(default_factory=list)

    def slot_for(self, target_id: str) -> Optional[int]:
        return next((slot for candidate, slot in self.placed if candidate.item.id == target_id), None)


def eligible_paragraphs(paragraph_count: int, policy: PlacementPolicy) -> List[int]:
    """Return paragraph indices outside the excluded zones."""

    indices = list(range(paragraph_count))
    if policy.exclude_first and indices:
        indices = indices[1:]
    if policy.exclude_last and paragraph_count > 1 and indices and indices[-1] == paragraph_count - 1:
        indices = indices[:-1]
    return indices


def slot_allowed(index: int, occupancy: Counter, policy: PlacementPolicy) -> bool:
    if occupancy[index] >= policy.max_per_paragraph:
        return False
    for used in occupancy:
        if used != index and abs(used - index) < policy.min_paragraph_gap:
            return False
    return True


class PlacementPlanner:
    """Greedy first-fit placement; strongest links choose first."""

    def __init__(self, policy: PlacementPolicy) -> None:
        self.policy = policy

    def plan(
        self,
        paragraph_count: int,
        candidates: Sequence[ScoredCandidate],
        priority: Collection[str] = (),
    ) -> PlacementPlan:
        """Give each candidate the first free slot; ``priority`` targets choose before the rest."""

        plan = PlacementPlan()
        eligible = eligible_paragraphs(paragraph_count, self.policy)
        occupancy: Counter = Counter()
        seen_targets: Set[str] = set()

        ordered = sorted(candidates, key=lambda candidate: (candidate.item.id not in priority, -candidate.score, candidate.item.id))
        for candidate in ordered:
            target_id = candidate.item.id
            if target_id in seen_targets:
                plan.unplaced.append(candidate)
                continue
            slot = next((index for index in eligible if slot_allowed(index, occupancy, self.policy)), None)
            if slot is None:
                logger.debug("No paragraph slot left for target %s", target_id)
                plan.unplaced.append(candidate)
                continue
            occupancy[slot] += 1
            seen_targets.add(target_id)
            plan.placed.append((candidate, slot))
        return plan


def validate_links(links: Iterable[InternalLink], paragraph_count: int, policy: PlacementPolicy) -> None:
    """Raise PlacementViolation if the links from one source break any placement rule."""

    eligible = set(eligible_paragraphs(paragraph_count, policy))
    occupancy: Counter = Counter()
    triples: Set[Tuple[str, str, int]] = set()
    for link in links:
        if link.paragraph_index not in eligible:
            raise PlacementViolation(f"paragraph {link.paragraph_index} is outside the eligible zone")
        triple = (link.source_id, link.target_id, link.paragraph_index)
        if triple in triples:
            raise PlacementViolation(f"duplicate link {triple}")
        triples.add(triple)
        occupancy[link.paragraph_index] += 1
        if occupancy[link.paragraph_index] > policy.max_per_paragraph:
            raise PlacementViolation(f"paragraph {link.paragraph_index} exceeds {policy.max_per_paragraph} links")

    used = sorted(occupancy)
    for left, right in zip(used, used[1:]):
        if right - left < policy.min_paragraph_gap:
            raise PlacementViolation(f"paragraphs {left} and {right} are closer than {policy.min_paragraph_gap}")
