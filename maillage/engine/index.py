"""Coordinator for the internal linking pipeline."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from .anchors import AnchorDistributor
from .authority import AuthorityPropagator, RecomputeScheduler
from .candidates import CandidateSelector, parent_pillar
from .config import EngineConfig, load_config
from .graph import AuthorityGraph
from .keywords import KeywordExtractor
from .placement import PlacementPlanner, validate_links
from .ports import CacheStore, Clock, ContentRepository, InMemoryCache, LinkStore, utcnow
from .rank import RelevanceScorer, link_context, ranking_key
from .text import shannon_entropy
from .types import ContentItem, InternalLink, LinkingReport

logger = logging.getLogger(__name__)


class LinkingEngine:
    """Wire the linking components together around one graph and link store."""

    def __init__(
        self,
        content: ContentRepository,
        links: LinkStore,
        config: EngineConfig | None = None,
        *,
        cache: Optional[CacheStore] = None,
        graph: Optional[AuthorityGraph] = None,
        scheduler: Optional[RecomputeScheduler] = None,
        clock: Clock = utcnow,
        auto_recompute: bool = True,
    ) -> None:
        self.config = config or load_config(None)
        self.auto_recompute = auto_recompute
        self.content = content
        self.links = links
        self.clock = clock
        self.graph = graph or AuthorityGraph()
        self.keywords = KeywordExtractor(self.config.keywords, cache if cache is not None else InMemoryCache(clock), clock)
        self.selector = CandidateSelector(self.config.internal, content, links)
        self.scorer = RelevanceScorer(self.config.internal, authority=self.graph.score)
        self.distributor = AnchorDistributor(self.config.anchors)
        self.planner = PlacementPlanner(self.config.placement)
        if scheduler is None:
            propagator = AuthorityPropagator(self.graph, self.config.authority, clock)
            scheduler = RecomputeScheduler(propagator, self.config.authority.debounce_seconds)
        self.scheduler = scheduler

    @property
    def propagator(self) -> AuthorityPropagator:
        return self.scheduler.propagator

    def load_graph(self, nodes: Iterable[str] = ()) -> None:
        """Rebuild the in-process graph from the link store."""

        self.graph.load_edges(self.links.all_edges(), nodes)

    def plan_internal_links(self, item: ContentItem) -> LinkingReport:
        """Compute accepted links for ``item`` without persisting anything."""

        report = LinkingReport(source_id=item.id)
        pool = self.selector.select(item)
        report.candidates_found = len(pool)
        if not pool:
            return report

        source_vector = self.keywords.vector_for(item)
        vectors = {candidate.id: self.keywords.vector_for(candidate) for candidate in pool}
        ranked, report.below_threshold = self.scorer.rank(
            item,
            source_vector,
            ((candidate, vectors[candidate.id]) for candidate in pool),
        )
        max_links = self.config.internal.max_links
        ranked = ranked[:max_links]

        priority = set()
        pillar = parent_pillar(item, pool)
        if pillar is not None and max_links > 0:
            priority.add(pillar.id)
            if all(candidate.item.id != pillar.id for candidate in ranked):
                forced = self.scorer.score(item, source_vector, pillar, vectors[pillar.id])
                if forced.score < self.config.internal.min_relevance_score:
                    report.below_threshold -= 1
                logger.debug("Keeping parent pillar %s for item %s (relevance %.2f)", pillar.id, item.id, forced.score)
                ranked = sorted(ranked[: max_links - 1] + [forced], key=ranking_key)

        if not ranked:
            logger.info("No candidate above relevance threshold for item %s", item.id)
            return report

        plan = self.planner.plan(len(item.paragraphs), ranked, priority)
        report.unplaced = len(plan.unplaced)
        placed = sorted((candidate for candidate, _ in plan.placed), key=ranking_key)

        created_at = self.clock()
        for assignment in self.distributor.assign(placed, item.language):
            target = assignment.candidate.item
            report.links.append(
                InternalLink(
                    source_id=item.id,
                    target_id=target.id,
                    anchor_text=assignment.text,
                    anchor_category=assignment.category,
                    paragraph_index=plan.slot_for(target.id),
                    relevance_score=assignment.candidate.score,
                    created_at=created_at,
                    context=link_context(item, target),
                )
            )
        report.links.sort(key=lambda link: link.paragraph_index)

        if report.created < self.config.internal.min_links:
            logger.info(
                "Item %s gets %d internal links, below the minimum of %d",
                item.id,
                report.created,
                self.config.internal.min_links,
            )
        return report

    def generate_internal_links(self, item: ContentItem, force: bool = False) -> LinkingReport:
        """Plan and persist links for ``item``, then schedule an authority recompute."""

        if not force and self.links.outbound(item.id):
            logger.debug("Item %s already has internal links; skipping", item.id)
            return LinkingReport(source_id=item.id, skipped=True)

        report = self.plan_internal_links(item)
        validate_links(report.links, len(item.paragraphs), self.config.placement)
        self.links.replace_outbound(item.id, report.links)
        self.graph.set_outbound(item.id, [link.target_id for link in report.links])
        if self.auto_recompute:
            self.scheduler.mark_dirty()
        logger.info(
            "Generated %d internal links for item %s (%d candidates, %d below threshold, %d unplaced)",
            report.created,
            item.id,
            report.candidates_found,
            report.below_threshold,
            report.unplaced,
        )
        return report

    def link_balance_report(self, items: Sequence[ContentItem]) -> Dict[str, object]:
        """Dry-run a batch and summarize coverage and anchor balance."""

        total_items = len(items) or 1
        items_with_links = 0
        inbound: Dict[str, int] = {item.id: 0 for item in items}
        categories: Counter = Counter()
        relevance: List[float] = []
        below_threshold = 0
        unplaced = 0

        for item in items:
            report = self.plan_internal_links(item)
            below_threshold += report.below_threshold
            unplaced += report.unplaced
            if report.links:
                items_with_links += 1
            for link in report.links:
                inbound[link.target_id] = inbound.get(link.target_id, 0) + 1
                categories[link.anchor_category.value] += 1
                relevance.append(link.relevance_score)

        orphans = sum(1 for count in inbound.values() if count == 0)
        return {
            "coverage": items_with_links / total_items,
            "orphan_rate": orphans / (len(inbound) or 1),
            "anchor_category_counts": dict(categories),
            "anchor_diversity_index": shannon_entropy(categories),
            "mean_relevance": sum(relevance) / len(relevance) if relevance else 0.0,
            "links_planned": len(relevance),
            "below_threshold": below_threshold,
            "unplaced": unplaced,
        }
