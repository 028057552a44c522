"""Candidate pool selection for internal linking."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .config import InternalPolicy
from .ports import ContentRepository, LinkStore
from .types import ContentItem

logger = logging.getLogger(__name__)


class CandidateSelector:
    """Narrow the corpus to a bounded same-axis pool for one source item."""

    def __init__(self, policy: InternalPolicy, content: ContentRepository, links: LinkStore) -> None:
        self.policy = policy
        self.content = content
        self.links = links

    def select(self, source: ContentItem) -> List[ContentItem]:
        """Return an unordered pool of candidates sharing the source's country or theme.

        Pillars on either axis are always kept unless the source already links
        to them; the pool size caps the remaining items only.
        """

        pool_size = self.policy.candidate_pool_size
        already_linked = {link.target_id for link in self.links.outbound(source.id)}

        pool: Dict[str, ContentItem] = {}
        for axis in self._axes(source):
            for item in self.content.list_items(
                language=source.language,
                exclude_id=source.id,
                limit=pool_size,
                **axis,
            ):
                if len(pool) >= pool_size:
                    break
                if self._allow(source, item):
                    pool.setdefault(item.id, item)

        for axis in self._axes(source):
            for pillar in self.content.list_items(
                language=source.language,
                exclude_id=source.id,
                pillars_only=True,
                **axis,
            ):
                if pillar.id in already_linked:
                    continue
                if self._allow(source, pillar):
                    pool.setdefault(pillar.id, pillar)

        if not pool:
            logger.info("No linking candidates for item %s (country=%s, theme=%s)", source.id, source.country, source.theme)
        return list(pool.values())

    def _axes(self, source: ContentItem) -> List[Dict[str, str]]:
        axes = []
        if source.country:
            axes.append({"country": source.country})
        if source.theme:
            axes.append({"theme": source.theme})
        return axes

    def _allow(self, source: ContentItem, target: ContentItem) -> bool:
        if target.id == source.id:
            return False
        if self.links.inbound_count(target.id) >= self.policy.max_inbound_links:
            logger.debug("Skipping %s: inbound link quota reached", target.id)
            return False
        return True


def parent_pillar(source: ContentItem, pool: Sequence[ContentItem]) -> Optional[ContentItem]:
    """Pick the pillar an article hangs under: same theme and country, then theme, then country."""

    if source.is_pillar:
        return None
    tiers = (
        lambda pillar: bool(source.theme) and pillar.theme == source.theme and pillar.country == source.country,
        lambda pillar: bool(source.theme) and pillar.theme == source.theme,
        lambda pillar: bool(source.country) and pillar.country == source.country,
    )
    pillars = sorted((item for item in pool if item.is_pillar), key=lambda item: item.id)
    for matches in tiers:
        for pillar in pillars:
            if matches(pillar):
                return pillar
    return None
