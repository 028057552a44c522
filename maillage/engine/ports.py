"""Collaborator interfaces for the engine and their in-memory implementations.

The engine only talks to the outside world through these protocols. The
Django app provides ORM and cache-framework backed adapters; tests use the
in-memory versions below.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from .types import ContentItem, InternalLink

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SearchHit:
    """Single result returned by the search collaborator."""

    url: str
    title: str = ""
    snippet: str = ""


class ContentRepository(Protocol):
    def get(self, item_id: str) -> Optional[ContentItem]:
        ...

    def list_items(
        self,
        *,
        country: str | None = None,
        theme: str | None = None,
        language: str | None = None,
        exclude_id: str | None = None,
        limit: int | None = None,
        pillars_only: bool = False,
    ) -> List[ContentItem]:
        ...


class CacheStore(Protocol):
    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any, ttl: int) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class LinkStore(Protocol):
    def outbound(self, source_id: str) -> List[InternalLink]:
        ...

    def inbound_count(self, target_id: str) -> int:
        ...

    def replace_outbound(self, source_id: str, links: Sequence[InternalLink]) -> None:
        ...

    def all_edges(self) -> List[Tuple[str, str]]:
        ...


class SearchClient(Protocol):
    async def search(self, query: str, limit: int) -> List[SearchHit]:
        ...


class LivenessChecker(Protocol):
    async def check(self, url: str, timeout: float) -> int:
        ...


class Notifier(Protocol):
    def alert(self, severity: str, message: str) -> None:
        ...


class InMemoryContentRepository:
    """Content collaborator backed by a plain dictionary."""

    def __init__(self, items: Iterable[ContentItem] = ()) -> None:
        self._items: Dict[str, ContentItem] = {item.id: item for item in items}

    def add(self, item: ContentItem) -> None:
        self._items[item.id] = item

    def get(self, item_id: str) -> Optional[ContentItem]:
        return self._items.get(item_id)

    def list_items(
        self,
        *,
        country: str | None = None,
        theme: str | None = None,
        language: str | None = None,
        exclude_id: str | None = None,
        limit: int | None = None,
        pillars_only: bool = False,
    ) -> List[ContentItem]:
        matches = []
        for item in self._items.values():
            if item.id == exclude_id:
                continue
            if country is not None and item.country != country:
                continue
            if theme is not None and item.theme != theme:
                continue
            if language is not None and item.language != language:
                continue
            if pillars_only and not item.is_pillar:
                continue
            matches.append(item)
        matches.sort(key=lambda item: item.id)
        return matches[:limit] if limit is not None else matches


class InMemoryCache:
    """TTL cache with an injectable clock, used as the default cache port."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, datetime]] = {}

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = (value, self._clock() + timedelta(seconds=ttl))

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)


class InMemoryLinkStore:
    """Internal link store keyed by source item."""

    def __init__(self) -> None:
        self._outbound: Dict[str, List[InternalLink]] = {}

    def outbound(self, source_id: str) -> List[InternalLink]:
        return list(self._outbound.get(source_id, []))

    def inbound_count(self, target_id: str) -> int:
        return sum(1 for links in self._outbound.values() for link in links if link.target_id == target_id)

    def replace_outbound(self, source_id: str, links: Sequence[InternalLink]) -> None:
        if links:
            self._outbound[source_id] = list(links)
        else:
            self._outbound.pop(source_id, None)

    def all_edges(self) -> List[Tuple[str, str]]:
        return [(link.source_id, link.target_id) for links in self._outbound.values() for link in links]
