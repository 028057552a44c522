"""Django-side adapters and orchestration for the linking engine.

This module glues the framework-free engine to the ORM, the Django cache
framework and the HTTP integrations. Management commands and signal
handlers call the functions below; nothing here holds linking policy.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup  # type: ignore
from django.conf import settings
from django.core.cache import caches
from django.core.exceptions import ImproperlyConfigured
from django.db import close_old_connections, connection, transaction
from django.utils import timezone
from django.utils.module_loading import import_string

from . import models
from .engine import types as engine_types
from .engine.authority import AuthorityPropagator, PropagationResult, RecomputeScheduler, authority_report
from .engine.config import EngineConfig, load_config
from .engine.discovery import ExternalSourceDiscovery, select_external_links
from .engine.graph import AuthorityGraph
from .engine.index import LinkingEngine
from .engine.ports import ContentRepository, LivenessChecker, Notifier, SearchClient
from .engine.throttle import SlidingWindowRateThrottle
from .engine.verification import LinkVerifier, VerificationReport, verification_stats
from .integrations import HttpLivenessChecker, PerplexitySearchClient

logger = logging.getLogger(__name__)

_state_lock = threading.Lock()
_graph: Optional[AuthorityGraph] = None
_scheduler: Optional[RecomputeScheduler] = None
_config: Optional[EngineConfig] = None


class DjangoCacheStore:
    """Cache port over one of the configured Django cache aliases."""

    def __init__(self, alias: str | None = None) -> None:
        self.cache = caches[alias or getattr(settings, 'MAILLAGE_CACHE_ALIAS', 'default')]

    def get(self, key: str) -> Any:
        return self.cache.get(key)

    def set(self, key: str, value: Any, ttl: int) -> None:
        self.cache.set(key, value, timeout=ttl)

    def delete(self, key: str) -> None:
        self.cache.delete(key)


def _to_internal_link(record: models.InternalLink) -> engine_types.InternalLink:
    return engine_types.InternalLink(
        source_id=record.source_id,
        target_id=record.target_id,
        anchor_text=record.anchor_text,
        anchor_category=engine_types.AnchorCategory(record.anchor_category),
        paragraph_index=record.paragraph_index,
        relevance_score=record.relevance_score,
        created_at=record.created_at,
        context=record.context,
    )


def _to_external_link(record: models.ExternalLink) -> engine_types.ExternalLink:
    return engine_types.ExternalLink(
        id=record.pk,
        source_id=record.source_id,
        url=record.url,
        domain=record.domain,
        source_type=engine_types.SourceType(record.source_type),
        authority_score=record.authority_score,
        anchor_text=record.anchor_text,
        sponsored=record.sponsored,
        nofollow=record.nofollow,
        noopener=record.noopener,
        target_blank=record.target_blank,
        last_verified_at=record.last_verified_at,
        is_valid=record.is_valid,
    )


class DjangoLinkStore:
    """Internal link store backed by the ``InternalLink`` table."""

    def outbound(self, source_id: str) -> List[engine_types.InternalLink]:
        return [_to_internal_link(record) for record in models.InternalLink.objects.filter(source_id=source_id)]

    def inbound_count(self, target_id: str) -> int:
        return models.InternalLink.objects.filter(target_id=target_id).count()

    def replace_outbound(self, source_id: str, links: Sequence[engine_types.InternalLink]) -> None:
        with transaction.atomic():
            models.InternalLink.objects.filter(source_id=source_id).delete()
            models.InternalLink.objects.bulk_create(
                [
                    models.InternalLink(
                        source_id=link.source_id,
                        target_id=link.target_id,
                        anchor_text=link.anchor_text[:300],
                        anchor_category=link.anchor_category.value,
                        paragraph_index=link.paragraph_index,
                        relevance_score=link.relevance_score,
                        context=link.context,
                        created_at=link.created_at,
                    )
                    for link in links
                ]
            )

    def all_edges(self) -> List[Tuple[str, str]]:
        return list(models.InternalLink.objects.values_list('source_id', 'target_id'))


def paragraphs_from_html(html: str) -> Tuple[str, ...]:
    """Split rendered HTML into plain-text paragraphs, dropping existing anchors."""

    if not html:
        return ()

    try:
        soup = BeautifulSoup(html, 'lxml')
    except Exception:
        soup = BeautifulSoup(html, 'html.parser')

    for anchor in soup.find_all('a'):
        anchor.unwrap()

    blocks = [
        ' '.join(node.get_text(' ', strip=True).split())
        for node in soup.find_all(['p', 'li', 'blockquote'])
        if not node.find_parent(['li', 'blockquote'])
    ]
    paragraphs = tuple(block for block in blocks if block)
    if paragraphs:
        return paragraphs

    text = soup.get_text('\n')
    return tuple(' '.join(chunk.split()) for chunk in text.split('\n\n') if chunk.strip())


def content_item_from_html(
    item_id: str,
    title: str,
    html: str,
    *,
    language: str,
    country: str | None = None,
    theme: str | None = None,
    is_pillar: bool = False,
    updated_at: datetime | None = None,
) -> engine_types.ContentItem:
    """Build an engine snapshot from an authored HTML body."""

    return engine_types.ContentItem(
        id=str(item_id),
        title=title,
        paragraphs=paragraphs_from_html(html),
        language=language,
        country=country,
        theme=theme,
        is_pillar=is_pillar,
        updated_at=updated_at,
    )


def get_config() -> EngineConfig:
    global _config
    with _state_lock:
        if _config is None:
            _config = load_config(
                getattr(settings, 'MAILLAGE_CONFIG_PATH', None) or None,
                getattr(settings, 'MAILLAGE_PLATFORM', None) or None,
            )
        return _config


def get_content_repository() -> ContentRepository:
    """Instantiate the content collaborator named in ``MAILLAGE_CONTENT_REPOSITORY``."""

    dotted_path = getattr(settings, 'MAILLAGE_CONTENT_REPOSITORY', None)
    if not dotted_path:
        raise ImproperlyConfigured('MAILLAGE_CONTENT_REPOSITORY must name a content repository class or factory.')
    factory = import_string(dotted_path)
    return factory()


def get_notifier() -> Notifier:
    dotted_path = getattr(settings, 'MAILLAGE_NOTIFIER', 'maillage.integrations.LoggingNotifier')
    return import_string(dotted_path)()


def get_search_client() -> SearchClient:
    api_key = getattr(settings, 'PERPLEXITY_API_KEY', '')
    if not api_key:
        raise ImproperlyConfigured('PERPLEXITY_API_KEY must be set to discover external sources.')
    return PerplexitySearchClient(
        api_key,
        model=getattr(settings, 'PERPLEXITY_MODEL', 'sonar'),
        timeout=get_config().discovery.timeout,
    )


def get_graph() -> AuthorityGraph:
    """Return the process-wide link graph, loading it from the database once."""

    global _graph
    with _state_lock:
        if _graph is None:
            _graph = AuthorityGraph()
            _graph.load_edges(DjangoLinkStore().all_edges())
        return _graph


def get_scheduler() -> RecomputeScheduler:
    global _scheduler
    graph = get_graph()
    config = get_config()
    with _state_lock:
        if _scheduler is None:
            propagator = AuthorityPropagator(graph, config.authority)
            _scheduler = RecomputeScheduler(
                propagator,
                config.authority.debounce_seconds,
                on_result=persist_authority_scores_from_timer,
            )
        return _scheduler


def reset_state() -> None:
    """Drop cached config, graph and scheduler (settings changes, tests)."""

    global _graph, _scheduler, _config
    with _state_lock:
        if _scheduler is not None:
            _scheduler.cancel()
        _graph = None
        _scheduler = None
        _config = None


def build_engine(content: ContentRepository | None = None) -> LinkingEngine:
    return LinkingEngine(
        content if content is not None else get_content_repository(),
        DjangoLinkStore(),
        get_config(),
        cache=DjangoCacheStore(),
        graph=get_graph(),
        scheduler=get_scheduler(),
        auto_recompute=getattr(settings, 'MAILLAGE_AUTO_RECOMPUTE', True),
    )


def refresh_source(source_id: str) -> None:
    """Resync one source's edges from the database and schedule a recompute."""

    targets = models.InternalLink.objects.filter(source_id=source_id).values_list('target_id', flat=True)
    get_graph().set_outbound(source_id, list(targets))
    get_scheduler().mark_dirty()


def persist_authority_scores(result: PropagationResult) -> None:
    count = len(result.scores) or 1
    with transaction.atomic():
        models.AuthorityScore.objects.exclude(item_id__in=list(result.scores)).delete()
        for item_id, score in result.scores.items():
            models.AuthorityScore.objects.update_or_create(
                item_id=item_id,
                defaults={
                    'score': score.score,
                    'normalized_score': round(score.score * count * 100, 2),
                    'iterations': score.iterations,
                    'converged': score.converged,
                    'computed_at': score.computed_at,
                },
            )
    logger.info('Persisted authority scores for %d items', len(result.scores))


def persist_authority_scores_from_timer(result: PropagationResult) -> None:
    """Scheduler callback; a timer thread owns its connection and must release it."""

    if threading.current_thread() is threading.main_thread():
        persist_authority_scores(result)
        return
    close_old_connections()
    try:
        persist_authority_scores(result)
    finally:
        connection.close()


def recompute_authority() -> PropagationResult:
    """Reload the graph from the database and run one propagation immediately."""

    scheduler = get_scheduler()
    scheduler.cancel()
    graph = get_graph()
    graph.load_edges(DjangoLinkStore().all_edges())
    result = scheduler.propagator.run()
    persist_authority_scores(result)
    return result


def authority_rows() -> List[Dict[str, object]]:
    return authority_report(get_graph())


def verify_external_links(
    *,
    limit: int | None = None,
    check_all: bool = False,
    checker: LivenessChecker | None = None,
    notifier: Notifier | None = None,
) -> VerificationReport:
    """Check due external links and persist every completed result."""

    population = [_to_external_link(record) for record in models.ExternalLink.objects.order_by('pk')]
    verifier = LinkVerifier(
        get_config().verification,
        checker or HttpLivenessChecker(),
        notifier or get_notifier(),
    )
    links = population if check_all else verifier.due(population)
    if limit is not None:
        links = links[:limit]

    report = asyncio.run(verifier.run(links, population=population))

    with transaction.atomic():
        for result in report.results:
            models.ExternalLink.objects.filter(pk=result.link_id).update(
                is_valid=result.is_valid,
                last_verified_at=result.checked_at,
            )
            models.VerificationResult.objects.create(
                external_link_id=result.link_id,
                status_code=result.status_code,
                is_valid=result.is_valid,
                error=(result.error or '')[:255],
                checked_at=result.checked_at,
            )
    return report


def external_link_stats() -> Dict[str, Any]:
    """Health summary of every stored external link."""

    links = [_to_external_link(record) for record in models.ExternalLink.objects.order_by('pk')]
    return verification_stats(links, timezone.now())


def build_discovery(search: SearchClient | None = None) -> ExternalSourceDiscovery:
    config = get_config()
    cache = DjangoCacheStore()
    return ExternalSourceDiscovery(
        config.discovery,
        config.external,
        search or get_search_client(),
        cache,
        throttle=SlidingWindowRateThrottle(
            cache,
            limit=config.discovery.rate_limit,
            window=config.discovery.rate_window,
        ),
    )


def discover_sources(
    requests: Iterable[Tuple[str, Optional[str], str]],
    search: SearchClient | None = None,
) -> Dict[Tuple[str, Optional[str], str], List[engine_types.DiscoveredSource]]:
    discovery = build_discovery(search)
    return asyncio.run(discovery.discover_many(requests))


def attach_external_links(
    item: engine_types.ContentItem,
    search: SearchClient | None = None,
) -> List[engine_types.ExternalLink]:
    """Discover sources for ``item`` and replace its stored external links."""

    if not item.theme:
        return []
    discovery = build_discovery(search)
    sources = asyncio.run(discovery.discover(item.theme, item.country, item.language))
    selected = select_external_links(item, sources, get_config().external)

    with transaction.atomic():
        models.ExternalLink.objects.filter(source_id=item.id).delete()
        for link in selected:
            record = models.ExternalLink.objects.create(
                source_id=link.source_id,
                url=link.url,
                domain=link.domain,
                source_type=link.source_type.value,
                authority_score=link.authority_score,
                anchor_text=link.anchor_text[:300],
                sponsored=link.sponsored,
                nofollow=link.nofollow,
                noopener=link.noopener,
                target_blank=link.target_blank,
            )
            link.id = record.pk
    logger.info('Attached %d external links to item %s', len(selected), item.id)
    return selected
