"""Cached discovery of authoritative external sources."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple
from urllib.parse import urlsplit, urlunsplit

from .config import DiscoveryPolicy, ExternalPolicy
from .ports import CacheStore, Clock, SearchClient, SearchHit, utcnow
from .text import fingerprint
from .throttle import SlidingWindowRateThrottle
from .types import ContentItem, DiscoveredSource, DiscoveryCacheEntry, ExternalLink, SourceType

logger = logging.getLogger(__name__)


class SearchUnavailable(Exception):
    """Transient search failure: timeout, transport error or non-200 answer."""


class DiscoveryAborted(Exception):
    """Raised inside a batch once ``abort`` was requested and before a query starts."""


COUNTRY_NAMES: Dict[str, str] = {
    "FR": "France", "DE": "Germany", "ES": "Spain", "IT": "Italy", "PT": "Portugal",
    "GB": "United Kingdom", "US": "United States", "CA": "Canada", "AU": "Australia",
    "JP": "Japan", "CN": "China", "BR": "Brazil", "MX": "Mexico", "CH": "Switzerland",
    "BE": "Belgium", "NL": "Netherlands", "AT": "Austria", "RU": "Russia", "IN": "India",
    "TH": "Thailand", "SG": "Singapore", "AE": "United Arab Emirates", "MA": "Morocco",
}

_CC_TLDS: Dict[str, str] = {
    "fr": "FR", "de": "DE", "es": "ES", "it": "IT", "uk": "GB", "ca": "CA", "au": "AU",
    "jp": "JP", "cn": "CN", "br": "BR", "mx": "MX", "ch": "CH", "nl": "NL", "be": "BE",
    "at": "AT", "pt": "PT", "ru": "RU", "in": "IN", "th": "TH", "sg": "SG", "ae": "AE",
}

_TLD_AUTHORITY: Tuple[Tuple[str, int], ...] = (
    ("gov", 95), ("gouv.fr", 95), ("gob", 95), ("edu", 90), ("int", 90),
    ("org", 75), ("net", 60), ("com", 50),
)

EXCLUDED_DOMAINS = (
    "facebook.com", "twitter.com", "x.com", "linkedin.com", "instagram.com", "youtube.com",
    "tiktok.com", "reddit.com", "quora.com", "pinterest.com", "amazon.com", "ebay.com",
)

KNOWN_ORGANIZATIONS = ("un.org", "who.int", "iom.int", "unesco.org", "ilo.org", "unhcr.org", "oecd.org", "imf.org", "worldbank.org")
REFERENCE_SITES = ("wikipedia.org", "britannica.com")

_GOVERNMENT = re.compile(r"\.(gov|gouv|gob|gc\.ca)(\.[a-z]{2})?$|\.gov\.[a-z]{2}$|^gov\.[a-z]{2}$")
_NEWS = re.compile(r"(news|times|post|journal|guardian|bbc|reuters)")


def normalize_url(url: str) -> str:
    """Force an https scheme and drop the fragment."""

    url = url.strip().rstrip(".,;:")
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = "https://" + url
    parts = urlsplit(url)
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))


def domain_of(url: str) -> str:
    host = urlsplit(url).hostname or ""
    return host[4:] if host.startswith("www.") else host


def is_excluded(domain: str) -> bool:
    return any(domain == excluded or domain.endswith("." + excluded) for excluded in EXCLUDED_DOMAINS)


def estimate_authority(domain: str) -> int:
    labels = domain.split(".")
    second_level = labels[-2] if len(labels) > 2 and len(labels[-1]) == 2 else None
    for pattern, score in _TLD_AUTHORITY:
        if domain.endswith("." + pattern) or pattern == second_level:
            return score
    return 50


def detect_source_type(domain: str) -> SourceType:
    if _GOVERNMENT.search(domain):
        return SourceType.GOVERNMENT
    if any(domain == org or domain.endswith("." + org) for org in KNOWN_ORGANIZATIONS):
        return SourceType.ORGANIZATION
    if any(domain == site or domain.endswith("." + site) for site in REFERENCE_SITES):
        return SourceType.REFERENCE
    if _NEWS.search(domain):
        return SourceType.NEWS
    return SourceType.AUTHORITY


def detect_country(domain: str) -> Optional[str]:
    return _CC_TLDS.get(domain.rsplit(".", 1)[-1])


def site_name(domain: str) -> str:
    name = re.sub(r"\.[a-z]{2,}(\.[a-z]{2})?$", "", domain)
    return name.replace("-", " ").replace("_", " ").title()


def priority_rank(source_type: SourceType, priority: Sequence[SourceType]) -> int:
    return priority.index(source_type) if source_type in priority else len(priority)


class ExternalSourceDiscovery:
    """Query the search collaborator cache-first, with bounded retries and concurrency."""

    def __init__(
        self,
        policy: DiscoveryPolicy,
        external: ExternalPolicy,
        search: SearchClient,
        cache: CacheStore,
        *,
        clock: Clock = utcnow,
        throttle: Optional[SlidingWindowRateThrottle] = None,
        sleep: Callable[[float], "asyncio.Future[None]"] = asyncio.sleep,
    ) -> None:
        self.policy = policy
        self.external = external
        self.search = search
        self.cache = cache
        self.clock = clock
        self.throttle = throttle
        self.sleep = sleep
        self._aborted = False
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None

    def pattern_for(self, theme: str) -> str:
        return self.policy.query_patterns.get(theme, self.policy.default_pattern)

    def build_query(self, theme: str, country: Optional[str]) -> str:
        country_name = COUNTRY_NAMES.get(country, country) if country else "international"
        return self.pattern_for(theme).format(country=country_name, topic=theme, year=self.clock().year)

    def cache_key(self, theme: str, country: Optional[str], language: str) -> str:
        return f"maillage:discovery:{theme}:{country or 'intl'}:{language}:{fingerprint(self.pattern_for(theme))}"

    def abort(self) -> None:
        """Stop launching new queries; in-flight ones still complete."""

        self._aborted = True

    async def discover(self, theme: str, country: Optional[str], language: str = "en") -> List[DiscoveredSource]:
        """Return ranked sources for a theme and country, or an empty list when search is unavailable."""

        if not self.policy.enabled:
            return []

        key = self.cache_key(theme, country, language)
        cached = self.cache.get(key)
        if isinstance(cached, DiscoveryCacheEntry) and cached.expires_at > self.clock():
            logger.debug("Discovery cache hit for %s", key)
            return list(cached.sources)

        hits = await self._search_with_retry(self.build_query(theme, country))
        if hits is None:
            return []

        sources = self.classify(hits)
        if sources:
            entry = DiscoveryCacheEntry(
                key=key,
                sources=tuple(sources),
                expires_at=self.clock() + timedelta(seconds=self.policy.cache_ttl),
            )
            self.cache.set(key, entry, self.policy.cache_ttl)
        logger.info("Discovered %d sources for theme=%s country=%s", len(sources), theme, country)
        return sources

    async def discover_many(self, requests: Iterable[Tuple[str, Optional[str], str]]) -> Dict[Tuple[str, Optional[str], str], List[DiscoveredSource]]:
        """Run several discoveries under the global query cap; aborted requests are left out."""

        self._aborted = False
        requests = list(dict.fromkeys(requests))
        results: Dict[Tuple[str, Optional[str], str], List[DiscoveredSource]] = {}

        async def worker(request: Tuple[str, Optional[str], str]) -> None:
            if self._aborted:
                return
            try:
                results[request] = await self.discover(*request)
            except DiscoveryAborted:
                logger.info("Discovery aborted before querying %s", request)

        await asyncio.gather(*(worker(request) for request in requests))
        return results

    def classify(self, hits: Iterable[SearchHit]) -> List[DiscoveredSource]:
        """Normalize, filter, deduplicate and rank raw search hits."""

        seen: Set[str] = set()
        sources: List[DiscoveredSource] = []
        for hit in hits:
            try:
                url = normalize_url(hit.url)
                domain = domain_of(url)
            except ValueError as exc:
                logger.debug("Skipping malformed URL %r: %s", hit.url, exc)
                continue
            if not domain or url in seen or is_excluded(domain):
                continue
            seen.add(url)
            authority = estimate_authority(domain)
            if authority < self.external.min_authority_score:
                continue
            sources.append(
                DiscoveredSource(
                    url=url,
                    domain=domain,
                    source_type=detect_source_type(domain),
                    authority_score=authority,
                    name=hit.title.strip() or site_name(domain),
                    country=detect_country(domain),
                )
            )

        priority = self.external.source_priority
        sources.sort(key=lambda source: (priority_rank(source.source_type, priority), -source.authority_score, source.url))
        return sources[: self.policy.max_results_per_query]

    def _get_semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.policy.max_concurrent_queries)
            self._semaphore_loop = loop
        return self._semaphore

    async def _search_with_retry(self, query: str) -> Optional[List[SearchHit]]:
        attempts = self.policy.retry_attempts
        for attempt in range(attempts):
            wait = self.policy.retry_delay * (2 ** attempt)
            try:
                if self.throttle is not None and not self.throttle.acquire("search"):
                    wait = max(wait, self.throttle.retry_after("search"))
                    raise SearchUnavailable("search rate limit reached")
                async with self._get_semaphore():
                    if self._aborted:
                        raise DiscoveryAborted(query)
                    return await asyncio.wait_for(
                        self.search.search(query, self.policy.max_results_per_query),
                        timeout=self.policy.timeout,
                    )
            except (SearchUnavailable, asyncio.TimeoutError) as exc:
                logger.warning("Search attempt %d/%d failed for %r: %s", attempt + 1, attempts, query, exc)
                if attempt + 1 < attempts:
                    await self.sleep(wait)

        logger.error("Search unavailable after %d attempts for %r; continuing without external sources", attempts, query)
        return None


def select_external_links(item: ContentItem, sources: Sequence[DiscoveredSource], policy: ExternalPolicy) -> List[ExternalLink]:
    """Pick external links for an item: one per domain, capped per source type and overall."""

    def sort_key(source: DiscoveredSource) -> Tuple[int, int, str]:
        bonus = policy.country_match_bonus if item.country and source.country == item.country else 0
        return (priority_rank(source.source_type, policy.source_priority), -(source.authority_score + bonus), source.url)

    selected: List[ExternalLink] = []
    domains: Set[str] = set()
    per_type: Dict[SourceType, int] = {}
    for source in sorted(sources, key=sort_key):
        if len(selected) >= policy.max_links:
            break
        if source.domain in domains or source.authority_score < policy.min_authority_score:
            continue
        if per_type.get(source.source_type, 0) >= policy.max_per_source_type:
            continue
        domains.add(source.domain)
        per_type[source.source_type] = per_type.get(source.source_type, 0) + 1
        selected.append(
            ExternalLink(
                source_id=item.id,
                url=source.url,
                domain=source.domain,
                source_type=source.source_type,
                authority_score=source.authority_score,
                anchor_text=source.name or site_name(source.domain),
                nofollow=source.source_type in policy.nofollow_types,
            )
        )
    return selected
