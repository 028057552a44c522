"""HTTP collaborators and notifiers used by the linking engine.

Each client opens a short-lived ``httpx.AsyncClient`` per call so it can be
driven from ``asyncio.run`` inside management commands without sharing a
connection pool across event loops.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

import httpx
from django.core.mail import mail_admins

from .engine.discovery import SearchUnavailable
from .engine.ports import SearchHit
from .engine.verification import LivenessCheckFailed

logger = logging.getLogger(__name__)

PERPLEXITY_API_URL = 'https://api.perplexity.ai'
DEFAULT_USER_AGENT = 'maillage-link-checker/1.0'
MAX_REDIRECTS = 5

_URL_PATTERN = re.compile(r'https?://[^\s<>"\')\[\]]+')

SYSTEM_PROMPT = (
    'You are a research assistant. Answer with a short list of official and '
    'authoritative web pages (government sites, international organizations, '
    'reference works) relevant to the query. Give one URL per line.'
)


class PerplexitySearchClient:
    """Search collaborator backed by the Perplexity chat-completions API."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = 'sonar',
        timeout: float = 30.0,
        base_url: str = PERPLEXITY_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.base_url = base_url
        self.transport = transport

    async def search(self, query: str, limit: int) -> List[SearchHit]:
        body: Dict[str, Any] = {
            'model': self.model,
            'messages': [
                {'role': 'system', 'content': SYSTEM_PROMPT},
                {'role': 'user', 'content': query},
            ],
            'return_citations': True,
        }
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                transport=self.transport,
            ) as client:
                response = await client.post('/chat/completions', json=body)
        except httpx.TimeoutException as exc:
            raise SearchUnavailable(f'search timed out after {self.timeout}s') from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise SearchUnavailable(f'search transport error: {exc}') from exc

        if response.status_code != 200:
            raise SearchUnavailable(f'search answered HTTP {response.status_code}')

        try:
            payload = response.json()
        except ValueError as exc:
            raise SearchUnavailable('search returned invalid JSON') from exc

        hits = parse_search_payload(payload)
        logger.debug('Search %r returned %d hits', query, len(hits))
        return hits[:limit]


def parse_search_payload(payload: Dict[str, Any]) -> List[SearchHit]:
    """Turn a chat-completions answer into hits, preferring structured citations."""

    hits: List[SearchHit] = []
    seen = set()

    def add(url: str, title: str = '', snippet: str = '') -> None:
        url = url.strip().rstrip('.,;:')
        if url and url not in seen:
            seen.add(url)
            hits.append(SearchHit(url=url, title=title, snippet=snippet))

    for result in payload.get('search_results') or []:
        if isinstance(result, dict) and result.get('url'):
            add(result['url'], result.get('title') or '', result.get('snippet') or '')

    for citation in payload.get('citations') or []:
        if isinstance(citation, str):
            add(citation)
        elif isinstance(citation, dict) and citation.get('url'):
            add(citation['url'], citation.get('title') or '')

    if not hits:
        for choice in payload.get('choices') or []:
            content = (choice.get('message') or {}).get('content') or ''
            for match in _URL_PATTERN.findall(content):
                add(match)
    return hits


class HttpLivenessChecker:
    """HEAD-first liveness check that falls back to GET when HEAD is refused."""

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.transport = transport

    async def check(self, url: str, timeout: float) -> int:
        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                max_redirects=MAX_REDIRECTS,
                timeout=httpx.Timeout(timeout),
                headers={'User-Agent': self.user_agent},
                transport=self.transport,
            ) as client:
                response = await client.head(url)
                if response.status_code == 405:
                    response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise LivenessCheckFailed(f'{exc.__class__.__name__}: {exc}') from exc
        return response.status_code


class LoggingNotifier:
    """Notifier that writes alerts to the ``maillage`` logger."""

    _LEVELS = {
        'info': logging.INFO,
        'warning': logging.WARNING,
        'error': logging.ERROR,
        'critical': logging.CRITICAL,
    }

    def alert(self, severity: str, message: str) -> None:
        logger.log(self._LEVELS.get(severity, logging.WARNING), '[alert] %s', message)


class MailAdminsNotifier(LoggingNotifier):
    """Log the alert and mail it to ``settings.ADMINS``."""

    def alert(self, severity: str, message: str) -> None:
        super().alert(severity, message)
        mail_admins(f'[maillage] {severity}: broken external links', message, fail_silently=True)
