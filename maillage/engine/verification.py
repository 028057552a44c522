"""Scheduled liveness verification of stored external links."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .config import VerificationPolicy
from .ports import Clock, LivenessChecker, Notifier, utcnow
from .types import ExternalLink, SourceType, VerificationResult

logger = logging.getLogger(__name__)


class LivenessCheckFailed(Exception):
    """Transport-level failure while checking a URL."""


@dataclass
class VerificationReport:
    results: List[VerificationResult] = field(default_factory=list)
    alerted_sources: List[str] = field(default_factory=list)
    broken_by_source: Dict[str, int] = field(default_factory=dict)
    aborted: bool = False

    @property
    def checked(self) -> int:
        return len(self.results)

    @property
    def valid(self) -> int:
        return sum(1 for result in self.results if result.is_valid)

    @property
    def invalid(self) -> int:
        return self.checked - self.valid


class LinkVerifier:
    """Re-check due external links with bounded concurrency and per-source alerting."""

    def __init__(
        self,
        policy: VerificationPolicy,
        checker: LivenessChecker,
        notifier: Notifier,
        *,
        clock: Clock = utcnow,
        on_result: Optional[Callable[[ExternalLink, VerificationResult], None]] = None,
    ) -> None:
        self.policy = policy
        self.checker = checker
        self.notifier = notifier
        self.clock = clock
        self.on_result = on_result
        self._aborted = False

    def due(self, links: Iterable[ExternalLink], now: Optional[datetime] = None) -> List[ExternalLink]:
        """Return links never verified or last verified before the re-check interval."""

        now = now or self.clock()
        cutoff = now - timedelta(days=self.policy.recheck_interval_days)
        return [link for link in links if link.last_verified_at is None or link.last_verified_at < cutoff]

    def abort(self) -> None:
        """Stop starting new checks; completed results are kept."""

        self._aborted = True

    async def run(
        self,
        links: Sequence[ExternalLink],
        population: Optional[Sequence[ExternalLink]] = None,
    ) -> VerificationReport:
        """Check ``links`` and alert per source.

        The broken ratio of a source is taken over ``population`` (all of its
        known links) when given, otherwise over the checked links.
        """

        self._aborted = False
        report = VerificationReport()
        semaphore = asyncio.Semaphore(self.policy.concurrent_checks)

        async def worker(link: ExternalLink) -> None:
            async with semaphore:
                if self._aborted:
                    return
                result = await self.check(link)
            link.last_verified_at = result.checked_at
            link.is_valid = result.is_valid
            report.results.append(result)
            if not result.is_valid:
                report.broken_by_source[link.source_id] = report.broken_by_source.get(link.source_id, 0) + 1
            if self.on_result is not None:
                self.on_result(link, result)

        await asyncio.gather(*(worker(link) for link in links))
        report.aborted = self._aborted
        checked_sources = {result.source_id for result in report.results}
        report.alerted_sources = self._raise_alerts(
            [link for link in (population if population is not None else links) if link.source_id in checked_sources]
        )
        logger.info(
            "Verified %d external links: %d valid, %d invalid%s",
            report.checked,
            report.valid,
            report.invalid,
            " (aborted)" if report.aborted else "",
        )
        return report

    async def check(self, link: ExternalLink) -> VerificationResult:
        error = None
        try:
            status = await asyncio.wait_for(
                self.checker.check(link.url, self.policy.timeout),
                timeout=self.policy.timeout,
            )
        except asyncio.TimeoutError:
            status, error = 0, "timeout"
            logger.warning("Liveness check timed out for %s", link.url)
        except LivenessCheckFailed as exc:
            status, error = 0, str(exc) or exc.__class__.__name__
            logger.warning("Liveness check failed for %s: %s", link.url, error)
        except Exception as exc:
            status, error = 0, exc.__class__.__name__
            logger.exception("Unexpected error checking %s", link.url)

        return VerificationResult(
            link_id=link.id,
            url=link.url,
            source_id=link.source_id,
            status_code=status,
            checked_at=self.clock(),
            is_valid=status in self.policy.valid_status_codes,
            error=error,
        )

    def _raise_alerts(self, links: Sequence[ExternalLink]) -> List[str]:
        by_source: Dict[str, List[ExternalLink]] = defaultdict(list)
        for link in links:
            by_source[link.source_id].append(link)

        alerted = []
        for source_id in sorted(by_source):
            source_links = by_source[source_id]
            broken = sum(1 for link in source_links if not link.is_valid)
            ratio = broken / len(source_links) * 100.0
            if ratio > self.policy.broken_alert_threshold:
                message = f"{broken}/{len(source_links)} external links broken on item {source_id} ({ratio:.0f}%)"
                logger.warning("Broken link alert: %s", message)
                self.notifier.alert("warning", message)
                alerted.append(source_id)
        return alerted


def verification_stats(
    links: Iterable[ExternalLink],
    now: datetime,
    stale_after: timedelta = timedelta(days=30),
    broken_sample: int = 20,
) -> Dict[str, Any]:
    """Summarize link health overall, by source type and by domain."""

    links = list(links)
    total = len(links)
    broken = [link for link in links if not link.is_valid]
    verified = [link for link in links if link.last_verified_at is not None]

    def group(key: Callable[[ExternalLink], str]) -> Dict[str, Dict[str, Any]]:
        totals: Dict[str, int] = defaultdict(int)
        broken_counts: Dict[str, int] = defaultdict(int)
        for link in links:
            totals[key(link)] += 1
            if not link.is_valid:
                broken_counts[key(link)] += 1
        return {
            name: {
                "total": count,
                "broken": broken_counts[name],
                "broken_percentage": round(broken_counts[name] / count * 100, 2),
            }
            for name, count in sorted(totals.items())
        }

    return {
        "summary": {
            "total_links": total,
            "verified": len(verified),
            "never_verified": total - len(verified),
            "stale_verification": sum(1 for link in verified if link.last_verified_at < now - stale_after),
            "broken": len(broken),
            "broken_percentage": round(len(broken) / total * 100, 2) if total else 0.0,
        },
        "by_source_type": group(lambda link: SourceType(link.source_type).value),
        "by_domain": group(lambda link: link.domain),
        "broken_links": [{"url": link.url, "source_id": link.source_id} for link in broken[:broken_sample]],
    }
