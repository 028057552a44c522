"""Configuration helpers for the linking engine."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml

from .types import AnchorCategory, SourceType


class ConfigError(ValueError):
    """Raised when the linking policy is inconsistent."""


DEFAULTS: Dict[str, Any] = {
    "keywords": {
        "min_word_length": 3,
        "max_keywords": 50,
        "title_weight": 3.0,
        "content_weight": 1.0,
        "cache_ttl": 86400,
    },
    "internal": {
        "min_links": 5,
        "max_links": 12,
        "candidate_pool_size": 36,
        "max_inbound_links": 50,
        "min_relevance_score": 40.0,
        "same_country_boost": 10.0,
        "same_theme_boost": 15.0,
        "pillar_bonus": 20.0,
    },
    "anchors": {
        "distribution": {
            "exact_match": 30,
            "long_tail": 25,
            "generic": 20,
            "cta": 15,
            "question": 10,
        },
    },
    "placement": {
        "max_per_paragraph": 1,
        "min_paragraph_gap": 2,
        "excluded_zones": ["first", "last"],
    },
    "authority": {
        "damping_factor": 0.85,
        "convergence_threshold": 0.0001,
        "max_iterations": 100,
        "debounce_seconds": 30.0,
    },
    "discovery": {
        "enabled": True,
        "cache_ttl": 604800,
        "timeout": 30.0,
        "retry_attempts": 3,
        "retry_delay": 2.0,
        "max_results_per_query": 10,
        "max_concurrent_queries": 2,
        "rate_limit": 20,
        "rate_window": 60,
        "default_pattern": "{country} official {topic} information {year}",
        "query_patterns": {
            "visa": "{country} official visa requirements {year}",
            "immigration": "{country} official immigration procedures {year}",
            "health": "{country} healthcare system for expats official {year}",
            "tax": "{country} tax rules for foreign residents official {year}",
            "work": "{country} work permit official requirements {year}",
        },
    },
    "external": {
        "max_links": 5,
        "max_per_source_type": 2,
        "min_authority_score": 60,
        "source_priority": ["government", "organization", "reference", "news", "authority"],
        "nofollow_types": ["news", "authority"],
        "country_match_bonus": 20,
    },
    "verification": {
        "timeout": 10.0,
        "valid_status_codes": [200, 301, 302, 307, 308],
        "concurrent_checks": 10,
        "recheck_interval_days": 30,
        "broken_alert_threshold": 10.0,
    },
    "platforms": {
        "sos-expat": {
            "external": {"min_authority_score": 80},
        },
    },
}


@dataclass(frozen=True)
class KeywordPolicy:
    min_word_length: int
    max_keywords: int
    title_weight: float
    content_weight: float
    cache_ttl: int


@dataclass(frozen=True)
class InternalPolicy:
    min_links: int
    max_links: int
    candidate_pool_size: int
    max_inbound_links: int
    min_relevance_score: float
    same_country_boost: float
    same_theme_boost: float
    pillar_bonus: float


@dataclass(frozen=True)
class AnchorPolicy:
    distribution: Tuple[Tuple[AnchorCategory, int], ...]


@dataclass(frozen=True)
class PlacementPolicy:
    max_per_paragraph: int
    min_paragraph_gap: int
    exclude_first: bool
    exclude_last: bool


@dataclass(frozen=True)
class AuthorityPolicy:
    damping_factor: float
    convergence_threshold: float
    max_iterations: int
    debounce_seconds: float


@dataclass(frozen=True)
class DiscoveryPolicy:
    enabled: bool
    cache_ttl: int
    timeout: float
    retry_attempts: int
    retry_delay: float
    max_results_per_query: int
    max_concurrent_queries: int
    rate_limit: int
    rate_window: int
    default_pattern: str
    query_patterns: Dict[str, str]


@dataclass(frozen=True)
class ExternalPolicy:
    max_links: int
    max_per_source_type: int
    min_authority_score: int
    source_priority: Tuple[SourceType, ...]
    nofollow_types: Tuple[SourceType, ...]
    country_match_bonus: int


@dataclass(frozen=True)
class VerificationPolicy:
    timeout: float
    valid_status_codes: Tuple[int, ...]
    concurrent_checks: int
    recheck_interval_days: int
    broken_alert_threshold: float


@dataclass(frozen=True)
class EngineConfig:
    """Validated linking policy, built once and passed to each component."""

    keywords: KeywordPolicy
    internal: InternalPolicy
    anchors: AnchorPolicy
    placement: PlacementPolicy
    authority: AuthorityPolicy
    discovery: DiscoveryPolicy
    external: ExternalPolicy
    verification: VerificationPolicy
    platform: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], platform: str | None = None) -> "EngineConfig":
        keywords = data["keywords"]
        internal = data["internal"]
        placement = data["placement"]
        authority = data["authority"]
        discovery = data["discovery"]
        external = data["external"]
        verification = data["verification"]
        zones = {str(zone).lower() for zone in placement.get("excluded_zones", [])}

        config = cls(
            keywords=KeywordPolicy(
                min_word_length=int(keywords["min_word_length"]),
                max_keywords=int(keywords["max_keywords"]),
                title_weight=float(keywords["title_weight"]),
                content_weight=float(keywords["content_weight"]),
                cache_ttl=int(keywords["cache_ttl"]),
            ),
            internal=InternalPolicy(
                min_links=int(internal["min_links"]),
                max_links=int(internal["max_links"]),
                candidate_pool_size=int(internal["candidate_pool_size"]),
                max_inbound_links=int(internal["max_inbound_links"]),
                min_relevance_score=float(internal["min_relevance_score"]),
                same_country_boost=float(internal["same_country_boost"]),
                same_theme_boost=float(internal["same_theme_boost"]),
                pillar_bonus=float(internal["pillar_bonus"]),
            ),
            anchors=AnchorPolicy(distribution=_parse_distribution(data["anchors"]["distribution"])),
            placement=PlacementPolicy(
                max_per_paragraph=int(placement["max_per_paragraph"]),
                min_paragraph_gap=int(placement["min_paragraph_gap"]),
                exclude_first="first" in zones,
                exclude_last="last" in zones,
            ),
            authority=AuthorityPolicy(
                damping_factor=float(authority["damping_factor"]),
                convergence_threshold=float(authority["convergence_threshold"]),
                max_iterations=int(authority["max_iterations"]),
                debounce_seconds=float(authority["debounce_seconds"]),
            ),
            discovery=DiscoveryPolicy(
                enabled=bool(discovery["enabled"]),
                cache_ttl=int(discovery["cache_ttl"]),
                timeout=float(discovery["timeout"]),
                retry_attempts=int(discovery["retry_attempts"]),
                retry_delay=float(discovery["retry_delay"]),
                max_results_per_query=int(discovery["max_results_per_query"]),
                max_concurrent_queries=int(discovery["max_concurrent_queries"]),
                rate_limit=int(discovery["rate_limit"]),
                rate_window=int(discovery["rate_window"]),
                default_pattern=str(discovery["default_pattern"]),
                query_patterns=dict(discovery.get("query_patterns") or {}),
            ),
            external=ExternalPolicy(
                max_links=int(external["max_links"]),
                max_per_source_type=int(external["max_per_source_type"]),
                min_authority_score=int(external["min_authority_score"]),
                source_priority=_parse_source_types(external["source_priority"], "source_priority"),
                nofollow_types=_parse_source_types(external.get("nofollow_types", []), "nofollow_types"),
                country_match_bonus=int(external["country_match_bonus"]),
            ),
            verification=VerificationPolicy(
                timeout=float(verification["timeout"]),
                valid_status_codes=tuple(int(code) for code in verification["valid_status_codes"]),
                concurrent_checks=int(verification["concurrent_checks"]),
                recheck_interval_days=int(verification["recheck_interval_days"]),
                broken_alert_threshold=float(verification["broken_alert_threshold"]),
            ),
            platform=platform,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigError when the policy cannot be honoured."""

        total = sum(percent for _, percent in self.anchors.distribution)
        if total != 100:
            raise ConfigError(f"anchor distribution must sum to 100, got {total}")
        if any(percent < 0 for _, percent in self.anchors.distribution):
            raise ConfigError("anchor percentages must be non-negative")
        if not 0.0 < self.authority.damping_factor < 1.0:
            raise ConfigError("damping_factor must be between 0 and 1")
        if self.authority.max_iterations < 1:
            raise ConfigError("max_iterations must be at least 1")
        if self.authority.convergence_threshold <= 0:
            raise ConfigError("convergence_threshold must be positive")
        if self.internal.min_links < 0 or self.internal.min_links > self.internal.max_links:
            raise ConfigError("internal min_links must be between 0 and max_links")
        if self.internal.min_relevance_score < 0:
            raise ConfigError("min_relevance_score must be non-negative")
        if self.keywords.min_word_length < 1 or self.keywords.max_keywords < 1:
            raise ConfigError("keyword limits must be positive")
        if self.placement.max_per_paragraph < 1:
            raise ConfigError("max_per_paragraph must be at least 1")
        if self.placement.min_paragraph_gap < 0:
            raise ConfigError("min_paragraph_gap must be non-negative")
        if self.verification.concurrent_checks < 1:
            raise ConfigError("concurrent_checks must be at least 1")
        if self.discovery.max_concurrent_queries < 1:
            raise ConfigError("max_concurrent_queries must be at least 1")
        if self.discovery.retry_attempts < 1:
            raise ConfigError("retry_attempts must be at least 1")


def _parse_distribution(raw: Mapping[str, Any]) -> Tuple[Tuple[AnchorCategory, int], ...]:
    parsed = []
    for name, percent in raw.items():
        try:
            category = AnchorCategory(name)
        except ValueError as exc:
            raise ConfigError(f"unknown anchor category: {name}") from exc
        parsed.append((category, int(percent)))
    return tuple(parsed)


def _parse_source_types(raw: Any, field_name: str) -> Tuple[SourceType, ...]:
    parsed = []
    for name in raw:
        try:
            parsed.append(SourceType(name))
        except ValueError as exc:
            raise ConfigError(f"unknown source type in {field_name}: {name}") from exc
    return tuple(parsed)


def default_data() -> Dict[str, Any]:
    """Return a deep copy of the default configuration dictionary."""

    return copy.deepcopy(DEFAULTS)


def load_raw(path: str | Path | None = None) -> Dict[str, Any]:
    """Load configuration from YAML, merging with defaults."""

    data = default_data()
    if path and Path(path).is_file():
        with Path(path).open("r", encoding="utf-8") as stream:
            user = yaml.safe_load(stream) or {}
        merge_into(data, user)
    return data


def load_config(path: str | Path | None = None, platform: str | None = None) -> EngineConfig:
    """Load, merge and validate the configuration, resolving platform overrides."""

    return resolve_platform(load_raw(path), platform)


def resolve_platform(raw: Mapping[str, Any], platform: str | None = None) -> EngineConfig:
    """Overlay the platform block on the base configuration and build the policy."""

    data = copy.deepcopy(dict(raw))
    overrides = data.pop("platforms", {}) or {}
    if platform and platform in overrides:
        merge_into(data, overrides[platform])
    return EngineConfig.from_dict(data, platform=platform)


def merge_into(base: Dict[str, Any], override: Mapping[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value
