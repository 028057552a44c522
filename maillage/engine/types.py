"""Typed data structures used by the linking and authority engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class AnchorCategory(str, Enum):
    """Rhetorical style of an internal link's clickable text."""

    EXACT_MATCH = "exact_match"
    LONG_TAIL = "long_tail"
    GENERIC = "generic"
    CTA = "cta"
    QUESTION = "question"


class SourceType(str, Enum):
    """Classification of an external authoritative source."""

    GOVERNMENT = "government"
    ORGANIZATION = "organization"
    REFERENCE = "reference"
    NEWS = "news"
    AUTHORITY = "authority"


class PropagationState(str, Enum):
    """Lifecycle of an authority propagation pass."""

    IDLE = "idle"
    COMPUTING = "computing"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"


@dataclass(frozen=True)
class ContentItem:
    """Immutable snapshot of a content item owned by the authoring system."""

    id: str
    title: str
    paragraphs: Tuple[str, ...]
    language: str
    country: Optional[str]
    theme: Optional[str]
    is_pillar: bool = False
    updated_at: Optional[datetime] = None

    @property
    def body(self) -> str:
        return "\n\n".join(self.paragraphs)


@dataclass(frozen=True)
class KeywordVector:
    """Sparse keyword weights computed for one content item."""

    item_id: str
    weights: Dict[str, float]
    computed_at: datetime

    def top_terms(self, limit: int = 5) -> List[str]:
        ranked = sorted(self.weights.items(), key=lambda item: (-item[1], item[0]))
        return [term for term, _ in ranked[:limit]]


@dataclass(frozen=True)
class ScoredCandidate:
    """Candidate target with its relevance score and tie-break inputs."""

    item: ContentItem
    score: float
    similarity: float
    authority: float
    keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AnchorAssignment:
    """Candidate paired with its anchor category and generated text."""

    candidate: ScoredCandidate
    category: AnchorCategory
    text: str


@dataclass(frozen=True)
class InternalLink:
    """Accepted internal link between two content items."""

    source_id: str
    target_id: str
    anchor_text: str
    anchor_category: AnchorCategory
    paragraph_index: int
    relevance_score: float
    created_at: datetime
    context: str = "related"


@dataclass(frozen=True)
class DiscoveredSource:
    """External URL returned by discovery with its classification."""

    url: str
    domain: str
    source_type: SourceType
    authority_score: int
    name: str = ""
    country: Optional[str] = None


@dataclass(frozen=True)
class DiscoveryCacheEntry:
    """Cached discovery results for one theme/country/pattern key."""

    key: str
    sources: Tuple[DiscoveredSource, ...]
    expires_at: datetime


@dataclass
class ExternalLink:
    """Link from a content item to an external authoritative source."""

    source_id: str
    url: str
    domain: str
    source_type: SourceType
    authority_score: int
    anchor_text: str
    sponsored: bool = False
    nofollow: bool = False
    noopener: bool = True
    target_blank: bool = True
    last_verified_at: Optional[datetime] = None
    is_valid: bool = True
    id: Optional[int] = None

    @property
    def rel(self) -> str:
        values = []
        if self.noopener:
            values.append("noopener")
        if self.nofollow:
            values.append("nofollow")
        if self.sponsored:
            values.append("sponsored")
        return " ".join(values)


@dataclass(frozen=True)
class AuthorityScore:
    """Authority of one content item as of the last propagation pass."""

    item_id: str
    score: float
    computed_at: datetime
    iterations: int
    converged: bool


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one liveness check for an external link."""

    link_id: Optional[int]
    url: str
    source_id: str
    status_code: int
    checked_at: datetime
    is_valid: bool
    error: Optional[str] = None


@dataclass
class LinkingReport:
    """Summary of a single internal linking pass for one source item."""

    source_id: str
    links: List[InternalLink] = field(default_factory=list)
    candidates_found: int = 0
    below_threshold: int = 0
    unplaced: int = 0
    skipped: bool = False

    @property
    def created(self) -> int:
        return len(self.links)
