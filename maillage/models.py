"""Database models for the maillage app.

Content items live in the authoring system; these tables only hold what the
linking engine owns: internal links between items, external links to
authoritative sources, committed authority scores and verification history.
"""

from __future__ import annotations

from django.db import models

from .engine.types import AnchorCategory, SourceType


class InternalLink(models.Model):
    """An accepted internal link placed in one paragraph of a source item."""

    source_id = models.CharField(max_length=64, db_index=True)
    target_id = models.CharField(max_length=64, db_index=True)
    anchor_text = models.CharField(max_length=300)
    anchor_category = models.CharField(
        max_length=20,
        choices=[(category.value, category.value) for category in AnchorCategory],
    )
    paragraph_index = models.PositiveSmallIntegerField()
    relevance_score = models.FloatField()
    context = models.CharField(max_length=32, default='related')
    created_at = models.DateTimeField()

    class Meta:
        unique_together = ('source_id', 'target_id', 'paragraph_index')
        ordering = ['source_id', 'paragraph_index']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return f"{self.source_id} -> {self.target_id} (#{self.paragraph_index})"


class ExternalLink(models.Model):
    """A link from a content item to an external authoritative source."""

    source_id = models.CharField(max_length=64, db_index=True)
    url = models.URLField(max_length=500)
    domain = models.CharField(max_length=255, db_index=True)
    source_type = models.CharField(
        max_length=20,
        choices=[(source_type.value, source_type.value) for source_type in SourceType],
    )
    authority_score = models.PositiveSmallIntegerField(default=0)
    anchor_text = models.CharField(max_length=300)
    sponsored = models.BooleanField(default=False)
    nofollow = models.BooleanField(default=False)
    noopener = models.BooleanField(default=True)
    target_blank = models.BooleanField(default=True)
    last_verified_at = models.DateTimeField(null=True, blank=True)
    is_valid = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('source_id', 'url')

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return self.url


class AuthorityScore(models.Model):
    """Last committed authority of one content item."""

    item_id = models.CharField(max_length=64, unique=True)
    score = models.FloatField()
    normalized_score = models.FloatField(default=0.0)
    iterations = models.PositiveIntegerField()
    converged = models.BooleanField(default=True)
    computed_at = models.DateTimeField()

    class Meta:
        ordering = ['-score']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return f"{self.item_id}: {self.score:.5f}"


class VerificationResult(models.Model):
    """One liveness check of an external link."""

    external_link = models.ForeignKey(ExternalLink, on_delete=models.CASCADE, related_name='verifications')
    status_code = models.PositiveSmallIntegerField()
    is_valid = models.BooleanField()
    error = models.CharField(max_length=255, blank=True)
    checked_at = models.DateTimeField()

    class Meta:
        ordering = ['-checked_at']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return f"{self.external_link_id} · {self.status_code}"
