from __future__ import annotations

from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from . import services
from .models import InternalLink


@receiver(post_save, sender=InternalLink)
@receiver(post_delete, sender=InternalLink)
def internal_link_changed(sender, instance: InternalLink, **kwargs) -> None:
    """Mark the graph dirty once the surrounding transaction commits."""

    if not getattr(settings, 'MAILLAGE_AUTO_RECOMPUTE', True):
        return
    source_id = instance.source_id
    transaction.on_commit(lambda: services.refresh_source(source_id))
