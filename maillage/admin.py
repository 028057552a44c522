from django.contrib import admin

from .models import AuthorityScore, ExternalLink, InternalLink, VerificationResult


@admin.register(InternalLink)
class InternalLinkAdmin(admin.ModelAdmin):
    list_display = ('source_id', 'target_id', 'anchor_text', 'anchor_category', 'paragraph_index', 'relevance_score')
    list_filter = ('anchor_category', 'context')
    search_fields = ('source_id', 'target_id', 'anchor_text')


@admin.register(ExternalLink)
class ExternalLinkAdmin(admin.ModelAdmin):
    list_display = ('url', 'source_id', 'source_type', 'authority_score', 'is_valid', 'last_verified_at')
    list_filter = ('source_type', 'is_valid', 'nofollow')
    search_fields = ('url', 'domain', 'source_id')


@admin.register(AuthorityScore)
class AuthorityScoreAdmin(admin.ModelAdmin):
    list_display = ('item_id', 'score', 'normalized_score', 'iterations', 'converged', 'computed_at')
    list_filter = ('converged',)
    search_fields = ('item_id',)


@admin.register(VerificationResult)
class VerificationResultAdmin(admin.ModelAdmin):
    list_display = ('external_link', 'status_code', 'is_valid', 'checked_at')
    list_filter = ('is_valid', 'status_code')
