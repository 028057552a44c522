from django.apps import AppConfig


class MaillageConfig(AppConfig):
    """Configuration for the maillage Django app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'maillage'

    def ready(self) -> None:
        from . import signals  # noqa: F401
