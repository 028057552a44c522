"""WSGI config for maillage_tool.

It exposes the WSGI callable as a module-level variable named ``application``.
The project serves only the Django admin; linking runs through management
commands and model signals.
"""

import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'maillage_tool.settings')

application = get_wsgi_application()
