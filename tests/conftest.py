"""Pytest configuration shared across test modules."""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "maillage_tool.settings")
os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_DEBUG", "true")
os.environ.setdefault("MAILLAGE_AUTO_RECOMPUTE", "false")
os.environ.setdefault("MAILLAGE_CONFIG_PATH", "")
