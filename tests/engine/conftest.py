"""Shared fixtures for linking engine tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List

import pytest

from maillage.engine.config import default_data, load_config, resolve_platform
from maillage.engine.types import ContentItem


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class FakeTimer:
    """Stand-in for threading.Timer that fires only when the test says so."""

    created: List["FakeTimer"] = []

    def __init__(self, interval: float, function) -> None:
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function()


@pytest.fixture()
def engine_config():
    """Default engine configuration."""

    return load_config(None)


@pytest.fixture()
def config_data():
    """Mutable copy of the raw default configuration."""

    return default_data()


@pytest.fixture()
def build_config():
    """Build a validated config from raw data, optionally for a platform."""

    def build(data, platform: str | None = None):
        return resolve_platform(data, platform)

    return build


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def fake_timers():
    FakeTimer.created = []
    yield FakeTimer
    FakeTimer.created = []


@pytest.fixture()
def make_item():
    """Factory for content item snapshots."""

    def make(
        item_id: str,
        title: str = "Untitled",
        paragraphs: Iterable[str] | None = None,
        *,
        language: str = "en",
        country: str | None = "DE",
        theme: str | None = "visa",
        is_pillar: bool = False,
    ) -> ContentItem:
        body = tuple(paragraphs) if paragraphs is not None else tuple(f"Paragraph {index} about {title}." for index in range(8))
        return ContentItem(
            id=item_id,
            title=title,
            paragraphs=body,
            language=language,
            country=country,
            theme=theme,
            is_pillar=is_pillar,
        )

    return make
