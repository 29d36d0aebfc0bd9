"""Shared test fixtures for repotagger."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from repotagger.config import TaggerSettings
from repotagger.core.event_bus import RepositoryEventBus
from repotagger.core.instance_id import StaticTagProvider
from repotagger.core.registry import InMemoryRegistry, JsonFileRegistry
from repotagger.core.tagger import RepositoryIdentityTagger
from repotagger.models.events import EventKind, RepositoryEvent, RepositoryType
from repotagger.models.locations import RepositoryLocation

TAG = "AB-0123456789ABCDEF"


@pytest.fixture
def tag() -> str:
    """Provide a deterministic instance tag."""
    return TAG


@pytest.fixture
def tagger_settings() -> TaggerSettings:
    """Provide settings independent of the caller's environment."""
    return TaggerSettings(
        trusted_hosts=["www.example.org", "tech.example.org", "update.example.com"],
        tagged_schemes=["http", "https"],
        tag_key="knid",
    )


@pytest.fixture
def registry() -> InMemoryRegistry:
    """Provide an empty in-memory registry."""
    return InMemoryRegistry()


@pytest.fixture
def json_registry(tmp_path: Path) -> JsonFileRegistry:
    """Provide a fresh JSON-file registry in a temp directory."""
    return JsonFileRegistry(tmp_path / "registry.json")


@pytest.fixture
def bus() -> RepositoryEventBus:
    return RepositoryEventBus()


@pytest.fixture
def tagger(
    registry: InMemoryRegistry, tagger_settings: TaggerSettings, tag: str
) -> RepositoryIdentityTagger:
    """Provide a tagger wired to the in-memory registry, no event source."""
    return RepositoryIdentityTagger(
        registry, StaticTagProvider(tag), settings=tagger_settings
    )


@pytest.fixture
def loc() -> Callable[[str], RepositoryLocation]:
    """Shorthand for RepositoryLocation.parse."""
    return RepositoryLocation.parse


# ---------------------------------------------------------------------------
# Event factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event() -> Callable[..., RepositoryEvent]:
    """Factory fixture: build a RepositoryEvent from a URI string."""

    def _factory(
        uri: str,
        kind: EventKind = EventKind.ADDED,
        repository_type: RepositoryType = RepositoryType.ARTIFACT,
    ) -> RepositoryEvent:
        return RepositoryEvent(kind=kind, repository_type=repository_type, location=uri)

    return _factory
