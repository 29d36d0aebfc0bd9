"""Adversarial tests — registry faults degrade to "left untagged".

These tests verify that:
1. An unreachable registry abandons the pass without raising
2. A location that vanishes mid-pass is skipped
3. A host adapter handing back an invalid location does not abort the batch
4. A tag provider that cannot supply a tag abandons the pass without raising
5. Concurrent event delivery against the JSON registry stays consistent
"""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from repotagger.core.instance_id import StaticTagProvider
from repotagger.core.registry import (
    InMemoryRegistry,
    JsonFileRegistry,
    RegistrySubset,
    RegistryUnavailableError,
)
from repotagger.core.tagger import RepositoryIdentityTagger
from repotagger.models.locations import InvalidInstanceTagError, RepositoryLocation

TAG = "AB-0123456789ABCDEF"


class UnreachableRegistry(InMemoryRegistry):
    def _check_available(self) -> None:
        raise RegistryUnavailableError("host repository manager not running")


class VanishingRegistry(InMemoryRegistry):
    """Forgets every location as soon as it has been listed."""

    def list_locations(self, subset=RegistrySubset.ALL):
        listed = super().list_locations(subset)
        for location in listed:
            self.remove(location)
        return listed


class InjectingRegistry(InMemoryRegistry):
    """Returns one unvalidated location ahead of the real ones."""

    def __init__(self, bogus: RepositoryLocation, entries: dict[str, bool]) -> None:
        super().__init__(entries)
        self._bogus = bogus

    def list_locations(self, subset=RegistrySubset.ALL):
        listed = super().list_locations(subset)
        if subset is RegistrySubset.NON_LOCAL:
            return [self._bogus, *listed]
        return listed

    def is_enabled(self, location):
        if location is self._bogus:
            return True
        return super().is_enabled(location)


class BrokenTagProvider:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    def current_tag(self) -> str:
        self.calls += 1
        raise self.error


def _tagger(registry, tagger_settings) -> RepositoryIdentityTagger:
    return RepositoryIdentityTagger(registry, StaticTagProvider(TAG), settings=tagger_settings)


class TestUnavailableRegistry:
    def test_tag_all_reports_unavailable(self, tagger_settings):
        report = _tagger(UnreachableRegistry(), tagger_settings).tag_all()
        assert report.registry_available is False
        assert report.tagged == []

    def test_added_event_is_swallowed(self, tagger_settings, make_event):
        tagger = _tagger(UnreachableRegistry(), tagger_settings)
        assert tagger.on_repository_added(make_event("http://update.example.com/r")) is None

    def test_removed_event_is_swallowed(self, tagger_settings, make_event):
        from repotagger.models.events import EventKind, RepositoryType

        tagger = _tagger(UnreachableRegistry(), tagger_settings)
        event = make_event(
            "http://update.example.com/meta",
            kind=EventKind.REMOVED,
            repository_type=RepositoryType.METADATA,
        )
        assert tagger.on_repository_removed(event) == []

    def test_corrupt_json_registry(self, tmp_path: Path, tagger_settings):
        path = tmp_path / "registry.json"
        path.write_text("not json", encoding="utf-8")
        report = _tagger(JsonFileRegistry(path), tagger_settings).tag_all()
        assert report.registry_available is False


class TestPartialUpdates:
    def test_vanished_location_is_skipped(self, tagger_settings):
        registry = VanishingRegistry({"http://update.example.com/r": True})
        report = _tagger(registry, tagger_settings).tag_all()
        assert report.tagged == []
        assert report.skipped == 1
        assert len(registry) == 0

    def test_invalid_location_from_adapter_is_isolated(self, tagger_settings):
        bogus = RepositoryLocation.model_construct(
            scheme="http",
            user_info=None,
            host="update.example.com",
            port=None,
            path="/has space",
            query=None,
            fragment=None,
        )
        registry = InjectingRegistry(bogus, {"http://update.example.com/good": True})

        report = _tagger(registry, tagger_settings).tag_all()

        assert [f.location for f in report.failed] == ["http://update.example.com/has space"]
        assert [t.tagged for t in report.tagged] == [
            f"http://update.example.com/good/knid={TAG}/"
        ]


class TestMissingInstanceTag:
    @pytest.mark.parametrize(
        "error",
        [
            OSError("instance id file unreadable"),
            InvalidInstanceTagError("Invalid instance tag: 'zz'"),
        ],
    )
    def test_tag_all_reports_missing_tag(self, tagger_settings, error):
        registry = InMemoryRegistry({
            "http://update.example.com/a": True,
            "http://www.example.org/b": False,
        })
        tagger = RepositoryIdentityTagger(
            registry, BrokenTagProvider(error), settings=tagger_settings
        )

        report = tagger.tag_all()

        assert report.instance_tag_available is False
        assert report.registry_available is True
        assert report.tagged == []
        assert sorted(str(l) for l in registry.list_locations(RegistrySubset.ALL)) == [
            "http://update.example.com/a",
            "http://www.example.org/b",
        ]

    def test_added_event_is_swallowed(self, tagger_settings, make_event):
        registry = InMemoryRegistry({"http://update.example.com/r": True})
        tagger = RepositoryIdentityTagger(
            registry, BrokenTagProvider(OSError("gone")), settings=tagger_settings
        )
        assert tagger.on_repository_added(make_event("http://update.example.com/r")) is None
        assert "http://update.example.com/r" in [
            str(l) for l in registry.list_locations(RegistrySubset.ALL)
        ]

    def test_tag_not_read_when_nothing_is_taggable(self, tagger_settings):
        provider = BrokenTagProvider(OSError("gone"))
        registry = InMemoryRegistry({"http://other.example.net/repo": True})
        report = RepositoryIdentityTagger(registry, provider, settings=tagger_settings).tag_all()
        assert report.instance_tag_available is True
        assert provider.calls == 0


class TestConcurrentEvents:
    def test_parallel_added_events(self, tmp_path: Path, tagger_settings, make_event):
        registry = JsonFileRegistry(tmp_path / "registry.json")
        uris = [f"http://update.example.com/repo{i}" for i in range(20)]
        for uri in uris:
            registry.add(RepositoryLocation.parse(uri))
        tagger = _tagger(registry, tagger_settings)

        threads = [
            threading.Thread(target=tagger.on_repository_added, args=(make_event(uri),))
            for uri in uris
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = sorted(str(l) for l in JsonFileRegistry(registry.path).list_locations(RegistrySubset.ALL))
        assert stored == sorted(f"{uri}/knid={TAG}/" for uri in uris)
