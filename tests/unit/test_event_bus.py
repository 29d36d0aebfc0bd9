"""Tests for RepositoryEventBus — subscription, delivery, validation."""

from __future__ import annotations

import json

import pytest

from repotagger.core.event_bus import (
    EventSource,
    EventValidationError,
    RepositoryEventBus,
)
from repotagger.models.events import EventKind, RepositoryEvent, RepositoryType


class TestRepositoryEventBus:
    def test_satisfies_protocol(self, bus: RepositoryEventBus):
        assert isinstance(bus, EventSource)

    def test_publish_dispatches_to_handlers(self, bus: RepositoryEventBus, make_event):
        received: list[RepositoryEvent] = []
        bus.subscribe(received.append)
        event = make_event("http://update.example.com/repo")
        assert bus.publish(event) == 1
        assert received == [event]

    def test_duplicate_subscription_ignored(self, bus: RepositoryEventBus, make_event):
        received: list[RepositoryEvent] = []
        bus.subscribe(received.append)
        bus.subscribe(received.append)
        bus.publish(make_event("http://update.example.com/repo"))
        assert len(received) == 1

    def test_failing_handler_does_not_block_others(self, bus: RepositoryEventBus, make_event):
        received: list[RepositoryEvent] = []

        def broken(event: RepositoryEvent) -> None:
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        assert bus.publish(make_event("http://update.example.com/repo")) == 1
        assert len(received) == 1

    def test_receive_valid_json(self, bus: RepositoryEventBus):
        raw = json.dumps({
            "kind": "removed",
            "repository_type": "metadata",
            "location": "http://update.example.com/meta",
        })
        event = bus.receive(raw)
        assert event.kind is EventKind.REMOVED
        assert event.repository_type is RepositoryType.METADATA
        assert str(event.location) == "http://update.example.com/meta"

    def test_receive_invalid_json(self, bus: RepositoryEventBus):
        with pytest.raises(EventValidationError, match="Invalid JSON"):
            bus.receive(b"not json")

    def test_receive_non_object(self, bus: RepositoryEventBus):
        with pytest.raises(EventValidationError, match="JSON object"):
            bus.receive("[1, 2]")

    def test_receive_unknown_kind(self, bus: RepositoryEventBus):
        raw = json.dumps({
            "kind": "exploded",
            "repository_type": "artifact",
            "location": "http://update.example.com/repo",
        })
        with pytest.raises(EventValidationError, match="validation failed"):
            bus.receive(raw)

    def test_receive_malformed_location(self, bus: RepositoryEventBus):
        raw = json.dumps({
            "kind": "added",
            "repository_type": "artifact",
            "location": "http://update.example.com/bad path",
        })
        with pytest.raises(EventValidationError):
            bus.receive(raw)

    def test_serialize_round_trips(self, bus: RepositoryEventBus, make_event):
        event = make_event("https://u@update.example.com:81/repo?q#f")
        restored = bus.receive(RepositoryEventBus.serialize(event))
        assert restored == event

    def test_publish_raw(self, bus: RepositoryEventBus, make_event):
        received: list[RepositoryEvent] = []
        bus.subscribe(received.append)
        bus.publish_raw(RepositoryEventBus.serialize(make_event("http://update.example.com/r")))
        assert str(received[0].location) == "http://update.example.com/r"
