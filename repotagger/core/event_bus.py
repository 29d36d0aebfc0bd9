"""Repository event bus — validates and routes repository change events.

The bus is the ``EventSource`` a tagger subscribes to.  Hosts either
publish ``RepositoryEvent`` objects directly or hand raw JSON to
``receive``, which validates it against the Pydantic model first.
Delivery is synchronous on the publishing thread.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from repotagger.models.events import RepositoryEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[RepositoryEvent], object]


class EventValidationError(ValueError):
    """Raised when a raw event fails validation."""


@runtime_checkable
class EventSource(Protocol):
    """Anything that can deliver repository events to a handler."""

    def subscribe(self, handler: EventHandler) -> None: ...


class RepositoryEventBus:
    """Delivers repository events to every subscribed handler.

    A handler that raises does not prevent delivery to the remaining
    handlers; the failure is logged.
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        """Register a handler.  Subscribing the same handler twice is a no-op."""
        if handler not in self._handlers:
            self._handlers.append(handler)
            logger.debug("Subscribed event handler %r", handler)

    @property
    def handlers(self) -> list[EventHandler]:
        return list(self._handlers)

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, event: RepositoryEvent) -> int:
        """Deliver *event* to all handlers.

        Returns the number of handlers that completed without raising.
        """
        delivered = 0
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler %r failed on %s event for %s",
                    handler,
                    event.kind.value,
                    event.location,
                )
                continue
            delivered += 1
        return delivered

    # ------------------------------------------------------------------
    # Receive (deserialize + validate)
    # ------------------------------------------------------------------

    def receive(self, raw_json: bytes | str) -> RepositoryEvent:
        """Deserialize and validate a raw JSON event."""
        if isinstance(raw_json, bytes):
            raw_json = raw_json.decode("utf-8")

        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as exc:
            raise EventValidationError(f"Invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise EventValidationError(
                f"Event must be a JSON object, got {type(data).__name__}"
            )

        try:
            return RepositoryEvent.model_validate(data)
        except ValidationError as exc:
            raise EventValidationError(f"Event validation failed: {exc}") from exc

    def publish_raw(self, raw_json: bytes | str) -> int:
        """Validate a raw JSON event and publish it."""
        return self.publish(self.receive(raw_json))

    @staticmethod
    def serialize(event: RepositoryEvent) -> bytes:
        """Serialize an event to canonical JSON bytes."""
        return json.dumps(
            event.model_dump(mode="json"),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=True,
        ).encode("utf-8")
