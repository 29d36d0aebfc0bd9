"""Repository change notifications delivered by an event source."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from repotagger.models.locations import RepositoryLocation


class EventKind(str, Enum):
    """What happened to the repository."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


class RepositoryType(str, Enum):
    """Which half of an update site the event concerns."""

    ARTIFACT = "artifact"
    METADATA = "metadata"


class RepositoryEvent(BaseModel):
    """A single repository-location change.

    ``location`` accepts either a ``RepositoryLocation`` or its URI string.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: EventKind
    repository_type: RepositoryType
    location: RepositoryLocation
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator("location", mode="before")
    @classmethod
    def _parse_location(cls, value: object) -> object:
        if isinstance(value, str):
            return RepositoryLocation.parse(value)
        return value

    @field_serializer("location")
    def _serialize_location(self, location: RepositoryLocation) -> str:
        return str(location)
