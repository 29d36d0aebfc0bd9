"""repotagger data models — all Pydantic v2, all frozen (immutable)."""

from repotagger.models.events import EventKind, RepositoryEvent, RepositoryType
from repotagger.models.locations import (
    InvalidInstanceTagError,
    MalformedLocationError,
    RepositoryLocation,
    validate_instance_tag,
)
from repotagger.models.reports import FailedLocation, TaggedLocation, TaggingReport

__all__ = [
    # locations
    "RepositoryLocation",
    "MalformedLocationError",
    "InvalidInstanceTagError",
    "validate_instance_tag",
    # events
    "EventKind",
    "RepositoryType",
    "RepositoryEvent",
    # reports
    "TaggedLocation",
    "FailedLocation",
    "TaggingReport",
]
