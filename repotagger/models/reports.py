"""Outcome of a batch tagging pass."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TaggedLocation(BaseModel):
    """A location that was rewritten to carry the instance tag."""

    model_config = ConfigDict(frozen=True)

    original: str
    tagged: str
    enabled: bool


class FailedLocation(BaseModel):
    """A location left untagged because tagging failed."""

    model_config = ConfigDict(frozen=True)

    location: str
    reason: str


class TaggingReport(BaseModel):
    """Summary of one ``tag_all`` pass.

    ``registry_available`` is ``False`` when the pass was abandoned
    because the registry could not be reached, and ``instance_tag_available``
    when no instance tag could be obtained.  The other fields then describe
    whatever was done before that happened.
    """

    model_config = ConfigDict(frozen=True)

    tagged: list[TaggedLocation] = Field(default_factory=list)
    skipped: int = 0
    failed: list[FailedLocation] = Field(default_factory=list)
    registry_available: bool = True
    instance_tag_available: bool = True

    @property
    def changed(self) -> bool:
        return bool(self.tagged)
