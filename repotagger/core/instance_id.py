"""Instance tag providers.

The instance tag identifies one installation.  Its format is two hex
digits, a dash, sixteen hex digits, optionally followed by further
dash-separated hex groups: ``01-3f2a9c0d11e84b7a``.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Protocol, runtime_checkable

from repotagger.config import DEFAULT_TAG_VALUE_PATTERN
from repotagger.models.locations import InvalidInstanceTagError, validate_instance_tag

logger = logging.getLogger(__name__)

# Leading group of generated tags; bumped if the generation scheme changes.
TAG_FORMAT_PREFIX = "01"


class InstanceTagUnavailableError(RuntimeError):
    """Raised when the instance tag cannot be read or persisted."""


@runtime_checkable
class InstanceTagProvider(Protocol):
    def current_tag(self) -> str: ...


def generate_instance_tag() -> str:
    """Return a fresh random tag such as ``01-3f2a9c0d11e84b7a``."""
    return f"{TAG_FORMAT_PREFIX}-{uuid.uuid4().hex[:16]}"


class StaticTagProvider:
    """Always returns the tag it was built with (validated eagerly)."""

    def __init__(self, tag: str, value_pattern: str = DEFAULT_TAG_VALUE_PATTERN) -> None:
        self._tag = validate_instance_tag(tag, value_pattern)

    def current_tag(self) -> str:
        return self._tag


class FileInstanceTagProvider:
    """Reads the tag from a text file, generating and persisting it on first use.

    The tag is cached after the first successful read so every call in a
    process sees the same value.

    Parameters
    ----------
    path:
        File holding the tag on its first line.
    value_pattern:
        Regular expression the stored tag must fully match.
    """

    def __init__(
        self,
        path: Path = Path(".repotagger/instance-id"),
        value_pattern: str = DEFAULT_TAG_VALUE_PATTERN,
    ) -> None:
        self._path = Path(path)
        self._value_pattern = value_pattern
        self._tag: str | None = None

    @property
    def path(self) -> Path:
        return self._path

    def current_tag(self) -> str:
        """Return the installation's tag.

        Raises
        ------
        InvalidInstanceTagError
            If the file exists but holds something that is not a tag.
        InstanceTagUnavailableError
            If the file cannot be read or written.
        """
        if self._tag is None:
            self._tag = self._load_or_create()
        return self._tag

    def _load_or_create(self) -> str:
        try:
            return self._read_or_write()
        except (OSError, UnicodeDecodeError) as exc:
            raise InstanceTagUnavailableError(
                f"Cannot access instance id file {self._path}: {exc}"
            ) from exc

    def _read_or_write(self) -> str:
        if self._path.exists():
            lines = self._path.read_text(encoding="utf-8").splitlines()
            stored = lines[0].strip() if lines else ""
            if not stored:
                raise InvalidInstanceTagError(f"Instance id file {self._path} is empty")
            return validate_instance_tag(stored, self._value_pattern)

        tag = validate_instance_tag(generate_instance_tag(), self._value_pattern)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(tag + "\n", encoding="utf-8")
        logger.info("Generated instance id %s at %s", tag, self._path)
        return tag
