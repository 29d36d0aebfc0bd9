"""Repository registry collaborators.

The tagger never owns the store of known repositories.  It talks to it
through the ``RepositoryRegistry`` protocol, which a host adapts to its own
repository manager.  Two adapters ship here:

* ``InMemoryRegistry`` — a plain dict, for embedding and tests.
* ``JsonFileRegistry`` — a local-first JSON file at
  ``.repotagger/registry.json``, used by the CLI.

Both serialize access with a re-entrant lock so that events delivered from
another thread cannot interleave with a tagging pass mid-mutation.
"""

from __future__ import annotations

import json
import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from repotagger.models.locations import MalformedLocationError, RepositoryLocation

logger = logging.getLogger(__name__)


class RegistryUnavailableError(RuntimeError):
    """Raised when the repository registry cannot be reached or read."""


class RegistrySubset(str, Enum):
    """Selectable partitions of the registry.

    * ``all`` — every known repository.
    * ``non_local`` — enabled repositories not on the local filesystem.
    * ``local`` — enabled repositories on the local filesystem.
    * ``disabled`` — every disabled repository, local or not.
    """

    ALL = "all"
    NON_LOCAL = "non_local"
    LOCAL = "local"
    DISABLED = "disabled"


@runtime_checkable
class RepositoryRegistry(Protocol):
    """What the tagger needs from a host's repository manager."""

    def list_locations(self, subset: RegistrySubset) -> list[RepositoryLocation]: ...

    def is_enabled(self, location: RepositoryLocation) -> bool: ...

    def add(self, location: RepositoryLocation, enabled: bool = True) -> None: ...

    def remove(self, location: RepositoryLocation) -> bool: ...


class RegistryEntry(BaseModel):
    """One known repository and its enabled flag."""

    model_config = ConfigDict(frozen=True)

    location: str
    enabled: bool = True


class RegistryFile(BaseModel):
    """On-disk document of a ``JsonFileRegistry``."""

    repositories: list[RegistryEntry] = Field(default_factory=list)


def _in_subset(location: RepositoryLocation, enabled: bool, subset: RegistrySubset) -> bool:
    if subset is RegistrySubset.ALL:
        return True
    if subset is RegistrySubset.DISABLED:
        return not enabled
    if subset is RegistrySubset.LOCAL:
        return enabled and location.is_local
    return enabled and not location.is_local


# ---------------------------------------------------------------------------
# In-memory adapter
# ---------------------------------------------------------------------------

class InMemoryRegistry:
    """Dict-backed registry keyed by the location's string form.

    Examples
    --------
    >>> registry = InMemoryRegistry()
    >>> loc = RepositoryLocation.parse("http://update.example.com/repo")
    >>> registry.add(loc, enabled=False)
    >>> [str(l) for l in registry.list_locations(RegistrySubset.DISABLED)]
    ['http://update.example.com/repo']
    """

    def __init__(self, entries: dict[str, bool] | None = None) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, bool] = {}
        for uri, enabled in (entries or {}).items():
            self._entries[str(RepositoryLocation.parse(uri))] = enabled

    def _check_available(self) -> None:
        """Hook for adapters whose backing store can go away."""

    def _changed(self) -> None:
        """Hook called after every successful mutation."""

    # -- Queries ------------------------------------------------------------

    def list_locations(
        self, subset: RegistrySubset = RegistrySubset.ALL
    ) -> list[RepositoryLocation]:
        """Return a snapshot of the locations in *subset*, sorted by URI."""
        with self._lock:
            self._check_available()
            result: list[RepositoryLocation] = []
            for uri, enabled in sorted(self._entries.items()):
                location = RepositoryLocation.parse(uri)
                if _in_subset(location, enabled, subset):
                    result.append(location)
            return result

    def is_enabled(self, location: RepositoryLocation) -> bool:
        """Return the enabled flag of a known location.

        Raises
        ------
        KeyError
            If the location is not registered.
        """
        with self._lock:
            self._check_available()
            return self._entries[str(location)]

    def __contains__(self, location: object) -> bool:
        with self._lock:
            self._check_available()
            return str(location) in self._entries

    def __len__(self) -> int:
        with self._lock:
            self._check_available()
            return len(self._entries)

    def entries(self) -> list[RegistryEntry]:
        with self._lock:
            self._check_available()
            return [
                RegistryEntry(location=uri, enabled=enabled)
                for uri, enabled in sorted(self._entries.items())
            ]

    # -- Mutations ----------------------------------------------------------

    def add(self, location: RepositoryLocation, enabled: bool = True) -> None:
        """Register *location*, replacing the enabled flag if already known."""
        with self._lock:
            self._check_available()
            self._entries[str(location)] = enabled
            self._changed()
        logger.info("Added repository %s (enabled=%s)", location, enabled)

    def remove(self, location: RepositoryLocation) -> bool:
        """Forget *location*.  Returns False if it was not registered."""
        with self._lock:
            self._check_available()
            if self._entries.pop(str(location), None) is None:
                logger.debug("Cannot remove %s — not registered.", location)
                return False
            self._changed()
        logger.info("Removed repository %s", location)
        return True

    def set_enabled(self, location: RepositoryLocation, enabled: bool) -> None:
        """Change the enabled flag of a known location.

        Raises
        ------
        KeyError
            If the location is not registered.
        """
        with self._lock:
            self._check_available()
            if str(location) not in self._entries:
                raise KeyError(f"Repository '{location}' is not registered.")
            self._entries[str(location)] = enabled
            self._changed()
        logger.info("%s repository %s", "Enabled" if enabled else "Disabled", location)


# ---------------------------------------------------------------------------
# JSON file adapter
# ---------------------------------------------------------------------------

class JsonFileRegistry(InMemoryRegistry):
    """Registry persisted to a JSON file after every mutation.

    A file that exists but cannot be read or decoded makes the registry
    unavailable: every call raises ``RegistryUnavailableError`` until
    ``load()`` succeeds.  The broken file is never overwritten.

    Parameters
    ----------
    registry_path:
        Path to the registry JSON file.  Created on first mutation if it
        does not yet exist.
    """

    def __init__(self, registry_path: Path = Path(".repotagger/registry.json")) -> None:
        super().__init__()
        self._registry_path = Path(registry_path)
        self._load_error: str | None = None
        self.load()

    @property
    def path(self) -> Path:
        return self._registry_path

    def _check_available(self) -> None:
        if self._load_error is not None:
            raise RegistryUnavailableError(self._load_error)

    def _changed(self) -> None:
        self.persist()

    # -- Persistence --------------------------------------------------------

    def persist(self) -> None:
        """Write the registry to its JSON file, creating parent directories."""
        data = RegistryFile(repositories=self.entries()).model_dump(mode="json")
        try:
            self._registry_path.parent.mkdir(parents=True, exist_ok=True)
            self._registry_path.write_text(
                json.dumps(data, indent=2, sort_keys=True), encoding="utf-8"
            )
        except OSError as exc:
            raise RegistryUnavailableError(
                f"Cannot write registry {self._registry_path}: {exc}"
            ) from exc
        logger.debug("Persisted repository registry to %s.", self._registry_path)

    def load(self) -> None:
        """(Re)load the registry from its JSON file, if it exists."""
        with self._lock:
            self._entries.clear()
            self._load_error = None
            if not self._registry_path.exists():
                logger.debug("No registry file at %s — starting fresh.", self._registry_path)
                return
            try:
                document = RegistryFile.model_validate_json(
                    self._registry_path.read_text(encoding="utf-8")
                )
                for entry in document.repositories:
                    location = RepositoryLocation.parse(entry.location)
                    self._entries[str(location)] = entry.enabled
            except (OSError, ValueError, MalformedLocationError) as exc:
                self._entries.clear()
                self._load_error = f"Cannot read registry {self._registry_path}: {exc}"
                logger.error("%s", self._load_error)
                return
            logger.info(
                "Loaded %d repositor%s from %s.",
                len(self._entries),
                "y" if len(self._entries) == 1 else "ies",
                self._registry_path,
            )
