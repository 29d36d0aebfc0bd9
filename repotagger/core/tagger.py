"""Repository identity tagger — puts the instance tag into repository paths.

Every enabled non-local or disabled repository on a trusted http(s) host
must carry exactly one ``/knid=<tag>/`` segment in its path.  The tagger
enforces this in two ways:

* ``tag_all`` sweeps the registry, e.g. once at startup.
* ``handle_event`` reacts to repositories added or removed later, if an
  event source was supplied.

Per-location states are untagged-trusted, untagged-untrusted and tagged.
The only transitions are untagged-trusted -> tagged (``tag_one``) and
tagged -> absent (metadata cleanup).  Tagging adds the new location before
removing the old one, so an interrupted rewrite leaves both registered
rather than neither, and the next sweep finishes the rewrite.
"""

from __future__ import annotations

import logging

from repotagger.config import TaggerSettings, settings as default_settings
from repotagger.core.event_bus import EventSource
from repotagger.core.instance_id import InstanceTagProvider, InstanceTagUnavailableError
from repotagger.core.matchers import TagMatcher, TrustedHostMatcher
from repotagger.core.registry import (
    RegistrySubset,
    RegistryUnavailableError,
    RepositoryRegistry,
)
from repotagger.models.events import EventKind, RepositoryEvent, RepositoryType
from repotagger.models.locations import MalformedLocationError, RepositoryLocation
from repotagger.models.reports import FailedLocation, TaggedLocation, TaggingReport

logger = logging.getLogger(__name__)

# Subsets swept by tag_all and by metadata cleanup, in this order.
SWEPT_SUBSETS = (RegistrySubset.NON_LOCAL, RegistrySubset.DISABLED)


class RepositoryIdentityTagger:
    """Rewrites trusted repository locations to carry the instance tag.

    Parameters
    ----------
    registry:
        The host's repository store.  Never owned by the tagger.
    tag_provider:
        Supplies the current instance tag.
    host_matcher, tag_matcher:
        Trust and tag predicates.  Built from ``settings`` when omitted.
    event_source:
        Optional source of repository events.  When given, the tagger
        subscribes ``handle_event`` once; when ``None`` only explicit
        calls do anything.
    settings:
        Settings used for the defaults above and for ``tagged_schemes``.

    Examples
    --------
    >>> from repotagger.core.instance_id import StaticTagProvider
    >>> from repotagger.core.registry import InMemoryRegistry
    >>> registry = InMemoryRegistry({"http://update.example.com/repo": True})
    >>> tagger = RepositoryIdentityTagger(
    ...     registry, StaticTagProvider("AB-0123456789ABCDEF")
    ... )
    >>> [t.tagged for t in tagger.tag_all().tagged]
    ['http://update.example.com/repo/knid=AB-0123456789ABCDEF/']
    """

    def __init__(
        self,
        registry: RepositoryRegistry,
        tag_provider: InstanceTagProvider,
        *,
        host_matcher: TrustedHostMatcher | None = None,
        tag_matcher: TagMatcher | None = None,
        event_source: EventSource | None = None,
        settings: TaggerSettings | None = None,
    ) -> None:
        cfg = settings or default_settings
        self._registry = registry
        self._tag_provider = tag_provider
        self._hosts = host_matcher or TrustedHostMatcher.from_settings(cfg)
        self._tags = tag_matcher or TagMatcher.from_settings(cfg)
        self._schemes = frozenset(s.lower() for s in cfg.tagged_schemes)

        if event_source is not None:
            event_source.subscribe(self.handle_event)
        else:
            logger.debug("No event source — reactive tagging disabled.")

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def is_trusted_host(self, host: str | None) -> bool:
        return self._hosts.matches(host)

    def is_tagged(self, location: RepositoryLocation) -> bool:
        return self._tags.contains_tag(location.path)

    def is_taggable(self, location: RepositoryLocation) -> bool:
        """Whether ``tag_one`` would rewrite *location*."""
        return (
            location.scheme.lower() in self._schemes
            and self.is_trusted_host(location.host)
            and not self.is_tagged(location)
        )

    @staticmethod
    def is_under(location: RepositoryLocation, base: RepositoryLocation) -> bool:
        """Whether *location* lies at or below *base*, on segment boundaries.

        Scheme, user info, host and port must be equal; the path segments of
        *base* must be a prefix of those of *location*.  Query and fragment
        are ignored.
        """
        if (
            location.scheme.lower() != base.scheme.lower()
            or location.user_info != base.user_info
            or location.normalized_host != base.normalized_host
            or location.port != base.port
        ):
            return False
        base_segments = base.path_segments
        return location.path_segments[: len(base_segments)] == base_segments

    # ------------------------------------------------------------------
    # Tagging
    # ------------------------------------------------------------------

    def tag_one(self, location: RepositoryLocation) -> RepositoryLocation | None:
        """Tag a single registered location.

        Returns the new location, or ``None`` if nothing was changed
        (untrusted, unsupported scheme, already tagged, or no longer
        registered).

        Raises
        ------
        MalformedLocationError
            If the tagged location cannot be built.
        RegistryUnavailableError
            If the registry cannot be reached.
        InstanceTagUnavailableError
            If the tag provider cannot supply a valid tag.
        """
        result = self._tag(location)
        return result[0] if result is not None else None

    def _tag(self, location: RepositoryLocation) -> tuple[RepositoryLocation, bool] | None:
        if not self.is_taggable(location):
            logger.debug("Not tagging %s", location)
            return None

        tag = self._current_tag()
        tagged = location.with_path(self._tags.tagged_path(location.path, tag))
        try:
            enabled = self._registry.is_enabled(location)
        except KeyError:
            logger.debug("Repository %s vanished before tagging", location)
            return None

        self._registry.add(tagged, enabled)
        self._registry.remove(location)
        logger.info("Tagged repository %s -> %s", location, tagged)
        return tagged, enabled

    def _current_tag(self) -> str:
        try:
            return self._tag_provider.current_tag()
        except InstanceTagUnavailableError:
            raise
        except (OSError, ValueError) as exc:
            raise InstanceTagUnavailableError(f"Cannot obtain instance tag: {exc}") from exc

    def tag_all(self) -> TaggingReport:
        """Tag every location in the non-local and disabled subsets.

        A malformed location is logged and left untagged; it never aborts
        the pass.  An unreachable registry or a missing instance tag
        abandons the pass.
        """
        tagged: list[TaggedLocation] = []
        failed: list[FailedLocation] = []
        skipped = 0

        try:
            for location in self._sweep():
                try:
                    result = self._tag(location)
                except MalformedLocationError as exc:
                    logger.warning("Error while tagging repository %s: %s", location, exc)
                    failed.append(FailedLocation(location=str(location), reason=str(exc)))
                    continue
                if result is None:
                    skipped += 1
                    continue
                new_location, enabled = result
                tagged.append(
                    TaggedLocation(
                        original=str(location), tagged=str(new_location), enabled=enabled
                    )
                )
        except RegistryUnavailableError as exc:
            logger.debug("Registry unavailable, skipping tagging pass: %s", exc)
            return TaggingReport(
                tagged=tagged, skipped=skipped, failed=failed, registry_available=False
            )
        except InstanceTagUnavailableError as exc:
            logger.warning("No instance tag, skipping tagging pass: %s", exc)
            return TaggingReport(
                tagged=tagged, skipped=skipped, failed=failed, instance_tag_available=False
            )

        if tagged or failed:
            logger.info(
                "Tagging pass: %d tagged, %d skipped, %d failed",
                len(tagged), skipped, len(failed),
            )
        return TaggingReport(tagged=tagged, skipped=skipped, failed=failed)

    def strip_tag(self, location: RepositoryLocation) -> RepositoryLocation:
        """Return *location* with every tag segment collapsed to ``/``."""
        return location.with_path(self._tags.strip(location.path))

    def _sweep(self) -> list[RepositoryLocation]:
        """Snapshot the swept subsets, without duplicates."""
        seen: set[str] = set()
        snapshot: list[RepositoryLocation] = []
        for subset in SWEPT_SUBSETS:
            for location in self._registry.list_locations(subset):
                if str(location) not in seen:
                    seen.add(str(location))
                    snapshot.append(location)
        return snapshot

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def handle_event(self, event: RepositoryEvent) -> None:
        """Event-source handler: route added/removed events."""
        if event.kind is EventKind.ADDED:
            self.on_repository_added(event)
        elif event.kind is EventKind.REMOVED:
            self.on_repository_removed(event)
        else:
            logger.debug("Ignoring %s event for %s", event.kind.value, event.location)

    def on_repository_added(self, event: RepositoryEvent) -> RepositoryLocation | None:
        """Tag a newly discovered artifact repository."""
        if event.repository_type is not RepositoryType.ARTIFACT or self.is_tagged(event.location):
            return None
        try:
            return self.tag_one(event.location)
        except MalformedLocationError as exc:
            logger.warning("Error while tagging repository %s: %s", event.location, exc)
        except RegistryUnavailableError as exc:
            logger.debug("Registry unavailable, not tagging %s: %s", event.location, exc)
        except InstanceTagUnavailableError as exc:
            logger.warning("No instance tag, not tagging %s: %s", event.location, exc)
        return None

    def on_repository_removed(self, event: RepositoryEvent) -> list[RepositoryLocation]:
        """Drop tagged artifact repositories derived from a removed metadata repository.

        Returns the locations that were removed.
        """
        metadata = event.location
        if event.repository_type is not RepositoryType.METADATA:
            return []
        if not self.is_trusted_host(metadata.host):
            return []

        removed: list[RepositoryLocation] = []
        try:
            for location in self._sweep():
                if self.is_tagged(location) and self.is_under(location, metadata):
                    if self._registry.remove(location):
                        removed.append(location)
        except RegistryUnavailableError as exc:
            logger.debug("Registry unavailable, not cleaning up after %s: %s", metadata, exc)
            return removed

        if removed:
            logger.info(
                "Removed %d tagged repositor%s under %s",
                len(removed), "y" if len(removed) == 1 else "ies", metadata,
            )
        return removed
