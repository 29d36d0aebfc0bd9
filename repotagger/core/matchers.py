"""Trust and tag predicates, built from configuration rather than constants."""

from __future__ import annotations

import re
from collections.abc import Iterable

from repotagger.config import TaggerSettings, settings as default_settings
from repotagger.models.locations import validate_instance_tag


class TrustedHostMatcher:
    """Exact allow-list match on bare, lowercased hostnames.

    Parameters
    ----------
    hosts:
        Hostnames eligible for instance tagging.  Normalized to lowercase
        on construction; the comparison itself is exact.
    """

    def __init__(self, hosts: Iterable[str]) -> None:
        self._hosts = frozenset(h.strip().lower() for h in hosts if h.strip())

    @classmethod
    def from_settings(cls, cfg: TaggerSettings | None = None) -> TrustedHostMatcher:
        return cls((cfg or default_settings).trusted_hosts)

    @property
    def hosts(self) -> frozenset[str]:
        return self._hosts

    def matches(self, host: str | None) -> bool:
        """Return True if *host* is on the allow-list."""
        if not host:
            return False
        return host.lower() in self._hosts


class TagMatcher:
    """Finds, builds and strips ``/<key>=<tag>/`` path segments.

    Parameters
    ----------
    key:
        Segment key, ``knid`` by default.
    value_pattern:
        Regular expression a tag value must fully match.
    """

    def __init__(self, key: str, value_pattern: str) -> None:
        self._key = key
        self._value_pattern = value_pattern
        self._segment = re.compile(f"/{re.escape(key)}={value_pattern}/")

    @classmethod
    def from_settings(cls, cfg: TaggerSettings | None = None) -> TagMatcher:
        cfg = cfg or default_settings
        return cls(cfg.tag_key, cfg.tag_value_pattern)

    @property
    def key(self) -> str:
        return self._key

    def contains_tag(self, path: str) -> bool:
        return self._segment.search(path) is not None

    def count(self, path: str) -> int:
        """Number of non-overlapping tag segments in *path*."""
        return len(self._segment.findall(path))

    def validate(self, tag: str) -> str:
        """Return *tag* if it is a well-formed instance tag."""
        return validate_instance_tag(tag, self._value_pattern)

    def segment(self, tag: str) -> str:
        """The segment appended after the path separator: ``knid=<tag>/``."""
        return f"{self._key}={self.validate(tag)}/"

    def tagged_path(self, path: str, tag: str) -> str:
        """Append the tag segment, inserting a separator when missing."""
        separator = "" if path.endswith("/") else "/"
        return f"{path}{separator}{self.segment(tag)}"

    def strip(self, path: str) -> str:
        """Collapse every tag segment in *path* to a single ``/``."""
        stripped = path
        # Adjacent segments share a slash, so one pass can miss every other one.
        while self.contains_tag(stripped):
            stripped = self._segment.sub("/", stripped)
        return stripped
