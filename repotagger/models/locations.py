"""Repository location and instance tag value types.

A ``RepositoryLocation`` is the structural form of a repository URI. Its
string form is the only representation that is persisted or exchanged,
so ``parse`` and ``str`` must round-trip scheme, authority, path, query
and fragment verbatim.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

# Characters that may never appear unescaped in a URI component.
_ILLEGAL_CHARS = re.compile(r'[\s\x00-\x1f\x7f"<>\\^`{|}]')
_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_PORT = re.compile(r"^(?:0|[1-9][0-9]*)\Z")
_LOCAL_SCHEMES = frozenset({"file", "jar"})


class MalformedLocationError(ValueError):
    """Raised when a repository URI cannot be parsed or rebuilt."""


class InvalidInstanceTagError(ValueError):
    """Raised when an instance tag does not match the configured pattern."""


def validate_instance_tag(tag: str, value_pattern: str) -> str:
    """Return *tag* unchanged if it fully matches *value_pattern*."""
    if not re.fullmatch(value_pattern, tag):
        raise InvalidInstanceTagError(f"Invalid instance tag: {tag!r}")
    return tag


class RepositoryLocation(BaseModel):
    """Immutable URI-like location of an artifact or metadata repository.

    ``host`` is ``None`` when the URI has no authority (``file:/tmp/repo``)
    and ``""`` when the authority is empty (``file:///tmp/repo``).
    ``query`` and ``fragment`` are ``None`` when absent, so an empty
    ``?`` survives a round trip.
    """

    model_config = ConfigDict(frozen=True)

    scheme: str
    user_info: str | None = None
    host: str | None = None
    port: int | None = None
    path: str = ""
    query: str | None = None
    fragment: str | None = None

    @model_validator(mode="after")
    def _check_components(self) -> RepositoryLocation:
        if not _SCHEME.match(self.scheme):
            raise ValueError(f"illegal scheme {self.scheme!r}")
        if self.port is not None and not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        for name in ("user_info", "host", "path", "query", "fragment"):
            value = getattr(self, name)
            if value and _ILLEGAL_CHARS.search(value):
                raise ValueError(f"illegal character in {name}: {value!r}")
        if self.host is not None and self.path and not self.path.startswith("/"):
            raise ValueError(f"relative path with authority: {self.path!r}")
        return self

    # ------------------------------------------------------------------
    # Parse / compose
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, uri: str) -> RepositoryLocation:
        """Parse a URI string into a location.

        Raises
        ------
        MalformedLocationError
            If the string is not an absolute URI or a component is invalid.
        """
        # urlsplit silently drops tabs and newlines
        if _ILLEGAL_CHARS.search(uri):
            raise MalformedLocationError(f"Illegal character in {uri!r}")
        try:
            split = urlsplit(uri)
        except ValueError as exc:
            raise MalformedLocationError(f"Cannot parse {uri!r}: {exc}") from exc
        if not split.scheme:
            raise MalformedLocationError(f"Not an absolute URI: {uri!r}")

        rest = uri[len(split.scheme) + 1:]
        has_authority = rest.startswith("//")
        before_fragment, hash_sign, _ = uri.partition("#")

        user_info = host = None
        port = None
        if has_authority:
            user_part, at, hostport = split.netloc.rpartition("@")
            user_info = user_part if at else None
            host, port = _split_hostport(hostport, uri)

        try:
            return cls(
                scheme=split.scheme,
                user_info=user_info,
                host=host,
                port=port,
                path=split.path,
                query=split.query if "?" in before_fragment else None,
                fragment=split.fragment if hash_sign else None,
            )
        except ValidationError as exc:
            raise MalformedLocationError(f"Invalid URI {uri!r}: {exc}") from exc

    @property
    def authority(self) -> str | None:
        """The ``[user_info@]host[:port]`` part, or ``None`` when absent."""
        if self.host is None:
            return None
        host = f"[{self.host}]" if ":" in self.host else self.host
        prefix = f"{self.user_info}@" if self.user_info is not None else ""
        suffix = f":{self.port}" if self.port is not None else ""
        return f"{prefix}{host}{suffix}"

    def __str__(self) -> str:
        parts = [f"{self.scheme}:"]
        if self.authority is not None:
            parts.append(f"//{self.authority}")
        parts.append(self.path)
        if self.query is not None:
            parts.append(f"?{self.query}")
        if self.fragment is not None:
            parts.append(f"#{self.fragment}")
        return "".join(parts)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def normalized_host(self) -> str | None:
        """Lowercase host, or ``None`` when the location has no host."""
        return self.host.lower() if self.host else None

    @property
    def is_local(self) -> bool:
        """Whether the repository lives on the local filesystem."""
        return self.scheme.lower() in _LOCAL_SCHEMES

    @property
    def path_segments(self) -> list[str]:
        """Non-empty path segments, in order."""
        return [segment for segment in self.path.split("/") if segment]

    def with_path(self, path: str) -> RepositoryLocation:
        """Rebuild this location with a different path.

        Raises
        ------
        MalformedLocationError
            If the rebuilt location is not a valid URI.
        """
        try:
            return RepositoryLocation(
                **self.model_dump(exclude={"path"}),
                path=path,
            )
        except ValidationError as exc:
            raise MalformedLocationError(
                f"Cannot rebuild {self} with path {path!r}: {exc}"
            ) from exc


def _split_hostport(hostport: str, uri: str) -> tuple[str, int | None]:
    """Split ``host[:port]`` (IPv6 hosts bracketed) into its parts."""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise MalformedLocationError(f"Unterminated IPv6 host in {uri!r}")
        host, port_part = hostport[1:end], hostport[end + 1:]
        if port_part and not port_part.startswith(":"):
            raise MalformedLocationError(f"Garbage after IPv6 host in {uri!r}")
        colon, port_text = port_part[:1], port_part[1:]
    else:
        host, colon, port_text = hostport.partition(":")

    if not colon:
        return host, None
    # An empty or zero-padded port would not print back as written.
    if not _PORT.match(port_text):
        raise MalformedLocationError(f"Invalid port {port_text!r} in {uri!r}")
    return host, int(port_text)
