"""
DOS/DRS URI normalization.

Two historical dialects reach us and both must end up in the same
``CanonicalLocator`` shape:

- W3C/IETF absolute URIs, e.g. ``drs://jade.datarepo-dev.broadinstitute.org/v1_abc``
- GA4GH compact identifiers (CIB), e.g. ``drs://dg.4503:123abc`` or
  ``dos://dg.4503/123abc``, whose namespace has to be expanded to a real host
  via the configured lookup table.

CIB URIs are not valid W3C URIs (``dg.4503:123abc`` parses as host + port),
so they are matched with regexes before falling back to ``urlsplit``.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional
from urllib.parse import quote, urlsplit

from pydantic import BaseModel, ConfigDict

from errors import GoneLocator, MalformedLocator

logger = logging.getLogger("drs-hub.locator")

# Tried in order. The first handles the legacy form where the namespace is
# repeated after the separator (``dg.4503:dg.4503/abc``).
_COMPACT_ID_PATTERNS = (
    re.compile(
        r"(?:dos|drs)://(?P<host>(?:dg|drs)\.[0-9a-z-]+)(?P<separator>:)(?P=host)/"
        r"(?P<suffix>[^?]*)(?:\?(?P<query>.*))?",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:dos|drs)://(?P<host>(?:dg|drs)\.[0-9a-z-]+)(?P<separator>[:/])"
        r"(?P<suffix>[^?]*)(?:\?(?P<query>.*))?",
        re.IGNORECASE,
    ),
)

GONE_HOST_SUFFIX = "dataguids.org"
GONE_MESSAGE = (
    "dataguids.org data has moved. "
    "See: https://support.terra.bio/hc/en-us/articles/360060681132"
)


class CanonicalLocator(BaseModel):
    """Where a DRS object lives: provider host, object path and optional query."""

    model_config = ConfigDict(frozen=True)

    host: str
    object_path: str
    query: Optional[str] = None
    port: Optional[int] = None

    @property
    def base_url(self) -> str:
        if self.port:
            return f"https://{self.host}:{self.port}"
        return f"https://{self.host}"

    def __str__(self) -> str:
        uri = f"{self.base_url}/{self.object_path}"
        return f"{uri}?{self.query}" if self.query else uri


def normalize(uri: str, host_lookup: Mapping[str, str]) -> CanonicalLocator:
    """Parse a DOS/DRS URI into a ``CanonicalLocator``.

    Args:
        uri: The caller-supplied DOS/DRS URI.
        host_lookup: Compact-identifier namespace (lower case) to host.

    Raises:
        MalformedLocator: the URI cannot be parsed, has no host or path, or
            uses an unrecognized compact-identifier namespace.
        GoneLocator: the host is a decommissioned namespace host.
    """
    if not uri or not uri.strip():
        raise MalformedLocator("'url' is missing.")
    uri = uri.strip()

    for pattern in _COMPACT_ID_PATTERNS:
        match = pattern.fullmatch(uri)
        if match:
            return _from_compact_id(uri, match, host_lookup)

    return _from_absolute_uri(uri)


def _from_compact_id(uri: str, match: re.Match, host_lookup: Mapping[str, str]) -> CanonicalLocator:
    namespace = match.group("host")
    host = host_lookup.get(namespace.lower())
    if not host:
        raise MalformedLocator(f"Unrecognized Compact Identifier Based host '{namespace}'.")
    _check_not_gone(host)

    suffix = match.group("suffix")
    if not suffix:
        raise MalformedLocator(f'"{uri}" is missing a host and/or a path.')

    locator = CanonicalLocator(
        host=host,
        object_path=quote(suffix, safe="/"),
        query=match.group("query") or None,
    )
    logger.debug("Expanded compact identifier %s -> %s", uri, locator)
    return locator


def _from_absolute_uri(uri: str) -> CanonicalLocator:
    try:
        parts = urlsplit(uri)
        host = parts.hostname
        port = parts.port
    except ValueError as exc:
        raise MalformedLocator(f'"{uri}" is not a valid URI: {exc}') from exc

    if not parts.scheme or not host:
        raise MalformedLocator(f'"{uri}" is missing a host and/or a path.')
    _check_not_gone(host)

    path = parts.path[1:] if parts.path.startswith("/") else parts.path
    if not path:
        raise MalformedLocator(f'"{uri}" is missing a host and/or a path.')

    return CanonicalLocator(
        host=host,
        object_path=path,
        query=parts.query or None,
        port=port,
    )


def _check_not_gone(host: str) -> None:
    if host.lower().endswith(GONE_HOST_SUFFIX):
        raise GoneLocator(GONE_MESSAGE)
