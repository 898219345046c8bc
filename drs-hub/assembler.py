"""
Response assembly: project resolved metadata onto the requested fields.

Each field has its own projection and is computed only when requested.
Fields without a value are left out of the response rather than sent as null.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

import fields as f
from providers import AccessMethodType, ProviderDefinition

if TYPE_CHECKING:
    from orchestrator import ResolvedMetadata

logger = logging.getLogger("drs-hub.assembler")

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_GS_URI_PATTERN = re.compile(r"gs://([^/]+)/(.+)")


def parse_gs_uri(uri: Optional[str]) -> Optional[tuple[str, str]]:
    """Split ``gs://bucket/key`` into ``(bucket, key)``."""
    if not uri:
        return None
    match = _GS_URI_PATTERN.match(uri)
    return (match.group(1), match.group(2)) if match else None


def hashes_map(checksums) -> Optional[dict[str, str]]:
    """Map checksum type to value. A repeated type keeps its last value."""
    hashes = {c.type: c.checksum for c in checksums}
    return hashes or None


def to_iso_utc(value: Optional[str]) -> Optional[str]:
    """Normalize an RFC 3339 timestamp to ``YYYY-MM-DDTHH:MM:SS.sssZ``.

    Some DRS servers omit the timezone; those timestamps are taken as UTC.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable DRS timestamp %r returned unchanged", value)
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Per-field projections
# ---------------------------------------------------------------------------


def _gs_uri(resolved: "ResolvedMetadata", provider: ProviderDefinition) -> Optional[str]:
    if resolved.drs_object is None:
        return None
    for method in resolved.drs_object.access_methods:
        if method.type == AccessMethodType.GCS:
            return method.access_url.url if method.access_url else None
    return None


def _bucket(resolved, provider):
    parts = parse_gs_uri(_gs_uri(resolved, provider))
    return parts[0] if parts else None


def _name(resolved, provider):
    parts = parse_gs_uri(_gs_uri(resolved, provider))
    return parts[1] if parts else None


def _content_type(resolved, provider):
    if resolved.drs_object is None:
        return None
    return resolved.drs_object.mime_type or DEFAULT_CONTENT_TYPE


def _size(resolved, provider):
    return resolved.drs_object.size if resolved.drs_object else None


def _hashes(resolved, provider):
    return hashes_map(resolved.drs_object.checksums) if resolved.drs_object else None


def _time_created(resolved, provider):
    return to_iso_utc(resolved.drs_object.created_time) if resolved.drs_object else None


def _time_updated(resolved, provider):
    return to_iso_utc(resolved.drs_object.updated_time) if resolved.drs_object else None


def _bond_provider(resolved, provider):
    bond_provider = resolved.bond_provider or provider.bond_provider
    return bond_provider.value if bond_provider else None


def _access_url(resolved, provider):
    return resolved.access_url.model_dump(exclude_none=True) if resolved.access_url else None


_PROJECTIONS: dict[str, Callable[["ResolvedMetadata", ProviderDefinition], Any]] = {
    f.GS_URI: _gs_uri,
    f.BUCKET: _bucket,
    f.NAME: _name,
    f.FILE_NAME: lambda resolved, provider: resolved.file_name,
    f.LOCALIZATION_PATH: lambda resolved, provider: resolved.localization_path,
    f.CONTENT_TYPE: _content_type,
    f.SIZE: _size,
    f.HASHES: _hashes,
    f.TIME_CREATED: _time_created,
    f.TIME_UPDATED: _time_updated,
    f.GOOGLE_SERVICE_ACCOUNT: lambda resolved, provider: resolved.service_account_key,
    f.BOND_PROVIDER: _bond_provider,
    f.ACCESS_URL: _access_url,
}


def assemble(
    requested: Sequence[str],
    resolved: "ResolvedMetadata",
    provider: ProviderDefinition,
) -> dict[str, Any]:
    """Build the flat response map for ``requested`` fields."""
    response: dict[str, Any] = {}
    for field in requested:
        value = _PROJECTIONS[field](resolved, provider)
        if value is not None:
            response[field] = value
    return response
