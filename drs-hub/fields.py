"""
Field catalog for the resolve endpoint.

The names are the keys of the flat response map. The named subsets drive
the fetch planner: a downstream call is only made when the caller asked for
a field that depends on it.
"""

from __future__ import annotations

from typing import Iterable

GS_URI = "gsUri"
BUCKET = "bucket"
NAME = "name"
FILE_NAME = "fileName"
LOCALIZATION_PATH = "localizationPath"
CONTENT_TYPE = "contentType"
SIZE = "size"
HASHES = "hashes"
TIME_CREATED = "timeCreated"
TIME_UPDATED = "timeUpdated"
GOOGLE_SERVICE_ACCOUNT = "googleServiceAccount"
BOND_PROVIDER = "bondProvider"
ACCESS_URL = "accessUrl"

CORE_FIELDS: tuple[str, ...] = (
    GS_URI,
    BUCKET,
    NAME,
    FILE_NAME,
    LOCALIZATION_PATH,
    CONTENT_TYPE,
    SIZE,
    HASHES,
    TIME_CREATED,
    TIME_UPDATED,
)

ALL_FIELDS: tuple[str, ...] = CORE_FIELDS + (
    GOOGLE_SERVICE_ACCOUNT,
    BOND_PROVIDER,
    ACCESS_URL,
)

DEFAULT_FIELDS: tuple[str, ...] = CORE_FIELDS + (GOOGLE_SERVICE_ACCOUNT,)

# Fields that need the provider's object descriptor
METADATA_FIELDS: frozenset[str] = frozenset(CORE_FIELDS + (ACCESS_URL,))

# Fields that need the Bond service-account key
SERVICE_ACCOUNT_FIELDS: frozenset[str] = frozenset({GOOGLE_SERVICE_ACCOUNT})

# Fields that need an access_id from the descriptor
ACCESS_ID_FIELDS: frozenset[str] = frozenset({ACCESS_URL})


def overlap(requested: Iterable[str], subset: frozenset[str]) -> bool:
    """True if any requested field belongs to ``subset``."""
    return any(field in subset for field in requested)


def invalid_fields(requested: Iterable[str]) -> list[str]:
    return [field for field in requested if field not in ALL_FIELDS]


def with_defaults(requested: Iterable[str] | None) -> list[str]:
    """Return the requested fields, or the default set when none were given.

    Order is preserved and duplicates dropped.
    """
    fields = list(dict.fromkeys(requested or ()))
    return fields or list(DEFAULT_FIELDS)
