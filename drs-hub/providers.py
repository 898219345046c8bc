"""
DRS provider registry.

A provider is plain data: a host pattern, whether metadata requests need
the caller's auth, which Bond provider (if any) brokers its credentials, and
an ordered list of access-method policies. All per-provider behaviour is
derived from this data by ``planner`` and ``access_methods``; there is no
class per provider.

The default registry below can be replaced at startup with a JSON file (see
``settings.DRSHUB_PROVIDERS_FILE``).
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from errors import UnknownProvider
from locator import CanonicalLocator

logger = logging.getLogger("drs-hub.providers")


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


class AccessMethodType(str, Enum):
    """Access method types, valued as they appear in DRS ``access_methods[].type``."""

    GCS = "gs"
    S3 = "s3"
    HTTPS = "https"


class AccessUrlAuth(str, Enum):
    PASSPORT = "passport"
    CURRENT_REQUEST = "current_request"
    FENCE_TOKEN = "fence_token"


class BondProvider(str, Enum):
    DCF_FENCE = "dcf-fence"
    FENCE = "fence"
    ANVIL = "anvil"
    KIDS_FIRST = "kids-first"


class AccessMethodPolicy(BaseModel):
    """How to obtain a signed URL for one access-method type."""

    model_config = ConfigDict(frozen=True)

    method_type: AccessMethodType
    auth: AccessUrlAuth
    fetch_access_url: bool = False
    fallback_auth: Optional[AccessUrlAuth] = None


class ProviderDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    host_regex: str
    metadata_auth: bool = False
    bond_provider: Optional[BondProvider] = None
    access_method_policies: tuple[AccessMethodPolicy, ...] = Field(default_factory=tuple)
    # TDR only, until DRS objects carry their own localization path.
    use_aliases_for_localization_path: bool = False

    @field_validator("host_regex")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"host_regex {value!r} is not a valid regex: {exc}") from exc
        return value

    def matches_host(self, host: str) -> bool:
        return re.fullmatch(self.host_regex, host) is not None

    def policy_for(self, method_type: Optional[str]) -> Optional[AccessMethodPolicy]:
        """Return the first policy for ``method_type``, if the provider declares one."""
        if method_type is None:
            return None
        for policy in self.access_method_policies:
            if policy.method_type == method_type:
                return policy
        return None

    @property
    def method_types(self) -> list[AccessMethodType]:
        return [policy.method_type for policy in self.access_method_policies]


# ---------------------------------------------------------------------------
# Default registry
# ---------------------------------------------------------------------------


def _gcs(auth: AccessUrlAuth, fetch_access_url: bool = False, fallback: Optional[AccessUrlAuth] = None):
    return AccessMethodPolicy(
        method_type=AccessMethodType.GCS,
        auth=auth,
        fetch_access_url=fetch_access_url,
        fallback_auth=fallback,
    )


def _s3(auth: AccessUrlAuth, fetch_access_url: bool = False):
    return AccessMethodPolicy(method_type=AccessMethodType.S3, auth=auth, fetch_access_url=fetch_access_url)


DEFAULT_PROVIDERS: dict[str, ProviderDefinition] = {
    "bioDataCatalyst": ProviderDefinition(
        name="BioData Catalyst (BDC)",
        host_regex=r".*\.biodatacatalyst\.nhlbi\.nih\.gov",
        bond_provider=BondProvider.FENCE,
        access_method_policies=(_gcs(AccessUrlAuth.FENCE_TOKEN),),
    ),
    "anvil": ProviderDefinition(
        name="NHGRI Analysis Visualization and Informatics Lab-space (The AnVIL)",
        host_regex=r".*\.theanvil\.io",
        bond_provider=BondProvider.ANVIL,
        access_method_policies=(_gcs(AccessUrlAuth.FENCE_TOKEN),),
    ),
    "terraDataRepo": ProviderDefinition(
        name="Terra Data Repo (TDR)",
        host_regex=r".*data.*[-.](broadinstitute\.org|terra\.bio)",
        metadata_auth=True,
        access_method_policies=(_gcs(AccessUrlAuth.CURRENT_REQUEST),),
        use_aliases_for_localization_path=True,
    ),
    "crdc": ProviderDefinition(
        name="NCI Cancer Research / Proteomics Data Commons (CRDC / PDC)",
        host_regex=r".*\.datacommons\.io",
        bond_provider=BondProvider.DCF_FENCE,
        access_method_policies=(
            _gcs(AccessUrlAuth.FENCE_TOKEN),
            _s3(AccessUrlAuth.FENCE_TOKEN, fetch_access_url=True),
        ),
    ),
    "kidsFirst": ProviderDefinition(
        name="Gabriella Miller Kids First DRC",
        host_regex=r".*\.kidsfirstdrc\.org",
        bond_provider=BondProvider.KIDS_FIRST,
        access_method_policies=(_s3(AccessUrlAuth.FENCE_TOKEN, fetch_access_url=True),),
    ),
    "passportTest": ProviderDefinition(
        name="RAS passport test",
        host_regex=r".*ctds-test-env\.planx-pla\.net",
        bond_provider=BondProvider.FENCE,
        access_method_policies=(
            _gcs(AccessUrlAuth.PASSPORT, fetch_access_url=True, fallback=AccessUrlAuth.FENCE_TOKEN),
        ),
    ),
}

_REGISTRY_ADAPTER = TypeAdapter(dict[str, ProviderDefinition])


def load_registry(path: str | Path) -> tuple[ProviderDefinition, ...]:
    """Load an ordered provider registry from a JSON object of id -> definition.

    Key order in the file is the match order.
    """
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    providers = _REGISTRY_ADAPTER.validate_python(raw)
    logger.info("Loaded %d DRS providers from %s: %s", len(providers), path, ", ".join(providers))
    return tuple(providers.values())


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_provider(
    locator: CanonicalLocator,
    registry: Iterable[ProviderDefinition],
) -> ProviderDefinition:
    """Return the first provider whose ``host_regex`` fully matches the locator host."""
    for provider in registry:
        if provider.matches_host(locator.host):
            return provider
    raise UnknownProvider(f"Could not determine DRS provider for id '{locator}'")
