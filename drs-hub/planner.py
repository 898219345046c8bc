"""
Fetch planning: which downstream calls a resolution needs.

Each decision is a pure function of the provider definition, the type of
the selected access method (``None`` until metadata has been fetched, or
when nothing matched), the requested fields and the force-access-URL flag.
They are re-evaluated at each stage because the selected access method is
only known after the metadata call.
"""

from __future__ import annotations

from typing import Optional, Sequence

from fields import (
    ACCESS_ID_FIELDS,
    METADATA_FIELDS,
    SERVICE_ACCOUNT_FIELDS,
    overlap,
)
from providers import AccessMethodType, AccessUrlAuth, ProviderDefinition


def should_request_metadata(requested: Sequence[str]) -> bool:
    return overlap(requested, METADATA_FIELDS)


def should_fetch_access_url(
    provider: ProviderDefinition,
    method_type: Optional[str],
    requested: Sequence[str],
    force_access_url: bool,
) -> bool:
    """Should we call the provider's ``access`` endpoint for a signed URL."""
    if not overlap(requested, ACCESS_ID_FIELDS):
        return False
    if force_access_url:
        return True
    policy = provider.policy_for(method_type)
    return policy is not None and policy.fetch_access_url


def should_fetch_fence_access_token(
    provider: ProviderDefinition,
    method_type: Optional[str],
    requested: Sequence[str],
    use_fallback: bool,
    force_access_url: bool,
) -> bool:
    """Should we ask Bond for a Fence access token before calling ``access``.

    True for Gen3 signed URL flows. TDR flows reuse the caller's own auth and
    never need one.
    """
    if provider.bond_provider is None or not overlap(requested, ACCESS_ID_FIELDS):
        return False
    if force_access_url:
        return True
    for policy in provider.access_method_policies:
        if policy.method_type != method_type or not policy.fetch_access_url:
            continue
        auth = policy.fallback_auth if use_fallback else policy.auth
        if auth == AccessUrlAuth.FENCE_TOKEN:
            return True
    return False


def should_fetch_service_account(
    provider: ProviderDefinition,
    method_type: Optional[str],
    requested: Sequence[str],
) -> bool:
    """Should we fetch the user's Google service account key from Bond.

    The key is Google-specific, so skip it when the object is known not to
    be in GCS. An unknown method type counts as "maybe GCS": metadata may not
    have been requested at all.
    """
    return (
        provider.bond_provider is not None
        and (method_type is None or method_type == AccessMethodType.GCS)
        and AccessMethodType.GCS in provider.method_types
        and overlap(requested, SERVICE_ACCOUNT_FIELDS)
    )


def should_fetch_passports(
    provider: ProviderDefinition,
    method_type: Optional[str],
    requested: Sequence[str],
) -> bool:
    if not overlap(requested, ACCESS_ID_FIELDS):
        return False
    policy = provider.policy_for(method_type)
    return policy is not None and policy.auth == AccessUrlAuth.PASSPORT


def should_fail_on_access_url_fail(method_type: Optional[str]) -> bool:
    """Is a failed signed URL fetch fatal for this access method type.

    Clients can only fall back to a native cloud path for GCS objects.
    """
    return method_type is not None and method_type != AccessMethodType.GCS
