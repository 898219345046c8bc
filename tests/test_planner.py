"""Unit tests for fetch-planning decisions."""

from __future__ import annotations

import pytest

import fields as f
from planner import (
    should_fail_on_access_url_fail,
    should_fetch_access_url,
    should_fetch_fence_access_token,
    should_fetch_passports,
    should_fetch_service_account,
    should_request_metadata,
)
from providers import DEFAULT_PROVIDERS

BDC = DEFAULT_PROVIDERS["bioDataCatalyst"]
TDR = DEFAULT_PROVIDERS["terraDataRepo"]
CRDC = DEFAULT_PROVIDERS["crdc"]
KIDS_FIRST = DEFAULT_PROVIDERS["kidsFirst"]
PASSPORT = DEFAULT_PROVIDERS["passportTest"]


@pytest.mark.parametrize(
    ("requested", "expected"),
    [
        ([f.BUCKET, f.NAME], True),
        ([f.ACCESS_URL], True),
        ([f.SIZE], True),
        ([f.GOOGLE_SERVICE_ACCOUNT], False),
        ([f.BOND_PROVIDER], False),
        ([f.GOOGLE_SERVICE_ACCOUNT, f.BOND_PROVIDER], False),
    ],
)
def test_should_request_metadata(requested, expected) -> None:
    assert should_request_metadata(requested) is expected


@pytest.mark.parametrize("provider", list(DEFAULT_PROVIDERS.values()))
@pytest.mark.parametrize("method_type", [None, "gs", "s3", "https"])
@pytest.mark.parametrize("force", [False, True])
def test_access_url_needs_the_access_url_field(provider, method_type, force) -> None:
    requested = [name for name in f.ALL_FIELDS if name != f.ACCESS_URL]

    assert should_fetch_access_url(provider, method_type, requested, force) is False
    assert should_fetch_fence_access_token(provider, method_type, requested, False, force) is False
    assert should_fetch_fence_access_token(provider, method_type, requested, True, force) is False
    assert should_fetch_passports(provider, method_type, requested) is False


@pytest.mark.parametrize(
    ("provider", "method_type", "force", "expected"),
    [
        (BDC, "gs", False, False),
        (BDC, "gs", True, True),
        (BDC, None, True, True),
        (CRDC, "s3", False, True),
        (CRDC, "gs", False, False),
        (KIDS_FIRST, "s3", False, True),
        (PASSPORT, "gs", False, True),
        (TDR, "gs", False, False),
        (TDR, None, False, False),
    ],
)
def test_should_fetch_access_url(provider, method_type, force, expected) -> None:
    assert should_fetch_access_url(provider, method_type, [f.ACCESS_URL], force) is expected


@pytest.mark.parametrize(
    ("provider", "method_type", "use_fallback", "force", "expected"),
    [
        (CRDC, "s3", False, False, True),
        (CRDC, "gs", False, False, False),
        (BDC, "gs", False, False, False),
        (BDC, "gs", False, True, True),
        (PASSPORT, "gs", False, False, False),
        (PASSPORT, "gs", True, False, True),
        (TDR, "gs", False, True, False),
    ],
)
def test_should_fetch_fence_access_token(provider, method_type, use_fallback, force, expected) -> None:
    assert (
        should_fetch_fence_access_token(provider, method_type, [f.ACCESS_URL], use_fallback, force)
        is expected
    )


@pytest.mark.parametrize(
    ("provider", "method_type", "requested", "expected"),
    [
        (BDC, None, [f.GOOGLE_SERVICE_ACCOUNT], True),
        (BDC, "gs", list(f.DEFAULT_FIELDS), True),
        (BDC, "s3", [f.GOOGLE_SERVICE_ACCOUNT], False),
        (BDC, "gs", [f.BUCKET, f.NAME], False),
        (CRDC, "gs", [f.GOOGLE_SERVICE_ACCOUNT], True),
        (KIDS_FIRST, None, [f.GOOGLE_SERVICE_ACCOUNT], False),
        (TDR, "gs", [f.GOOGLE_SERVICE_ACCOUNT], False),
    ],
)
def test_should_fetch_service_account(provider, method_type, requested, expected) -> None:
    assert should_fetch_service_account(provider, method_type, requested) is expected


@pytest.mark.parametrize(
    ("provider", "method_type", "expected"),
    [
        (PASSPORT, "gs", True),
        (PASSPORT, None, False),
        (BDC, "gs", False),
        (CRDC, "s3", False),
    ],
)
def test_should_fetch_passports(provider, method_type, expected) -> None:
    assert should_fetch_passports(provider, method_type, [f.ACCESS_URL]) is expected


@pytest.mark.parametrize(
    ("method_type", "expected"),
    [(None, False), ("gs", False), ("s3", True), ("https", True)],
)
def test_should_fail_on_access_url_fail(method_type, expected) -> None:
    assert should_fail_on_access_url_fail(method_type) is expected
