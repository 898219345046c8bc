"""Unit tests for DOS/DRS URI normalization."""

from __future__ import annotations

import pytest

from errors import GoneLocator, MalformedLocator
from locator import GONE_MESSAGE, CanonicalLocator, normalize

LOOKUP = {"dg.4503": "staging.example.org", "drs.anv0": "data.terra.bio"}


@pytest.mark.parametrize(
    "uri",
    [
        "drs://dg.4503:123abc",
        "drs://dg.4503/123abc",
        "dos://dg.4503:123abc",
        "DRS://DG.4503:123abc",
        "drs://dg.4503:dg.4503/123abc",
    ],
)
def test_compact_identifier_expands_to_configured_host(uri: str) -> None:
    """Either separator, any case and the doubled namespace all land on the same host."""
    locator = normalize(uri, LOOKUP)

    assert locator.host == "staging.example.org"
    assert locator.object_path == "123abc"
    assert locator.query is None
    assert locator.port is None


def test_compact_identifier_keeps_query_and_encodes_suffix() -> None:
    locator = normalize("drs://drs.anv0:v1_abc def/file name.bam?version=2&x=1", LOOKUP)

    assert locator.host == "data.terra.bio"
    assert locator.object_path == "v1_abc%20def/file%20name.bam"
    assert locator.query == "version=2&x=1"
    assert str(locator) == "https://data.terra.bio/v1_abc%20def/file%20name.bam?version=2&x=1"


def test_unknown_compact_namespace_is_malformed() -> None:
    with pytest.raises(MalformedLocator, match="dg.9999"):
        normalize("drs://dg.9999:123abc", LOOKUP)


def test_compact_identifier_without_suffix_is_malformed() -> None:
    with pytest.raises(MalformedLocator):
        normalize("drs://dg.4503:", LOOKUP)


def test_absolute_uri_uses_host_and_path() -> None:
    locator = normalize("drs://jade.datarepo-dev.broadinstitute.org/v1_abc_123", LOOKUP)

    assert locator == CanonicalLocator(host="jade.datarepo-dev.broadinstitute.org", object_path="v1_abc_123")
    assert locator.base_url == "https://jade.datarepo-dev.broadinstitute.org"


def test_absolute_uri_keeps_port_and_query() -> None:
    locator = normalize("drs://drs.example.org:8443/objects/abc?expand=true", LOOKUP)

    assert locator.host == "drs.example.org"
    assert locator.port == 8443
    assert locator.object_path == "objects/abc"
    assert locator.query == "expand=true"
    assert locator.base_url == "https://drs.example.org:8443"


@pytest.mark.parametrize(
    "uri",
    [
        "",
        "   ",
        "not a uri",
        "drs://example.org",
        "drs://example.org/",
        "drs:///abc",
        "drs://example.org:notaport/abc",
    ],
)
def test_malformed_uris_are_rejected(uri: str) -> None:
    with pytest.raises(MalformedLocator):
        normalize(uri, LOOKUP)


@pytest.mark.parametrize(
    "uri",
    [
        "drs://dataguids.org/abc",
        "dos://dataguids.org/abc",
        "drs://dg.dataguids.org/abc",
        "drs://DataGuids.org",
    ],
)
def test_decommissioned_host_is_gone(uri: str) -> None:
    with pytest.raises(GoneLocator) as exc_info:
        normalize(uri, LOOKUP)

    assert exc_info.value.message == GONE_MESSAGE
    assert exc_info.value.status_code == 400


def test_compact_identifier_expanding_to_decommissioned_host_is_gone() -> None:
    with pytest.raises(GoneLocator):
        normalize("drs://dg.4503:123abc", {"dg.4503": "dataguids.org"})
