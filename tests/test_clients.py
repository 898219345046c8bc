"""Unit tests for the downstream HTTP clients."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from clients import BondApi, DrsApi, ExternalCredsApi
from errors import UpstreamFailure
from locator import CanonicalLocator

LOCATOR = CanonicalLocator(host="drs.example.org", object_path="objects/abc", query="v=2")


def _run(handler, call):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await call(http)

    return asyncio.run(go())


def test_objects_url_quotes_access_id_and_keeps_query() -> None:
    drs = DrsApi(None)

    assert drs.objects_url(LOCATOR) == "https://drs.example.org/ga4gh/drs/v1/objects/objects/abc?v=2"
    assert (
        drs.objects_url(LOCATOR, "s3 east/1")
        == "https://drs.example.org/ga4gh/drs/v1/objects/objects/abc/access/s3%20east%2F1?v=2"
    )


def test_bond_access_token_returns_token_value() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://bond.test/api/link/v1/fence/accesstoken"
        assert request.headers["Authorization"] == "Bearer user"
        return httpx.Response(200, json={"token": "fence-token", "expires_at": "later"})

    token = _run(handler, lambda http: BondApi(http, "https://bond.test/").get_link_access_token("fence", "Bearer user"))

    assert token == "fence-token"


def test_passport_is_returned_as_json_string() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/oidc/v1/ras/passport"
        return httpx.Response(200, json="eyJ.passport.jwt")

    passport = _run(
        handler,
        lambda http: ExternalCredsApi(http, "https://ecm.test").get_provider_passport("ras", "Bearer user"),
    )

    assert passport == "eyJ.passport.jwt"


def test_status_failure_carries_upstream_status_and_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "user is not linked", "code": 403}})

    with pytest.raises(UpstreamFailure) as exc_info:
        _run(handler, lambda http: BondApi(http, "https://bond.test").get_link_sa_key("anvil", "Bearer user"))

    error = exc_info.value
    assert error.upstream_status == 403
    assert error.status_code == 403
    assert error.detail == "user is not linked"


def test_timeout_becomes_upstream_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamFailure) as exc_info:
        _run(handler, lambda http: DrsApi(http).get_object(LOCATOR))

    assert exc_info.value.upstream_status is None
    assert exc_info.value.status_code == 500
    assert exc_info.value.description.startswith("Timed out calling")


def test_non_json_body_becomes_upstream_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(UpstreamFailure, match="non-JSON"):
        _run(handler, lambda http: DrsApi(http).get_object(LOCATOR))


def test_upstream_failure_wrap_relabels_the_step() -> None:
    cause = UpstreamFailure("GET https://x returned HTTP 502.", "bad gateway", 502)

    wrapped = UpstreamFailure.wrap("Received error contacting Bond.", cause)

    assert wrapped.message == "Received error contacting Bond. bad gateway"
    assert wrapped.status_code == 502
