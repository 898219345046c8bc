"""Shared fixtures: a frozen test config and scripted downstream backends."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from orchestrator import DrsResolver
from providers import DEFAULT_PROVIDERS
from settings import DrsHubConfig, compact_id_hosts_for

BOND_URL = "https://bond.test"
EXTERNALCREDS_URL = "https://externalcreds.test"
SAM_URL = "https://sam.test"

USER_AUTH = "Bearer user-token"

BDC_HOST = "staging.gen3.biodatacatalyst.nhlbi.nih.gov"
TDR_HOST = "jade.datarepo-dev.broadinstitute.org"
CRDC_HOST = "nci-crdc-staging.datacommons.io"
PASSPORT_HOST = "ctds-test-env.planx-pla.net"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def objects_url(host: str, object_id: str, access_id: Optional[str] = None) -> str:
    url = f"https://{host}/ga4gh/drs/v1/objects/{object_id}"
    return f"{url}/access/{access_id}" if access_id else url


class FakeBackends:
    """httpx.MockTransport handler that answers scripted replies and records every request.

    A route registered with several replies answers them in order and then
    keeps repeating the last one.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Reply]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        *replies: Reply,
        json: Any = None,
        status: int = 200,
    ) -> "FakeBackends":
        if not replies:
            replies = (httpx.Response(status, json=json),)
        self.routes[(method, url)] = list(replies)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, str(request.url)))
        if not replies:
            return httpx.Response(599, text=f"unexpected {request.method} {request.url}")
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        return reply(request) if callable(reply) else reply

    def calls(self, method: Optional[str] = None, url: Optional[str] = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (url is None or str(r.url) == url)
        ]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def gs_object(**overrides: Any) -> dict[str, Any]:
    body = {
        "id": "abc",
        "name": "object.bam",
        "size": 1234,
        "mime_type": "application/bam",
        "created_time": "2021-03-04T20:00:00Z",
        "updated_time": "2021-03-05T10:15:30",
        "checksums": [
            {"type": "md5", "checksum": "336ea55913bc261b72875bd259753046"},
            {"type": "crc32c", "checksum": "8a366443"},
        ],
        "access_methods": [
            {
                "type": "gs",
                "access_id": "gs-id",
                "access_url": {"url": "gs://my-bucket/path/to/object.bam"},
            }
        ],
    }
    body.update(overrides)
    return body


@pytest.fixture
def config() -> DrsHubConfig:
    return DrsHubConfig(
        env="dev",
        bond_url=BOND_URL,
        externalcreds_url=EXTERNALCREDS_URL,
        sam_url=SAM_URL,
        request_timeout_seconds=5,
        compact_id_hosts=compact_id_hosts_for("dev"),
        providers=tuple(DEFAULT_PROVIDERS.values()),
    )


@pytest.fixture
def backends() -> FakeBackends:
    return FakeBackends()


@pytest.fixture
def resolve(config, backends):
    """Run ``DrsResolver.resolve`` against the scripted backends."""

    def run(uri: str, fields=None, authorization: str = USER_AUTH, force: bool = False):
        async def go():
            async with httpx.AsyncClient(transport=backends.transport()) as http:
                return await DrsResolver(config, http).resolve(uri, fields, authorization, force)

        return asyncio.run(go())

    return run
