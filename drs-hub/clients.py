"""
Thin async clients for the services DRS Hub talks to.

- DRS providers (GA4GH DRS v1 ``objects`` and ``access`` endpoints)
- Bond (linked Fence accounts: access tokens and service-account keys)
- ExternalCreds (OIDC passports)
- Sam (pet service-account keys)

All clients share one ``httpx.AsyncClient`` owned by the app lifespan. Any
transport error, timeout or non-2xx status becomes an ``UpstreamFailure``
carrying the upstream status when there was one; deciding whether that is
fatal is the orchestrator's job.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from errors import UpstreamFailure
from locator import CanonicalLocator

logger = logging.getLogger("drs-hub.clients")

DRS_OBJECTS_PREFIX = "/ga4gh/drs/v1/objects"


class BackendClient:
    """Shared request/response handling for JSON backends."""

    def __init__(self, http: httpx.AsyncClient, base_url: str = ""):
        self._http = http
        self.base_url = base_url.rstrip("/")

    async def _request(
        self,
        method: str,
        url: str,
        authorization: Optional[str] = None,
        json: Any = None,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if authorization:
            headers["Authorization"] = authorization

        try:
            resp = await self._http.request(method, url, headers=headers, json=json)
        except httpx.TimeoutException as exc:
            raise UpstreamFailure(f"Timed out calling {url}.", str(exc) or type(exc).__name__) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Could not reach {url}.", str(exc) or type(exc).__name__) from exc

        if not resp.is_success:
            logger.warning("%s %s returned HTTP %d: %s", method, url, resp.status_code, resp.text[:500])
            raise UpstreamFailure(
                f"{method} {url} returned HTTP {resp.status_code}.",
                resp.text[:1000],
                resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamFailure(
                f"{method} {url} returned a non-JSON body.",
                resp.text[:200],
                resp.status_code,
            ) from exc


class DrsApi(BackendClient):
    """Client for a single DRS provider, addressed by the request's locator."""

    def objects_url(self, locator: CanonicalLocator, access_id: Optional[str] = None) -> str:
        url = f"{locator.base_url}{DRS_OBJECTS_PREFIX}/{locator.object_path}"
        if access_id is not None:
            url = f"{url}/access/{quote(access_id, safe='')}"
        if locator.query:
            url = f"{url}?{locator.query}"
        return url

    async def get_object(self, locator: CanonicalLocator, authorization: Optional[str] = None) -> dict:
        return await self._request("GET", self.objects_url(locator), authorization)

    async def get_access_url(self, locator: CanonicalLocator, access_id: str, authorization: str) -> dict:
        return await self._request("GET", self.objects_url(locator, access_id), authorization)

    async def post_access_url(self, locator: CanonicalLocator, access_id: str, passports: list[str]) -> dict:
        return await self._request(
            "POST",
            self.objects_url(locator, access_id),
            json={"passports": passports},
        )


class BondApi(BackendClient):
    async def get_link_access_token(self, bond_provider: str, authorization: str) -> Optional[str]:
        url = f"{self.base_url}/api/link/v1/{bond_provider}/accesstoken"
        body = await self._request("GET", url, authorization)
        return body.get("token") if isinstance(body, dict) else None

    async def get_link_sa_key(self, bond_provider: str, authorization: str) -> dict:
        url = f"{self.base_url}/api/link/v1/{bond_provider}/serviceaccount/key"
        return await self._request("GET", url, authorization)


class ExternalCredsApi(BackendClient):
    async def get_provider_passport(self, issuer: str, authorization: str) -> str:
        url = f"{self.base_url}/api/oidc/v1/{issuer}/passport"
        return await self._request("GET", url, authorization)


class SamApi(BackendClient):
    async def get_pet_service_account_key(self, authorization: str) -> dict:
        url = f"{self.base_url}/api/google/v1/user/petServiceAccount/key"
        return await self._request("GET", url, authorization)
