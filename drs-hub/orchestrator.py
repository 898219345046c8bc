"""
DRS URI resolution.

``DrsResolver.resolve`` turns a DOS/DRS URI plus a list of requested fields
into the flat response map:

  1. Normalize the URI and pick the DRS provider that owns its host
  2. Fetch the DRS object metadata from the provider [+]
  3. Fetch the user's Google service account key from Bond [+]
  4. Fetch the user's RAS passport from ExternalCreds [+]
  5. Fetch a Fence access token from Bond [+]
  6. Fetch a signed URL from the provider, retrying once with the
     provider's fallback auth when the first attempt yields nothing [+]

([+] only for some providers, objects and requested fields; see ``planner``.)

Steps 2-6 are the stages of ``Resolution.run``. Each stage re-evaluates its
planner decision against what earlier stages produced.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ValidationError

from access_methods import AccessURL, DrsObject, ReturnedAccessMethod, dos_to_drs, select_access_method
from assembler import assemble
from clients import BondApi, DrsApi, ExternalCredsApi
from errors import DrsHubError, InvalidFields, MissingCredential, UpstreamFailure
from fields import ALL_FIELDS, invalid_fields, with_defaults
from locator import CanonicalLocator, normalize
from planner import (
    should_fail_on_access_url_fail,
    should_fetch_access_url,
    should_fetch_fence_access_token,
    should_fetch_passports,
    should_fetch_service_account,
    should_request_metadata,
)
from providers import AccessUrlAuth, BondProvider, ProviderDefinition, resolve_provider
from settings import DrsHubConfig

logger = logging.getLogger("drs-hub.resolver")


class ResolvedMetadata(BaseModel):
    """Everything one resolution learned; consumed by ``assembler.assemble``."""

    drs_object: Optional[DrsObject] = None
    access_method: Optional[ReturnedAccessMethod] = None
    file_name: Optional[str] = None
    localization_path: Optional[str] = None
    access_url: Optional[AccessURL] = None
    service_account_key: Optional[dict[str, Any]] = None
    bond_provider: Optional[BondProvider] = None


class DrsResolver:
    """Entry point for resolving DRS URIs against the configured providers."""

    def __init__(self, config: DrsHubConfig, http: httpx.AsyncClient):
        self.config = config
        self.drs = DrsApi(http)
        self.bond = BondApi(http, config.bond_url)
        self.externalcreds = ExternalCredsApi(http, config.externalcreds_url)

    def locate(self, uri: str) -> tuple[CanonicalLocator, ProviderDefinition]:
        locator = normalize(uri, self.config.compact_id_hosts)
        return locator, resolve_provider(locator, self.config.providers)

    async def resolve(
        self,
        uri: str,
        requested_fields: Optional[Sequence[str]],
        authorization: str,
        force_access_url: bool = False,
    ) -> dict[str, Any]:
        """Resolve ``uri`` and return the requested fields that have values.

        Args:
            uri: DOS/DRS URI, absolute or compact.
            requested_fields: Field names from ``fields.ALL_FIELDS``; the
                default set when empty or None.
            authorization: The caller's ``Authorization`` header value.
            force_access_url: Fetch a signed URL even when the provider's
                policy would not.

        Raises:
            ClientError: Unsupported fields, a malformed, gone or unowned URI,
                or a missing credential.
            UpstreamFailure: A fatal downstream failure.
        """
        unsupported = invalid_fields(requested_fields or [])
        if unsupported:
            raise InvalidFields(
                f"Fields '{', '.join(unsupported)}' are not supported. "
                f"Supported fields are '{', '.join(ALL_FIELDS)}'."
            )

        fields = with_defaults(requested_fields)
        locator, provider = self.locate(uri)
        logger.info(
            "DRS URI '%s' will use provider '%s', requested fields: %s",
            uri, provider.name, ", ".join(fields),
        )

        resolution = Resolution(self, uri, locator, provider, fields, authorization, force_access_url)
        resolved = await resolution.run()
        return assemble(fields, resolved, provider)


class Resolution:
    """One in-flight resolution. Owns its ``ResolvedMetadata`` exclusively."""

    def __init__(
        self,
        resolver: DrsResolver,
        uri: str,
        locator: CanonicalLocator,
        provider: ProviderDefinition,
        fields: list[str],
        authorization: str,
        force_access_url: bool,
    ):
        self.resolver = resolver
        self.uri = uri
        self.locator = locator
        self.provider = provider
        self.fields = fields
        self.authorization = authorization
        self.force_access_url = force_access_url
        self.passports: Optional[list[str]] = None
        self.resolved = ResolvedMetadata(bond_provider=provider.bond_provider)

    @property
    def method_type(self) -> Optional[str]:
        method = self.resolved.access_method
        return method.type if method else None

    async def run(self) -> ResolvedMetadata:
        await self.fetch_metadata()
        self.select_access_method()
        await self.fetch_service_account()
        await self.fetch_passports()
        self.derive_file_name()
        self.derive_localization_path()
        await self.fetch_access_url()
        return self.resolved

    # -----------------------------------------------------------------------
    # Stages
    # -----------------------------------------------------------------------

    async def fetch_metadata(self) -> None:
        if not should_request_metadata(self.fields):
            return

        auth = self.authorization if self.provider.metadata_auth else None
        logger.info(
            "Requesting DRS metadata for '%s' from '%s' with auth required '%s'",
            self.uri, self.resolver.drs.objects_url(self.locator), self.provider.metadata_auth,
        )
        try:
            payload = await self.resolver.drs.get_object(self.locator, auth)
        except UpstreamFailure as exc:
            raise UpstreamFailure.wrap("Received error while resolving DRS URL.", exc) from exc

        try:
            self.resolved.drs_object = DrsObject.model_validate(dos_to_drs(payload))
        except (ValidationError, AttributeError, TypeError) as exc:
            raise UpstreamFailure("Received error while parsing response from DRS URL.", str(exc)) from exc

    def select_access_method(self) -> None:
        drs_object = self.resolved.drs_object
        if drs_object is None:
            return
        self.resolved.access_method = select_access_method(
            drs_object.access_methods, self.provider.access_method_policies
        )

    async def fetch_service_account(self) -> None:
        if not should_fetch_service_account(self.provider, self.method_type, self.fields):
            return

        bond_provider = self.provider.bond_provider.value
        logger.info("Requesting Bond SA key for '%s' from Bond provider '%s'", self.uri, bond_provider)
        try:
            key = await self.resolver.bond.get_link_sa_key(bond_provider, self.authorization)
        except UpstreamFailure as exc:
            raise UpstreamFailure.wrap("Received error contacting Bond.", exc) from exc
        self.resolved.service_account_key = key or None

    async def fetch_passports(self) -> None:
        if not should_fetch_passports(self.provider, self.method_type, self.fields):
            return

        # Only RAS passports for now
        issuer = self.resolver.config.passport_issuer
        logger.info("Requesting %s passport for '%s' from ExternalCreds", issuer, self.uri)
        try:
            passport = await self.resolver.externalcreds.get_provider_passport(issuer, self.authorization)
        except UpstreamFailure as exc:
            if exc.upstream_status == 404:
                logger.info("User does not have a passport.")
                return
            raise UpstreamFailure.wrap("Received error contacting externalcreds.", exc) from exc
        self.passports = [passport] if passport else []

    def derive_file_name(self) -> None:
        """Use the DRS ``name``, else the last path segment of the first access URL."""
        drs_object = self.resolved.drs_object
        if drs_object is None:
            return
        if drs_object.name:
            self.resolved.file_name = drs_object.name
            return
        if drs_object.access_methods and drs_object.access_methods[0].access_url:
            path = urlsplit(drs_object.access_methods[0].access_url.url).path
            self.resolved.file_name = path.replace("\\", "/").rsplit("/", 1)[-1] or None

    def derive_localization_path(self) -> None:
        drs_object = self.resolved.drs_object
        if self.provider.use_aliases_for_localization_path and drs_object and drs_object.aliases:
            self.resolved.localization_path = drs_object.aliases[0]

    async def fetch_access_url(self) -> None:
        if not should_fetch_access_url(self.provider, self.method_type, self.fields, self.force_access_url):
            return

        method = self.resolved.access_method
        if method is None:
            logger.info("No supported access method for '%s'; not fetching a signed URL.", self.uri)
            return

        try:
            policy = self.provider.policy_for(method.type)
            if not method.access_id:
                raise UpstreamFailure(
                    f"DRS provider returned no access_id for the '{method.type}' access method of '{self.uri}'."
                )

            token = await self._fetch_fence_access_token(use_fallback=False)
            logger.info(
                "Requesting DRS access URL for '%s' from '%s'",
                self.uri, self.resolver.drs.objects_url(self.locator, method.access_id),
            )
            access_url = await self._get_access_url(policy.auth, method.access_id, token)

            if access_url is None and policy.fallback_auth is not None:
                logger.info("Requesting DRS access URL for '%s' with fallback auth '%s'",
                            self.uri, policy.fallback_auth.value)
                fallback_token = await self._fetch_fence_access_token(use_fallback=True)
                access_url = await self._get_access_url(policy.fallback_auth, method.access_id, fallback_token)

            self.resolved.access_url = access_url
        except DrsHubError as exc:
            if should_fail_on_access_url_fail(self.method_type):
                raise
            # The caller can still reach a GCS object through its gs:// URI.
            logger.warning("Ignoring error from fetching signed URL for '%s': %s", self.uri, exc)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _fetch_fence_access_token(self, use_fallback: bool) -> Optional[str]:
        if not should_fetch_fence_access_token(
            self.provider, self.method_type, self.fields, use_fallback, self.force_access_url
        ):
            return None

        bond_provider = self.provider.bond_provider.value
        logger.info("Requesting Bond access token for '%s' from Bond provider '%s'", self.uri, bond_provider)
        try:
            return await self.resolver.bond.get_link_access_token(bond_provider, self.authorization)
        except UpstreamFailure as exc:
            if exc.upstream_status == 404:
                logger.info("User does not have a Bond account linked.")
                return None
            raise UpstreamFailure.wrap("Received error contacting Bond.", exc) from exc

    async def _get_access_url(
        self,
        auth: AccessUrlAuth,
        access_id: str,
        fence_token: Optional[str],
    ) -> Optional[AccessURL]:
        drs = self.resolver.drs

        if auth == AccessUrlAuth.PASSPORT:
            if not self.passports:
                logger.info("No passports available for '%s'.", self.uri)
                return None
            try:
                payload = await drs.post_access_url(self.locator, access_id, self.passports)
                return AccessURL.model_validate(payload)
            except (UpstreamFailure, ValidationError) as exc:
                logger.info("Passport authorized request failed for '%s' with error %s", self.uri, exc)
                return None
        elif auth == AccessUrlAuth.CURRENT_REQUEST:
            payload = await self._get_access_url_with(access_id, self.authorization)
        elif auth == AccessUrlAuth.FENCE_TOKEN:
            if not fence_token:
                raise MissingCredential(
                    f"Fence access token required for '{self.uri}' but is missing. "
                    "Does the user have an account linked in Bond?"
                )
            payload = await self._get_access_url_with(access_id, f"Bearer {fence_token}")
        else:
            raise DrsHubError(f"Unknown access URL auth '{auth}' for provider '{self.provider.name}'")

        try:
            return AccessURL.model_validate(payload)
        except ValidationError as exc:
            raise UpstreamFailure("Received an invalid access URL from DRS provider.", str(exc)) from exc

    async def _get_access_url_with(self, access_id: str, authorization: str) -> Any:
        try:
            return await self.resolver.drs.get_access_url(self.locator, access_id, authorization)
        except UpstreamFailure as exc:
            raise UpstreamFailure.wrap("Received error contacting DRS provider.", exc) from exc
