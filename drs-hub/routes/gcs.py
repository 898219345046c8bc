"""
GCS Signed URL Routes
======================
POST /api/v4/gcs/getSignedUrl: sign a GET URL for a GCS object as the
calling user.

The signing key is the user's Bond service account for the provider that
owns ``dataObjectUri`` when that provider is Bond-brokered, otherwise the
user's Sam pet service account.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from google.auth.exceptions import GoogleAuthError
from pydantic import BaseModel, ConfigDict, Field

from auth import generate_signed_url, require_authorization
from errors import UpstreamFailure

logger = logging.getLogger("drs-hub.routes.gcs")

router = APIRouter(prefix="/api/v4/gcs", tags=["gcs"])

SIGNED_URL_HOURS = 1


class SignedUrlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bucket: str = Field(min_length=1)
    object: str = Field(min_length=1, description="Object path within the bucket")
    data_object_uri: Optional[str] = Field(
        default=None,
        alias="dataObjectUri",
        description="DRS URI the object was resolved from; selects the Bond provider",
    )
    google_project: Optional[str] = Field(
        default=None,
        alias="googleProject",
        description="Project to bill for requester-pays buckets",
    )


@router.post("/getSignedUrl")
async def get_signed_url(
    body: SignedUrlRequest,
    request: Request,
    authorization: str = Depends(require_authorization),
) -> dict[str, str]:
    """Return ``{"url": ...}``, a V4 signed URL valid for one hour."""
    resolver = request.state.resolver

    bond_provider = None
    if body.data_object_uri:
        _, provider = resolver.locate(body.data_object_uri)
        bond_provider = provider.bond_provider

    if bond_provider:
        logger.info("Signing gs://%s/%s with Bond '%s' key", body.bucket, body.object, bond_provider.value)
        try:
            key_response = await resolver.bond.get_link_sa_key(bond_provider.value, authorization)
        except UpstreamFailure as exc:
            raise UpstreamFailure.wrap("Received error contacting Bond.", exc) from exc
        key = key_response.get("data") if isinstance(key_response, dict) else None
    else:
        logger.info("Signing gs://%s/%s with Sam pet service account key", body.bucket, body.object)
        try:
            key = await request.state.sam.get_pet_service_account_key(authorization)
        except UpstreamFailure as exc:
            raise UpstreamFailure.wrap("Received error contacting Sam.", exc) from exc

    if not isinstance(key, dict) or not key:
        raise UpstreamFailure("No service account key was returned to sign the URL with.")

    try:
        url = generate_signed_url(
            body.bucket,
            body.object,
            key,
            google_project=body.google_project,
            expiration_hours=SIGNED_URL_HOURS,
        )
    except (ValueError, GoogleAuthError) as exc:
        raise UpstreamFailure("Could not sign URL with the user's service account key.", str(exc)) from exc

    return {"url": url}
