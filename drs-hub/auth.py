"""
Caller authentication and Google Cloud Storage signing for DRS Hub.

Provides:
- Bearer ``Authorization`` header requirement (FastAPI dependency)
- ``drshub-force-access-url`` header parsing
- GCS V4 signed URL generation from a user's service-account key
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import Header, HTTPException
from google.cloud import storage
from google.oauth2 import service_account

logger = logging.getLogger("drs-hub.auth")

FORCE_ACCESS_URL_HEADER = "drshub-force-access-url"


# ---------------------------------------------------------------------------
# Request headers
# ---------------------------------------------------------------------------


async def require_authorization(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    """Return the caller's ``Authorization`` header, or answer 401 without one.

    The header is forwarded verbatim to Bond, ExternalCreds, Sam and (for
    providers that need it) the DRS provider itself.
    """
    if not authorization or not authorization.strip():
        raise HTTPException(status_code=401, detail="Authorization header is missing.")
    return authorization.strip()


async def force_access_url(
    value: Optional[str] = Header(None, alias=FORCE_ACCESS_URL_HEADER),
) -> bool:
    """Only the string ``true`` (any case) turns forcing on; ``false`` really means false."""
    return value is not None and value.strip().lower() == "true"


# ---------------------------------------------------------------------------
# GCS Signed URLs
# ---------------------------------------------------------------------------


def generate_signed_url(
    bucket_name: str,
    blob_path: str,
    service_account_key: dict,
    google_project: Optional[str] = None,
    expiration_hours: int = 1,
) -> str:
    """Generate a V4 signed URL for a GCS object, signed as the user's service account.

    Signing happens locally with the key's private key; no GCS call is made.

    Args:
        bucket_name: GCS bucket name.
        blob_path: Object path within the bucket.
        service_account_key: Service-account key JSON from Bond or Sam.
        google_project: Project billed for requester-pays buckets.
        expiration_hours: URL validity in hours.

    Returns:
        Signed URL string.
    """
    credentials = service_account.Credentials.from_service_account_info(service_account_key)
    project = google_project or service_account_key.get("project_id")
    client = storage.Client(project=project, credentials=credentials)
    blob = client.bucket(bucket_name).blob(blob_path)

    # Requester-pays buckets bill the project named in the signed query string
    query_parameters = {"userProject": google_project} if google_project else None

    url = blob.generate_signed_url(
        version="v4",
        expiration=timedelta(hours=expiration_hours),
        method="GET",
        credentials=credentials,
        query_parameters=query_parameters,
    )
    logger.info("Signed gs://%s/%s as %s", bucket_name, blob_path, credentials.service_account_email)
    return url
