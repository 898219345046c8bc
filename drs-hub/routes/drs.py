"""
DRS Resolution Routes
======================
POST /api/v4/drs/resolve: resolve a DOS/DRS URI to file metadata,
credentials and (optionally) a signed access URL.

Headers:
  Authorization             caller's bearer token (required)
  drshub-force-access-url   "true" to fetch a signed URL regardless of provider policy
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from auth import force_access_url, require_authorization

logger = logging.getLogger("drs-hub.routes.drs")

router = APIRouter(prefix="/api/v4/drs", tags=["drs"])


class ResolveRequest(BaseModel):
    url: str = Field(description="DOS or DRS URI, e.g. 'drs://dg.4503:0123abc' or 'drs://host/object-id'")
    fields: Optional[list[str]] = Field(
        default=None,
        description="Response fields to return. Omit for the default set.",
    )


@router.post("/resolve")
async def resolve_drs(
    body: ResolveRequest,
    request: Request,
    authorization: str = Depends(require_authorization),
    force: bool = Depends(force_access_url),
) -> dict[str, Any]:
    """Resolve a DRS URI into the requested metadata fields."""
    logger.info(
        "Received URL '%s' from agent '%s' on IP '%s'",
        body.url,
        request.headers.get("user-agent", ""),
        request.headers.get("X-Forwarded-For") or (request.client.host if request.client else "unknown"),
    )

    resolver = request.state.resolver
    return await resolver.resolve(body.url, body.fields, authorization, force)
