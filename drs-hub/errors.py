"""
Error taxonomy for DRS Hub.

Every error raised by the resolution engine derives from ``DrsHubError`` and
carries the HTTP status the API layer should answer with:

- ``ClientError`` (400) -- the caller sent something we cannot resolve.
- ``UpstreamFailure`` -- a provider or identity service call failed; the
  upstream status is passed through when one was received.
"""

from __future__ import annotations

import json
from typing import Optional


class DrsHubError(Exception):
    """Base class for errors surfaced to DRS Hub callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientError(DrsHubError):
    status_code = 400


class MalformedLocator(ClientError):
    """The URI matches neither the compact-identifier nor the absolute-URI grammar."""


class GoneLocator(ClientError):
    """The URI points at a decommissioned namespace host."""


class UnknownProvider(ClientError):
    """No registered provider owns the URI's host."""


class MissingCredential(ClientError):
    """A credential needed for a downstream call could not be obtained."""


class InvalidFields(ClientError):
    """The caller requested fields outside the field catalog."""


class UpstreamFailure(DrsHubError):
    """A downstream call failed with a transport error or a non-2xx status.

    ``description`` says which step failed; ``detail`` is the upstream
    message, unwrapped from Bond-style ``{"error": {"message": ...}}`` bodies.
    """

    def __init__(
        self,
        description: str,
        detail: str = "",
        upstream_status: Optional[int] = None,
    ):
        self.description = description
        self.detail = _unwrap_error_message(detail)
        self.upstream_status = upstream_status
        if upstream_status is not None and upstream_status >= 400:
            self.status_code = upstream_status
        super().__init__(f"{description} {self.detail}".strip())

    @classmethod
    def wrap(cls, description: str, cause: "UpstreamFailure") -> "UpstreamFailure":
        """Re-label a client-level failure with the orchestration step that hit it."""
        return cls(description, cause.detail, cause.upstream_status)


def _unwrap_error_message(text: str) -> str:
    try:
        body = json.loads(text)
    except (TypeError, ValueError):
        return text or ""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return text
