"""
GA4GH DRS object models and access-method selection.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from providers import AccessMethodPolicy


class AccessURL(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    headers: Optional[Any] = None


class ReturnedAccessMethod(BaseModel):
    """One entry of a DRS object's ``access_methods``."""

    model_config = ConfigDict(extra="ignore")

    type: str
    access_id: Optional[str] = None
    access_url: Optional[AccessURL] = None
    region: Optional[str] = None


class Checksum(BaseModel):
    model_config = ConfigDict(extra="ignore")

    checksum: str
    type: str


class DrsObject(BaseModel):
    """Object descriptor returned by ``GET /ga4gh/drs/v1/objects/{id}``.

    Timestamps stay as strings; ``assembler`` normalizes them to UTC.
    """

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None
    created_time: Optional[str] = None
    updated_time: Optional[str] = None
    checksums: list[Checksum] = Field(default_factory=list)
    aliases: Optional[list[str]] = None
    access_methods: list[ReturnedAccessMethod] = Field(default_factory=list)

    @field_validator("checksums", "access_methods", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return [] if value is None else value


def dos_to_drs(payload: dict) -> dict:
    """Convert a legacy DOS v1 ``data_object`` response into the DRS shape.

    Responses without a ``data_object`` envelope are assumed to be DRS already.
    Only ``gs://`` URLs survive as access methods.
    """
    data_object = payload.get("data_object") if isinstance(payload, dict) else None
    if not data_object:
        return payload

    urls = data_object.get("urls") or []
    return {
        "id": data_object.get("id"),
        "name": data_object.get("name"),
        "size": data_object.get("size"),
        "mime_type": data_object.get("mimeType"),
        "created_time": data_object.get("created"),
        "updated_time": data_object.get("updated"),
        "checksums": data_object.get("checksums") or [],
        "access_methods": [
            {"type": "gs", "access_url": {"url": entry["url"]}}
            for entry in urls
            if str(entry.get("url", "")).startswith("gs://")
        ],
    }


def select_access_method(
    returned: Sequence[ReturnedAccessMethod],
    policies: Sequence[AccessMethodPolicy],
) -> Optional[ReturnedAccessMethod]:
    """Pick the returned access method to use for signed URL retrieval.

    Policy order is priority: the first policy whose type appears anywhere in
    ``returned`` wins, regardless of the order the provider returned them in.
    """
    for policy in policies:
        for method in returned:
            if method.type == policy.method_type:
                return method
    return None
