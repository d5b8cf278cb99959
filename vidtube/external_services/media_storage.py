"""Thin async client for the Cloudinary upload API.

Only the two calls the platform needs are implemented:

* ``upload_media`` – signed upload of a video or image; returns the secure URL,
  the ``public_id`` needed to delete the asset later and, for videos, the
  duration computed by Cloudinary.
* ``delete_media`` – signed ``destroy`` of a previously uploaded asset.

Requests are signed as described in Cloudinary's "Authenticated requests"
guide: the parameters (excluding ``file``, ``api_key`` and
``resource_type``) are sorted, joined as ``k=v`` pairs with ``&`` and the API
secret is appended before taking the SHA-1 hex digest.
"""

from __future__ import annotations

import hashlib
import time
from typing import Any, BinaryIO, Dict, Literal, Optional

import httpx
from opentelemetry import trace
from pydantic import BaseModel

from vidtube.core.config import settings
from vidtube.metrics import MEDIA_STORAGE_DURATION_SECONDS

ResourceType = Literal["image", "video", "raw"]

_tracer = trace.get_tracer(__name__)

_UNSIGNED_PARAMS = {"file", "api_key", "resource_type", "cloud_name", "signature"}


class MediaStorageError(Exception):
    """Raised when the media host rejects a request or cannot be reached."""


class UploadedMedia(BaseModel):
    url: str
    public_id: str
    resource_type: str
    duration: Optional[float] = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """Return the Cloudinary SHA-1 signature for *params*."""

    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in _UNSIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def _endpoint(resource_type: str, action: str) -> str:
    base = settings.CLOUDINARY_API_BASE_URL.rstrip("/")
    return f"{base}/{settings.CLOUDINARY_CLOUD_NAME}/{resource_type}/{action}"


def _signed_form(params: Dict[str, Any]) -> Dict[str, Any]:
    form = {k: v for k, v in params.items() if v not in (None, "")}
    form["api_key"] = settings.CLOUDINARY_API_KEY
    form["signature"] = sign_params(form, settings.CLOUDINARY_API_SECRET)
    return form


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.MEDIA_UPLOAD_TIMEOUT)


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return resp.text[:200]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def upload_media(
    stream: BinaryIO,
    filename: str,
    content_type: Optional[str],
    resource_type: ResourceType = "image",
) -> UploadedMedia:
    start_time = time.perf_counter()
    with _tracer.start_as_current_span("media.upload") as span:
        span.set_attribute("media.resource_type", resource_type)

        form = _signed_form(
            {"timestamp": int(time.time()), "folder": settings.CLOUDINARY_FOLDER}
        )
        files = {"file": (filename, stream, content_type or "application/octet-stream")}

        try:
            async with _client() as client:
                resp = await client.post(
                    _endpoint(resource_type, "upload"), data=form, files=files
                )
        except httpx.HTTPError as exc:
            raise MediaStorageError(f"Media upload failed: {exc}") from exc
        finally:
            MEDIA_STORAGE_DURATION_SECONDS.labels(operation="upload").observe(
                time.perf_counter() - start_time
            )

        if resp.status_code != 200:
            raise MediaStorageError(
                f"Media host returned HTTP {resp.status_code}: {_error_message(resp)}"
            )

        data = resp.json()
        if not data.get("secure_url") or not data.get("public_id"):
            raise MediaStorageError("Media host response is missing the asset URL")

        span.set_attribute("media.public_id", data["public_id"])
        return UploadedMedia(
            url=data["secure_url"],
            public_id=data["public_id"],
            resource_type=data.get("resource_type", resource_type),
            duration=data.get("duration"),
        )


async def delete_media(public_id: str, resource_type: ResourceType = "image") -> bool:
    """Delete an asset; returns False when the host no longer knows it."""

    start_time = time.perf_counter()
    with _tracer.start_as_current_span("media.delete") as span:
        span.set_attribute("media.public_id", public_id)
        span.set_attribute("media.resource_type", resource_type)

        form = _signed_form(
            {
                "public_id": public_id,
                "timestamp": int(time.time()),
                "invalidate": "true",
            }
        )

        try:
            async with _client() as client:
                resp = await client.post(_endpoint(resource_type, "destroy"), data=form)
        except httpx.HTTPError as exc:
            raise MediaStorageError(f"Media delete failed: {exc}") from exc
        finally:
            MEDIA_STORAGE_DURATION_SECONDS.labels(operation="delete").observe(
                time.perf_counter() - start_time
            )

        if resp.status_code != 200:
            raise MediaStorageError(
                f"Media host returned HTTP {resp.status_code}: {_error_message(resp)}"
            )

        result = resp.json().get("result")
        if result == "ok":
            return True
        if result == "not found":
            return False
        raise MediaStorageError(f"Unexpected destroy result: {result!r}")
