"""Upload validation and best-effort cleanup around the media host client."""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import HTTPException, UploadFile, status

from vidtube.core.config import settings
from vidtube.external_services import media_storage
from vidtube.external_services.media_storage import MediaStorageError, UploadedMedia

logger = logging.getLogger(__name__)

MediaKind = Literal["video", "image"]

_MB = 1024 * 1024


def validate_upload(upload: UploadFile, kind: MediaKind, field_name: str) -> None:
    """Reject uploads with the wrong content type or an out-of-range size."""

    content_type = (upload.content_type or "").lower()
    if not content_type.startswith(f"{kind}/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} must be a {kind} file",
        )

    max_mb = settings.MAX_VIDEO_UPLOAD_MB if kind == "video" else settings.MAX_IMAGE_UPLOAD_MB
    size = upload.size
    if size is not None and size == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} is empty",
        )
    if size is not None and size > max_mb * _MB:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} exceeds the {max_mb} MB limit",
        )


async def upload_file(upload: UploadFile, kind: MediaKind, field_name: str) -> UploadedMedia:
    validate_upload(upload, kind, field_name)
    try:
        media = await media_storage.upload_media(
            upload.file,
            upload.filename or field_name,
            upload.content_type,
            resource_type=kind,
        )
    except MediaStorageError as exc:
        logger.warning("Upload of %s failed: %s", field_name, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Error while uploading {field_name}",
        )
    logger.debug("Uploaded %s as %s", field_name, media.public_id)
    return media


async def discard_media(public_id: Optional[str], kind: MediaKind) -> bool:
    """Delete an asset, logging instead of raising when the host refuses."""

    if not public_id:
        return False
    try:
        deleted = await media_storage.delete_media(public_id, resource_type=kind)
    except MediaStorageError as exc:
        logger.warning("Could not delete %s asset %s: %s", kind, public_id, exc)
        return False
    if not deleted:
        logger.info("%s asset %s was already gone", kind, public_id)
    return deleted
