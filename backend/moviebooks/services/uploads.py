"""Image upload intake: validation and the configured image store."""

import logging
import os
from functools import lru_cache
from typing import Optional

from fastapi import HTTPException, UploadFile

from moviebooks.clients.base import IImageStore, ImageUpload
from moviebooks.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif"}
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}


@lru_cache
def get_image_store() -> IImageStore:
    """FastAPI dependency: the process-wide image store."""
    if settings.image_store == "cloudinary":
        if not settings.has_cloudinary:
            raise RuntimeError("IMAGE_STORE=cloudinary but Cloudinary credentials are missing")
        from moviebooks.clients.cloudinary import CloudinaryClient

        return CloudinaryClient(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
        )

    from moviebooks.clients.local import LocalImageStore

    return LocalImageStore(settings.upload_dir)


async def read_image(field: str, upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    """Validate one multipart file and read it into memory.

    Returns None when the field was not sent. Raises a 400 for anything that
    is not a jpeg/png/gif image or is over the size limit.
    """
    if upload is None or not upload.filename:
        return None

    ext = os.path.splitext(upload.filename)[1].lower()
    if ext not in ALLOWED_EXTENSIONS or (
        upload.content_type and upload.content_type not in ALLOWED_MIME_TYPES
    ):
        raise HTTPException(400, "Error: Images Only! (jpeg, jpg, png, gif)")

    content = await upload.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(400, f"File is too large. Maximum size is {limit_mb}MB per file.")

    logger.debug(f"Accepted {field} upload {upload.filename} ({len(content)} bytes)")
    return ImageUpload(
        field=field,
        filename=upload.filename,
        content=content,
        content_type=upload.content_type,
    )
