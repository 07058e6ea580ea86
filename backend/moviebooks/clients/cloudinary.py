"""Cloudinary client: uploads and resource deletion through the Cloudinary SDK.

Handles: image upload into a configured folder (returns the secure URL and
public id) and bulk delete through the Admin API. The SDK is synchronous, so
every call runs in the threadpool.
"""

import io
import logging
from typing import Optional

import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
from fastapi.concurrency import run_in_threadpool

from moviebooks.clients.base import IImageStore, ImageUpload, ImageStoreError, StoredImage

logger = logging.getLogger(__name__)


class CloudinaryClient(IImageStore):
    """Cloudinary implementation of IImageStore."""

    name = "cloudinary"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.folder = folder
        self.timeout = timeout
        # Passed per call so the SDK's global config stays untouched
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }

    # ── IImageStore implementation ───────────────────────────────

    async def upload(self, image: ImageUpload) -> StoredImage:
        options = {**self._credentials, "resource_type": "image", "timeout": self.timeout}
        if self.folder:
            options["folder"] = self.folder
        try:
            body = await run_in_threadpool(cloudinary.uploader.upload, io.BytesIO(image.content), **options)
        except cloudinary.exceptions.Error as e:
            raise ImageStoreError(f"Cloudinary upload failed: {e}") from e

        logger.info(f"Uploaded {image.field} to Cloudinary as {body['public_id']}")
        return StoredImage(url=body["secure_url"], public_id=body["public_id"])

    async def delete(self, public_ids: list[str]) -> None:
        if not public_ids:
            return
        try:
            body = await run_in_threadpool(
                cloudinary.api.delete_resources, public_ids, timeout=self.timeout, **self._credentials
            )
        except cloudinary.exceptions.Error as e:
            raise ImageStoreError(f"Cloudinary delete failed: {e}") from e

        logger.info(f"Cloudinary delete: {body.get('deleted', {})}")

    async def test_connection(self) -> bool:
        try:
            body = await run_in_threadpool(cloudinary.api.ping, timeout=5, **self._credentials)
            return body.get("status") == "ok"
        except Exception as e:
            logger.warning(f"Cloudinary ping failed: {e}")
            return False
