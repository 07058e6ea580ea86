"""Local disk image store: files under the upload dir, served at /uploads."""

import logging
import os
from datetime import datetime, timezone

from fastapi.concurrency import run_in_threadpool

from moviebooks.clients.base import IImageStore, ImageUpload, StoredImage

logger = logging.getLogger(__name__)


def _write_file(path: str, content: bytes) -> None:
    with open(path, "wb") as f:
        f.write(content)


class LocalImageStore(IImageStore):
    """Stores images on the API host's disk."""

    name = "local"
    URL_PREFIX = "/uploads"

    def __init__(self, upload_dir: str):
        self.upload_dir = upload_dir
        os.makedirs(self.upload_dir, exist_ok=True)

    async def upload(self, image: ImageUpload) -> StoredImage:
        # fieldname-timestamp.ext keeps names unique and readable
        ext = os.path.splitext(image.filename)[1].lower()
        ts = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        safe_name = f"{image.field}-{ts}{ext}"
        path = os.path.join(self.upload_dir, safe_name)

        await run_in_threadpool(_write_file, path, image.content)

        logger.info(f"Stored {image.field} upload as {safe_name} ({len(image.content)} bytes)")
        return StoredImage(url=f"{self.URL_PREFIX}/{safe_name}", public_id=safe_name)

    async def delete(self, public_ids: list[str]) -> None:
        for public_id in public_ids:
            # public ids are bare file names; never follow a path out of the dir
            path = os.path.join(self.upload_dir, os.path.basename(public_id))
            try:
                await run_in_threadpool(os.remove, path)
            except FileNotFoundError:
                logger.warning(f"Upload {public_id} already gone")

    async def test_connection(self) -> bool:
        return os.path.isdir(self.upload_dir) and os.access(self.upload_dir, os.W_OK)
