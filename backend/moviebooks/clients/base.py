"""Abstract interface for image storage backends.

Connection screenshots, movie posters and book covers go through this
contract. Local disk is the default; Cloudinary is the hosted option.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


# ── Data Transfer Objects ────────────────────────────────────────

@dataclass
class ImageUpload:
    """An image received from a client, already read into memory."""
    field: str             # "moviePoster" | "bookCover" | "screenshot"
    filename: str
    content: bytes
    content_type: Optional[str] = None


@dataclass
class StoredImage:
    """Where an uploaded image ended up."""
    url: str               # Relative "/uploads/..." path or absolute URL
    public_id: str         # Key used to delete the image later


class ImageStoreError(Exception):
    """Raised when the backing store rejects an upload or delete."""


# ── Abstract Interfaces ──────────────────────────────────────────

class IImageStore(ABC):
    """Interface for image storage backends (local disk, Cloudinary)."""

    name: str = "base"

    @abstractmethod
    async def upload(self, image: ImageUpload) -> StoredImage:
        """Persist an image and return its URL and public id."""
        ...

    @abstractmethod
    async def delete(self, public_ids: list[str]) -> None:
        """Delete previously uploaded images. Unknown ids are ignored."""
        ...

    @abstractmethod
    async def test_connection(self) -> bool:
        """Test if the store is reachable and writable."""
        ...
