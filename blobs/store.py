"""
blobs/store.py -- Opaque blob storage for news images.

Two backends behind one small interface:

  LocalBlobStore       files under a directory, served by the API at
                       Settings.blob_public_base_url (development default)
  CloudinaryBlobStore  Cloudinary upload/destroy through the cloudinary SDK

Callers only ever hold the (url, public_id) pair returned by upload() and
hand public_id back to delete(). delete() is idempotent: removing a blob that
is already gone succeeds. Every backend failure surfaces as BlobStoreError so
callers can treat blob cleanup as best-effort with a single except clause.
"""

import io
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from core.config import Settings

logger = logging.getLogger("newsdesk.blobs")

_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class BlobStoreError(Exception):
    """Raised for any blob backend failure (I/O, HTTP, provider error)."""


@dataclass(frozen=True)
class StoredBlob:
    url: str
    public_id: str


class BlobStore:
    """Interface every backend implements."""

    def upload(self, data: bytes, filename: str, content_type: str) -> StoredBlob:
        raise NotImplementedError

    def delete(self, public_id: str) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------


class LocalBlobStore(BlobStore):
    def __init__(self, root: Path, base_url: str = "/uploads") -> None:
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, public_id: str) -> Path:
        path = (self.root / public_id).resolve()
        # public_id comes back from the database; never let it escape root.
        if path.parent != self.root:
            raise BlobStoreError(f"Invalid blob id: {public_id!r}")
        return path

    def upload(self, data: bytes, filename: str, content_type: str) -> StoredBlob:
        suffix = _EXTENSIONS.get(content_type) or Path(filename).suffix.lower()
        public_id = f"{uuid.uuid4().hex}{suffix}"
        try:
            self._path_for(public_id).write_bytes(data)
        except OSError as exc:
            raise BlobStoreError(f"Could not write blob {public_id}: {exc}") from exc
        return StoredBlob(url=f"{self.base_url}/{public_id}", public_id=public_id)

    def delete(self, public_id: str) -> None:
        try:
            self._path_for(public_id).unlink(missing_ok=True)
        except OSError as exc:
            raise BlobStoreError(f"Could not delete blob {public_id}: {exc}") from exc


# ---------------------------------------------------------------------------
# Cloudinary
# ---------------------------------------------------------------------------


class CloudinaryBlobStore(BlobStore):
    """Images on Cloudinary via the official SDK.

    Credentials travel with every call instead of through cloudinary.config(),
    so several stores (or tests) never share process-wide SDK state.
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "news",
        timeout: float = 15,
    ) -> None:
        if not (cloud_name and api_key and api_secret):
            raise ValueError("Cloudinary requires cloud name, API key and API secret.")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self._api_secret = api_secret
        self.folder = folder
        self.timeout = timeout

    def _credentials(self) -> dict[str, Any]:
        return {"cloud_name": self.cloud_name, "api_key": self.api_key, "api_secret": self._api_secret}

    def upload(self, data: bytes, filename: str, content_type: str) -> StoredBlob:
        try:
            body = cloudinary.uploader.upload(
                io.BytesIO(data),
                folder=self.folder,
                resource_type="image",
                filename=filename,
                timeout=self.timeout,
                **self._credentials(),
            )
        except CloudinaryError as exc:
            raise BlobStoreError(f"Cloudinary upload failed: {exc}") from exc
        try:
            return StoredBlob(url=body["secure_url"], public_id=body["public_id"])
        except KeyError as exc:
            raise BlobStoreError(f"Cloudinary upload response missing {exc}") from exc

    def delete(self, public_id: str) -> None:
        try:
            body = cloudinary.uploader.destroy(
                public_id,
                resource_type="image",
                invalidate=True,
                timeout=self.timeout,
                **self._credentials(),
            )
        except CloudinaryError as exc:
            raise BlobStoreError(f"Cloudinary destroy of {public_id} failed: {exc}") from exc
        result = body.get("result")
        if result not in ("ok", "not found"):
            raise BlobStoreError(f"Cloudinary destroy of {public_id} returned {result!r}")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_backend == "cloudinary":
        logger.info("Blob store: Cloudinary (cloud=%s)", settings.cloudinary_cloud_name)
        return CloudinaryBlobStore(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
        )
    logger.info("Blob store: local directory %s", settings.blob_local_dir)
    return LocalBlobStore(Path(settings.blob_local_dir), base_url=settings.blob_public_base_url)
