"""
tests/test_blob_store.py -- Unit tests for blobs/store.py.

Network calls are never made: the cloudinary SDK's uploader is patched.

Covers:
  - LocalBlobStore: upload writes under root, delete is idempotent,
    ids that would escape root are rejected
  - CloudinaryBlobStore: per-call credentials and folder, provider results,
    SDK errors wrapped in BlobStoreError
  - create_blob_store picks the backend from Settings
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from cloudinary.exceptions import Error as CloudinaryError

from blobs.store import (
    BlobStoreError,
    CloudinaryBlobStore,
    LocalBlobStore,
    create_blob_store,
)
from core.config import Settings

class TestLocalBlobStore:
    def test_upload_and_delete(self, tmp_path) -> None:
        store = LocalBlobStore(tmp_path, base_url="/uploads/")
        blob = store.upload(b"data", "photo.PNG", "image/png")
        assert blob.public_id.endswith(".png")
        assert blob.url == f"/uploads/{blob.public_id}"
        assert (tmp_path / blob.public_id).read_bytes() == b"data"

        store.delete(blob.public_id)
        assert not (tmp_path / blob.public_id).exists()
        store.delete(blob.public_id)  # already gone is fine

    def test_unknown_type_keeps_extension(self, tmp_path) -> None:
        blob = LocalBlobStore(tmp_path).upload(b"x", "scan.TIFF", "image/tiff")
        assert blob.public_id.endswith(".tiff")

    @pytest.mark.parametrize("bad_id", ["../escape.png", "nested/dir.png", "/etc/passwd"])
    def test_traversal_rejected(self, tmp_path, bad_id: str) -> None:
        with pytest.raises(BlobStoreError):
            LocalBlobStore(tmp_path / "root").delete(bad_id)


CREDS = {"cloud_name": "demo", "api_key": "key", "api_secret": "secret"}


def _store() -> CloudinaryBlobStore:
    return CloudinaryBlobStore("demo", "key", "secret")


class TestCloudinaryBlobStore:
    def test_missing_credentials(self) -> None:
        with pytest.raises(ValueError):
            CloudinaryBlobStore("cloud", "", "secret")

    def test_upload(self) -> None:
        result = {"secure_url": "https://res.cloudinary.com/demo/news/abc.png", "public_id": "news/abc"}
        with patch("cloudinary.uploader.upload", return_value=result) as upload:
            blob = _store().upload(b"bytes", "a.png", "image/png")

        assert blob.public_id == "news/abc"
        assert blob.url.startswith("https://")
        sent = upload.call_args.args[0]
        assert sent.read() == b"bytes"
        kwargs = upload.call_args.kwargs
        assert kwargs["folder"] == "news"
        assert kwargs["resource_type"] == "image"
        assert kwargs["timeout"] == 15
        for key, value in CREDS.items():
            assert kwargs[key] == value

    def test_upload_bad_response(self) -> None:
        with patch("cloudinary.uploader.upload", return_value={"error": {"message": "nope"}}):
            with pytest.raises(BlobStoreError):
                _store().upload(b"bytes", "a.png", "image/png")

    def test_upload_error_wrapped(self) -> None:
        with patch("cloudinary.uploader.upload", side_effect=CloudinaryError("Invalid Signature")):
            with pytest.raises(BlobStoreError, match="Invalid Signature"):
                _store().upload(b"bytes", "a.png", "image/png")

    @pytest.mark.parametrize("result", ["ok", "not found"])
    def test_destroy_accepts_ok_and_not_found(self, result: str) -> None:
        with patch("cloudinary.uploader.destroy", return_value={"result": result}) as destroy:
            _store().delete("news/abc")
        assert destroy.call_args.args == ("news/abc",)
        assert destroy.call_args.kwargs["api_secret"] == "secret"

    def test_destroy_other_result(self) -> None:
        with patch("cloudinary.uploader.destroy", return_value={"result": "error"}):
            with pytest.raises(BlobStoreError):
                _store().delete("news/abc")

    def test_destroy_error_wrapped(self) -> None:
        with patch("cloudinary.uploader.destroy", side_effect=CloudinaryError("down")):
            with pytest.raises(BlobStoreError):
                _store().delete("news/abc")


class TestFactory:
    def test_local_default(self, tmp_path) -> None:
        settings = Settings(debug=True, blob_local_dir=str(tmp_path))
        assert isinstance(create_blob_store(settings), LocalBlobStore)

    def test_cloudinary(self) -> None:
        settings = Settings(
            debug=True,
            blob_backend="cloudinary",
            cloudinary_cloud_name="demo",
            cloudinary_api_key="key",
            cloudinary_api_secret="secret",
        )
        store = create_blob_store(settings)
        assert isinstance(store, CloudinaryBlobStore)
        assert store.folder == "news"
