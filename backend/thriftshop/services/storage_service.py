# Overview: Object storage backends for product images (local uploads folder or remote media host).

"""
Object Storage

Two interchangeable backends, both exposing:

    save(data, filename, content_type) -> StoredObject(url, key)
    delete(key) -> None

The key returned by save() is persisted next to the URL (ProductImage.storage_key)
and is the only thing delete() needs.

Object names are "<unix-epoch-millis>-<sanitised original filename>".
"""
from __future__ import annotations

import io
import os
from dataclasses import dataclass
from typing import Mapping

import cloudinary.exceptions
import cloudinary.uploader
from werkzeug.utils import secure_filename

from ..validation import StorageError
from thriftshop.time_utils import epoch_millis


@dataclass(frozen=True)
class StoredObject:
    url: str
    key: str


def safe_filename(filename: str) -> str:
    return secure_filename(filename or "") or "image"


def build_object_name(filename: str, stamp: int | None = None) -> str:
    """Timestamp-prefixed object name, e.g. 1718000000000-jaket.png"""
    return f"{stamp if stamp is not None else epoch_millis()}-{safe_filename(filename)}"


class LocalStorage:
    """Files under a public uploads directory, served at url_prefix."""

    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = root
        self.url_prefix = url_prefix.rstrip("/")

    def path_for(self, key: str) -> str:
        # Keys are bare file names; anything else would escape the uploads root
        if not key or os.path.basename(key) != key or key in {".", ".."}:
            raise StorageError(f"Invalid storage key: {key!r}")
        return os.path.join(self.root, key)

    def save(self, data: bytes, filename: str, content_type: str | None = None) -> StoredObject:
        stamp = epoch_millis()
        try:
            os.makedirs(self.root, exist_ok=True)
            while True:
                name = build_object_name(filename, stamp)
                try:
                    with open(os.path.join(self.root, name), "xb") as fh:
                        fh.write(data)
                    break
                except FileExistsError:
                    stamp += 1
        except OSError as e:
            raise StorageError(f"Could not write upload {filename!r}") from e

        return StoredObject(url=f"{self.url_prefix}/{name}", key=name)

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            os.remove(path)
        except OSError as e:
            raise StorageError(f"Could not delete upload {key!r}") from e


class CloudinaryStorage:
    """
    Remote media host backed by the Cloudinary SDK.

    Credentials travel with every call; cloudinary.config() is never touched.
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "thrift-products",
        timeout: float = 15.0,
    ):
        if not (cloud_name and api_key and api_secret):
            raise ValueError("Cloudinary storage requires cloud name, API key and API secret")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout

    def _options(self, **options) -> dict:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "timeout": self.timeout,
            **options,
        }

    def save(self, data: bytes, filename: str, content_type: str | None = None) -> StoredObject:
        name = build_object_name(filename)
        public_id = os.path.splitext(name)[0]

        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                **self._options(public_id=public_id, folder=self.folder, resource_type="image"),
            )
        except cloudinary.exceptions.Error as e:
            raise StorageError(f"Upload of {filename!r} failed: {e}") from e

        if not isinstance(result, dict):
            raise StorageError(f"Upload of {filename!r} returned an unreadable response")
        url = result.get("secure_url") or result.get("url")
        key = result.get("public_id")
        if not url or not key:
            raise StorageError(f"Upload of {filename!r} returned no URL/public_id")
        return StoredObject(url=url, key=key)

    def delete(self, key: str) -> None:
        try:
            result = cloudinary.uploader.destroy(key, **self._options(resource_type="image"))
        except cloudinary.exceptions.Error as e:
            raise StorageError(f"Delete of {key!r} failed: {e}") from e

        outcome = result.get("result") if isinstance(result, dict) else None
        if outcome != "ok":
            raise StorageError(f"Delete of {key!r} failed: {result!r}")


def build_storage(config: Mapping[str, object]):
    """Construct the configured backend (called once from create_app)."""
    backend = (config.get("STORAGE_BACKEND") or "local").lower()

    if backend == "local":
        return LocalStorage(
            root=config["UPLOAD_FOLDER"],
            url_prefix=config.get("UPLOAD_URL_PREFIX") or "/uploads",
        )

    if backend == "cloudinary":
        return CloudinaryStorage(
            cloud_name=config.get("CLOUDINARY_CLOUD_NAME"),
            api_key=config.get("CLOUDINARY_API_KEY"),
            api_secret=config.get("CLOUDINARY_API_SECRET"),
            folder=config.get("CLOUDINARY_FOLDER") or "thrift-products",
            timeout=float(config.get("HTTP_TIMEOUT_SECONDS") or 15),
        )

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
