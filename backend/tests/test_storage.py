"""
Object storage backend tests.
"""

import os

import cloudinary.exceptions
import pytest

from thriftshop.services import storage_service
from thriftshop.services.storage_service import (
    CloudinaryStorage,
    LocalStorage,
    build_object_name,
    build_storage,
)
from thriftshop.validation import StorageError


class TestObjectNames:

    def test_timestamp_prefix_and_sanitised_name(self):
        assert build_object_name("../../etc/My Jaket.png", stamp=1718000000000) == "1718000000000-etc_My_Jaket.png"

    def test_empty_name_falls_back(self):
        assert build_object_name("", stamp=1) == "1-image"


class TestLocalStorage:

    def test_save_and_delete(self, tmp_path):
        storage = LocalStorage(str(tmp_path / "uploads"), url_prefix="/uploads/")
        stored = storage.save(b"data", "jaket.png", "image/png")

        assert stored.url == f"/uploads/{stored.key}"
        assert stored.key.endswith("-jaket.png")
        with open(os.path.join(storage.root, stored.key), "rb") as fh:
            assert fh.read() == b"data"

        storage.delete(stored.key)
        assert os.listdir(storage.root) == []

    def test_same_name_never_overwrites(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        first = storage.save(b"one", "jaket.png")
        second = storage.save(b"two", "jaket.png")
        assert first.key != second.key
        assert len(os.listdir(tmp_path)) == 2

    def test_delete_missing_file(self, tmp_path):
        with pytest.raises(StorageError):
            LocalStorage(str(tmp_path)).delete("123-gone.png")

    @pytest.mark.parametrize("key", ["../secret", "a/b.png", "", ".."])
    def test_keys_cannot_escape_root(self, tmp_path, key):
        with pytest.raises(StorageError):
            LocalStorage(str(tmp_path)).delete(key)


class TestCloudinaryStorage:

    @pytest.fixture
    def cloud(self):
        return CloudinaryStorage(cloud_name="demo", api_key="key-1", api_secret="shh", folder="thrift-products")

    def test_upload(self, cloud, monkeypatch):
        seen = {}

        def fake_upload(file, **options):
            seen["data"] = file.read()
            seen["options"] = options
            return {
                "secure_url": "https://res.cloudinary.test/demo/image/upload/v1/thrift-products/1-jaket.png",
                "public_id": "thrift-products/1-jaket",
            }

        monkeypatch.setattr(storage_service.cloudinary.uploader, "upload", fake_upload)

        stored = cloud.save(b"img", "jaket.png", "image/png")
        assert seen["data"] == b"img"
        assert seen["options"]["folder"] == "thrift-products"
        assert seen["options"]["public_id"].endswith("-jaket")
        assert seen["options"]["cloud_name"] == "demo"
        assert seen["options"]["api_key"] == "key-1"
        assert stored.key == "thrift-products/1-jaket"
        assert stored.url.startswith("https://res.cloudinary.test/")

    def test_upload_rejected(self, cloud, monkeypatch):
        def fake_upload(file, **options):
            raise cloudinary.exceptions.AuthorizationRequired("Invalid Signature")

        monkeypatch.setattr(storage_service.cloudinary.uploader, "upload", fake_upload)
        with pytest.raises(StorageError):
            cloud.save(b"img", "jaket.png", "image/png")

    def test_upload_without_public_id(self, cloud, monkeypatch):
        monkeypatch.setattr(storage_service.cloudinary.uploader, "upload", lambda file, **options: {"url": "x"})
        with pytest.raises(StorageError):
            cloud.save(b"img", "jaket.png", "image/png")

    def test_destroy(self, cloud, monkeypatch):
        seen = {}

        def fake_destroy(public_id, **options):
            seen["public_id"] = public_id
            seen["options"] = options
            return {"result": "ok"}

        monkeypatch.setattr(storage_service.cloudinary.uploader, "destroy", fake_destroy)

        cloud.delete("thrift-products/1-jaket")
        assert seen["public_id"] == "thrift-products/1-jaket"
        assert seen["options"]["api_secret"] == "shh"

    @pytest.mark.parametrize("response", [{"result": "not found"}, ["ok"], "ok", None])
    def test_destroy_unexpected_response(self, cloud, monkeypatch, response):
        monkeypatch.setattr(storage_service.cloudinary.uploader, "destroy", lambda public_id, **options: response)
        with pytest.raises(StorageError):
            cloud.delete("thrift-products/missing")

    def test_destroy_error(self, cloud, monkeypatch):
        def fake_destroy(public_id, **options):
            raise cloudinary.exceptions.Error("Unexpected error - timeout")

        monkeypatch.setattr(storage_service.cloudinary.uploader, "destroy", fake_destroy)
        with pytest.raises(StorageError):
            cloud.delete("thrift-products/1-jaket")

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            CloudinaryStorage("demo", "", "shh")


class TestBuildStorage:

    def test_local(self, tmp_path):
        storage = build_storage({"STORAGE_BACKEND": "local", "UPLOAD_FOLDER": str(tmp_path)})
        assert isinstance(storage, LocalStorage)

    def test_cloudinary(self):
        storage = build_storage({
            "STORAGE_BACKEND": "cloudinary",
            "CLOUDINARY_CLOUD_NAME": "demo",
            "CLOUDINARY_API_KEY": "k",
            "CLOUDINARY_API_SECRET": "s",
        })
        assert isinstance(storage, CloudinaryStorage)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_storage({"STORAGE_BACKEND": "ftp"})
