"""Staging and Cloudinary upload of images."""
import io
import os
from unittest.mock import patch

import pytest

from media import CloudinaryMediaHost, MediaUploadError, remove_staged, stage_upload


@pytest.fixture
def staged(tmp_path):
    return stage_upload(io.BytesIO(b"image bytes"), "photo.JPG", str(tmp_path / "uploads"))


@pytest.fixture
def host():
    return CloudinaryMediaHost("demo", "key", "secret")


class TestStageUpload:

    def test_copies_bytes_keeping_extension(self, staged):
        assert staged.endswith(".JPG")
        with open(staged, "rb") as f:
            assert f.read() == b"image bytes"

    def test_unique_names(self, tmp_path):
        a = stage_upload(io.BytesIO(b"a"), "a.png", str(tmp_path))
        b = stage_upload(io.BytesIO(b"b"), "a.png", str(tmp_path))
        assert a != b

    def test_remove_missing_file_is_quiet(self, tmp_path):
        remove_staged(str(tmp_path / "gone.png"))

    def test_interrupted_copy_leaves_nothing(self, tmp_path):
        class BrokenStream(io.BytesIO):
            def read(self, *args):
                raise OSError("client disconnected")

        with pytest.raises(OSError, match="client disconnected"):
            stage_upload(BrokenStream(), "a.png", str(tmp_path))
        assert os.listdir(tmp_path) == []


class TestCloudinaryMediaHost:

    def test_returns_secure_url_and_removes_file(self, host, staged):
        result = {"secure_url": "https://res.cloudinary.com/demo/products/x.jpg"}
        with patch("cloudinary.uploader.upload", return_value=result) as upload:
            url = host.upload(staged, "products")
        assert url == result["secure_url"]
        upload.assert_called_once_with(
            staged, folder="products", cloud_name="demo", api_key="key", api_secret="secret"
        )
        assert not os.path.exists(staged)

    def test_failure_raises_and_removes_file(self, host, staged):
        with patch("cloudinary.uploader.upload", side_effect=RuntimeError("timeout")):
            with pytest.raises(MediaUploadError, match="timeout"):
                host.upload(staged, "reviews")
        assert not os.path.exists(staged)

    def test_response_without_url_is_failure(self, host, staged):
        with patch("cloudinary.uploader.upload", return_value={}):
            with pytest.raises(MediaUploadError):
                host.upload(staged, "products")

    def test_does_not_touch_global_config(self, staged):
        with patch("cloudinary.config") as config, patch("cloudinary.uploader.upload", return_value={"url": "u"}):
            CloudinaryMediaHost("other", "k", "s").upload(staged, "products")
        config.assert_not_called()

    def test_unconfigured_host_refuses(self, staged):
        host = CloudinaryMediaHost(None, None, None)
        with patch("cloudinary.uploader.upload") as upload:
            with pytest.raises(MediaUploadError, match="not configured"):
                host.upload(staged, "products")
        upload.assert_not_called()
        assert not os.path.exists(staged)
