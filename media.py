"""Image uploads to Cloudinary.

Uploaded files are first staged on local disk, then forwarded to the media
host. The staged copy is removed after every attempt.
"""
import os
import shutil
import uuid
from typing import BinaryIO, Optional

import cloudinary.uploader
import structlog

logger = structlog.get_logger()


class MediaUploadError(Exception):
    """The media host did not accept the file."""


def stage_upload(fileobj: BinaryIO, filename: Optional[str], upload_dir: str) -> str:
    """Copy an incoming upload into ``upload_dir`` and return the local path."""
    os.makedirs(upload_dir, exist_ok=True)
    ext = os.path.splitext(filename or "")[1]
    path = os.path.join(upload_dir, f"{uuid.uuid4().hex}{ext}")
    try:
        with open(path, "wb") as out:
            shutil.copyfileobj(fileobj, out)
    except Exception:
        remove_staged(path)
        raise
    return path


def remove_staged(path: str) -> None:
    try:
        os.remove(path)
    except OSError as e:
        logger.warning("Could not remove staged upload", path=path, error=str(e))


class CloudinaryMediaHost:

    def __init__(self, cloud_name: Optional[str], api_key: Optional[str], api_secret: Optional[str]):
        self._credentials = {"cloud_name": cloud_name, "api_key": api_key, "api_secret": api_secret}
        self.configured = bool(cloud_name and api_key and api_secret)

    def upload(self, path: str, folder: str) -> str:
        """Upload the file at ``path`` into ``folder``; return its public URL.

        A single attempt is made. The local file is deleted whether or not
        the upload succeeds.
        """
        try:
            if not self.configured:
                raise MediaUploadError("Image upload not configured in this environment")
            try:
                result = cloudinary.uploader.upload(path, folder=folder, **self._credentials)
            except Exception as e:
                raise MediaUploadError(f"Upload to media host failed: {e}") from e
            url = result.get("secure_url") or result.get("url")
            if not url:
                raise MediaUploadError("Media host returned no URL")
            logger.info("Image uploaded", folder=folder, url=url)
            return url
        finally:
            remove_staged(path)
