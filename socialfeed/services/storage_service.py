"""S3-compatible object storage for post images."""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import MissingSecretError, get_settings, is_placeholder, require_secret

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageConfig:
    access_key: str
    secret_key: str
    region: str
    bucket: str
    endpoint: str | None
    public_url: str


@dataclass(frozen=True)
class StoredImage:
    key: str
    url: str
    content_type: str


class StorageConfigurationError(RuntimeError):
    """Raised when required storage settings are missing or invalid."""


class StorageUploadError(RuntimeError):
    """Raised when an upload to the bucket fails."""


class StorageDeletionError(RuntimeError):
    """Raised when deleting an object from the bucket fails."""


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    """Read and validate the image bucket configuration."""

    settings = get_settings()
    missing = [
        name
        for name, value in (
            ("STORAGE_BUCKET", settings.storage_bucket),
            ("STORAGE_REGION", settings.storage_region),
        )
        if is_placeholder(value)
    ]
    if missing:
        raise StorageConfigurationError("Missing required image storage configuration: " + ", ".join(missing))

    try:
        access_key = require_secret("STORAGE_ACCESS_KEY")
        secret_key = require_secret("STORAGE_SECRET_KEY")
    except MissingSecretError as exc:
        raise StorageConfigurationError(str(exc)) from exc

    bucket = str(settings.storage_bucket).strip()
    region = str(settings.storage_region).strip()
    endpoint = (settings.storage_endpoint or "").strip().rstrip("/") or None
    if endpoint and not urlparse(endpoint).scheme:
        endpoint = f"https://{endpoint.lstrip(':/')}"

    public_url = (settings.storage_public_url or "").strip().rstrip("/")
    if not public_url and endpoint:
        public_url = f"{endpoint}/{bucket}"
    elif not public_url:
        public_url = f"https://{bucket}.s3.{region}.amazonaws.com"

    return StorageConfig(
        access_key=access_key,
        secret_key=secret_key,
        region=region,
        bucket=bucket,
        endpoint=endpoint,
        public_url=public_url,
    )


@lru_cache(maxsize=1)
def get_storage_client() -> BaseClient:
    config = load_storage_config()
    session = Session()
    return session.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint,
        aws_access_key_id=config.access_key,
        aws_secret_access_key=config.secret_key,
    )


def _object_key(filename: str | None, folder: str) -> str:
    extension = Path(filename or "").suffix.lower()
    if extension and not re.fullmatch(r"\.[a-z0-9]{1,10}", extension):
        extension = ""
    safe_folder = re.sub(r"[^A-Za-z0-9_-]", "-", folder.strip("/ ")) or "uploads"
    return f"{safe_folder}/{uuid.uuid4().hex}{extension}"


def build_public_url(key: str) -> str:
    config = load_storage_config()
    return f"{config.public_url}/{key.lstrip('/')}"


async def upload_image(file: UploadFile, *, folder: str = "posts", client: BaseClient | None = None) -> StoredImage:
    """Store an uploaded image and return its key and public URL."""

    config = load_storage_config()
    s3_client = client or get_storage_client()
    key = _object_key(file.filename, folder)
    content_type = (file.content_type or "application/octet-stream").strip()
    file_obj = getattr(file, "file", None)
    if file_obj is None:
        raise StorageUploadError("UploadFile is missing an underlying file buffer.")

    def _upload() -> None:
        try:
            file_obj.seek(0)
            s3_client.upload_fileobj(
                file_obj,
                config.bucket,
                key,
                ExtraArgs={"ACL": "public-read", "ContentType": content_type},
            )
        except (ClientError, BotoCoreError) as exc:
            logger.exception("Image upload failed for key %s", key)
            raise StorageUploadError("Image upload failed") from exc

    await run_in_threadpool(_upload)
    logger.info("Stored image %s (%s)", key, content_type)
    return StoredImage(key=key, url=build_public_url(key), content_type=content_type)


def delete_image(key: str | None, *, client: BaseClient | None = None) -> None:
    """Remove a stored image. Missing keys are ignored."""

    if not key:
        return

    config = load_storage_config()
    s3_client = client or get_storage_client()
    try:
        s3_client.delete_object(Bucket=config.bucket, Key=key.lstrip("/"))
    except (ClientError, BotoCoreError) as exc:
        logger.exception("Failed to delete stored image %s", key)
        raise StorageDeletionError("Unable to delete image from storage") from exc


__all__ = [
    "StorageConfig",
    "StoredImage",
    "StorageConfigurationError",
    "StorageUploadError",
    "StorageDeletionError",
    "load_storage_config",
    "get_storage_client",
    "build_public_url",
    "upload_image",
    "delete_image",
]
