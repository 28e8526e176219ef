"""Object storage for uploaded files (Cloudflare R2 or a local directory)."""

import mimetypes
import os
import re
import secrets
import string
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from config import Settings, get_settings
from core.exceptions import ObjectNotFoundError, StorageError
from core.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024
_BASE36 = string.digits + string.ascii_lowercase
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_MISSING_OBJECT_CODES = {"NoSuchKey", "NotFound", "404"}


def generate_unique_filename(original_name: str) -> str:
    """
    Build a collision-resistant object key from an uploaded filename.

    Format: ``{epoch_ms}-{7 base36 chars}-{sanitized base}{ext}``. Characters
    outside ``[A-Za-z0-9._-]`` become ``_``.
    """
    name = os.path.basename(original_name or "") or "file"
    base, ext = os.path.splitext(name)
    sanitized = _UNSAFE_FILENAME_CHARS.sub("_", base) or "file"
    ext = _UNSAFE_FILENAME_CHARS.sub("_", ext)
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"{timestamp}-{suffix}-{sanitized}{ext}"


@dataclass
class StoredObject:
    """A downloaded object; ``body`` yields the bytes in chunks."""

    body: AsyncIterator[bytes]
    content_length: Optional[int] = None
    content_type: Optional[str] = None


class StorageProvider(ABC):
    """Abstract base class for storage providers."""

    bucket_name: str = ""

    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``key``."""

    @abstractmethod
    async def download(self, key: str) -> StoredObject:
        """Open ``key`` for reading; raises ObjectNotFoundError when missing."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete ``key``; a missing key is not an error."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def health(self) -> None:
        """Raise StorageError when the backing store is unreachable."""


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider."""

    def __init__(self, base_path: str = "./uploads"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.bucket_name = str(self.base_path)
        logger.info(
            "local_storage_initialized", base_path=str(self.base_path.absolute())
        )

    def _resolve(self, key: str) -> Path:
        """Map a key to a path inside ``base_path``, rejecting traversal."""
        if not key or Path(key).is_absolute() or ".." in Path(key).parts:
            raise StorageError(f"Invalid object key '{key}'.")

        resolved = (self.base_path / key).resolve()
        base_resolved = self.base_path.resolve()
        if base_resolved not in resolved.parents:
            logger.warning("path_traversal_rejected", key=key)
            raise StorageError(f"Invalid object key '{key}'.")
        return resolved

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await run_in_threadpool(path.write_bytes, data)
        except OSError as e:
            logger.error("storage_upload_failed", key=key, error=str(e))
            raise StorageError("Failed to upload file to storage.") from e
        logger.info("object_uploaded", key=key, size=len(data))

    async def download(self, key: str) -> StoredObject:
        path = self._resolve(key)
        if not path.is_file():
            raise ObjectNotFoundError(key)

        async def iter_chunks() -> AsyncIterator[bytes]:
            handle = await run_in_threadpool(path.open, "rb")
            try:
                while True:
                    chunk = await run_in_threadpool(handle.read, CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk
            finally:
                handle.close()

        content_type, _ = mimetypes.guess_type(path.name)
        return StoredObject(
            body=iter_chunks(),
            content_length=path.stat().st_size,
            content_type=content_type,
        )

    async def delete(self, key: str) -> None:
        path = self._resolve(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("storage_delete_failed", key=key, error=str(e))
            raise StorageError("Failed to delete file from storage.") from e
        logger.info("object_deleted", key=key)

    async def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    async def health(self) -> None:
        if not self.base_path.is_dir() or not os.access(self.base_path, os.W_OK):
            raise StorageError("Cloud storage health check failed.")


class R2StorageProvider(StorageProvider):
    """Cloudflare R2 through its S3 compatible API.

    boto3 is synchronous, so every call runs in the threadpool.
    """

    def __init__(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        bucket_name: str,
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        self.bucket_name = bucket_name
        self.endpoint_url = endpoint_url or f"https://{account_id}.r2.cloudflarestorage.com"
        self.client = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
            config=BotoConfig(s3={"addressing_style": "path"}),
        )
        logger.info("r2_storage_initialized", bucket=bucket_name)

    @staticmethod
    def _is_missing(error: ClientError) -> bool:
        return error.response.get("Error", {}).get("Code") in _MISSING_OBJECT_CODES

    async def _call(self, func: Callable, **kwargs):
        try:
            return await run_in_threadpool(func, Bucket=self.bucket_name, **kwargs)
        except ClientError as e:
            if "Key" in kwargs and self._is_missing(e):
                raise ObjectNotFoundError(kwargs["Key"]) from e
            logger.error(
                "storage_request_failed",
                operation=getattr(func, "__name__", str(func)),
                error_code=e.response.get("Error", {}).get("Code"),
            )
            raise StorageError("Cloud storage request failed.") from e
        except BotoCoreError as e:
            logger.error("storage_unreachable", error=str(e))
            raise StorageError("Cloud storage request failed.") from e

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        await self._call(
            self.client.put_object,
            Key=key,
            Body=data,
            ContentType=content_type,
            ContentLength=len(data),
        )
        logger.info("object_uploaded", key=key, size=len(data))

    async def download(self, key: str) -> StoredObject:
        response = await self._call(self.client.get_object, Key=key)
        stream = response["Body"]

        async def iter_chunks() -> AsyncIterator[bytes]:
            try:
                while True:
                    chunk = await run_in_threadpool(stream.read, CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk
            finally:
                stream.close()

        return StoredObject(
            body=iter_chunks(),
            content_length=response.get("ContentLength"),
            content_type=response.get("ContentType"),
        )

    async def delete(self, key: str) -> None:
        try:
            await self._call(self.client.delete_object, Key=key)
        except ObjectNotFoundError:
            pass
        logger.info("object_deleted", key=key)

    async def exists(self, key: str) -> bool:
        try:
            await self._call(self.client.head_object, Key=key)
        except ObjectNotFoundError:
            return False
        return True

    async def health(self) -> None:
        try:
            await self._call(self.client.head_bucket)
        except StorageError as e:
            raise StorageError("Cloud storage health check failed.") from e


def build_storage_provider(settings: Settings) -> StorageProvider:
    """Create the provider selected by ``storage_backend``."""
    if settings.storage_backend == "local":
        return LocalStorageProvider(settings.local_storage_path)

    missing = settings.missing_storage_settings()
    if missing:
        raise RuntimeError(f"Missing {missing[0]} environment variable.")

    return R2StorageProvider(
        account_id=settings.r2_account_id,
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket_name=settings.r2_bucket_name,
        endpoint_url=settings.r2_endpoint_url,
    )


# Singleton instance
_storage_provider: Optional[StorageProvider] = None


def get_storage_provider() -> StorageProvider:
    """Get the storage provider singleton."""
    global _storage_provider
    if _storage_provider is None:
        _storage_provider = build_storage_provider(get_settings())
    return _storage_provider


def set_storage_provider(provider: Optional[StorageProvider]) -> None:
    """Set a custom storage provider (for testing or alternative storage)."""
    global _storage_provider
    _storage_provider = provider
