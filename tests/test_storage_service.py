"""
Test the object storage providers.
"""

import asyncio
import re

import boto3
import pytest
from botocore.stub import Stubber

from config import Settings
from core.exceptions import ObjectNotFoundError, StorageError
from services.storage_service import (
    LocalStorageProvider,
    R2StorageProvider,
    build_storage_provider,
    generate_unique_filename,
)

KEY_PATTERN = re.compile(r"^\d{13}-[0-9a-z]{7}-.+$")


async def read_all(stored):
    return b"".join([chunk async for chunk in stored.body])


def test_generate_unique_filename():
    key = generate_unique_filename("My Report (final).pdf")
    assert KEY_PATTERN.match(key)
    assert key.endswith("-My_Report__final_.pdf")
    assert generate_unique_filename("a.pdf") != generate_unique_filename("a.pdf")


def test_generate_unique_filename_strips_directories():
    key = generate_unique_filename("../../etc/passwd")
    assert "/" not in key
    assert key.endswith("-passwd")
    assert generate_unique_filename("").endswith("-file")


def test_local_provider_roundtrip(tmp_path):
    storage = LocalStorageProvider(str(tmp_path))

    async def scenario():
        await storage.upload("a/b.txt", b"hello", "text/plain")
        assert await storage.exists("a/b.txt")
        stored = await storage.download("a/b.txt")
        assert stored.content_length == 5
        assert stored.content_type == "text/plain"
        assert await read_all(stored) == b"hello"

        await storage.delete("a/b.txt")
        assert not await storage.exists("a/b.txt")
        with pytest.raises(ObjectNotFoundError):
            await storage.download("a/b.txt")

    asyncio.run(scenario())


def test_local_provider_rejects_traversal(tmp_path):
    storage = LocalStorageProvider(str(tmp_path / "store"))

    for key in ("../escape.txt", "/etc/passwd", ""):
        with pytest.raises(StorageError):
            asyncio.run(storage.upload(key, b"x", "text/plain"))


def test_build_provider_requires_r2_settings():
    settings = Settings(storage_backend="r2", r2_account_id="acct")
    with pytest.raises(RuntimeError, match="Missing R2_ACCESS_KEY_ID environment variable."):
        build_storage_provider(settings)
    assert settings.missing_storage_settings() == [
        "R2_ACCESS_KEY_ID",
        "R2_SECRET_ACCESS_KEY",
        "R2_BUCKET_NAME",
    ]


def test_build_local_provider(tmp_path):
    settings = Settings(storage_backend="local", local_storage_path=str(tmp_path))
    assert isinstance(build_storage_provider(settings), LocalStorageProvider)


def make_r2():
    client = boto3.client(
        "s3",
        endpoint_url="https://acct.r2.cloudflarestorage.com",
        aws_access_key_id="key",
        aws_secret_access_key="secret",
        region_name="auto",
    )
    storage = R2StorageProvider("acct", "key", "secret", "entipedia", client=client)
    return storage, Stubber(client)


def test_r2_missing_object_is_not_found():
    storage, stubber = make_r2()
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

    with stubber:
        with pytest.raises(ObjectNotFoundError):
            asyncio.run(storage.download("missing.pdf"))
        assert asyncio.run(storage.exists("missing.pdf")) is False


def test_r2_upload_and_health():
    storage, stubber = make_r2()
    stubber.add_response(
        "put_object",
        {},
        {
            "Bucket": "entipedia",
            "Key": "a.txt",
            "Body": b"hi",
            "ContentType": "text/plain",
            "ContentLength": 2,
        },
    )
    stubber.add_response("head_bucket", {}, {"Bucket": "entipedia"})

    with stubber:
        asyncio.run(storage.upload("a.txt", b"hi", "text/plain"))
        asyncio.run(storage.health())
    stubber.assert_no_pending_responses()


def test_r2_failures_become_storage_errors():
    storage, stubber = make_r2()
    stubber.add_client_error("head_bucket", service_error_code="403", http_status_code=403)
    stubber.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)

    with stubber:
        with pytest.raises(StorageError, match="health check failed"):
            asyncio.run(storage.health())
        # Deleting a missing object is not an error
        asyncio.run(storage.delete("gone.txt"))
