from functools import lru_cache
from typing import BinaryIO, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from driver_api.config import settings
from driver_api.integrations.errors import (
    BlobStorageError,
    BlobStorageRejectedError,
    BlobStorageTimeoutError,
    BlobStorageUnavailableError,
)

_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


class BlobStorageProtocol(Protocol):
    def exists(self, blob_name: str) -> bool: ...

    def upload(self, blob_name: str, content: bytes | BinaryIO, content_type: str) -> None: ...

    def create_upload_url(self, blob_name: str, content_type: str, ttl_s: int) -> str: ...

    def create_download_url(self, blob_name: str, ttl_s: int) -> str: ...

    def ping(self) -> None: ...


def normalize_blob_name(blob_name: str, container: str = "") -> str:
    """Canonical object key: forward slashes, no leading slash, no bucket prefix.

    Clients sometimes echo the key back as ``epod/orders/1/x.pdf`` when the
    bucket is ``epod``; the bucket is already implied, so it is dropped.
    """
    if not blob_name or not blob_name.strip():
        raise ValueError("blob_name is required")

    name = blob_name.strip().replace("\\", "/").lstrip("/")
    prefix = container.strip().strip("/")
    if prefix and name.lower().startswith(prefix.lower() + "/"):
        name = name[len(prefix) + 1 :]
    return name


def _translate_client_error(operation: str, err: ClientError) -> BlobStorageError:
    status_code = err.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0
    code = err.response.get("Error", {}).get("Code", "Unknown")
    if status_code >= 500:
        return BlobStorageUnavailableError(operation, f"Object store returned {code}")
    return BlobStorageRejectedError(operation, f"Object store returned {code}")


def _translate_botocore_error(operation: str, err: BotoCoreError) -> BlobStorageError:
    if isinstance(err, (ConnectTimeoutError, ReadTimeoutError)):
        return BlobStorageTimeoutError(operation)
    return BlobStorageUnavailableError(operation, str(err))


class S3BlobStorage:
    """ePOD and invoice binaries in an S3-compatible bucket.

    Uploads from drivers bypass the API: the service hands out pre-signed PUT
    URLs and later checks with ``exists`` that the object really arrived.
    """

    def __init__(self, bucket: str, client) -> None:
        self.bucket = bucket
        self._client = client

    def _key(self, blob_name: str) -> str:
        return normalize_blob_name(blob_name, self.bucket)

    def exists(self, blob_name: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=self._key(blob_name))
        except ClientError as err:
            if err.response.get("Error", {}).get("Code") in _MISSING_OBJECT_CODES:
                return False
            raise _translate_client_error("exists", err) from err
        except BotoCoreError as err:
            raise _translate_botocore_error("exists", err) from err
        return True

    def upload(self, blob_name: str, content: bytes | BinaryIO, content_type: str) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=self._key(blob_name),
                Body=content,
                ContentType=content_type or settings.epod_content_type,
            )
        except ClientError as err:
            raise _translate_client_error("upload", err) from err
        except BotoCoreError as err:
            raise _translate_botocore_error("upload", err) from err

    def create_upload_url(self, blob_name: str, content_type: str, ttl_s: int) -> str:
        try:
            return self._client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": self._key(blob_name),
                    "ContentType": content_type or settings.epod_content_type,
                },
                ExpiresIn=ttl_s,
                HttpMethod="PUT",
            )
        except BotoCoreError as err:
            raise _translate_botocore_error("create_upload_url", err) from err

    def create_download_url(self, blob_name: str, ttl_s: int) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": self._key(blob_name)},
                ExpiresIn=ttl_s,
            )
        except BotoCoreError as err:
            raise _translate_botocore_error("create_download_url", err) from err

    def ping(self) -> None:
        try:
            self._client.head_bucket(Bucket=self.bucket)
        except ClientError as err:
            raise _translate_client_error("ping", err) from err
        except BotoCoreError as err:
            raise _translate_botocore_error("ping", err) from err


def build_s3_client():
    return boto3.client(
        "s3",
        endpoint_url=settings.blob_endpoint_url or None,
        region_name=settings.blob_region,
        aws_access_key_id=settings.blob_access_key_id or None,
        aws_secret_access_key=settings.blob_secret_access_key or None,
        config=Config(
            signature_version="s3v4",
            connect_timeout=settings.blob_timeout_s,
            read_timeout=settings.blob_timeout_s,
            retries={"max_attempts": settings.blob_max_retries, "mode": "standard"},
        ),
    )


@lru_cache(maxsize=1)
def get_blob_storage() -> BlobStorageProtocol:
    return S3BlobStorage(settings.blob_bucket, build_s3_client())
