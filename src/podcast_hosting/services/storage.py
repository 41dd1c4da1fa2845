"""Blob storage backends for uploaded audio files.

Blobs are addressed by the audio id. Two backends are provided: a local
directory and any S3-compatible bucket reached through boto3.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator
from urllib.parse import parse_qs, unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from podcast_hosting.errors import BlobNotFoundError, ConfigError, StorageError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
_PLAIN_ETAG = re.compile(r"^[0-9a-fA-F]{32}$")


@dataclass(frozen=True)
class BlobWriteResult:
    locator: str
    content_md5: bytes | None
    status: int

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class BlobStore(ABC):
    """Key to bytes store used by the upload pipeline."""

    @abstractmethod
    def put(self, key: str, data: bytes, overwrite: bool = True) -> BlobWriteResult:
        """Write ``data`` under ``key``.

        Returns:
            BlobWriteResult: Locator of the blob, the MD5 digest when the
            backend reports one, and the backend status.

        Raises:
            StorageError: If the backend is unreachable.
        """

    @abstractmethod
    def open(self, key: str) -> Iterator[bytes]:
        """Stream the blob stored under ``key``.

        Raises:
            BlobNotFoundError: If no blob exists for ``key``.
            StorageError: If the backend is unreachable.
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the blob; returns False when it was already absent."""


def _iter_file(handle: BinaryIO) -> Iterator[bytes]:
    try:
        while True:
            chunk = handle.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        handle.close()


class LocalBlobStore(BlobStore):
    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise ValueError(f"Invalid blob key: {key!r}")
        return self.root / key

    def put(self, key: str, data: bytes, overwrite: bool = True) -> BlobWriteResult:
        destination = self._path(key)
        locator = destination.as_uri()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if destination.exists() and not overwrite:
                return BlobWriteResult(locator=locator, content_md5=None, status=409)
            temp_path = destination.with_name(f"{key}.partial")
            try:
                temp_path.write_bytes(data)
                temp_path.replace(destination)
            except OSError:
                temp_path.unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write blob {key}: {exc}") from exc
        return BlobWriteResult(locator=locator, content_md5=None, status=201)

    def open(self, key: str) -> Iterator[bytes]:
        path = self._path(key)
        try:
            handle = path.open("rb")
        except FileNotFoundError as exc:
            raise BlobNotFoundError(f"Blob {key} not found", status=404) from exc
        except OSError as exc:
            raise StorageError(f"Failed to read blob {key}: {exc}") from exc
        return _iter_file(handle)

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Failed to delete blob {key}: {exc}") from exc
        return True


def _client_error_status(error: ClientError) -> int | None:
    return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def _is_missing(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code")
    return code in {"404", "NoSuchKey", "NotFound"} or _client_error_status(error) == 404


class S3BlobStore(BlobStore):
    def __init__(self, client, bucket: str, prefix: str = "") -> None:
        self.client = client
        self.bucket = bucket
        self.prefix = prefix.strip("/") + "/" if prefix.strip("/") else ""

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _exists(self, object_key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=object_key)
        except ClientError as exc:
            if _is_missing(exc):
                return False
            raise StorageError(
                f"Failed to inspect blob {object_key}: {exc}",
                status=_client_error_status(exc),
            ) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to inspect blob {object_key}: {exc}") from exc
        return True

    def put(self, key: str, data: bytes, overwrite: bool = True) -> BlobWriteResult:
        object_key = self._object_key(key)
        locator = f"s3://{self.bucket}/{object_key}"
        if not overwrite and self._exists(object_key):
            return BlobWriteResult(locator=locator, content_md5=None, status=409)
        try:
            response = self.client.put_object(
                Bucket=self.bucket, Key=object_key, Body=data
            )
        except ClientError as exc:
            raise StorageError(
                f"Failed to write blob {object_key}: {exc}",
                status=_client_error_status(exc),
            ) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to write blob {object_key}: {exc}") from exc

        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
        etag = str(response.get("ETag", "")).strip('"')
        # Multipart ETags are not MD5 digests of the object.
        content_md5 = bytes.fromhex(etag) if _PLAIN_ETAG.match(etag) else None
        return BlobWriteResult(locator=locator, content_md5=content_md5, status=status)

    def open(self, key: str) -> Iterator[bytes]:
        object_key = self._object_key(key)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=object_key)
        except ClientError as exc:
            if _is_missing(exc):
                raise BlobNotFoundError(f"Blob {object_key} not found", status=404) from exc
            raise StorageError(
                f"Failed to read blob {object_key}: {exc}",
                status=_client_error_status(exc),
            ) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to read blob {object_key}: {exc}") from exc
        return _iter_file(response["Body"])

    def delete(self, key: str) -> bool:
        object_key = self._object_key(key)
        if not self._exists(object_key):
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=object_key)
        except ClientError as exc:
            raise StorageError(
                f"Failed to delete blob {object_key}: {exc}",
                status=_client_error_status(exc),
            ) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to delete blob {object_key}: {exc}") from exc
        return True


def create_blob_store(connection: str) -> BlobStore:
    """Build a blob store from a connection string.

    ``/var/audio`` or ``file:///var/audio`` select a local directory;
    ``s3://bucket/prefix?endpoint_url=https://...&region=ams3`` selects an
    S3-compatible bucket. Credentials come from the usual boto3 sources.
    """
    parsed = urlparse(connection)
    if parsed.scheme in {"", "file"}:
        path = unquote(parsed.path) if parsed.scheme else connection
        if not path:
            raise ConfigError(f"Invalid storage connection: {connection!r}")
        logger.info("Using local blob storage at %s", path)
        return LocalBlobStore(Path(path))

    if parsed.scheme == "s3":
        if not parsed.netloc:
            raise ConfigError(f"Storage connection is missing a bucket: {connection!r}")
        options = {key: values[-1] for key, values in parse_qs(parsed.query).items()}
        session = boto3.session.Session()
        client = session.client(
            "s3",
            region_name=options.get("region"),
            endpoint_url=options.get("endpoint_url"),
        )
        logger.info("Using S3 blob storage in bucket %s", parsed.netloc)
        return S3BlobStore(client, bucket=parsed.netloc, prefix=parsed.path)

    raise ConfigError(f"Unsupported storage scheme: {parsed.scheme!r}")
