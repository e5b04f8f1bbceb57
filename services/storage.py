"""
Blob storage for avatars and photos: an S3-compatible client, an in-memory
double for development/tests, and the lazily initialized handle that the
upload service receives through dependency injection.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import Settings
from utils.errors import ErrorKind, StorageError
from utils.logger import get_logger

logger = get_logger("storage")


class StorageClient(Protocol):
    """Defines the operations the API needs from blob storage."""

    def upload_bytes(self, key: str, data: bytes, content_type: str) -> str:
        ...

    def delete(self, key: str) -> None:
        ...

    def key_from_url(self, url: str) -> Optional[str]:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://storage.example.com/goplan-uploads"
    stored_objects: dict = field(default_factory=dict)

    def upload_bytes(self, key: str, data: bytes, content_type: str) -> str:
        self.stored_objects[key] = {"data": data, "content_type": content_type}
        return f"{self.base_url}/{key}"

    def delete(self, key: str) -> None:
        if key not in self.stored_objects:
            raise FileNotFoundError(key)
        del self.stored_objects[key]

    def key_from_url(self, url: str) -> Optional[str]:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return None
        return url[len(prefix):]


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client. Objects are uploaded public-read and
    addressed by `public_url/<key>`.
    """

    bucket: str
    region: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    public_url: str = ""

    def __post_init__(self):
        config = Config(signature_version="s3v4", retries={"max_attempts": 3})
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )
        # Fail fast on bad credentials or a missing bucket
        self._client.head_bucket(Bucket=self.bucket)
        if not self.public_url:
            if self.endpoint:
                self.public_url = f"{self.endpoint.rstrip('/')}/{self.bucket}"
            else:
                region = self.region or "us-east-1"
                self.public_url = f"https://{self.bucket}.s3.{region}.amazonaws.com"
        self.public_url = self.public_url.rstrip("/")

    def upload_bytes(self, key: str, data: bytes, content_type: str) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            ACL="public-read",
        )
        return f"{self.public_url}/{key}"

    def delete(self, key: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=key)

    def key_from_url(self, url: str) -> Optional[str]:
        prefix = f"{self.public_url}/"
        if url.startswith(prefix):
            return unquote(url[len(prefix):])
        # Fall back to the path component for URLs built by another endpoint
        path = urlparse(url).path.lstrip("/")
        if path.startswith(f"{self.bucket}/"):
            path = path[len(self.bucket) + 1:]
        return unquote(path) or None


def build_storage_client(settings: Settings) -> StorageClient:
    if settings.use_in_memory_storage:
        return InMemoryStorageClient()
    if not settings.storage_bucket:
        raise StorageError(
            ErrorKind.CONFIGURATION,
            "Blob storage is not configured (STORAGE_BUCKET is missing)",
        )
    return S3StorageClient(
        bucket=settings.storage_bucket,
        region=settings.storage_region or "",
        endpoint=settings.storage_endpoint or "",
        access_key_id=settings.aws_access_key_id or "",
        secret_access_key=settings.aws_secret_access_key or "",
        public_url=settings.storage_public_url or "",
    )


class LazyStorage:
    """
    Initialize-once handle around a StorageClient.

    The first get() builds the client while holding the lock, so concurrent
    first callers wait for that single initialization and then share it.
    A failed initialization is not cached; the next call tries again.
    """

    def __init__(self, factory: Callable[[], StorageClient]):
        self._factory = factory
        self._client: Optional[StorageClient] = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._client is not None

    def get(self) -> StorageClient:
        if self._client is not None:
            return self._client
        with self._lock:
            if self._client is None:
                try:
                    self._client = self._factory()
                except StorageError:
                    raise
                except (BotoCoreError, ClientError, ValueError) as exc:
                    logger.error("Blob storage initialization failed: %s", exc)
                    raise StorageError(
                        ErrorKind.CONFIGURATION,
                        "Blob storage could not be initialized",
                    ) from exc
                logger.info("Blob storage client initialized (%s)", type(self._client).__name__)
        return self._client
