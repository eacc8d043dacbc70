"""Google Cloud Storage backend."""

import logging
from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.api_core.exceptions import NotFound as GoogleNotFound
from google.cloud.storage import Client
from pydantic import Field
from typing_extensions import override

from imagestyles.errors import NotFound, StorageReadError, StorageWriteError
from imagestyles.storage.storage import StorageBackend, StorageConfig

logger = logging.getLogger(__name__)

PUBLIC_URL_TEMPLATE = "https://storage.googleapis.com/{bucket}/{key}"


def storage_config_type() -> type["GoogleStorageConfig"]:
    """Return the configuration class for Google Cloud Storage."""
    return GoogleStorageConfig


class GoogleStorageConfig(StorageConfig):
    """Configuration for a Google Cloud Storage bucket."""

    bucket_name: str = Field(alias="BUCKET_NAME")
    prefix: str = Field(default="", alias="PREFIX")


def storage_from_config(config: GoogleStorageConfig) -> "GoogleStorage":
    """Create a Google Cloud Storage backend from configuration."""
    return GoogleStorage(config.bucket_name, config.prefix, config.base_url)


def get_storage(config: dict[str, Any]) -> "GoogleStorage":
    """Get a Google Cloud Storage backend from raw configuration."""
    google_storage_config = GoogleStorageConfig.model_validate(config)
    return storage_from_config(google_storage_config)


def get_bucket(bucket_name: str) -> Any:
    """Retrieve a bucket handle from Google Cloud Storage."""
    storage_client = Client()
    return storage_client.bucket(bucket_name)


class GoogleStorage(StorageBackend):
    """Stores each key as a blob in one bucket, optionally below a prefix."""

    def __init__(self, bucket_name: str, prefix: str = "", base_url: str | None = None) -> None:
        super().__init__(base_url)
        self.bucket_name = bucket_name
        self.prefix = prefix.strip("/")
        self.bucket = get_bucket(bucket_name)
        self.module_name = "google_storage"
        self.backend_name = "GoogleStorage"

    def blob_name(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    @override
    def store(self, key: str, content: bytes, content_type: str | None = None) -> None:
        blob = self.bucket.blob(self.blob_name(key))
        try:
            blob.upload_from_string(content, content_type=content_type)
        except GoogleAPIError as e:
            raise StorageWriteError(f"Cannot upload '{key}' to {self.bucket_name}: {e}") from e
        logger.debug("Uploaded %d bytes to gs://%s/%s", len(content), self.bucket_name, blob.name)

    @override
    def fetch(self, key: str) -> bytes:
        blob = self.bucket.blob(self.blob_name(key))
        try:
            return blob.download_as_bytes()
        except GoogleNotFound as e:
            raise NotFound(key) from e
        except GoogleAPIError as e:
            raise StorageReadError(f"Cannot download '{key}' from {self.bucket_name}: {e}") from e

    @override
    def exists(self, key: str) -> bool:
        blob = self.bucket.blob(self.blob_name(key))
        try:
            return blob.exists()
        except GoogleAPIError as e:
            raise StorageReadError(f"Cannot check '{key}' in {self.bucket_name}: {e}") from e

    @override
    def delete(self, key: str) -> None:
        blob = self.bucket.blob(self.blob_name(key))
        try:
            blob.delete()
        except GoogleNotFound:
            logger.debug("Blob '%s' already absent from %s", blob.name, self.bucket_name)
        except GoogleAPIError as e:
            raise StorageWriteError(f"Cannot delete '{key}' from {self.bucket_name}: {e}") from e

    @override
    def _default_location(self, key: str) -> str:
        return PUBLIC_URL_TEMPLATE.format(bucket=self.bucket_name, key=self.blob_name(key))
