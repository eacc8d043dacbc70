"""Storage backend interface.

Backends store opaque byte blobs under string keys such as
``{attachment_id}/original`` or ``{attachment_id}/{style}``. Every backend
honours the same key semantics, so they can be swapped through configuration.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class StorageConfig(BaseModel):
    """Base configuration of a storage backend.

    TYPE selects the backend module, e.g. ``local_storage``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(alias="TYPE")
    base_url: str | None = Field(default=None, alias="BASE_URL")


class StorageBackend(ABC):
    """Abstract base class for storage backends.

    Implementations must allow concurrent calls on distinct keys. Concurrent
    writes to the same key are serialized by the caller.
    """

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.module_name = "storage"
        self.backend_name = "StorageBackend"

    @abstractmethod
    def store(self, key: str, content: bytes, content_type: str | None = None) -> None:
        """Store bytes under key, replacing any previous content.

        Raises:
            StorageWriteError: If the bytes could not be written.
        """

    @abstractmethod
    def fetch(self, key: str) -> bytes:
        """Return the bytes stored under key.

        Raises:
            NotFound: If nothing is stored under key.
            StorageReadError: If the bytes could not be read.
        """

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Whether anything is stored under key.

        Raises:
            StorageReadError: Only on I/O failure, never for a missing key.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the bytes stored under key. Missing keys are ignored.

        Raises:
            StorageWriteError: If the bytes could not be removed.
        """

    def location_of(self, key: str) -> str:
        """URL of the bytes stored under key. Pure, no I/O."""
        if self.base_url is None:
            return self._default_location(key)
        return f"{self.base_url}/{key}"

    @abstractmethod
    def _default_location(self, key: str) -> str:
        """URL used when no BASE_URL is configured."""
