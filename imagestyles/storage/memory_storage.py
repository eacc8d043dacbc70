"""In-memory storage backend, for tests and single-process use."""

import logging
import threading
from typing import Any

from typing_extensions import override

from imagestyles.errors import NotFound
from imagestyles.storage.storage import StorageBackend, StorageConfig

logger = logging.getLogger(__name__)


def storage_config_type():
    return MemoryStorageConfig


class MemoryStorageConfig(StorageConfig):
    pass


def get_storage(config: dict[str, Any]) -> "MemoryStorage":
    memory_storage_config = MemoryStorageConfig.model_validate(config)
    return MemoryStorage(memory_storage_config.base_url)


def storage_from_config(config: MemoryStorageConfig) -> "MemoryStorage":
    return MemoryStorage(config.base_url)


class MemoryStorage(StorageBackend):
    def __init__(self, base_url: str | None = None) -> None:
        super().__init__(base_url)
        self.blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()
        self.module_name = "memory_storage"
        self.backend_name = "MemoryStorage"

    @override
    def store(self, key: str, content: bytes, content_type: str | None = None) -> None:
        with self._lock:
            self.blobs[key] = bytes(content)
        logger.debug("Stored %d bytes under '%s'", len(content), key)

    @override
    def fetch(self, key: str) -> bytes:
        with self._lock:
            content = self.blobs.get(key)
        if content is None:
            raise NotFound(key)
        return content

    @override
    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self.blobs

    @override
    def delete(self, key: str) -> None:
        with self._lock:
            self.blobs.pop(key, None)

    @override
    def _default_location(self, key: str) -> str:
        return f"memory://{key}"
