"""Local filesystem storage backend."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import Field
from typing_extensions import override

from imagestyles.errors import NotFound, StorageReadError, StorageWriteError
from imagestyles.storage.storage import StorageBackend, StorageConfig

logger = logging.getLogger(__name__)


def storage_config_type() -> type["LocalStorageConfig"]:
    """Return the configuration class for local filesystem storage."""
    return LocalStorageConfig


class LocalStorageConfig(StorageConfig):
    """Configuration for local filesystem storage."""

    root: str = Field(alias="ROOT")


def get_storage(config: dict[str, Any]) -> "LocalStorage":
    """Get a local filesystem storage instance from raw configuration."""
    local_storage_config = LocalStorageConfig.model_validate(config)
    return LocalStorage(local_storage_config.root, local_storage_config.base_url)


def storage_from_config(config: LocalStorageConfig) -> "LocalStorage":
    """Create a local filesystem storage instance from configuration."""
    return LocalStorage(config.root, config.base_url)


class LocalStorage(StorageBackend):
    """Stores each key as a file below a root directory.

    Writes go to a temporary file in the target directory which is then
    renamed over the destination, so readers never see partial content.
    """

    def __init__(self, root: str | Path, base_url: str | None = None) -> None:
        super().__init__(base_url)
        self.root = Path(root).resolve()
        self.module_name = "local_storage"
        self.backend_name = "LocalStorage"

    def path_of(self, key: str) -> Path:
        """Filesystem path of key, rejecting keys that escape the root."""
        if not key or key.startswith(("/", "\\")) or ".." in Path(key).parts:
            raise ValueError(f"Invalid storage key '{key}'")
        return self.root / key

    @override
    def store(self, key: str, content: bytes, content_type: str | None = None) -> None:
        path = self.path_of(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as tmp_file:
                    tmp_file.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageWriteError(f"Cannot write '{key}': {e}") from e
        logger.debug("Stored %d bytes under '%s' at %s", len(content), key, path)

    @override
    def fetch(self, key: str) -> bytes:
        path = self.path_of(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFound(key) from e
        except OSError as e:
            raise StorageReadError(f"Cannot read '{key}': {e}") from e

    @override
    def exists(self, key: str) -> bool:
        try:
            return self.path_of(key).is_file()
        except OSError as e:
            raise StorageReadError(f"Cannot check '{key}': {e}") from e

    @override
    def delete(self, key: str) -> None:
        path = self.path_of(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Cannot delete '{key}': {e}") from e

    @override
    def _default_location(self, key: str) -> str:
        return self.path_of(key).as_uri()
