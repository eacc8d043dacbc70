"""Storage backends for source images and their derivatives.

Backends are selected by the TYPE of the STORAGE configuration:

- ``memory_storage``: in-process dictionary
- ``local_storage``: files below a root directory
- ``google_storage``: blobs in a Google Cloud Storage bucket
"""

from imagestyles.storage.storage import StorageBackend, StorageConfig
from imagestyles.storage.storage_loader import get_storage, get_storage_module, parse_storage_config

__all__ = [
    "StorageBackend",
    "StorageConfig",
    "get_storage",
    "get_storage_module",
    "parse_storage_config",
]
