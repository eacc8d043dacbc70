import importlib
from types import ModuleType
from typing import Any

from imagestyles.storage.storage import StorageBackend, StorageConfig


def get_storage_module(storage_type: str) -> ModuleType:
    """Find a storage backend module by its TYPE.
    :param storage_type: name of the module in imagestyles.storage, e.g. "local_storage"
    :return: module of the backend
    """
    module_name = f"imagestyles.storage.{storage_type}"
    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as e:
        if e.name != module_name:
            raise
        raise ValueError(f"Unknown storage type '{storage_type}'") from e
    if not hasattr(module, "storage_from_config"):
        raise ValueError(f"Module '{module_name}' is not a storage backend")
    return module


def parse_storage_config(raw_config: Any) -> StorageConfig:
    """Validate raw storage configuration with the config type of its backend."""
    if isinstance(raw_config, StorageConfig):
        return raw_config
    storage_module = get_storage_module(raw_config["TYPE"])
    return storage_module.storage_config_type().model_validate(raw_config)


def get_storage(config: StorageConfig) -> StorageBackend:
    """Create the storage backend described by config."""
    return get_storage_module(config.type).storage_from_config(config)
