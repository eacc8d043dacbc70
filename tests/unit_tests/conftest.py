import pytest

from imagestyles.config import Config
from imagestyles.processor import VariantProcessor
from imagestyles.repository import AttachmentRepository
from imagestyles.storage.memory_storage import MemoryStorage
from imagestyles.styles import StyleRegistry
from tests.unit_tests.fake_images import CountingCodec


@pytest.fixture
def raw_config() -> dict:
    return {
        "STYLES": {"mini": "48x48>", "product": "680x680>"},
        "DEFAULT_STYLE": "product",
        "ALLOWED_MIME_TYPES": ["image/jpeg", "image/png"],
    }


@pytest.fixture
def config(raw_config: dict) -> Config:
    return Config.model_validate(raw_config)


@pytest.fixture
def registry() -> StyleRegistry:
    return StyleRegistry.from_geometries({"mini": "48x48>", "product": "680x680>"}, "product")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage(base_url="https://cdn.example.com/images")


@pytest.fixture
def repository() -> AttachmentRepository:
    return AttachmentRepository()


@pytest.fixture
def codec() -> CountingCodec:
    return CountingCodec()


@pytest.fixture
def processor(registry, storage, repository, codec):
    processor = VariantProcessor(registry, storage, repository, codec, max_workers=4)
    yield processor
    processor.shutdown()
