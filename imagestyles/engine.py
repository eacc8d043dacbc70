"""Upload intake and render path around the variant processor."""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from imagestyles.codec.codec import Codec
from imagestyles.codec.pillow_codec import PillowCodec
from imagestyles.config import Config
from imagestyles.errors import UploadTooLargeError
from imagestyles.mime_validation import validate_content_mime_type, validate_mime_type
from imagestyles.models import (
    ORIGINAL_KEY_SUFFIX,
    AttachmentRecord,
    VariantResult,
    new_attachment_id,
    original_key,
)
from imagestyles.processor import VariantProcessor
from imagestyles.repository import AttachmentRepository, JsonFileRepository
from imagestyles.storage.storage import StorageBackend
from imagestyles.storage.storage_loader import get_storage
from imagestyles.telemetry import setup_telemetry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadPolicy:
    """Upload settings that are swapped together on reload."""

    allowed_mime_types: frozenset[str]
    validate_content: bool
    max_upload_size: int
    eager_styles: tuple[str, ...]

    @classmethod
    def from_config(cls, config: Config) -> "UploadPolicy":
        return cls(
            allowed_mime_types=config.allowed_mime_types,
            validate_content=config.validate_content,
            max_upload_size=config.max_upload_size,
            eager_styles=config.eager_styles,
        )


class ImageStyles:
    """Accept image uploads and serve their style derivatives.

    Args:
        config: Configuration supplying styles, allow-list and limits.
        storage: Backend for source and derivative bytes.
        repository: Store of attachment records.
        codec: Image codec, a PillowCodec by default.
    """

    def __init__(
        self,
        config: Config,
        storage: StorageBackend,
        repository: AttachmentRepository,
        codec: Optional[Codec] = None,
    ) -> None:
        self.config = config
        self.storage = storage
        self.repository = repository
        self.policy = UploadPolicy.from_config(config)
        self.processor = VariantProcessor(
            registry=config.build_registry(),
            storage=storage,
            repository=repository,
            codec=codec or PillowCodec(quality=config.jpeg_quality),
            max_workers=config.max_workers,
            timeout=config.generation_timeout,
            tracer=setup_telemetry(config.telemetry, config.app_name),
        )
        self._reload_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Config, codec: Optional[Codec] = None) -> "ImageStyles":
        """Create storage and repository as configured and wire them up."""
        storage = get_storage(config.storage)
        repository: AttachmentRepository
        if config.repository_path:
            repository = JsonFileRepository(config.repository_path)
        else:
            repository = AttachmentRepository()
        logger.info(
            "Using %s storage with %d style(s)", storage.backend_name, len(config.styles)
        )
        return cls(config, storage, repository, codec)

    @property
    def registry(self):
        return self.processor.registry

    def upload(self, content: bytes, mime_type: str) -> AttachmentRecord:
        """Accept an uploaded image.

        Validation happens before anything is stored. With EAGER_STYLES
        configured, those derivatives are generated before returning; if that
        fails the upload is rolled back.

        Args:
            content: Raw image bytes.
            mime_type: Declared MIME type.

        Returns:
            The new attachment record.

        Raises:
            UnsupportedMediaType: If the declared type is not allowed, or the
                content does not match it. Nothing is stored.
            UploadTooLargeError: If content exceeds MAX_UPLOAD_SIZE. Nothing is stored.
            StorageWriteError: If the source bytes could not be stored.
        """
        policy = self.policy
        validate_mime_type(mime_type, policy.allowed_mime_types)
        if len(content) > policy.max_upload_size:
            raise UploadTooLargeError(policy.max_upload_size, len(content))
        if policy.validate_content:
            validate_content_mime_type(content, mime_type)

        attachment_id = new_attachment_id()
        record = AttachmentRecord(
            id=attachment_id,
            source_key=original_key(attachment_id),
            declared_mime_type=mime_type,
        )
        self.storage.store(record.source_key, content, mime_type)
        try:
            self.repository.add(record)
        except BaseException:
            self.storage.delete(record.source_key)
            raise
        logger.info(
            "Accepted upload '%s' (%s, %d bytes)", attachment_id, mime_type, len(content)
        )

        if policy.eager_styles:
            try:
                for style_name in policy.eager_styles:
                    self.processor.process(attachment_id, style_name)
            except Exception:
                logger.warning("Eager generation failed, rolling back upload '%s'", attachment_id)
                self.delete(attachment_id)
                raise

        return self.repository.get(attachment_id)

    def variant(
        self,
        attachment_id: str,
        style_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> VariantResult:
        """Location and dimensions of a style derivative, generated on demand.

        Args:
            attachment_id: Attachment to render.
            style_name: Style to render. None or empty uses the default style.
            timeout: Seconds to wait for a generation, overriding GENERATION_TIMEOUT.
        """
        return self.processor.process(attachment_id, style_name, timeout=timeout)

    def original(self, attachment_id: str) -> VariantResult:
        """Location of the source image, with dimensions once they are known."""
        record = self.repository.get(attachment_id)
        return VariantResult(
            attachment_id=attachment_id,
            style=ORIGINAL_KEY_SUFFIX,
            location=self.storage.location_of(record.source_key),
            width=record.original_width,
            height=record.original_height,
        )

    def regenerate(self, attachment_id: str, style_name: Optional[str] = None) -> VariantResult:
        """Discard and regenerate one style derivative."""
        return self.processor.regenerate(attachment_id, style_name)

    def delete(self, attachment_id: str) -> None:
        """Destroy an attachment with all its derivatives and stored bytes.

        The record goes first so no reader sees it pointing at deleted bytes.
        """
        record = self.repository.remove(attachment_id)
        for key in record.storage_keys:
            self.storage.delete(key)
        logger.info(
            "Deleted attachment '%s' with %d derivative(s)", attachment_id, len(record.variants)
        )

    def reload(self, config: Config) -> None:
        """Swap in the styles and upload policy of a new configuration.

        Storage, repository and worker pool settings are kept; those need a
        new instance. Requests already running finish with the old styles.
        """
        registry = config.build_registry()
        policy = UploadPolicy.from_config(config)
        with self._reload_lock:
            self.processor.registry.replace(registry)
            self.policy = policy
            self.config = config
        logger.info("Reloaded configuration: styles %s", ", ".join(registry.names))

    def shutdown(self, wait: bool = True) -> None:
        self.processor.shutdown(wait=wait)

    def __enter__(self) -> "ImageStyles":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
