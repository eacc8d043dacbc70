"""Variant generation.

VariantProcessor turns an attachment's source image into the derivative of a
style, or returns the derivative generated earlier:

1. resolve the style against a registry snapshot
2. return the cached entry if it matches the style and its bytes exist
3. fetch and decode the source, recording the original size
4. normalize, then resize for the style
5. encode in the source format and store under ``{attachment_id}/{style}``
6. record the entry; if that fails the stored bytes are removed again

Steps 3 to 6 run on a bounded worker pool, at most once at a time per
(attachment, style). Concurrent requests for the same pair share one
generation.
"""

from __future__ import annotations

import concurrent.futures
import contextlib
import logging
import typing as t

from imagestyles.codec.codec import Codec
from imagestyles.errors import GenerationTimeout
from imagestyles.models import AttachmentRecord, VariantEntry, VariantResult, variant_key
from imagestyles.repository import AttachmentRepository
from imagestyles.single_flight import SingleFlight
from imagestyles.storage.storage import StorageBackend
from imagestyles.styles import StyleRegistry, StyleSpec

if t.TYPE_CHECKING:
    from opentelemetry.trace import Tracer

logger = logging.getLogger(__name__)

MIME_TYPES_BY_FORMAT = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}


class VariantProcessor:
    """Produce and cache style derivatives of attachments.

    Args:
        registry: Registry the styles are resolved against.
        storage: Backend holding source and derivative bytes.
        repository: Store of attachment records.
        codec: Image codec used for decoding, transforming and encoding.
        max_workers: Size of the generation worker pool.
        timeout: Default seconds a caller waits for a generation. None waits indefinitely.
        tracer: Optional OpenTelemetry tracer for generation spans.
    """

    def __init__(
        self,
        registry: StyleRegistry,
        storage: StorageBackend,
        repository: AttachmentRepository,
        codec: Codec,
        max_workers: int = 4,
        timeout: float | None = None,
        tracer: t.Optional["Tracer"] = None,
    ) -> None:
        self.registry = registry
        self.storage = storage
        self.repository = repository
        self.codec = codec
        self.timeout = timeout
        self.tracer = tracer
        self._flights: SingleFlight[VariantResult] = SingleFlight(max_workers=max_workers)

    def process(
        self,
        attachment_id: str,
        style_name: str | None = None,
        timeout: float | None = None,
    ) -> VariantResult:
        """Return the derivative of an attachment for a style, generating it if needed.

        Args:
            attachment_id: Attachment to process.
            style_name: Style to produce. None or empty uses the default style.
            timeout: Seconds to wait for a generation, overriding the default.

        Returns:
            Location and dimensions of the derivative.

        Raises:
            UnknownStyle: If the style is not registered. No I/O is performed.
            AttachmentNotFound: If there is no record for attachment_id.
            NotFound: If the source bytes are missing.
            ImageDecodeError: If the source cannot be decoded.
            EncodeError: If the derivative cannot be encoded.
            StorageError: On storage infrastructure failures.
            GenerationTimeout: If this caller stopped waiting.
        """
        spec = self.registry.snapshot().resolve(style_name)
        record = self.repository.get(attachment_id)

        cached = self._cached(record, spec)
        if cached is not None:
            logger.debug("Cache hit for style '%s' of attachment '%s'", spec.name, attachment_id)
            return cached

        wait = self.timeout if timeout is None else timeout
        try:
            result = self._join(attachment_id, spec, wait)
            if result.geometry != spec.geometry:
                # Joined a generation started before the style changed
                logger.debug(
                    "Style '%s' of attachment '%s' was generated as %s, wanted %s",
                    spec.name,
                    attachment_id,
                    result.geometry,
                    spec.geometry,
                )
                result = self._join(attachment_id, spec, wait)
            return result
        except concurrent.futures.TimeoutError as e:
            raise GenerationTimeout(attachment_id, spec.name, t.cast(float, wait)) from e

    def _join(self, attachment_id: str, spec: StyleSpec, wait: float | None) -> VariantResult:
        return self._flights.do(
            (attachment_id, spec.name),
            lambda: self._generate_once(attachment_id, spec),
            timeout=wait,
        )

    def regenerate(self, attachment_id: str, style_name: str | None = None) -> VariantResult:
        """Discard the derivative of a style and generate it again."""
        spec = self.registry.snapshot().resolve(style_name)
        self.discard(attachment_id, spec.name)
        return self.process(attachment_id, spec.name)

    def discard(self, attachment_id: str, style_name: str) -> None:
        """Remove the entry of a style and then its bytes."""
        entry = self.repository.remove_variant(attachment_id, style_name)
        if entry is not None:
            self.storage.delete(entry.storage_key)
            logger.info("Discarded style '%s' of attachment '%s'", style_name, attachment_id)

    def _cached(self, record: AttachmentRecord, spec: StyleSpec) -> VariantResult | None:
        entry = record.variants.get(spec.name)
        if entry is None or entry.geometry != spec.geometry:
            return None
        if not self.storage.exists(entry.storage_key):
            return None
        return self._result(record.id, spec.name, entry)

    def _generate_once(self, attachment_id: str, spec: StyleSpec) -> VariantResult:
        # Another flight may have finished between the caller's cache check and this one
        record = self.repository.get(attachment_id)
        cached = self._cached(record, spec)
        if cached is not None:
            return cached

        stale = record.variants.get(spec.name)
        if stale is not None:
            logger.warning(
                "Regenerating style '%s' of attachment '%s': stored entry is stale "
                "(geometry %s, current %s)",
                spec.name,
                attachment_id,
                stale.geometry,
                spec.geometry,
            )
            self.discard(attachment_id, spec.name)

        span: t.ContextManager[t.Any] = contextlib.nullcontext()
        if self.tracer is not None:
            span = self.tracer.start_as_current_span(
                "imagestyles.generate",
                attributes={
                    "imagestyles.attachment_id": attachment_id,
                    "imagestyles.style": spec.name,
                    "imagestyles.geometry": spec.geometry,
                },
            )
        with span:
            return self._generate(record, spec)

    def _generate(self, record: AttachmentRecord, spec: StyleSpec) -> VariantResult:
        source = self.storage.fetch(record.source_key)
        image = self.codec.decode(source)
        if not record.has_original_size:
            self.repository.set_original_size(record.id, image.width, image.height)

        image = self.codec.resize(self.codec.normalize(image), spec)
        content = self.codec.encode(image, image.format)

        key = variant_key(record.id, spec.name)
        entry = VariantEntry(
            storage_key=key, width=image.width, height=image.height, geometry=spec.geometry
        )
        self.storage.store(key, content, MIME_TYPES_BY_FORMAT.get(image.format.upper()))
        try:
            self.repository.put_variant(record.id, spec.name, entry)
        except BaseException:
            logger.exception(
                "Recording style '%s' of attachment '%s' failed, removing stored bytes",
                spec.name,
                record.id,
            )
            self.storage.delete(key)
            raise

        logger.info(
            "Generated style '%s' (%dx%d) of attachment '%s', %d bytes",
            spec.name,
            entry.width,
            entry.height,
            record.id,
            len(content),
        )
        return self._result(record.id, spec.name, entry)

    def _result(self, attachment_id: str, style_name: str, entry: VariantEntry) -> VariantResult:
        return VariantResult(
            attachment_id=attachment_id,
            style=style_name,
            location=self.storage.location_of(entry.storage_key),
            width=entry.width,
            height=entry.height,
            geometry=entry.geometry,
        )

    def shutdown(self, wait: bool = True) -> None:
        self._flights.shutdown(wait=wait)
