import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field

ORIGINAL_KEY_SUFFIX = "original"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def new_attachment_id() -> str:
    """Generate an opaque unique attachment identifier."""
    return uuid.uuid4().hex


def original_key(attachment_id: str) -> str:
    """Storage key of an attachment's source bytes."""
    return f"{attachment_id}/{ORIGINAL_KEY_SUFFIX}"


def variant_key(attachment_id: str, style_name: str) -> str:
    """Storage key of an attachment's derivative for one style."""
    return f"{attachment_id}/{style_name}"


class VariantEntry(BaseModel):
    """A generated derivative of an attachment.

    Entries are never edited in place; regenerating replaces the entry.

    Attributes:
        storage_key: Key of the derivative bytes in the storage backend
        width: Derivative width in pixels
        height: Derivative height in pixels
        geometry: Geometry of the style spec the derivative was generated from
        generated_at: When the derivative was stored
    """

    model_config = ConfigDict(frozen=True)

    storage_key: str
    width: int
    height: int
    geometry: str
    generated_at: datetime.datetime = Field(default_factory=_utcnow)


class AttachmentRecord(BaseModel):
    """One uploaded image and its known derivatives.

    Attributes:
        id: Opaque unique identifier
        source_key: Key of the original bytes in the storage backend
        declared_mime_type: MIME type declared at upload
        original_width: Source width, known after the first decode
        original_height: Source height, known after the first decode
        created_at: When the upload was accepted
        variants: Derivatives keyed by style name, at most one per style
    """

    id: str
    source_key: str
    declared_mime_type: str
    original_width: int | None = None
    original_height: int | None = None
    created_at: datetime.datetime = Field(default_factory=_utcnow)
    variants: dict[str, VariantEntry] = Field(default_factory=dict)

    @property
    def storage_keys(self) -> list[str]:
        """All storage keys owned by this record, derivatives first."""
        return [entry.storage_key for entry in self.variants.values()] + [self.source_key]

    @property
    def has_original_size(self) -> bool:
        return self.original_width is not None and self.original_height is not None


class VariantResult(BaseModel):
    """What the render path needs to display an image.

    Attributes:
        attachment_id: Attachment the image belongs to
        style: Resolved style name, or "original" for the source image
        location: URL of the image
        width: Width in pixels, None if not known yet
        height: Height in pixels, None if not known yet
        geometry: Geometry the derivative was generated with, None for the source image
    """

    model_config = ConfigDict(frozen=True)

    attachment_id: str
    style: str
    location: str
    width: int | None
    height: int | None
    geometry: str | None = None
