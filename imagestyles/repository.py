"""Attachment record repositories.

AttachmentRepository keeps records in memory. JsonFileRepository does the
same and writes every change to a JSON file, so records survive restarts.
Records are copied on the way in and out; callers never share mutable state
with the repository.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from imagestyles.errors import AttachmentNotFound
from imagestyles.models import AttachmentRecord, VariantEntry

logger = logging.getLogger(__name__)


class AttachmentRepository:
    """Thread-safe in-memory store of attachment records."""

    def __init__(self, data: dict[str, Any] | None = None):
        self._lock = threading.RLock()
        self.records: dict[str, AttachmentRecord] = {
            attachment_id: AttachmentRecord.model_validate(record)
            for attachment_id, record in (data or {}).get("attachments", {}).items()
        }

    def add(self, record: AttachmentRecord) -> None:
        with self._lock:
            if record.id in self.records:
                raise ValueError(f"Attachment '{record.id}' already exists")
            self._replace(record.id, record.model_copy(deep=True))

    def get(self, attachment_id: str) -> AttachmentRecord:
        with self._lock:
            return self._get(attachment_id).model_copy(deep=True)

    def __contains__(self, attachment_id: str) -> bool:
        with self._lock:
            return attachment_id in self.records

    def __len__(self) -> int:
        with self._lock:
            return len(self.records)

    def remove(self, attachment_id: str) -> AttachmentRecord:
        """Remove a record and return it."""
        with self._lock:
            record = self._get(attachment_id)
            self._replace(attachment_id, None)
            return record

    def set_original_size(self, attachment_id: str, width: int, height: int) -> None:
        """Record the source dimensions unless they are already known."""
        with self._lock:
            record = self._get(attachment_id)
            if record.has_original_size:
                return
            updated = record.model_copy(
                update={"original_width": width, "original_height": height}, deep=True
            )
            self._replace(attachment_id, updated)

    def put_variant(self, attachment_id: str, style_name: str, entry: VariantEntry) -> None:
        """Create or replace the variant entry of a style."""
        with self._lock:
            updated = self._get(attachment_id).model_copy(deep=True)
            updated.variants[style_name] = entry
            self._replace(attachment_id, updated)

    def remove_variant(self, attachment_id: str, style_name: str) -> VariantEntry | None:
        """Remove the variant entry of a style, returning it if there was one."""
        with self._lock:
            record = self._get(attachment_id)
            if style_name not in record.variants:
                return None
            updated = record.model_copy(deep=True)
            entry = updated.variants.pop(style_name)
            self._replace(attachment_id, updated)
            return entry

    def _get(self, attachment_id: str) -> AttachmentRecord:
        record = self.records.get(attachment_id)
        if record is None:
            raise AttachmentNotFound(attachment_id)
        return record

    def _replace(self, attachment_id: str, record: AttachmentRecord | None) -> None:
        """Swap in a new version of a record, or drop it when record is None.

        The previous version is restored if persisting the change fails.
        """
        previous = self.records.get(attachment_id)
        if record is None:
            self.records.pop(attachment_id, None)
        else:
            self.records[attachment_id] = record
        try:
            self._changed()
        except BaseException:
            if previous is None:
                self.records.pop(attachment_id, None)
            else:
                self.records[attachment_id] = previous
            raise

    def _changed(self) -> None:
        """Called with the lock held after every modification."""

    def to_data(self) -> dict[str, Any]:
        with self._lock:
            return {
                "attachments": {
                    attachment_id: record.model_dump(mode="json")
                    for attachment_id, record in self.records.items()
                }
            }


class JsonFileRepository(AttachmentRepository):
    """Repository persisted to a JSON file after every modification."""

    def __init__(self, path: str):
        self.data_file_path = path
        data: dict[str, Any] = {}
        if Path(path).exists():
            with open(self.data_file_path) as json_file:
                data = json.load(json_file)
        super().__init__(data)

    def _changed(self) -> None:
        self.__save_file()

    def __save_file(self):
        directory = os.path.dirname(os.path.abspath(self.data_file_path))
        fd, tmp_name = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as json_file:
                json.dump(self.to_data(), json_file)
            os.replace(tmp_name, self.data_file_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d attachment record(s) to %s", len(self.records), self.data_file_path)
