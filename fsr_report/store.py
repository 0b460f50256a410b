"""
Form state store.

Owns the single FSR record being edited. The record is loaded from a storage
port at startup (falling back to a fresh default record) and written back in
full after every mutation.
"""
import json
import logging
import threading
from typing import Iterable, List, Optional

from pydantic import ValidationError

from .config import STORAGE_KEY
from .errors import InvalidFieldValueError, RecordImportError, UnknownFieldError
from .models import (
    DATE_FIELDS,
    SECTIONS,
    SIGNATORIES,
    FsrRecord,
    JobTypes,
    Part,
    Photo,
    ServiceTypes,
    field_name,
)

logger = logging.getLogger(__name__)


def record_from_json(text) -> FsrRecord:
    """Parse a JSON snapshot into a record. Raises RecordImportError."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise RecordImportError(f"Invalid JSON file: {e}") from e
    if not isinstance(data, dict):
        raise RecordImportError("Invalid JSON file: expected an object at the top level")
    try:
        return FsrRecord.model_validate(data)
    except ValidationError as e:
        raise RecordImportError(f"Snapshot does not fit the record layout: {e.error_count()} error(s)") from e


def record_to_json(record: FsrRecord) -> str:
    return json.dumps(record.to_document(), indent=2, ensure_ascii=False)


class FormStore:
    """
    Holds the record being edited.

    Every mutator copies the current record, applies its change to the copy and
    commits it. The copy-change-commit sequence runs under ``_lock`` so edits
    made from concurrent request threads apply one after another.
    """

    def __init__(self, storage, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._lock = threading.RLock()
        self._record = self._load()

    def _load(self) -> FsrRecord:
        saved = self.storage.read(self.key)
        if saved is None:
            logger.info(f"No saved form under '{self.key}', starting from the default record")
            return FsrRecord()
        try:
            return record_from_json(saved)
        except RecordImportError as e:
            logger.warning(f"Saved form under '{self.key}' is unreadable ({e}), starting from the default record")
            return FsrRecord()

    @property
    def record(self) -> FsrRecord:
        return self._record

    def _commit(self, record: FsrRecord) -> FsrRecord:
        self._record = record
        self.storage.write(self.key, record_to_json(record))
        return record

    def _draft(self) -> FsrRecord:
        return self._record.model_copy(deep=True)

    # --- Sections -------------------------------------------------------

    def _update_section(self, section: str, changes: dict) -> FsrRecord:
        allowed = SECTIONS[section]
        resolved = {}
        for key, value in changes.items():
            name = field_name(FsrRecord, key)
            if name not in allowed:
                raise UnknownFieldError(f"'{key}' is not a {section} field")
            resolved[name] = value

        with self._lock:
            draft = self._draft()
            try:
                for name, value in resolved.items():
                    setattr(draft, name, value)
            except ValidationError as e:
                raise InvalidFieldValueError(f"Invalid value for {section}: {e.error_count()} error(s)") from e
            return self._commit(draft)

    def update_admin(self, **changes) -> FsrRecord:
        return self._update_section("admin", changes)

    def update_customer(self, **changes) -> FsrRecord:
        return self._update_section("customer", changes)

    def update_system(self, **changes) -> FsrRecord:
        return self._update_section("system", changes)

    def update_timing(self, **changes) -> FsrRecord:
        return self._update_section("timing", changes)

    def update_notes(self, **changes) -> FsrRecord:
        return self._update_section("notes", changes)

    def update_signatures(self, **changes) -> FsrRecord:
        return self._update_section("signatures", changes)

    def update(self, section: str, changes: dict) -> FsrRecord:
        if section not in SECTIONS:
            raise UnknownFieldError(f"Unknown section '{section}'")
        return self._update_section(section, changes)

    def prefill_dates(self, today: str) -> FsrRecord:
        """Fill every empty date field with ``today`` (YYYY-MM-DD)."""
        with self._lock:
            empty = [name for name in DATE_FIELDS if not getattr(self._record, name)]
            if not empty:
                return self._record
            return self._update_section("timing", {name: today for name in empty})

    # --- Flags ----------------------------------------------------------

    def _set_flag(self, attr: str, model_cls, key: str, value: bool) -> FsrRecord:
        name = field_name(model_cls, key)
        if name is None:
            raise UnknownFieldError(f"Unknown {attr} key '{key}'")
        with self._lock:
            draft = self._draft()
            setattr(getattr(draft, attr), name, bool(value))
            return self._commit(draft)

    def set_job_type(self, key: str, value: bool) -> FsrRecord:
        return self._set_flag("job_types", JobTypes, key, value)

    def set_service_type(self, key: str, value: bool) -> FsrRecord:
        return self._set_flag("service_types", ServiceTypes, key, value)

    # --- Parts ----------------------------------------------------------

    def add_part(self, **fields) -> FsrRecord:
        part = Part(**fields)
        with self._lock:
            draft = self._draft()
            draft.parts.append(part)
            return self._commit(draft)

    def _check_part_index(self, index: int):
        if not 0 <= index < len(self._record.parts):
            raise IndexError(f"No part at index {index}")

    def update_part(self, index: int, **changes) -> FsrRecord:
        with self._lock:
            self._check_part_index(index)
            draft = self._draft()
            part = draft.parts[index]
            for key, value in changes.items():
                name = field_name(Part, key)
                if name is None:
                    raise UnknownFieldError(f"'{key}' is not a part field")
                try:
                    setattr(part, name, value)
                except ValidationError as e:
                    raise InvalidFieldValueError(f"Invalid value for part {key}: {e.error_count()} error(s)") from e
            return self._commit(draft)

    def remove_part(self, index: int) -> FsrRecord:
        with self._lock:
            self._check_part_index(index)
            draft = self._draft()
            del draft.parts[index]
            return self._commit(draft)

    # --- Media ----------------------------------------------------------

    def set_logo(self, data_url: Optional[str]) -> FsrRecord:
        with self._lock:
            draft = self._draft()
            draft.logo = data_url
            return self._commit(draft)

    def set_signature_image(self, who: str, data_url: Optional[str]) -> FsrRecord:
        if who not in SIGNATORIES:
            raise UnknownFieldError(f"Unknown signatory '{who}'")
        return self._update_section("signatures", {SIGNATORIES[who]: data_url})

    def add_photos(self, data_urls: Iterable[str]) -> List[Photo]:
        """Append photos in the given order and return the new entries."""
        added = [Photo(src=src) for src in data_urls]
        if added:
            with self._lock:
                draft = self._draft()
                draft.photos.extend(added)
                self._commit(draft)
        return added

    def _photo_index(self, photo_id: str) -> int:
        for i, photo in enumerate(self._record.photos):
            if photo.id == photo_id:
                return i
        raise KeyError(photo_id)

    def update_photo_caption(self, photo_id: str, caption: str) -> FsrRecord:
        with self._lock:
            i = self._photo_index(photo_id)
            draft = self._draft()
            draft.photos[i].caption = caption
            return self._commit(draft)

    def remove_photo(self, photo_id: str) -> FsrRecord:
        with self._lock:
            i = self._photo_index(photo_id)
            draft = self._draft()
            del draft.photos[i]
            return self._commit(draft)

    # --- Whole record ---------------------------------------------------

    def replace(self, record: FsrRecord) -> FsrRecord:
        copy = record.model_copy(deep=True)
        with self._lock:
            return self._commit(copy)

    def reset(self) -> FsrRecord:
        with self._lock:
            return self._commit(FsrRecord())

    def to_json(self) -> str:
        return record_to_json(self._record)

    def import_json(self, text) -> FsrRecord:
        """Replace the record wholesale. On error the current record is left untouched."""
        record = record_from_json(text)
        logger.info(f"Imported record {record.fsr_no}")
        with self._lock:
            return self._commit(record)
