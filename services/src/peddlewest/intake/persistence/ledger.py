"""Append-only ledger of submitted assessment records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Lock

from pydantic import ValidationError

from ..models.record import AssessmentRecord
from .storage import KeyValueStorage

LOGGER = logging.getLogger(__name__)

LEDGER_KEY = "pw_assessments"


class RecordLedger:
    """Ordered record sequence stored as one JSON list under :data:`LEDGER_KEY`."""

    def __init__(self, storage: KeyValueStorage, *, key: str = LEDGER_KEY) -> None:
        self._storage = storage
        self._key = key
        self._lock = Lock()

    def _load_rows(self) -> list[dict]:
        payload = self._storage.load(self._key)
        if payload is None:
            return []
        if not isinstance(payload, list):
            set_aside = f"{self._key}.invalid-{datetime.now(tz=timezone.utc):%Y%m%dT%H%M%S%fZ}"
            self._storage.save(set_aside, payload)
            self._storage.delete(self._key)
            LOGGER.error(
                "ledger.invalid_payload",
                extra={
                    "extra_payload": {
                        "key": self._key,
                        "type": type(payload).__name__,
                        "set_aside": set_aside,
                    }
                },
            )
            return []
        return [row for row in payload if isinstance(row, dict)]

    def append(self, record: AssessmentRecord) -> int:
        """Append ``record`` and return the new ledger length."""

        with self._lock:
            rows = self._load_rows()
            rows.append(record.as_row())
            self._storage.save(self._key, rows)
            count = len(rows)
        LOGGER.info("ledger.appended", extra={"extra_payload": {"record_count": count}})
        return count

    def all(self) -> list[AssessmentRecord]:
        with self._lock:
            rows = self._load_rows()
        records: list[AssessmentRecord] = []
        for index, row in enumerate(rows):
            try:
                records.append(AssessmentRecord.from_row(row))
            except ValidationError:
                LOGGER.warning("ledger.row_skipped", extra={"extra_payload": {"index": index}})
        return records

    def clear(self) -> int:
        """Remove every record and return how many were dropped."""

        with self._lock:
            dropped = len(self._load_rows())
            self._storage.delete(self._key)
        LOGGER.info("ledger.cleared", extra={"extra_payload": {"record_count": dropped}})
        return dropped


__all__ = ["LEDGER_KEY", "RecordLedger"]
