"""Convenience exports for persistence helpers."""

from __future__ import annotations

from .atomic import dump_diagnostic, write_bytes_atomic, write_json_atomic
from .draft import PROGRESS_KEY, DraftStore
from .ledger import LEDGER_KEY, RecordLedger
from .storage import FallbackStorage, InMemoryStorage, JsonFileStorage, KeyValueStorage

__all__ = [
    "DraftStore",
    "FallbackStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "LEDGER_KEY",
    "PROGRESS_KEY",
    "RecordLedger",
    "dump_diagnostic",
    "write_bytes_atomic",
    "write_json_atomic",
]
