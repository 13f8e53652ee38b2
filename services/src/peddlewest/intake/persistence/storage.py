"""Key-value storage ports backing saved progress and the record ledger.

The wizard and the ledger only see :class:`KeyValueStorage`. Production wires
a :class:`FallbackStorage` around a :class:`JsonFileStorage` so that a broken
disk degrades the session to memory instead of halting it; tests use
:class:`InMemoryStorage` directly.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Protocol, runtime_checkable

from .atomic import locked_path, replace_file, write_json_atomic

LOGGER = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


@runtime_checkable
class KeyValueStorage(Protocol):
    """Durable slot storage keyed by fixed identifiers holding JSON values."""

    def load(self, key: str) -> Any | None:
        """Return the stored value or ``None`` when the slot is empty."""

    def save(self, key: str, value: Any) -> None:
        """Replace the slot content with ``value``."""

    def delete(self, key: str) -> None:
        """Remove the slot; deleting an empty slot is a no-op."""


def _validate_key(key: str) -> str:
    if not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


@dataclass
class JsonFileStorage:
    """Store each key as a JSON document under ``root``."""

    root: Path
    durable_writes: bool = True

    def _path(self, key: str) -> Path:
        return self.root / f"{_validate_key(key)}.json"

    def load(self, key: str) -> Any | None:
        """Return the decoded slot, moving an undecodable document aside first.

        A corrupt document is renamed to ``<key>.corrupt-<timestamp>.json`` so
        the next save cannot overwrite what it held.
        """

        path = self._path(key)
        with locked_path(path):
            if not path.exists():
                return None
            raw = path.read_bytes()
            try:
                return json.loads(raw.decode("utf-8"))
            except ValueError as exc:
                quarantined = self._quarantine(path, key)
                LOGGER.error(
                    "storage.decode_failed",
                    extra={
                        "extra_payload": {
                            "key": key,
                            "error": str(exc),
                            "quarantined": quarantined.name,
                        }
                    },
                )
                return None

    def _quarantine(self, path: Path, key: str) -> Path:
        stamp = datetime.now(tz=timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.root / f"{key}.corrupt-{stamp}.json"
        suffix = 1
        while target.exists():
            target = self.root / f"{key}.corrupt-{stamp}_{suffix}.json"
            suffix += 1
        replace_file(path, target)
        return target

    def save(self, key: str, value: Any) -> None:
        write_json_atomic(self._path(key), value, durable=self.durable_writes)

    def delete(self, key: str) -> None:
        path = self._path(key)
        with locked_path(path):
            path.unlink(missing_ok=True)


@dataclass
class InMemoryStorage:
    """Process-local storage; values are deep-copied on the way in and out."""

    _slots: dict[str, Any] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def load(self, key: str) -> Any | None:
        with self._lock:
            return copy.deepcopy(self._slots.get(_validate_key(key)))

    def save(self, key: str, value: Any) -> None:
        with self._lock:
            self._slots[_validate_key(key)] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._slots.pop(_validate_key(key), None)


class FallbackStorage:
    """Delegate to ``primary`` until it fails, then continue in memory.

    Loss of durable storage is degraded service: the first ``OSError`` flips
    the storage into memory mode for the rest of the process and the last
    value written is carried over so the session keeps its data.
    """

    def __init__(self, primary: KeyValueStorage, *, fallback: InMemoryStorage | None = None) -> None:
        self._primary = primary
        self._fallback = fallback or InMemoryStorage()
        self._degraded = False
        self._lock = Lock()

    @property
    def degraded(self) -> bool:
        return self._degraded

    def _degrade(self, operation: str, key: str, exc: OSError) -> None:
        with self._lock:
            already = self._degraded
            self._degraded = True
        if not already:
            LOGGER.warning(
                "storage.degraded",
                extra={
                    "extra_payload": {
                        "operation": operation,
                        "key": key,
                        "error": str(exc),
                    }
                },
            )

    def load(self, key: str) -> Any | None:
        if self._degraded:
            return self._fallback.load(key)
        try:
            value = self._primary.load(key)
        except OSError as exc:
            self._degrade("load", key, exc)
            return self._fallback.load(key)
        if value is None:
            self._fallback.delete(key)
        else:
            self._fallback.save(key, value)
        return value

    def save(self, key: str, value: Any) -> None:
        self._fallback.save(key, value)
        if self._degraded:
            return
        try:
            self._primary.save(key, value)
        except OSError as exc:
            self._degrade("save", key, exc)

    def delete(self, key: str) -> None:
        self._fallback.delete(key)
        if self._degraded:
            return
        try:
            self._primary.delete(key)
        except OSError as exc:
            self._degrade("delete", key, exc)


__all__ = [
    "FallbackStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
]
