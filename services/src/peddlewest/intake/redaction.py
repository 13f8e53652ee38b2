"""Scrub personal data and secrets from payloads before they are logged."""

from __future__ import annotations

import re
from typing import Any, Mapping

_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(r"(?<![\w.])\+?\d[\d ()./-]{7,}\d(?![\w.])")
_BEARER_RE = re.compile(r"(?i)bearer\s+[A-Za-z0-9._~+/=-]+")
_SECRET_VALUE_RE = re.compile(r"ya29\.[A-Za-z0-9._-]+|1//[A-Za-z0-9._-]+|GOCSPX-[A-Za-z0-9_-]+")
_SECRET_KEY_NAMES = {
    "access_token",
    "authorization",
    "client_secret",
    "password",
    "refresh_token",
    "secret",
    "token",
}
_PERSONAL_KEY_NAMES = {
    "email",
    "firstname",
    "first_name",
    "lastname",
    "last_name",
    "phone",
    "notes",
}


def _scrub_value(value: Any, *, key: str | None = None) -> Any:
    if isinstance(value, Mapping):
        return {
            inner_key: _scrub_value(inner_value, key=str(inner_key))
            for inner_key, inner_value in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        container_type = type(value)
        scrubbed_items = [_scrub_value(item, key=key) for item in value]
        return container_type(scrubbed_items)
    if isinstance(value, str):
        lowered = key.lower() if key else ""
        if lowered in _SECRET_KEY_NAMES:
            return "[REDACTED]"
        if lowered in _PERSONAL_KEY_NAMES and value:
            return "[REDACTED_PII]"
        sanitized = _BEARER_RE.sub("Bearer [REDACTED]", value)
        sanitized = _EMAIL_RE.sub("[REDACTED_EMAIL]", sanitized)
        sanitized = _PHONE_RE.sub("[REDACTED_PHONE]", sanitized)
        sanitized = _SECRET_VALUE_RE.sub("[REDACTED_SECRET]", sanitized)
        return sanitized
    return value


def scrub(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a sanitized copy of ``payload`` suitable for logs and diagnostics."""

    if not isinstance(payload, Mapping):
        raise TypeError("scrub expects a mapping payload")

    return {str(key): _scrub_value(value, key=str(key)) for key, value in payload.items()}


__all__ = ["scrub"]
