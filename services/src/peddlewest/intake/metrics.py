"""Lightweight Prometheus-style counters for the intake service."""

from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Iterable

_COUNTERS: Counter[str] = Counter()
_LOCK = Lock()

_FAMILIES: tuple[tuple[str, str, str], ...] = (
    ("peddlewest_requests_total", "Count of HTTP requests processed by the intake service", 'method="none",status="0"'),
    ("peddlewest_submissions_total", "Count of submit attempts by outcome", 'outcome="none"'),
    ("peddlewest_exports_total", "Count of spreadsheet exports by trigger and delivery outcome", 'trigger="none",outcome="none"'),
)


def _increment(sample: str) -> None:
    with _LOCK:
        _COUNTERS[sample] += 1


def record_request(method: str, status_code: int) -> None:
    """Track an HTTP request labelled by method and status code."""

    _increment(f'peddlewest_requests_total{{method="{method.lower()}",status="{status_code}"}}')


def record_submission(outcome: str) -> None:
    """Track a submit attempt: ``accepted``, ``invalid`` or ``failed``."""

    _increment(f'peddlewest_submissions_total{{outcome="{outcome}"}}')


def record_export(trigger: str, outcome: str) -> None:
    _increment(f'peddlewest_exports_total{{trigger="{trigger}",outcome="{outcome}"}}')


def _snapshot() -> Iterable[tuple[str, int]]:
    with _LOCK:
        return sorted(_COUNTERS.items())


def reset() -> None:
    """Drop every recorded sample."""

    with _LOCK:
        _COUNTERS.clear()


def render(service_version: str) -> str:
    """Render metrics using the Prometheus text exposition format."""

    samples = list(_snapshot())
    lines: list[str] = []
    for family, help_text, empty_labels in _FAMILIES:
        lines.append(f"# HELP {family} {help_text}")
        lines.append(f"# TYPE {family} counter")
        matching = [(sample, value) for sample, value in samples if sample.startswith(family + "{")]
        if not matching:
            lines.append(f"{family}{{{empty_labels}}} 0")
        for sample, value in matching:
            lines.append(f"{sample} {value}")

    lines.extend(
        [
            "# HELP peddlewest_service_info Static service metadata",
            "# TYPE peddlewest_service_info gauge",
            f'peddlewest_service_info{{version="{service_version}"}} 1',
        ]
    )
    return "\n".join(lines) + "\n"


__all__ = ["record_export", "record_request", "record_submission", "render", "reset"]
