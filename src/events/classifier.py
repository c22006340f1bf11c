# src/events/classifier.py — v1
"""Event type classification for display and completion detection.

Event types are free-form (``batch_complete``, ``qa-fail``, ``retry``...).
A QA failure is not terminal: it leads to a retry of the same job.
"""

from __future__ import annotations

from collections.abc import Iterable

from tourflow.events.models import EventCategory

DEFAULT_TERMINAL_MARKERS: tuple[str, ...] = ("complete", "fail", "error")


def _normalize(event_type: str) -> str:
    return event_type.strip().lower().replace("-", "_")


def _is_qa_type(normalized: str) -> bool:
    return normalized == "qa" or normalized.startswith("qa_")


def is_terminal_type(
    event_type: str,
    markers: Iterable[str] = DEFAULT_TERMINAL_MARKERS,
) -> bool:
    """True if the event type ends a job (complete/fail/error family)."""
    normalized = _normalize(event_type)
    if _is_qa_type(normalized):
        return False
    return any(marker in normalized for marker in markers)


def classify(event_type: str) -> EventCategory:
    """Map an event type to its display category. First match wins."""
    normalized = _normalize(event_type)
    if _is_qa_type(normalized) or "rejected" in normalized:
        return EventCategory.QA
    if "fail" in normalized or "error" in normalized:
        return EventCategory.ERROR
    if "complete" in normalized or "pass" in normalized:
        return EventCategory.SUCCESS
    if "start" in normalized:
        return EventCategory.START
    if "retry" in normalized:
        return EventCategory.RETRY
    return EventCategory.INFO
