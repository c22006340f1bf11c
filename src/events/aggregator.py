# src/events/aggregator.py — v1
"""Fold an ordered event sequence into a JobProgress display value.

Progress is the maximum ``progress_int`` observed so that an out-of-order
event never moves the bar backwards. Completion is sticky: once a terminal
event (or full progress, when enabled) is seen, later events keep it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from tourflow.events.classifier import DEFAULT_TERMINAL_MARKERS, classify, is_terminal_type
from tourflow.events.models import BatchEvent, EventCategory, JobProgress

logger = logging.getLogger(__name__)

DEFAULT_JOB_ID = "default"


def aggregate(
    events: Iterable[BatchEvent],
    job_id: str | None = None,
    markers: Iterable[str] = DEFAULT_TERMINAL_MARKERS,
    complete_on_full_progress: bool = True,
) -> JobProgress:
    """Aggregate events in insertion order.

    Args:
        events: Events of one job, in insertion order.
        job_id: Job the events belong to (informational).
        markers: Substrings that make an event type terminal.
        complete_on_full_progress: Treat ``progress_int >= 100`` as completion.

    Returns:
        JobProgress for display.
    """
    marker_list = list(markers)
    progress = JobProgress(job_id=job_id)
    counts: dict[EventCategory, int] = {}

    for event in events:
        progress.event_count += 1
        progress.progress = max(progress.progress, event.progress_int)
        progress.latest_message = event.message or progress.latest_message
        progress.latest_type = event.type

        category = classify(event.type)
        counts[category] = counts.get(category, 0) + 1

        if progress.started_at is None:
            progress.started_at = event.ts
        progress.last_event_at = event.ts

        if is_terminal_type(event.type, marker_list) or (
            complete_on_full_progress and event.progress_int >= 100
        ):
            progress.is_complete = True

    progress.counts = counts
    return progress


def load_events(path: Path) -> dict[str, list[BatchEvent]]:
    """Load persisted events grouped by job id.

    Accepts either a mapping ``{job_id: [event, ...]}`` or a flat list of
    events carrying an optional ``job_id`` field.
    """
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    grouped: dict[str, list[BatchEvent]] = {}

    if isinstance(data, dict):
        for job_id, raw_events in data.items():
            grouped[str(job_id)] = [BatchEvent.model_validate(e) for e in raw_events]
    elif isinstance(data, list):
        for raw in data:
            job_id = str(raw.get("job_id") or DEFAULT_JOB_ID)
            grouped.setdefault(job_id, []).append(BatchEvent.model_validate(raw))
    else:
        raise ValueError(f"Unsupported events file layout in {path}")

    logger.debug(
        "Loaded %d event(s) for %d job(s) from %s",
        sum(len(v) for v in grouped.values()), len(grouped), path,
    )
    return grouped
