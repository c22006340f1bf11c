# src/events/models.py — v1
"""Event stream models: BatchEvent, EventCategory, JobProgress."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class EventCategory(str, Enum):
    """Display classification of an event type."""

    ERROR = "error"
    SUCCESS = "success"
    QA = "qa"
    START = "start"
    RETRY = "retry"
    INFO = "info"


class BatchEvent(BaseModel):
    """A timestamped progress event of a job or batch. Never mutated."""

    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: str
    progress_int: int = Field(default=0, ge=0, le=100)
    message: str = ""
    item_id: str | None = None


class JobProgress(BaseModel):
    """Display aggregate of a job's events."""

    job_id: str | None = None
    progress: int = 0
    latest_message: str | None = None
    latest_type: str | None = None
    event_count: int = 0
    is_complete: bool = False
    counts: dict[EventCategory, int] = Field(default_factory=dict)
    started_at: datetime | None = None
    last_event_at: datetime | None = None
