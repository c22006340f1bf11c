# src/notifications/models.py — v1
"""Notification domain models: NotificationType, DomainEvent, Notification."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from urllib.parse import urlencode

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    RENDER_STARTED = "render_started"
    RENDER_COMPLETED = "render_completed"
    RENDER_FAILED = "render_failed"
    EDIT_STARTED = "edit_started"
    EDIT_COMPLETED = "edit_completed"
    EDIT_FAILED = "edit_failed"
    BATCH_STARTED = "batch_started"
    BATCH_COMPLETED = "batch_completed"
    BATCH_FAILED = "batch_failed"
    PIPELINE_STARTED = "pipeline_started"
    PIPELINE_STEP_COMPLETE = "pipeline_step_complete"
    PIPELINE_REJECTED = "pipeline_rejected"
    PIPELINE_FAILED = "pipeline_failed"
    PIPELINE_ATTACHED = "pipeline_attached"
    PIPELINE_BLOCKED_FOR_MANUAL = "pipeline_blocked_for_manual"
    QA_APPROVED = "qa_approved"
    QA_REJECTED = "qa_rejected"
    PROGRESS = "progress"
    ERROR = "error"


class DomainEvent(BaseModel):
    """A job/pipeline/batch lifecycle transition to notify about."""

    type: NotificationType
    project_id: str | None = None
    job_id: str | None = None
    batch_id: str | None = None
    pipeline_id: str | None = None
    upload_id: str | None = None
    attempt: int | None = None
    subject: str | None = None
    message: str | None = None


class Notification(BaseModel):
    """Addressable user alert with optional navigation target."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: NotificationType
    title: str
    message: str
    icon: str
    tone: str
    target_route: str | None = None
    target_params: dict[str, str] = Field(default_factory=dict)
    is_read: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_interactive(self) -> bool:
        return self.target_route is not None

    def href(self) -> str | None:
        """Route with params serialized as a query string, or None."""
        if self.target_route is None:
            return None
        if not self.target_params:
            return self.target_route
        return f"{self.target_route}?{urlencode(self.target_params)}"
