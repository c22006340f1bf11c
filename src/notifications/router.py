# src/notifications/router.py — v1
"""Turn domain events into addressable notifications.

The navigation target is the owning project's page with a tab and the
identifying id as query parameters. An event that names no project, or
no id of the kind its family needs, yields a non-interactive notification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tourflow.notifications.catalog import entry_for
from tourflow.notifications.models import DomainEvent, Notification
from tourflow.notifications.models import NotificationType as NT

if TYPE_CHECKING:
    from tourflow.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_TEMPLATE = "/projects/{project_id}"

# Types whose target view auto-opens its review panel.
COMPLETED_FAMILY: frozenset[NT] = frozenset({
    NT.RENDER_COMPLETED,
    NT.EDIT_COMPLETED,
    NT.BATCH_COMPLETED,
    NT.PIPELINE_STEP_COMPLETE,
})


@dataclass(frozen=True)
class _Target:
    tab: str
    param: str
    field: str


_JOB = _Target("jobs", "jobId", "job_id")
_EDIT = _Target("edits", "jobId", "job_id")
_BATCH = _Target("batches", "batchId", "batch_id")
_PIPELINE = _Target("floor-plan-jobs", "pipelineId", "pipeline_id")
_UPLOAD = _Target("panorama-uploads", "uploadId", "upload_id")

_TARGETS: dict[NT, _Target] = {
    NT.RENDER_STARTED: _JOB,
    NT.RENDER_COMPLETED: _JOB,
    NT.RENDER_FAILED: _JOB,
    NT.QA_APPROVED: _JOB,
    NT.QA_REJECTED: _JOB,
    NT.PROGRESS: _JOB,
    NT.ERROR: _JOB,
    NT.EDIT_STARTED: _EDIT,
    NT.EDIT_COMPLETED: _EDIT,
    NT.EDIT_FAILED: _EDIT,
    NT.BATCH_STARTED: _BATCH,
    NT.BATCH_COMPLETED: _BATCH,
    NT.BATCH_FAILED: _BATCH,
    NT.PIPELINE_STARTED: _PIPELINE,
    NT.PIPELINE_STEP_COMPLETE: _PIPELINE,
    NT.PIPELINE_REJECTED: _PIPELINE,
    NT.PIPELINE_FAILED: _PIPELINE,
    NT.PIPELINE_BLOCKED_FOR_MANUAL: _PIPELINE,
    NT.PIPELINE_ATTACHED: _UPLOAD,
}

# running -> final job status
_STATUS_CHANGE_TYPES: dict[str, NT] = {
    "needs_review": NT.RENDER_COMPLETED,
    "approved": NT.QA_APPROVED,
    "rejected": NT.QA_REJECTED,
    "failed": NT.RENDER_FAILED,
}


class NotificationRouter:
    """Map domain events to notifications.

    Args:
        route_template: Project page route; must contain ``{project_id}``.
    """

    def __init__(self, route_template: str = DEFAULT_ROUTE_TEMPLATE) -> None:
        if "{project_id}" not in route_template:
            raise ValueError("route_template must contain {project_id}")
        self._route_template = route_template

    @classmethod
    def from_settings(cls, settings: Settings) -> NotificationRouter:
        return cls(settings.project_route_template)

    def route(self, event: DomainEvent) -> Notification:
        """Build the notification for a domain event."""
        entry = entry_for(event.type)
        target_route, params = self._target(event)

        notification = Notification(
            type=event.type,
            title=entry.label,
            message=self._message(event, entry.label),
            icon=entry.icon,
            tone=entry.tone,
            target_route=target_route,
            target_params=params,
        )
        logger.debug(
            "Routed %s -> %s", event.type.value, notification.href() or "(no target)"
        )
        return notification

    def _target(self, event: DomainEvent) -> tuple[str | None, dict[str, str]]:
        target = _TARGETS[event.type]
        identifier = getattr(event, target.field)
        if not event.project_id or not identifier:
            return None, {}

        params = {"tab": target.tab, target.param: identifier}
        if event.attempt is not None:
            params["attempt"] = str(event.attempt)
        if event.type in COMPLETED_FAMILY:
            params["autoOpenReview"] = "true"
        return self._route_template.format(project_id=event.project_id), params

    @staticmethod
    def _message(event: DomainEvent, label: str) -> str:
        if event.message:
            return event.message
        if event.subject:
            return f"{label}: {event.subject}"
        return label


def notify_status_change(
    job_id: str,
    previous: str | None,
    current: str,
    project_id: str | None = None,
    subject: str | None = None,
) -> DomainEvent | None:
    """Domain event for a job leaving ``running`` for a final status.

    Any other transition (including no change) yields None.
    """
    if previous != "running" or previous == current:
        return None
    event_type = _STATUS_CHANGE_TYPES.get(current)
    if event_type is None:
        return None
    return DomainEvent(
        type=event_type,
        project_id=project_id,
        job_id=job_id,
        subject=subject or "Render job",
    )
