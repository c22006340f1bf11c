# src/notifications/catalog.py — v1
"""Display catalog: label, icon and tone per notification type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from tourflow.notifications.models import NotificationType as NT

Icon = Literal["play", "check-circle", "x-circle", "alert-triangle", "clock"]
Tone = Literal["info", "success", "danger", "warning", "muted", "primary"]


@dataclass(frozen=True)
class CatalogEntry:
    label: str
    icon: Icon
    tone: Tone


CATALOG: dict[NT, CatalogEntry] = {
    NT.RENDER_STARTED: CatalogEntry("Render Started", "play", "info"),
    NT.RENDER_COMPLETED: CatalogEntry("Render Complete", "check-circle", "success"),
    NT.RENDER_FAILED: CatalogEntry("Render Failed", "x-circle", "danger"),
    NT.EDIT_STARTED: CatalogEntry("Edit Started", "play", "info"),
    NT.EDIT_COMPLETED: CatalogEntry("Edit Complete", "check-circle", "success"),
    NT.EDIT_FAILED: CatalogEntry("Edit Failed", "x-circle", "danger"),
    NT.BATCH_STARTED: CatalogEntry("Batch Started", "play", "info"),
    NT.BATCH_COMPLETED: CatalogEntry("Batch Complete", "check-circle", "success"),
    NT.BATCH_FAILED: CatalogEntry("Batch Failed", "x-circle", "danger"),
    NT.PIPELINE_STARTED: CatalogEntry("Pipeline Started", "play", "info"),
    NT.PIPELINE_STEP_COMPLETE: CatalogEntry("Pipeline Step Complete", "check-circle", "success"),
    NT.PIPELINE_REJECTED: CatalogEntry("Pipeline Step Rejected", "x-circle", "danger"),
    NT.PIPELINE_FAILED: CatalogEntry("Pipeline Failed", "x-circle", "danger"),
    NT.PIPELINE_ATTACHED: CatalogEntry("Attached to Panoramas", "check-circle", "primary"),
    NT.PIPELINE_BLOCKED_FOR_MANUAL: CatalogEntry(
        "Manual Review Required", "alert-triangle", "warning"
    ),
    NT.QA_APPROVED: CatalogEntry("QA Approved", "check-circle", "success"),
    NT.QA_REJECTED: CatalogEntry("QA Rejected", "alert-triangle", "warning"),
    NT.PROGRESS: CatalogEntry("In Progress", "clock", "muted"),
    NT.ERROR: CatalogEntry("Error", "x-circle", "danger"),
}


def entry_for(notification_type: NT | str) -> CatalogEntry:
    return CATALOG[NT(notification_type)]
