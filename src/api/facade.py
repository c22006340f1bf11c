# src/api/facade.py — v1
"""Public API facade: single entry point for inspecting a pipeline snapshot.

Usage:
    from tourflow.api.facade import inspect_pipeline
    report = inspect_pipeline(snapshot)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from tourflow.api.models import AvailableAction, PipelineReport
from tourflow.config.settings import Settings
from tourflow.core.models import Pipeline
from tourflow.logging.context import log_context
from tourflow.pipeline.actions import action_for_phase
from tourflow.pipeline.phases import is_recoverable
from tourflow.pipeline.validator import needs_attention, summarize, validate
from tourflow.retry.tracker import RetryTracker
from tourflow.storage.base_artifact_resolver import resolve_step_artifacts

if TYPE_CHECKING:
    from tourflow.storage.base_artifact_resolver import BaseArtifactResolver

logger = logging.getLogger(__name__)


def _load(snapshot: Pipeline | Mapping[str, Any]) -> Pipeline:
    if isinstance(snapshot, Pipeline):
        return snapshot
    return Pipeline.model_validate(dict(snapshot))


def inspect_pipeline(
    snapshot: Pipeline | Mapping[str, Any],
    settings: Settings | None = None,
) -> PipelineReport:
    """Validate a snapshot and collect what a status view needs.

    Never mutates the snapshot. Recoveries in the report are advisory.

    Args:
        snapshot: Pipeline record or its raw mapping from persistence.
        settings: Global settings. Loaded from .env if None.

    Returns:
        PipelineReport.
    """
    settings = settings or Settings()
    pipeline = _load(snapshot)

    with log_context(pipeline_id=pipeline.id):
        validation = validate(pipeline)
        attention = needs_attention(pipeline)
        action = action_for_phase(pipeline.phase)
        tracker = RetryTracker.from_pipeline(pipeline, settings)
        total = tracker.total_attempts()

        report = PipelineReport(
            pipeline_id=pipeline.id,
            phase=pipeline.phase,
            current_step=pipeline.current_step,
            summary=summarize(pipeline),
            validation=validation,
            attention=attention,
            available_action=AvailableAction(
                cta_type=action.cta_type,
                action_name=action.action_name,
                cta_label=action.cta_label,
                endpoint=action.endpoint,
            ),
            recoverable=is_recoverable(pipeline.phase),
            total_attempts=total,
            retry_budget_remaining=max(settings.max_total_attempts_per_run - total, 0),
        )
        logger.info("Inspected pipeline: %s", report.summary)
    return report


async def inspect_pipeline_with_artifacts(
    snapshot: Pipeline | Mapping[str, Any],
    resolver: BaseArtifactResolver,
    settings: Settings | None = None,
) -> PipelineReport:
    """``inspect_pipeline`` plus viewable URLs for every step artifact.

    Artifact failures land in ``report.artifacts.failures``; the validation
    part of the report is produced regardless.
    """
    pipeline = _load(snapshot)
    report = inspect_pipeline(pipeline, settings)
    report.artifacts = await resolve_step_artifacts(pipeline, resolver)
    return report
