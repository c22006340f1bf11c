# src/api/models.py — v1
"""Public API models: PipelineReport."""

from __future__ import annotations

from pydantic import BaseModel, Field

from tourflow.core.models import Phase
from tourflow.pipeline.actions import CTAType
from tourflow.pipeline.validator import AttentionItem, ValidationResult
from tourflow.storage.models import ArtifactResolution


class AvailableAction(BaseModel):
    """The single call-to-action the current phase allows."""

    cta_type: CTAType
    action_name: str
    cta_label: str
    endpoint: str | None = None


class PipelineReport(BaseModel):
    """Everything a status view needs about one pipeline snapshot."""

    pipeline_id: str
    phase: Phase
    current_step: int
    summary: str
    validation: ValidationResult
    attention: list[AttentionItem] = Field(default_factory=list)
    available_action: AvailableAction
    recoverable: bool = True
    total_attempts: int = 0
    retry_budget_remaining: int = 0
    artifacts: ArtifactResolution | None = None
