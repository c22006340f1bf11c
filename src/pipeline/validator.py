# src/pipeline/validator.py — v1
"""Illegal-state detection and recovery suggestions for pipeline snapshots.

Checks, in reporting order:
  1. PHASE_STEP_MISMATCH (critical): current_step disagrees with the phase.
  2. APPROVED_NOT_ADVANCED (high): a step is manually approved while the
     pipeline still sits in that step's review phase.
  3. REVIEW_WITHOUT_OUTPUT (medium): a review phase with nothing to review.

Steps blocked for human review are a legitimate halt, not an illegal state.
They are reported separately by ``needs_attention``.

The validator never mutates its input; recoveries are advisory.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from tourflow.core.errors import NoRecoveryError
from tourflow.core.models import Phase, Pipeline, RetryStatus, StepKey
from tourflow.pipeline.phases import (
    LAST_STEP,
    STEP_PHASES,
    PhaseKind,
    expected_step,
    next_pending_phase,
    phase_info,
)

logger = logging.getLogger(__name__)


class IssueType(str, Enum):
    PHASE_STEP_MISMATCH = "PHASE_STEP_MISMATCH"
    APPROVED_NOT_ADVANCED = "APPROVED_NOT_ADVANCED"
    REVIEW_WITHOUT_OUTPUT = "REVIEW_WITHOUT_OUTPUT"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


class Recovery(BaseModel):
    """Target state that resolves an issue."""

    phase: Phase
    current_step: int


class Issue(BaseModel):
    """A detected inconsistency."""

    type: IssueType
    message: str
    severity: Severity
    step: int | None = None
    recovery: Recovery | None = None


class ValidationResult(BaseModel):
    """Outcome of ``validate``; ``is_valid`` iff ``issues`` is empty."""

    is_valid: bool
    issues: list[Issue] = Field(default_factory=list)

    def count_by_severity(self) -> dict[Severity, int]:
        counts = {s: 0 for s in Severity}
        for issue in self.issues:
            counts[issue.severity] += 1
        return counts

    def of_type(self, issue_type: IssueType) -> list[Issue]:
        return [i for i in self.issues if i.type is issue_type]


class AttentionItem(BaseModel):
    """A step halted until a human acts on it."""

    step: int
    step_key: StepKey
    attempt_count: int
    message: str


def _coerce(snapshot: Pipeline | Mapping[str, Any]) -> Pipeline:
    if isinstance(snapshot, Pipeline):
        return snapshot
    return Pipeline.model_validate(dict(snapshot))


def validate(snapshot: Pipeline | Mapping[str, Any]) -> ValidationResult:
    """Cross-check phase, step, outputs and approval flags.

    Args:
        snapshot: Pipeline record or its raw mapping from persistence.

    Returns:
        ValidationResult with issues in check order.
    """
    pipeline = _coerce(snapshot)
    phase = pipeline.phase
    info = phase_info(phase)
    issues: list[Issue] = []

    # 1. phase/step consistency
    expected = expected_step(phase)
    if expected is not None and expected != pipeline.current_step:
        issues.append(Issue(
            type=IssueType.PHASE_STEP_MISMATCH,
            message=(
                f'Phase "{phase.value}" expects step {expected}, '
                f"but current_step is {pipeline.current_step}"
            ),
            severity=Severity.CRITICAL,
            step=expected,
            recovery=Recovery(phase=phase, current_step=expected),
        ))

    # 2. approved but still in review
    for step, sp in STEP_PHASES.items():
        output = pipeline.output_for(step)
        if output is None or not output.manual_approved or phase is not sp.review:
            continue
        target = next_pending_phase(step)
        target_step = step + 1 if step < LAST_STEP else LAST_STEP
        issues.append(Issue(
            type=IssueType.APPROVED_NOT_ADVANCED,
            message=f"Step {step} is approved but phase is still {phase.value}",
            severity=Severity.HIGH,
            step=step,
            recovery=Recovery(phase=target, current_step=target_step),
        ))

    # 3. review phase with nothing to review
    if info.kind is PhaseKind.REVIEW and info.step is not None:
        output = pipeline.output_for(info.step)
        if output is None or not output.has_output:
            issues.append(Issue(
                type=IssueType.REVIEW_WITHOUT_OUTPUT,
                message=f"Phase is {phase.value} but no Step {info.step} output exists",
                severity=Severity.MEDIUM,
                step=info.step,
                recovery=Recovery(
                    phase=STEP_PHASES[info.step].pending, current_step=info.step
                ),
            ))

    for issue in issues:
        logger.debug("Pipeline %s: %s (%s)", pipeline.id, issue.type.value, issue.message)
    if issues:
        logger.warning(
            "Pipeline %s is in an illegal state: %d issue(s)", pipeline.id, len(issues)
        )

    return ValidationResult(is_valid=not issues, issues=issues)


def needs_attention(snapshot: Pipeline | Mapping[str, Any]) -> list[AttentionItem]:
    """List steps blocked for human review, ordered by step number."""
    pipeline = _coerce(snapshot)
    items: list[AttentionItem] = []
    for key in sorted(pipeline.step_retry_state, key=lambda k: k.number):
        state = pipeline.step_retry_state[key]
        if state.status is not RetryStatus.BLOCKED_FOR_HUMAN:
            continue
        items.append(AttentionItem(
            step=key.number,
            step_key=key,
            attempt_count=state.attempt_count,
            message=(
                f"Step {key.number} blocked after {state.attempt_count} attempts; "
                "manual approval or reset required"
            ),
        ))
    return items


def summarize(snapshot: Pipeline | Mapping[str, Any]) -> str:
    """One-line status for compact display."""
    pipeline = _coerce(snapshot)
    result = validate(pipeline)
    blocked = len(needs_attention(pipeline))
    head = f"Phase: {pipeline.phase.value}, Step: {pipeline.current_step}"

    if result.is_valid:
        detail = "valid"
    else:
        counts = result.count_by_severity()
        detail = (
            f"{counts[Severity.CRITICAL]} critical, {counts[Severity.HIGH]} high, "
            f"{counts[Severity.MEDIUM]} medium issues"
        )
    if blocked:
        detail += f", {blocked} blocked for human"
    return f"{head} ({detail})"


def apply_recovery(snapshot: Pipeline | Mapping[str, Any], issue: Issue) -> Pipeline:
    """Return a new snapshot with the issue's recovery applied.

    Raises:
        NoRecoveryError: If the issue carries no recovery.
    """
    if issue.recovery is None:
        raise NoRecoveryError(f"Issue {issue.type.value} has no recovery")
    pipeline = _coerce(snapshot)
    logger.info(
        "Pipeline %s: recovery %s -> %s/step %d",
        pipeline.id,
        issue.type.value,
        issue.recovery.phase.value,
        issue.recovery.current_step,
    )
    return pipeline.model_copy(
        update={
            "phase": issue.recovery.phase,
            "current_step": issue.recovery.current_step,
        },
        deep=True,
    )
