# src/retry/policy.py — v1
"""Automatic QA retry eligibility with exponential backoff.

Given the structured QA verdict of the latest attempt and the step's
retry state, decide whether to retry automatically, escalate to a human,
or proceed. Rules are evaluated in a fixed order; the first match wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

from tourflow.core.models import RetryState

if TYPE_CHECKING:
    from tourflow.config.settings import Settings

logger = logging.getLogger(__name__)


class QAStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"


class QASeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SuggestionType(str, Enum):
    PROMPT_DELTA = "prompt_delta"
    SETTINGS_DELTA = "settings_delta"
    SEED_CHANGE = "seed_change"
    INPUT_CHANGE = "input_change"
    MANUAL_REVIEW = "manual_review"


class QAEvaluation(BaseModel):
    """Structured verdict produced by the QA collaborator."""

    status: QAStatus
    reason_short: str = ""
    severity: QASeverity = QASeverity.LOW
    suggestion_type: SuggestionType = SuggestionType.PROMPT_DELTA
    confidence_score: float = Field(default=1.0, ge=0.0, le=1.0)


NextAction = Literal["retry", "block_for_human", "proceed"]


@dataclass
class RetryDecision:
    should_retry: bool
    reason: str
    next_action: NextAction
    delay_seconds: float | None = None


@dataclass(frozen=True)
class RetryPolicy:
    """Limits and blocking rules for automatic QA retries."""

    max_attempts_per_step: int = 5
    max_total_attempts_per_run: int = 20
    base_delay_s: float = 2.0
    max_delay_s: float = 30.0
    block_severities: frozenset[str] = field(default_factory=lambda: frozenset({"critical"}))
    block_suggestions: frozenset[str] = field(
        default_factory=lambda: frozenset({"manual_review"})
    )
    min_confidence: float = 0.3
    auto_retry_enabled: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts_per_step=settings.max_auto_attempts,
            max_total_attempts_per_run=settings.max_total_attempts_per_run,
            base_delay_s=settings.retry_base_delay_s,
            max_delay_s=settings.retry_max_delay_s,
            block_severities=frozenset(settings.retry_block_severities_set),
            block_suggestions=frozenset(settings.retry_block_suggestions_set),
            min_confidence=settings.retry_min_confidence,
            auto_retry_enabled=settings.auto_retry_enabled,
        )


def compute_retry_delay(policy: RetryPolicy, attempt_number: int) -> float:
    """Delay before the given attempt (1-based), capped at ``max_delay_s``."""
    delay = policy.base_delay_s * (2 ** max(attempt_number - 1, 0))
    return min(delay, policy.max_delay_s)


def _block(reason: str) -> RetryDecision:
    return RetryDecision(should_retry=False, reason=reason, next_action="block_for_human")


def evaluate(
    policy: RetryPolicy,
    qa: QAEvaluation,
    state: RetryState,
    total_attempts: int,
    auto_retry_enabled: bool = True,
) -> RetryDecision:
    """Decide what happens after a QA verdict.

    Args:
        policy: Retry limits and blocking rules.
        qa: Verdict of the latest attempt.
        state: Current retry state of the step.
        total_attempts: Automatic attempts already spent in this run.
        auto_retry_enabled: Per-step switch; a failure escalates when either
            this or ``policy.auto_retry_enabled`` is False.

    Returns:
        RetryDecision with ``delay_seconds`` set only for ``retry``.
    """
    if qa.status is QAStatus.PASS:
        decision = RetryDecision(
            should_retry=False, reason="QA passed", next_action="proceed"
        )
    elif not (auto_retry_enabled and policy.auto_retry_enabled):
        decision = _block("Auto-retry is disabled for this step")
    elif state.attempt_count >= policy.max_attempts_per_step:
        decision = _block(
            f"Max attempts reached ({state.attempt_count}/{policy.max_attempts_per_step})"
        )
    elif total_attempts >= policy.max_total_attempts_per_run:
        decision = _block(
            f"Total retry budget exhausted "
            f"({total_attempts}/{policy.max_total_attempts_per_run})"
        )
    elif qa.severity.value in policy.block_severities:
        decision = _block(f"Severity '{qa.severity.value}' requires human review")
    elif qa.suggestion_type.value in policy.block_suggestions:
        decision = _block(
            f"Suggestion type '{qa.suggestion_type.value}' requires human review"
        )
    elif qa.confidence_score < policy.min_confidence:
        decision = _block(
            f"Low QA confidence ({qa.confidence_score}) requires human review"
        )
    else:
        upcoming = state.attempt_count + 1
        decision = RetryDecision(
            should_retry=True,
            reason=(
                f"Auto-retry eligible "
                f"(attempt {upcoming}/{policy.max_attempts_per_step})"
            ),
            next_action="retry",
            delay_seconds=compute_retry_delay(policy, upcoming),
        )

    logger.debug("Retry decision: %s (%s)", decision.next_action, decision.reason)
    return decision
