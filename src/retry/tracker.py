# src/retry/tracker.py — v1
"""Per-step retry counter with escalation to human review.

Each automatic retry cycle increments ``attempt_count``. When the count
reaches the configured maximum the step is ``blocked_for_human`` and stays
there until ``reset``. Retrying a blocked step is a caller bug and raises
``BlockedForHumanError``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from tourflow.core.errors import BlockedForHumanError
from tourflow.core.models import Pipeline, RetryState, RetryStatus, StepKey

if TYPE_CHECKING:
    from tourflow.attempts.ledger import AttemptLedger
    from tourflow.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RetryTracker:
    """Track retry state of the steps of one pipeline.

    Args:
        states: Existing retry state keyed by step key.
        max_attempts: Automatic attempts before escalation.
        ledger: Optional attempt ledger consulted by ``should_escalate``.
    """

    def __init__(
        self,
        states: Mapping[StepKey | str, RetryState] | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        ledger: AttemptLedger | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._max_attempts = max_attempts
        self._ledger = ledger
        self._states: dict[StepKey, RetryState] = {
            StepKey.parse(k): v for k, v in (states or {}).items()
        }

    @classmethod
    def from_pipeline(
        cls,
        pipeline: Pipeline,
        settings: Settings | None = None,
        ledger: AttemptLedger | None = None,
    ) -> RetryTracker:
        max_attempts = settings.max_auto_attempts if settings else DEFAULT_MAX_ATTEMPTS
        return cls(pipeline.step_retry_state, max_attempts=max_attempts, ledger=ledger)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def states(self) -> dict[StepKey, RetryState]:
        return dict(self._states)

    def state(self, step_key: StepKey | str | int) -> RetryState:
        """Retry state of a step (fresh pending state if never attempted)."""
        return self._states.get(StepKey.parse(step_key), RetryState())

    def _set(self, key: StepKey, **changes: object) -> RetryState:
        updated = self.state(key).model_copy(update={**changes, "updated_at": _now()})
        self._states[key] = updated
        return updated

    # --- Transitions ---

    def ensure_can_retry(self, step_key: StepKey | str | int) -> None:
        """Raise if the step must not be retried automatically.

        Raises:
            BlockedForHumanError: If the step is blocked for human review.
        """
        key = StepKey.parse(step_key)
        current = self.state(key)
        if current.is_blocked:
            raise BlockedForHumanError(key.value, current.attempt_count)

    def record_attempt(self, step_key: StepKey | str | int) -> RetryState:
        """Count one automatic attempt; escalate when the maximum is reached.

        Raises:
            BlockedForHumanError: If the step is already blocked.
        """
        key = StepKey.parse(step_key)
        self.ensure_can_retry(key)
        count = self.state(key).attempt_count + 1

        if count >= self._max_attempts:
            logger.warning(
                "Step %s reached %d/%d attempts; blocked for human review",
                key.value, count, self._max_attempts,
            )
            return self._set(
                key,
                attempt_count=count,
                status=RetryStatus.BLOCKED_FOR_HUMAN,
                last_reason=f"Max attempts reached ({count}/{self._max_attempts})",
            )

        logger.info("Step %s attempt %d/%d", key.value, count, self._max_attempts)
        return self._set(key, attempt_count=count, status=RetryStatus.RUNNING)

    def escalate(self, step_key: StepKey | str | int, reason: str) -> RetryState:
        """Block a step for human review before the count limit is reached.

        The step's automatic budget is spent: ``attempt_count`` is raised to
        ``max_attempts`` so a blocked step always sits at the limit.
        """
        key = StepKey.parse(step_key)
        count = max(self.state(key).attempt_count, self._max_attempts)
        logger.warning("Step %s escalated to human review: %s", key.value, reason)
        return self._set(
            key,
            attempt_count=count,
            status=RetryStatus.BLOCKED_FOR_HUMAN,
            last_reason=reason,
        )

    def reset(self, step_key: StepKey | str | int) -> RetryState:
        """Start over: the only way out of ``blocked_for_human``."""
        key = StepKey.parse(step_key)
        logger.info("Step %s reset", key.value)
        return self._set(
            key, attempt_count=0, status=RetryStatus.PENDING, last_reason=None
        )

    def mark_running(self, step_key: StepKey | str | int) -> RetryState:
        key = StepKey.parse(step_key)
        self.ensure_can_retry(key)
        return self._set(key, status=RetryStatus.RUNNING)

    def mark_succeeded(self, step_key: StepKey | str | int) -> RetryState:
        return self._set(StepKey.parse(step_key), status=RetryStatus.SUCCEEDED)

    def mark_failed(self, step_key: StepKey | str | int, reason: str | None = None) -> RetryState:
        key = StepKey.parse(step_key)
        current = self.state(key)
        if current.is_blocked:
            # a late worker failure must not clear the escalation
            return current
        return self._set(key, status=RetryStatus.FAILED, last_reason=reason)

    # --- Queries ---

    def blocked_steps(self) -> list[StepKey]:
        return sorted(
            (k for k, s in self._states.items() if s.is_blocked),
            key=lambda k: k.number,
        )

    def total_attempts(self) -> int:
        return sum(s.attempt_count for s in self._states.values())

    def should_escalate(self, step_key: StepKey | str | int, job_id: str) -> bool:
        """True when automatic fixes are exhausted for the step's job.

        Requires an attached ledger: every recorded attempt was rejected and
        the attempt count has reached the maximum.
        """
        if self._ledger is None:
            return self.state(step_key).attempt_count >= self._max_attempts
        return (
            self._ledger.all_rejected(job_id)
            and self.state(step_key).attempt_count >= self._max_attempts
        )

    def apply_to(self, pipeline: Pipeline) -> Pipeline:
        """Return a copy of ``pipeline`` carrying this tracker's retry state."""
        merged = {**pipeline.step_retry_state, **self._states}
        return pipeline.model_copy(update={"step_retry_state": merged}, deep=True)
