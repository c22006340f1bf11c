# tests/unit/retry/test_unit_tracker.py — v1
"""Tests for retry/tracker.py — bounded retries and escalation."""

from __future__ import annotations

import pytest

from tourflow.attempts.ledger import AttemptLedger
from tourflow.core.errors import BlockedForHumanError, PolicyViolationError
from tourflow.core.models import RetryState, RetryStatus, StepKey
from tourflow.retry.tracker import RetryTracker


class TestRecordAttempt:
    def test_first_attempt(self):
        tracker = RetryTracker(max_attempts=3)
        state = tracker.record_attempt("step1")
        assert state.attempt_count == 1
        assert state.status is RetryStatus.RUNNING
        assert state.updated_at is not None

    @pytest.mark.parametrize("max_attempts", [1, 2, 5])
    def test_blocks_exactly_at_max(self, max_attempts):
        tracker = RetryTracker(max_attempts=max_attempts)
        for n in range(1, max_attempts + 1):
            state = tracker.record_attempt(StepKey.STEP2)
            if n < max_attempts:
                assert state.status is RetryStatus.RUNNING
            else:
                assert state.status is RetryStatus.BLOCKED_FOR_HUMAN
        assert state.attempt_count == max_attempts
        assert "Max attempts reached" in state.last_reason

    def test_retry_on_blocked_raises(self):
        tracker = RetryTracker(max_attempts=1)
        tracker.record_attempt(1)
        with pytest.raises(BlockedForHumanError, match="step1"):
            tracker.record_attempt(1)

    def test_blocked_error_is_policy_violation(self):
        tracker = RetryTracker({"step4": RetryState(status="blocked_for_human", attempt_count=5)})
        with pytest.raises(PolicyViolationError):
            tracker.ensure_can_retry("step_4")

    def test_steps_are_independent(self):
        tracker = RetryTracker(max_attempts=2)
        tracker.record_attempt(1)
        tracker.record_attempt(1)
        assert tracker.record_attempt(2).status is RetryStatus.RUNNING

    def test_invalid_max(self):
        with pytest.raises(ValueError):
            RetryTracker(max_attempts=0)


class TestReset:
    def test_reset_clears_block(self):
        tracker = RetryTracker(max_attempts=1)
        tracker.record_attempt(3)
        state = tracker.reset(3)
        assert state.status is RetryStatus.PENDING
        assert state.attempt_count == 0
        assert state.last_reason is None
        assert tracker.record_attempt(3).attempt_count == 1


class TestStatusMarks:
    def test_running_then_succeeded(self):
        tracker = RetryTracker()
        tracker.mark_running(1)
        assert tracker.state(1).status is RetryStatus.RUNNING
        tracker.mark_succeeded(1)
        assert tracker.state(1).status is RetryStatus.SUCCEEDED

    def test_mark_running_on_blocked_raises(self):
        tracker = RetryTracker()
        tracker.escalate(2, "critical defect")
        with pytest.raises(BlockedForHumanError):
            tracker.mark_running(2)

    def test_mark_failed(self):
        tracker = RetryTracker()
        state = tracker.mark_failed(5, "worker crashed")
        assert state.status is RetryStatus.FAILED
        assert state.last_reason == "worker crashed"

    def test_mark_failed_keeps_escalation(self):
        tracker = RetryTracker()
        tracker.escalate(5, "manual review")
        assert tracker.mark_failed(5).status is RetryStatus.BLOCKED_FOR_HUMAN

    def test_escalate_before_limit_spends_budget(self):
        tracker = RetryTracker(max_attempts=5)
        tracker.record_attempt(1)
        state = tracker.escalate(1, "Severity 'critical' requires human review")
        assert state.is_blocked
        assert state.attempt_count == 5
        assert tracker.should_escalate(1, "job") is True

    def test_escalate_past_limit_keeps_count(self):
        tracker = RetryTracker({"step4": RetryState(attempt_count=7)}, max_attempts=5)
        assert tracker.escalate(4, "x").attempt_count == 7


class TestQueries:
    def test_state_of_untouched_step(self):
        assert RetryTracker().state("step7").status is RetryStatus.PENDING

    def test_blocked_steps_sorted(self):
        tracker = RetryTracker()
        tracker.escalate(6, "x")
        tracker.escalate(2, "y")
        tracker.record_attempt(3)
        assert tracker.blocked_steps() == [StepKey.STEP2, StepKey.STEP6]

    def test_total_attempts(self):
        tracker = RetryTracker()
        tracker.record_attempt(1)
        tracker.record_attempt(1)
        tracker.record_attempt(2)
        assert tracker.total_attempts() == 3

    def test_from_pipeline_uses_settings(self, blocked_pipeline, settings):
        tracker = RetryTracker.from_pipeline(blocked_pipeline, settings)
        assert tracker.max_attempts == settings.max_auto_attempts
        assert tracker.blocked_steps() == [StepKey.STEP3]

    def test_apply_to_returns_copy(self, upload_pipeline):
        tracker = RetryTracker.from_pipeline(upload_pipeline)
        tracker.record_attempt(1)
        updated = tracker.apply_to(upload_pipeline)
        assert updated.retry_state_for(1).attempt_count == 1
        assert upload_pipeline.step_retry_state == {}


class TestShouldEscalate:
    def test_without_ledger_uses_count(self):
        tracker = RetryTracker(max_attempts=1)
        assert tracker.should_escalate(1, "job") is False
        tracker.record_attempt(1)
        assert tracker.should_escalate(1, "job") is True

    def test_with_ledger_needs_all_rejected(self):
        ledger = AttemptLedger()
        tracker = RetryTracker(max_attempts=2, ledger=ledger)
        for _ in range(2):
            attempt = ledger.append_attempt("job1")
            tracker.record_attempt(1)
            ledger.record_decision(attempt.id, "rejected", "blurry")
        assert tracker.should_escalate(1, "job1") is True

    def test_with_ledger_approval_prevents_escalation(self):
        ledger = AttemptLedger()
        tracker = RetryTracker(max_attempts=2, ledger=ledger)
        first = ledger.append_attempt("job1")
        ledger.record_decision(first.id, "rejected")
        second = ledger.append_attempt("job1")
        ledger.record_decision(second.id, "approved")
        tracker.record_attempt(1)
        tracker.record_attempt(1)
        assert tracker.should_escalate(1, "job1") is False
