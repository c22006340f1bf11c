# tests/unit/retry/test_unit_policy.py — v1
"""Tests for retry/policy.py — QA retry eligibility rules."""

from __future__ import annotations

import pytest

from tourflow.config.settings import Settings
from tourflow.core.models import RetryState
from tourflow.retry.policy import (
    QAEvaluation,
    RetryPolicy,
    compute_retry_delay,
    evaluate,
)


def _make_qa(**kwargs) -> QAEvaluation:
    defaults = {
        "status": "FAIL",
        "reason_short": "warped walls",
        "severity": "medium",
        "suggestion_type": "prompt_delta",
        "confidence_score": 0.9,
    }
    defaults.update(kwargs)
    return QAEvaluation(**defaults)


class TestComputeRetryDelay:
    @pytest.mark.parametrize("attempt,delay", [(1, 2.0), (2, 4.0), (3, 8.0), (4, 16.0), (5, 30.0)])
    def test_exponential_capped(self, attempt, delay):
        assert compute_retry_delay(RetryPolicy(), attempt) == delay


class TestEvaluate:
    def setup_method(self):
        self.policy = RetryPolicy()

    def test_pass_proceeds(self):
        decision = evaluate(self.policy, _make_qa(status="PASS"), RetryState(), 0)
        assert decision.next_action == "proceed"
        assert decision.should_retry is False

    def test_eligible_retry(self):
        decision = evaluate(self.policy, _make_qa(), RetryState(attempt_count=1), 3)
        assert decision.next_action == "retry"
        assert decision.should_retry is True
        assert decision.delay_seconds == 4.0
        assert decision.reason == "Auto-retry eligible (attempt 2/5)"

    def test_auto_retry_disabled(self):
        decision = evaluate(self.policy, _make_qa(), RetryState(), 0, auto_retry_enabled=False)
        assert decision.next_action == "block_for_human"
        assert "disabled" in decision.reason

    def test_step_limit(self):
        decision = evaluate(self.policy, _make_qa(), RetryState(attempt_count=5), 5)
        assert decision.reason == "Max attempts reached (5/5)"

    def test_run_budget(self):
        decision = evaluate(self.policy, _make_qa(), RetryState(attempt_count=1), 20)
        assert decision.reason == "Total retry budget exhausted (20/20)"

    def test_critical_severity(self):
        decision = evaluate(self.policy, _make_qa(severity="critical"), RetryState(), 0)
        assert decision.reason == "Severity 'critical' requires human review"

    def test_manual_review_suggestion(self):
        decision = evaluate(
            self.policy, _make_qa(suggestion_type="manual_review"), RetryState(), 0
        )
        assert "manual_review" in decision.reason
        assert decision.next_action == "block_for_human"

    def test_low_confidence(self):
        decision = evaluate(self.policy, _make_qa(confidence_score=0.1), RetryState(), 0)
        assert decision.reason == "Low QA confidence (0.1) requires human review"

    def test_rule_order_limit_before_severity(self):
        decision = evaluate(
            self.policy, _make_qa(severity="critical"), RetryState(attempt_count=5), 0
        )
        assert decision.reason.startswith("Max attempts reached")

    def test_from_settings(self):
        policy = RetryPolicy.from_settings(
            Settings(_env_file=None, max_auto_attempts=3, retry_block_severities="high,critical")
        )
        assert policy.max_attempts_per_step == 3
        decision = evaluate(policy, _make_qa(severity="high"), RetryState(), 0)
        assert decision.next_action == "block_for_human"

    def test_auto_retry_disabled_in_settings(self):
        policy = RetryPolicy.from_settings(Settings(_env_file=None, auto_retry_enabled=False))
        assert policy.auto_retry_enabled is False
        decision = evaluate(policy, _make_qa(), RetryState(), 0)
        assert decision.next_action == "block_for_human"
        assert "disabled" in decision.reason
