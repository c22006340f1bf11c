# tests/unit/core/test_unit_models.py — v1
"""Tests for core/models.py — Phase, StepKey, Pipeline, Attempt."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from tourflow.core.errors import PolicyViolationError, UnknownPhaseError
from tourflow.core.models import (
    Attempt,
    Phase,
    Pipeline,
    QADecision,
    RetryState,
    RetryStatus,
    StepCandidate,
    StepKey,
    StepOutput,
    StepQADecision,
)


class TestPhaseParse:
    def test_none_is_upload(self):
        assert Phase.parse(None) is Phase.UPLOAD
        assert Phase.parse("") is Phase.UPLOAD

    def test_normalizes_case_and_whitespace(self):
        assert Phase.parse("  Style_Review ") is Phase.STYLE_REVIEW

    def test_passthrough(self):
        assert Phase.parse(Phase.COMPLETED) is Phase.COMPLETED

    def test_unknown_raises(self):
        with pytest.raises(UnknownPhaseError, match="step_9_review"):
            Phase.parse("step_9_review")

    def test_unknown_is_policy_violation(self):
        with pytest.raises(PolicyViolationError):
            Phase.parse("bogus")


class TestStepKey:
    def test_number(self):
        assert StepKey.STEP4.number == 4

    def test_for_step(self):
        assert StepKey.for_step(7) is StepKey.STEP7

    def test_for_step_out_of_range(self):
        with pytest.raises(ValueError, match="no step key"):
            StepKey.for_step(8)

    @pytest.mark.parametrize("raw", ["step3", "step_3", "STEP3", 3])
    def test_parse_variants(self, raw):
        assert StepKey.parse(raw) is StepKey.STEP3

    def test_parse_invalid(self):
        with pytest.raises(ValueError, match="Invalid step key"):
            StepKey.parse("third")


class TestStepOutput:
    def test_none_fields_normalized(self):
        out = StepOutput.model_validate({"outputs": None, "manual_approved": None})
        assert out.outputs == []
        assert out.manual_approved is False

    def test_has_output_single(self):
        assert StepOutput(output_upload_id="u1").has_output is True

    def test_has_output_multi(self):
        out = StepOutput(outputs=[StepCandidate(), StepCandidate(output_upload_id="u2")])
        assert out.has_output is True
        assert out.upload_ids == ["u2"]

    def test_empty_candidates_have_no_output(self):
        assert StepOutput(outputs=[StepCandidate(camera_angle="north")]).has_output is False

    def test_upload_ids_single_first(self):
        out = StepOutput(
            output_upload_id="main",
            outputs=[StepCandidate(output_upload_id="a"), StepCandidate(output_upload_id="b")],
        )
        assert out.upload_ids == ["main", "a", "b"]

    def test_executor_decisions_accepted(self):
        out = StepOutput.model_validate({
            "qa_decision": "partial_success",
            "outputs": [{"output_upload_id": "r1", "qa_decision": "pending"}],
        })
        assert out.qa_decision is StepQADecision.PARTIAL_SUCCESS
        assert out.outputs[0].qa_decision is StepQADecision.PENDING

    def test_attempt_decision_stays_closed(self):
        with pytest.raises(ValidationError):
            Attempt(job_id="j", attempt_number=1, qa_decision="partial_success")


class TestPipeline:
    def test_defaults(self):
        p = Pipeline()
        assert p.phase is Phase.UPLOAD
        assert p.current_step == 0
        assert p.step_outputs == {}

    def test_absent_phase_defaults_to_upload(self):
        p = Pipeline.model_validate({"phase": None, "current_step": None})
        assert p.phase is Phase.UPLOAD
        assert p.current_step == 0

    def test_unknown_phase_rejected(self):
        with pytest.raises(UnknownPhaseError):
            Pipeline.model_validate({"phase": "teleporting"})

    def test_step_keys_normalized(self):
        p = Pipeline.model_validate({
            "step_outputs": {"step_1": {"output_upload_id": "u"}, "step2": None},
            "step_retry_state": {"step3": {"status": "running", "attempt_count": 1}},
        })
        assert list(p.step_outputs) == [StepKey.STEP1]
        assert p.step_retry_state[StepKey.STEP3].status is RetryStatus.RUNNING

    def test_unknown_step_keys_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="tourflow.core.models"):
            p = Pipeline.model_validate({
                "step_outputs": {"final": {}, "step2": {"output_upload_id": "u2"}},
                "step_retry_state": {"step_0": {"status": "running", "attempt_count": 1}},
            })
        assert list(p.step_outputs) == [StepKey.STEP2]
        assert p.step_retry_state == {}
        assert "step_0" in caplog.text

    def test_output_for(self):
        p = Pipeline(step_outputs={"step2": StepOutput(output_upload_id="x")})
        assert p.output_for(2).output_upload_id == "x"
        assert p.output_for(3) is None

    def test_retry_state_for_absent(self):
        state = Pipeline().retry_state_for(1)
        assert state.status is RetryStatus.PENDING
        assert state.attempt_count == 0


class TestRetryState:
    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            RetryState(attempt_count=-1)

    def test_is_blocked(self):
        assert RetryState(status="blocked_for_human").is_blocked is True


class TestAttempt:
    def test_number_starts_at_one(self):
        with pytest.raises(ValidationError):
            Attempt(job_id="j", attempt_number=0)

    def test_decision_flags(self):
        a = Attempt(job_id="j", attempt_number=1, qa_decision=QADecision.REJECTED)
        assert a.is_rejected is True
        assert a.is_approved is False

    def test_created_at_is_utc(self):
        a = Attempt(job_id="j", attempt_number=1)
        assert a.created_at.tzinfo is not None
