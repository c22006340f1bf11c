# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

Pipeline records, per-step outputs, retry state and QA attempts. No
module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from tourflow.core.errors import UnknownPhaseError

logger = logging.getLogger(__name__)

# Number of numbered stages after upload (top-down 3D .. merging).
STEP_COUNT = 7

_STEP_KEY_RE = re.compile(r"^step_?(\d+)$")


# === PHASES ===


class Phase(str, Enum):
    """Coarse-grained pipeline state label."""

    UPLOAD = "upload"
    SPACE_ANALYSIS_PENDING = "space_analysis_pending"
    SPACE_ANALYSIS_RUNNING = "space_analysis_running"
    SPACE_ANALYSIS_COMPLETE = "space_analysis_complete"

    TOP_DOWN_3D_PENDING = "top_down_3d_pending"
    TOP_DOWN_3D_RUNNING = "top_down_3d_running"
    TOP_DOWN_3D_REVIEW = "top_down_3d_review"

    STYLE_PENDING = "style_pending"
    STYLE_RUNNING = "style_running"
    STYLE_REVIEW = "style_review"

    CAMERA_PLAN_PENDING = "camera_plan_pending"
    CAMERA_PLAN_RUNNING = "camera_plan_running"
    CAMERA_PLAN_REVIEW = "camera_plan_review"

    DETECT_SPACES_PENDING = "detect_spaces_pending"
    DETECTING_SPACES = "detecting_spaces"
    DETECT_SPACES_REVIEW = "detect_spaces_review"

    RENDERS_PENDING = "renders_pending"
    RENDERS_IN_PROGRESS = "renders_in_progress"
    RENDERS_REVIEW = "renders_review"

    PANORAMAS_PENDING = "panoramas_pending"
    PANORAMAS_IN_PROGRESS = "panoramas_in_progress"
    PANORAMAS_REVIEW = "panoramas_review"

    MERGING_PENDING = "merging_pending"
    MERGING_IN_PROGRESS = "merging_in_progress"
    MERGING_REVIEW = "merging_review"

    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: Phase | str | None) -> Phase:
        """Coerce a raw phase value; None means the initial phase.

        Raises:
            UnknownPhaseError: If the value is not a known phase.
        """
        if value is None or value == "":
            return cls.UPLOAD
        if isinstance(value, Phase):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownPhaseError(value) from None


class StepKey(str, Enum):
    """Fixed key under which per-step records are stored."""

    STEP1 = "step1"
    STEP2 = "step2"
    STEP3 = "step3"
    STEP4 = "step4"
    STEP5 = "step5"
    STEP6 = "step6"
    STEP7 = "step7"

    @property
    def number(self) -> int:
        return int(self.value[len("step"):])

    @classmethod
    def for_step(cls, step: int) -> StepKey:
        """Return the key for a numbered step (1..STEP_COUNT)."""
        if not 1 <= step <= STEP_COUNT:
            raise ValueError(f"Step {step} has no step key (expected 1..{STEP_COUNT})")
        return cls(f"step{step}")

    @classmethod
    def parse(cls, value: StepKey | str | int) -> StepKey:
        """Accept ``StepKey``, ``"step3"``, ``"step_3"`` or ``3``."""
        if isinstance(value, StepKey):
            return value
        if isinstance(value, int):
            return cls.for_step(value)
        match = _STEP_KEY_RE.match(str(value).strip().lower())
        if not match:
            raise ValueError(f"Invalid step key: {value!r}")
        return cls.for_step(int(match.group(1)))


class QADecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class StepQADecision(str, Enum):
    """Verdict recorded on a step output by the executor or a reviewer."""

    APPROVED = "approved"
    REJECTED = "rejected"
    PARTIAL_SUCCESS = "partial_success"
    PENDING = "pending"


class RetryStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    BLOCKED_FOR_HUMAN = "blocked_for_human"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# === STEP OUTPUTS ===


class StepCandidate(BaseModel):
    """One candidate artifact of a fan-out step (e.g. one camera angle)."""

    output_upload_id: str | None = None
    qa_decision: StepQADecision | None = None
    qa_reason: str | None = None
    variation_index: int | None = None
    camera_angle: str | None = None


class StepOutput(BaseModel):
    """What a step produced and how it was judged."""

    output_upload_id: str | None = None
    outputs: list[StepCandidate] = Field(default_factory=list)
    manual_approved: bool = False
    qa_decision: StepQADecision | None = None
    qa_reason: str | None = None

    @field_validator("outputs", mode="before")
    @classmethod
    def _none_outputs(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("manual_approved", mode="before")
    @classmethod
    def _none_approved(cls, v: Any) -> Any:
        return False if v is None else v

    @property
    def has_output(self) -> bool:
        """True when a single or any multi-output artifact is recorded."""
        if self.output_upload_id:
            return True
        return any(c.output_upload_id for c in self.outputs)

    @property
    def upload_ids(self) -> list[str]:
        """All artifact references, single output first."""
        ids = [self.output_upload_id] if self.output_upload_id else []
        ids.extend(c.output_upload_id for c in self.outputs if c.output_upload_id)
        return ids


class RetryState(BaseModel):
    """Automatic-retry bookkeeping for one step."""

    status: RetryStatus = RetryStatus.PENDING
    attempt_count: int = Field(default=0, ge=0)
    last_reason: str | None = None
    updated_at: datetime | None = None

    @property
    def is_blocked(self) -> bool:
        return self.status is RetryStatus.BLOCKED_FOR_HUMAN


# === PIPELINE ===


def _normalize_step_map(v: Any) -> Any:
    if v is None:
        return {}
    if not isinstance(v, dict):
        return v
    normalized: dict[StepKey, Any] = {}
    for k, item in v.items():
        if item is None:
            continue
        try:
            key = StepKey.parse(k)
        except ValueError:
            # executors also write step_0 records; they carry no step state
            logger.warning("Ignoring record under unknown step key %r", k)
            continue
        normalized[key] = item
    return normalized


class Pipeline(BaseModel):
    """Read-only snapshot of a long-lived pipeline record."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    project_id: str | None = None
    phase: Phase = Phase.UPLOAD
    current_step: int = 0
    step_outputs: dict[StepKey, StepOutput] = Field(default_factory=dict)
    step_retry_state: dict[StepKey, RetryState] = Field(default_factory=dict)
    updated_at: datetime | None = None

    @field_validator("phase", mode="before")
    @classmethod
    def _parse_phase(cls, v: Any) -> Phase:
        return Phase.parse(v)

    @field_validator("current_step", mode="before")
    @classmethod
    def _default_step(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("step_outputs", "step_retry_state", mode="before")
    @classmethod
    def _normalize_keys(cls, v: Any) -> Any:
        return _normalize_step_map(v)

    def output_for(self, step: int | StepKey) -> StepOutput | None:
        """Return the recorded output of a step, or None."""
        return self.step_outputs.get(StepKey.parse(step))

    def retry_state_for(self, step: int | StepKey) -> RetryState:
        """Return the retry state of a step (fresh pending state if absent)."""
        return self.step_retry_state.get(StepKey.parse(step), RetryState())


# === QA ATTEMPTS ===


class Attempt(BaseModel):
    """A single QA attempt of a job or pipeline step."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    job_id: str
    attempt_number: int = Field(ge=1)
    qa_decision: QADecision | None = None
    qa_reason: str | None = None
    output: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_rejected(self) -> bool:
        return self.qa_decision is QADecision.REJECTED

    @property
    def is_approved(self) -> bool:
        return self.qa_decision is QADecision.APPROVED
