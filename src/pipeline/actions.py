# src/pipeline/actions.py — v1
"""Phase -> action contract and action routing.

Each phase admits exactly one call-to-action type. Callers route a user
action through ``route_action`` before invoking the execution
collaborator, so that a stale UI cannot trigger work the phase forbids.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from tourflow.core.models import Phase
from tourflow.pipeline.phases import LAST_STEP, STEP_PHASES

logger = logging.getLogger(__name__)

RUN_ENDPOINT = "run-pipeline-step"
CONTINUE_ENDPOINT = "continue-pipeline-step"
RESTART_ENDPOINT = "restart-pipeline-step"
SPACE_ANALYSIS_ENDPOINT = "run-space-analysis"

ActionType = Literal["RUN", "CONTINUE", "APPROVE", "REJECT"]


class CTAType(str, Enum):
    RUN = "RUN"
    CONTINUE = "CONTINUE"
    APPROVE = "APPROVE"
    DISABLED = "DISABLED"
    NONE = "NONE"


@dataclass(frozen=True)
class ActionConfig:
    """What the UI may do while a pipeline sits in a phase."""

    step: int
    cta_type: CTAType
    endpoint: str | None
    action_name: str
    cta_label: str


@dataclass
class ActionRoute:
    """Result of routing a requested action."""

    endpoint: str | None
    action_name: str
    payload: dict[str, Any] = field(default_factory=dict)
    cta_label: str = ""
    is_valid: bool = True
    error: str | None = None


_STEP_LABELS: dict[int, tuple[str, str]] = {
    1: ("TOP_DOWN_3D", "Top-Down 3D"),
    2: ("STYLE", "Style"),
    3: ("CAMERA_PLAN", "Camera Plan"),
    4: ("DETECT_SPACES", "Space Detection"),
    5: ("RENDERS", "Renders"),
    6: ("PANORAMAS", "Panoramas"),
    7: ("MERGE", "Merge"),
}


def _build_contract() -> dict[Phase, ActionConfig]:
    contract: dict[Phase, ActionConfig] = {
        Phase.UPLOAD: ActionConfig(
            0, CTAType.RUN, SPACE_ANALYSIS_ENDPOINT,
            "SPACE_ANALYSIS_START", "Analyze Floor Plan",
        ),
        Phase.SPACE_ANALYSIS_PENDING: ActionConfig(
            0, CTAType.RUN, SPACE_ANALYSIS_ENDPOINT,
            "SPACE_ANALYSIS_START", "Start Space Analysis",
        ),
        Phase.SPACE_ANALYSIS_RUNNING: ActionConfig(
            0, CTAType.DISABLED, None, "SPACE_ANALYSIS_RUNNING", "Analyzing...",
        ),
        Phase.SPACE_ANALYSIS_COMPLETE: ActionConfig(
            0, CTAType.CONTINUE, CONTINUE_ENDPOINT,
            "SPACE_ANALYSIS_CONTINUE", "Continue to Top-Down 3D",
        ),
    }
    for step, sp in STEP_PHASES.items():
        prefix, label = _STEP_LABELS[step]
        contract[sp.pending] = ActionConfig(
            step, CTAType.RUN, RUN_ENDPOINT, f"{prefix}_START", f"Generate {label}",
        )
        contract[sp.running] = ActionConfig(
            step, CTAType.DISABLED, None, f"{prefix}_RUNNING", "Generating...",
        )
        # approval is a record mutation, not an endpoint call
        contract[sp.review] = ActionConfig(
            step, CTAType.APPROVE, None, f"{prefix}_APPROVE", "Approve / Reject",
        )
    contract[Phase.COMPLETED] = ActionConfig(
        LAST_STEP, CTAType.NONE, None,
        "PIPELINE_COMPLETE", "Pipeline Complete",
    )
    contract[Phase.FAILED] = ActionConfig(
        0, CTAType.RUN, RESTART_ENDPOINT, "PIPELINE_RETRY", "Retry Pipeline",
    )
    return contract


PHASE_ACTION_CONTRACT: dict[Phase, ActionConfig] = _build_contract()

_REQUIRED_CTA: dict[str, CTAType] = {
    "RUN": CTAType.RUN,
    "CONTINUE": CTAType.CONTINUE,
    "APPROVE": CTAType.APPROVE,
    "REJECT": CTAType.APPROVE,
}


def action_for_phase(phase: Phase | str) -> ActionConfig:
    return PHASE_ACTION_CONTRACT[Phase.parse(phase)]


def route_action(
    phase: Phase | str,
    action_type: ActionType,
    pipeline_id: str,
    **params: Any,
) -> ActionRoute:
    """Route a user action by phase to the endpoint that must handle it.

    Args:
        phase: Phase the pipeline is in when the action is requested.
        action_type: RUN, CONTINUE, APPROVE or REJECT.
        pipeline_id: Pipeline the action targets.
        **params: Extra payload fields.

    Returns:
        ActionRoute; ``is_valid`` is False when the phase forbids the action.
    """
    parsed = Phase.parse(phase)
    config = PHASE_ACTION_CONTRACT[parsed]
    required = _REQUIRED_CTA.get(action_type)

    if required is None or config.cta_type is not required:
        error = (
            f'Phase "{parsed.value}" does not support {action_type} action '
            f"(current CTA type: {config.cta_type.value})"
        )
        logger.warning("Rejected action for pipeline %s: %s", pipeline_id, error)
        return ActionRoute(
            endpoint=None,
            action_name=config.action_name,
            payload={"pipeline_id": pipeline_id},
            cta_label=config.cta_label,
            is_valid=False,
            error=error,
        )

    payload: dict[str, Any] = {"pipeline_id": pipeline_id, **params}
    if action_type == "CONTINUE" and config.endpoint == CONTINUE_ENDPOINT:
        payload["from_step"] = config.step
        payload["from_phase"] = parsed.value

    return ActionRoute(
        endpoint=config.endpoint,
        action_name=config.action_name,
        payload=payload,
        cta_label=config.cta_label,
    )


def validate_phase_for_action(
    phase: Phase | str, action_name: str
) -> tuple[bool, str | None]:
    """Check that ``action_name`` is the action the phase expects."""
    parsed = Phase.parse(phase)
    config = PHASE_ACTION_CONTRACT[parsed]
    if config.action_name != action_name:
        return False, (
            f'Action "{action_name}" is not valid for phase "{parsed.value}". '
            f'Expected: "{config.action_name}"'
        )
    return True, None
