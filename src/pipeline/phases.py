# src/pipeline/phases.py — v1
"""Phase/step contract: expected step per phase, forward order, transitions.

Stateless lookups called by the validator on every check. The table below
is the single source of truth; persistence triggers and UI action routing
must agree with it.

    step  pending                  running                  review
    0     upload,                  space_analysis_running   space_analysis_complete (gate)
          space_analysis_pending
    1     top_down_3d_pending      top_down_3d_running      top_down_3d_review
    2     style_pending            style_running            style_review
    3     camera_plan_pending      camera_plan_running      camera_plan_review
    4     detect_spaces_pending    detecting_spaces         detect_spaces_review
    5     renders_pending          renders_in_progress      renders_review
    6     panoramas_pending        panoramas_in_progress    panoramas_review
    7     merging_pending          merging_in_progress      merging_review
    7     completed (terminal)
    -     failed (no expected step)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

import networkx as nx

from tourflow.core.models import STEP_COUNT, Phase, StepKey

logger = logging.getLogger(__name__)

FIRST_STEP = 1
LAST_STEP = STEP_COUNT


class PhaseKind(str, Enum):
    INITIAL = "initial"
    PENDING = "pending"
    RUNNING = "running"
    REVIEW = "review"
    GATE = "gate"
    TERMINAL = "terminal"
    FAILED = "failed"


@dataclass(frozen=True)
class PhaseInfo:
    """Associated data of a phase."""

    step: int | None
    kind: PhaseKind


@dataclass(frozen=True)
class StepPhases:
    """The pending/running/review triple of a numbered step."""

    step: int
    pending: Phase
    running: Phase
    review: Phase


STEP_PHASES: dict[int, StepPhases] = {
    1: StepPhases(1, Phase.TOP_DOWN_3D_PENDING, Phase.TOP_DOWN_3D_RUNNING, Phase.TOP_DOWN_3D_REVIEW),
    2: StepPhases(2, Phase.STYLE_PENDING, Phase.STYLE_RUNNING, Phase.STYLE_REVIEW),
    3: StepPhases(3, Phase.CAMERA_PLAN_PENDING, Phase.CAMERA_PLAN_RUNNING, Phase.CAMERA_PLAN_REVIEW),
    4: StepPhases(4, Phase.DETECT_SPACES_PENDING, Phase.DETECTING_SPACES, Phase.DETECT_SPACES_REVIEW),
    5: StepPhases(5, Phase.RENDERS_PENDING, Phase.RENDERS_IN_PROGRESS, Phase.RENDERS_REVIEW),
    6: StepPhases(6, Phase.PANORAMAS_PENDING, Phase.PANORAMAS_IN_PROGRESS, Phase.PANORAMAS_REVIEW),
    7: StepPhases(7, Phase.MERGING_PENDING, Phase.MERGING_IN_PROGRESS, Phase.MERGING_REVIEW),
}


def _build_table() -> dict[Phase, PhaseInfo]:
    table: dict[Phase, PhaseInfo] = {
        Phase.UPLOAD: PhaseInfo(0, PhaseKind.INITIAL),
        Phase.SPACE_ANALYSIS_PENDING: PhaseInfo(0, PhaseKind.PENDING),
        Phase.SPACE_ANALYSIS_RUNNING: PhaseInfo(0, PhaseKind.RUNNING),
        Phase.SPACE_ANALYSIS_COMPLETE: PhaseInfo(0, PhaseKind.GATE),
    }
    for sp in STEP_PHASES.values():
        table[sp.pending] = PhaseInfo(sp.step, PhaseKind.PENDING)
        table[sp.running] = PhaseInfo(sp.step, PhaseKind.RUNNING)
        table[sp.review] = PhaseInfo(sp.step, PhaseKind.REVIEW)
    table[Phase.COMPLETED] = PhaseInfo(LAST_STEP, PhaseKind.TERMINAL)
    table[Phase.FAILED] = PhaseInfo(None, PhaseKind.FAILED)
    return table


PHASE_TABLE: dict[Phase, PhaseInfo] = _build_table()

# Forward-progression order; ``failed`` sits outside it.
PHASE_ORDER: tuple[Phase, ...] = (
    Phase.UPLOAD,
    Phase.SPACE_ANALYSIS_PENDING,
    Phase.SPACE_ANALYSIS_RUNNING,
    Phase.SPACE_ANALYSIS_COMPLETE,
    *(p for sp in STEP_PHASES.values() for p in (sp.pending, sp.running, sp.review)),
    Phase.COMPLETED,
)

# Phase that follows a successful review of step N.
_NEXT_PENDING: dict[int, Phase] = {
    step: STEP_PHASES[step + 1].pending for step in range(FIRST_STEP, LAST_STEP)
}


# --- Lookups ---


def phase_info(phase: Phase | str) -> PhaseInfo:
    return PHASE_TABLE[Phase.parse(phase)]


def expected_step(phase: Phase | str) -> int | None:
    """Return the canonical step of a phase, or None if it has none."""
    return PHASE_TABLE[Phase.parse(phase)].step


def is_review_phase(phase: Phase | str) -> bool:
    return PHASE_TABLE[Phase.parse(phase)].kind is PhaseKind.REVIEW


def is_pending_phase(phase: Phase | str) -> bool:
    return PHASE_TABLE[Phase.parse(phase)].kind in (PhaseKind.PENDING, PhaseKind.INITIAL)


def is_running_phase(phase: Phase | str) -> bool:
    return PHASE_TABLE[Phase.parse(phase)].kind is PhaseKind.RUNNING


def is_terminal_phase(phase: Phase | str) -> bool:
    return PHASE_TABLE[Phase.parse(phase)].kind in (PhaseKind.TERMINAL, PhaseKind.FAILED)


def next_pending_phase(step: int) -> Phase:
    """Phase that should follow a successful review of ``step``.

    Unrecognized step numbers (including the last step) fall back to
    ``completed``.
    """
    return _NEXT_PENDING.get(step, Phase.COMPLETED)


def pending_phase(step: int) -> Phase | None:
    sp = STEP_PHASES.get(step)
    return sp.pending if sp else None


def running_phase(step: int) -> Phase | None:
    sp = STEP_PHASES.get(step)
    return sp.running if sp else None


def review_phase(step: int) -> Phase | None:
    sp = STEP_PHASES.get(step)
    return sp.review if sp else None


def step_key(step: int) -> StepKey:
    return StepKey.for_step(step)


def parse_step_key(value: StepKey | str) -> int:
    """``"step3"`` or ``"step_3"`` -> 3."""
    return StepKey.parse(value).number


def phase_index(phase: Phase | str) -> int | None:
    """Position in the forward order, or None for ``failed``."""
    parsed = Phase.parse(phase)
    if parsed not in PHASE_ORDER:
        return None
    return PHASE_ORDER.index(parsed)


# --- Transitions ---


def _build_transitions() -> dict[Phase, frozenset[Phase]]:
    edges: dict[Phase, set[Phase]] = {p: set() for p in Phase}

    edges[Phase.UPLOAD].add(Phase.SPACE_ANALYSIS_PENDING)
    edges[Phase.SPACE_ANALYSIS_PENDING].add(Phase.SPACE_ANALYSIS_RUNNING)
    edges[Phase.SPACE_ANALYSIS_RUNNING].update(
        {Phase.SPACE_ANALYSIS_COMPLETE, Phase.SPACE_ANALYSIS_PENDING}
    )
    edges[Phase.SPACE_ANALYSIS_COMPLETE].add(STEP_PHASES[FIRST_STEP].pending)

    for step, sp in STEP_PHASES.items():
        edges[sp.pending].add(sp.running)
        edges[sp.running].update({sp.review, sp.pending})
        # approve -> next step, reject -> redo this step
        edges[sp.review].update({next_pending_phase(step), sp.pending})

    for phase in Phase:
        if not is_terminal_phase(phase):
            edges[phase].add(Phase.FAILED)
        if phase is not Phase.UPLOAD:
            edges[phase].add(Phase.UPLOAD)

    return {p: frozenset(targets) for p, targets in edges.items()}


LEGAL_TRANSITIONS: dict[Phase, frozenset[Phase]] = _build_transitions()


def legal_targets(phase: Phase | str) -> frozenset[Phase]:
    return LEGAL_TRANSITIONS[Phase.parse(phase)]


def is_legal_transition(from_phase: Phase | str, to_phase: Phase | str) -> bool:
    return Phase.parse(to_phase) in LEGAL_TRANSITIONS[Phase.parse(from_phase)]


def next_phase(phase: Phase | str) -> Phase | None:
    """Forward successor of a phase (approval path for review phases).

    Returns None for ``completed`` and ``failed``.
    """
    parsed = Phase.parse(phase)
    info = PHASE_TABLE[parsed]
    if info.kind is PhaseKind.REVIEW and info.step is not None:
        return next_pending_phase(info.step)
    idx = phase_index(parsed)
    if idx is None or idx + 1 >= len(PHASE_ORDER):
        return None
    return PHASE_ORDER[idx + 1]


@lru_cache(maxsize=1)
def _graph() -> nx.DiGraph:
    graph = nx.DiGraph()
    for phase, info in PHASE_TABLE.items():
        graph.add_node(phase, step=info.step, kind=info.kind.value)
    for src, targets in LEGAL_TRANSITIONS.items():
        for dst in targets:
            graph.add_edge(src, dst)
    return graph


def transition_graph() -> nx.DiGraph:
    """Return a copy of the legal-transition graph (nodes carry step/kind)."""
    return _graph().copy()


def is_recoverable(phase: Phase | str) -> bool:
    """True iff ``completed`` is reachable from ``phase``."""
    return nx.has_path(_graph(), Phase.parse(phase), Phase.COMPLETED)


def unrecoverable_phases() -> list[Phase]:
    """Phases from which the pipeline could never complete (should be empty)."""
    stuck = [p for p in Phase if not is_recoverable(p)]
    if stuck:
        logger.error("Phase table has unrecoverable phases: %s", [p.value for p in stuck])
    return stuck
