# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides pipeline snapshots, ledgers, event streams and settings.
No external dependencies: storage collaborators are in-memory fakes.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tourflow.attempts.ledger import AttemptLedger
from tourflow.config.settings import Settings
from tourflow.core.errors import ArtifactResolutionError
from tourflow.core.models import Phase, Pipeline, RetryState, RetryStatus, StepOutput
from tourflow.events.models import BatchEvent
from tourflow.events.stream import EventStream
from tourflow.notifications.inbox import NotificationInbox
from tourflow.notifications.router import NotificationRouter
from tourflow.storage.base_artifact_resolver import BaseArtifactResolver
from tourflow.storage.models import ArtifactRef

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# === FIXTURES: Settings ===


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any local .env."""
    return Settings(_env_file=None)


# === FIXTURES: Pipeline snapshots ===


@pytest.fixture
def upload_pipeline() -> Pipeline:
    """Fresh pipeline right after upload."""
    return Pipeline(id="pipe_001", project_id="proj_1")


@pytest.fixture
def style_review_pipeline() -> Pipeline:
    """Pipeline waiting for style review with an output to review."""
    return Pipeline(
        id="pipe_002",
        project_id="proj_1",
        phase=Phase.STYLE_REVIEW,
        current_step=2,
        step_outputs={
            "step1": StepOutput(output_upload_id="outputs/p2/top_down.png", manual_approved=True),
            "step2": StepOutput(output_upload_id="outputs/p2/style.png"),
        },
    )


@pytest.fixture
def blocked_pipeline() -> Pipeline:
    """Pipeline halted on step 3 after exhausting automatic retries."""
    return Pipeline(
        id="pipe_003",
        project_id="proj_1",
        phase=Phase.CAMERA_PLAN_PENDING,
        current_step=3,
        step_retry_state={
            "step3": RetryState(status=RetryStatus.BLOCKED_FOR_HUMAN, attempt_count=5),
        },
    )


# === FIXTURES: Ledgers and streams ===


@pytest.fixture
def ledger() -> AttemptLedger:
    return AttemptLedger()


@pytest.fixture
def event_stream() -> EventStream:
    return EventStream()


@pytest.fixture
def make_event():
    """Factory for events spaced one second apart."""
    counter = {"n": 0}

    def _make(type: str = "progress", progress_int: int = 0, message: str = "") -> BatchEvent:
        ts = T0 + timedelta(seconds=counter["n"])
        counter["n"] += 1
        return BatchEvent(ts=ts, type=type, progress_int=progress_int, message=message)

    return _make


# === FIXTURES: Notifications ===


@pytest.fixture
def router() -> NotificationRouter:
    return NotificationRouter()


@pytest.fixture
def inbox() -> NotificationInbox:
    return NotificationInbox()


# === FIXTURES: Storage fakes ===


class FakeResolver(BaseArtifactResolver):
    """Signs every reference except those listed as missing."""

    def __init__(self, missing: set[str] | None = None) -> None:
        self.missing = missing or set()
        self.calls: list[ArtifactRef] = []

    async def resolve(self, ref: ArtifactRef, expires_in_s: int = 3600) -> str:
        self.calls.append(ref)
        if str(ref) in self.missing:
            raise ArtifactResolutionError(str(ref), "object not found")
        return f"https://storage.test/{ref.bucket}/{ref.path}?expires={expires_in_s}"


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


# === FIXTURES: Temp files ===


@pytest.fixture
def write_json(tmp_path: Path):
    """Write a JSON document into tmp_path and return its path."""

    def _write(name: str, data: object) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
