# src/logging/context.py — v1
"""Contextual logging support: attach pipeline_id, job_id, step to log records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

_pipeline_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "pipeline_id", default=None
)
_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    pipeline_id: str | None = None
    job_id: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        pipeline_id=_pipeline_id.get(),
        job_id=_job_id.get(),
        step=_step.get(),
    )


@contextmanager
def log_context(
    pipeline_id: str | None = None,
    job_id: str | None = None,
    step: str | None = None,
) -> Iterator[LogContext]:
    """Scope context variables to a block, restoring the previous values.

    Fields left as None keep the value of the enclosing scope, so a job
    block nested in a pipeline block carries both ids.
    """
    tokens = [
        (var, var.set(value))
        for var, value in ((_pipeline_id, pipeline_id), (_job_id, job_id), (_step, step))
        if value is not None
    ]
    try:
        yield get_context()
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
