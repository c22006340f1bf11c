# src/events/stream.py — v1
"""Ordered, append-only per-job event log with push subscriptions.

Events are kept in insertion order; out-of-order timestamps are tolerated
and delivered as given. A subscriber with ``replay=True`` first receives
the job's history, then every later append, never reordered.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from tourflow.events.aggregator import aggregate
from tourflow.events.classifier import DEFAULT_TERMINAL_MARKERS, is_terminal_type
from tourflow.events.models import BatchEvent, JobProgress
from tourflow.logging.context import log_context

if TYPE_CHECKING:
    from tourflow.config.settings import Settings

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, BatchEvent], None]


class Subscription:
    """Handle returned by ``EventStream.subscribe``."""

    def __init__(self, stream: EventStream, job_id: str, callback: EventCallback) -> None:
        self._stream = stream
        self.job_id = job_id
        self.callback = callback
        self.active = True

    def close(self) -> None:
        """Stop delivery. Safe to call more than once."""
        if self.active:
            self.active = False
            self._stream._detach(self)


class EventStream:
    """In-memory event log keyed by job id.

    Args:
        markers: Substrings that make an event type terminal.
        complete_on_full_progress: Treat ``progress_int >= 100`` as completion.
    """

    def __init__(
        self,
        markers: Iterable[str] = DEFAULT_TERMINAL_MARKERS,
        complete_on_full_progress: bool = True,
    ) -> None:
        self._markers = [m.lower() for m in markers]
        self._complete_on_full_progress = complete_on_full_progress
        self._events: dict[str, list[BatchEvent]] = {}
        self._completed: set[str] = set()
        self._subscribers: dict[str, list[Subscription]] = {}
        self._pending: dict[str, deque[BatchEvent]] = {}
        self._delivering: set[str] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> EventStream:
        return cls(
            markers=settings.terminal_event_markers_list,
            complete_on_full_progress=settings.complete_on_full_progress,
        )

    # --- Writes ---

    def append(self, job_id: str, event: BatchEvent) -> BatchEvent:
        """Append an event and push it to live subscribers.

        An append made from inside a subscriber callback is queued and
        delivered after the event in flight, so every subscriber sees
        history order. Callbacks run with the job id in the log context.
        """
        with log_context(job_id=job_id):
            return self._append(job_id, event)

    def _append(self, job_id: str, event: BatchEvent) -> BatchEvent:
        history = self._events.setdefault(job_id, [])
        if history and event.ts < history[-1].ts:
            logger.debug("Job %s: out-of-order event timestamp %s", job_id, event.ts)
        history.append(event)

        if job_id not in self._completed and self._ends_job(event):
            self._completed.add(job_id)
            logger.info("Job %s complete (%s)", job_id, event.type)

        queue = self._pending.setdefault(job_id, deque())
        queue.append(event)
        if job_id in self._delivering:
            return event

        self._delivering.add(job_id)
        try:
            while queue:
                queued = queue.popleft()
                for sub in list(self._subscribers.get(job_id, [])):
                    self._deliver(sub, queued)
        finally:
            self._delivering.discard(job_id)
        return event

    def extend(self, job_id: str, events: Iterable[BatchEvent]) -> None:
        for event in events:
            self.append(job_id, event)

    def _ends_job(self, event: BatchEvent) -> bool:
        if is_terminal_type(event.type, self._markers):
            return True
        return self._complete_on_full_progress and event.progress_int >= 100

    # --- Subscriptions ---

    def subscribe(
        self,
        job_id: str,
        callback: EventCallback,
        replay: bool = True,
    ) -> Subscription:
        """Register ``callback(job_id, event)`` for a job.

        With ``replay``, the existing history is delivered in order before
        the subscription goes live.
        """
        sub = Subscription(self, job_id, callback)
        if replay:
            history = self._events.get(job_id, [])
            # events still queued for live delivery reach this subscriber there
            delivered = len(history) - len(self._pending.get(job_id, ()))
            for event in history[:delivered]:
                if not self._deliver(sub, event):
                    return sub
        self._subscribers.setdefault(job_id, []).append(sub)
        return sub

    def _deliver(self, sub: Subscription, event: BatchEvent) -> bool:
        if not sub.active:
            return False
        try:
            sub.callback(sub.job_id, event)
        except Exception:
            logger.exception(
                "Subscriber for job %s raised; detaching it", sub.job_id
            )
            sub.close()
            return False
        return True

    def _detach(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.job_id)
        if subs and sub in subs:
            subs.remove(sub)

    def subscriber_count(self, job_id: str) -> int:
        return len(self._subscribers.get(job_id, []))

    # --- Queries ---

    def events(self, job_id: str) -> list[BatchEvent]:
        return list(self._events.get(job_id, []))

    def is_complete(self, job_id: str) -> bool:
        """True once a terminal event has been appended. Never reverts."""
        return job_id in self._completed

    def progress(self, job_id: str) -> JobProgress:
        result = aggregate(
            self._events.get(job_id, []),
            job_id=job_id,
            markers=self._markers,
            complete_on_full_progress=self._complete_on_full_progress,
        )
        result.is_complete = self.is_complete(job_id)
        return result

    @property
    def job_ids(self) -> list[str]:
        return list(self._events)
