# src/attempts/ledger.py — v1
"""Append-only ledger of QA attempts per job.

Attempt numbers are assigned as ``max existing + 1`` (1 for an empty
job). Appends must be serialized by the caller's persistence layer; the
ledger itself does no locking.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable

from tourflow.core.errors import UnknownAttemptError
from tourflow.core.models import Attempt, QADecision
from tourflow.logging.context import log_context

logger = logging.getLogger(__name__)


class AttemptLedger:
    """In-memory view over the attempts of one or more jobs."""

    def __init__(self) -> None:
        self._by_job: dict[str, list[Attempt]] = defaultdict(list)
        self._index: dict[str, tuple[str, int]] = {}

    @classmethod
    def from_records(cls, records: Iterable[Attempt]) -> AttemptLedger:
        """Rebuild a ledger from persisted attempts (any order)."""
        ledger = cls()
        for attempt in sorted(records, key=lambda a: (a.job_id, a.attempt_number)):
            ledger._store(attempt)
        return ledger

    def _store(self, attempt: Attempt) -> None:
        attempts = self._by_job[attempt.job_id]
        attempts.append(attempt)
        self._index[attempt.id] = (attempt.job_id, len(attempts) - 1)

    # --- Writes ---

    def append_attempt(self, job_id: str, output: str | None = None) -> Attempt:
        """Open the next attempt for a job with a pending decision."""
        existing = self._by_job.get(job_id, [])
        number = max((a.attempt_number for a in existing), default=0) + 1
        attempt = Attempt(job_id=job_id, attempt_number=number, output=output)
        self._store(attempt)
        with log_context(job_id=job_id):
            logger.debug("Opened attempt %d (%s)", number, attempt.id)
        return attempt

    def record_decision(
        self,
        attempt_id: str,
        decision: QADecision | str,
        reason: str | None = None,
    ) -> Attempt:
        """Record the QA outcome of an attempt.

        Calling it twice on the same attempt overwrites the first decision.

        Raises:
            UnknownAttemptError: If no attempt has this id.
        """
        location = self._index.get(attempt_id)
        if location is None:
            raise UnknownAttemptError(attempt_id)
        job_id, pos = location
        current = self._by_job[job_id][pos]
        updated = current.model_copy(
            update={"qa_decision": QADecision(decision), "qa_reason": reason}
        )
        with log_context(job_id=job_id):
            if current.qa_decision is not None:
                logger.warning(
                    "Attempt %s already decided (%s); overwriting",
                    attempt_id, current.qa_decision.value,
                )
            self._by_job[job_id][pos] = updated
            logger.info(
                "Attempt %d: %s%s",
                updated.attempt_number, updated.qa_decision.value,
                f" ({reason})" if reason else "",
            )
        return updated

    # --- Queries ---

    def attempts(self, job_id: str) -> list[Attempt]:
        """All attempts of a job ordered by attempt number."""
        return sorted(self._by_job.get(job_id, []), key=lambda a: a.attempt_number)

    def get(self, attempt_id: str) -> Attempt | None:
        location = self._index.get(attempt_id)
        if location is None:
            return None
        job_id, pos = location
        return self._by_job[job_id][pos]

    def latest(self, job_id: str) -> Attempt | None:
        """Current attempt: the one with the highest attempt number."""
        attempts = self._by_job.get(job_id)
        if not attempts:
            return None
        return max(attempts, key=lambda a: a.attempt_number)

    current = latest

    def has_rejections(self, job_id: str) -> bool:
        return any(a.is_rejected for a in self._by_job.get(job_id, []))

    def all_rejected(self, job_id: str) -> bool:
        """True only for a non-empty ledger whose every attempt is rejected."""
        attempts = self._by_job.get(job_id)
        if not attempts:
            return False
        return all(a.is_rejected for a in attempts)

    def approved_attempt(self, job_id: str) -> Attempt | None:
        """First approved attempt of a job, if any."""
        for attempt in self.attempts(job_id):
            if attempt.is_approved:
                return attempt
        return None

    def pending(self, job_id: str) -> list[Attempt]:
        """Attempts still awaiting a QA decision."""
        return [a for a in self.attempts(job_id) if a.qa_decision is None]

    @property
    def job_ids(self) -> list[str]:
        return sorted(job for job, attempts in self._by_job.items() if attempts)

    def __len__(self) -> int:
        return len(self._index)
