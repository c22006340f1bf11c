# src/core/errors.py — v1
"""Exception hierarchy.

Inconsistencies found in a pipeline snapshot are reported as data
(``pipeline.validator.Issue``), never raised. Exceptions are reserved for
policy violations by the caller and for collaborator failures.
"""

from __future__ import annotations


class TourflowError(Exception):
    """Base class for all tourflow errors."""


# === POLICY VIOLATIONS (caller bugs, rejected outright) ===


class PolicyViolationError(TourflowError):
    """An operation was requested that the core refuses to perform."""


class UnknownPhaseError(PolicyViolationError):
    """A phase string does not belong to the closed phase enumeration."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unknown pipeline phase: {value!r}")


class UnknownAttemptError(PolicyViolationError):
    """A QA decision was recorded against an attempt that does not exist."""

    def __init__(self, attempt_id: str) -> None:
        self.attempt_id = attempt_id
        super().__init__(f"No attempt with id {attempt_id!r}")


class BlockedForHumanError(PolicyViolationError):
    """An automatic retry was requested for a step awaiting manual action."""

    def __init__(self, step_key: str, attempt_count: int) -> None:
        self.step_key = step_key
        self.attempt_count = attempt_count
        super().__init__(
            f"Step '{step_key}' is blocked for human review after "
            f"{attempt_count} attempts; reset it before retrying"
        )


class NoRecoveryError(PolicyViolationError):
    """An issue without a deterministic recovery was asked to be applied."""


class UnknownNotificationError(PolicyViolationError):
    """A read-state change targeted a notification that does not exist."""

    def __init__(self, notification_id: str) -> None:
        self.notification_id = notification_id
        super().__init__(f"No notification with id {notification_id!r}")


# === COLLABORATOR FAILURES (external, never core bugs) ===


class CollaboratorError(TourflowError):
    """An external collaborator (storage, network, QA backend) failed."""


class ArtifactResolutionError(CollaboratorError):
    """An artifact reference could not be turned into a viewable URL."""

    def __init__(self, reference: str, reason: str) -> None:
        self.reference = reference
        self.reason = reason
        super().__init__(f"Could not resolve artifact {reference!r}: {reason}")
