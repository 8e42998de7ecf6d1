"""Exception hierarchy for the SSDLC compliance tracker."""

from __future__ import annotations


class SsdlcError(Exception):
    """Base class for every error raised by the tracker."""


class ValidationError(SsdlcError, ValueError):
    """Raised when caller-supplied input is rejected."""


class InvalidPhaseError(SsdlcError, ValueError):
    """Raised for a phase name outside the fixed set of phases.

    Phase names are controlled internally, so seeing this error means a
    programming defect rather than bad user input.
    """

    def __init__(self, phase: object):
        self.phase = phase
        super().__init__(f"Invalid phase: {phase}")


class NotFoundError(SsdlcError, LookupError):
    """Raised when a requested project, task or file does not exist."""


class ProjectNotFoundError(NotFoundError):
    """Raised when a project id cannot be resolved."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__("Project not found")


class TaskNotFoundError(NotFoundError):
    """Raised when a task id is not part of the project's task set."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__("Task not found")


class EvidenceRejectedError(ValidationError):
    """Raised when uploaded evidence violates count, size or type limits."""


class EvidenceNotAuthorizedError(SsdlcError):
    """Raised when a file is requested that is not attached to the task."""


class StorageError(SsdlcError):
    """Raised when the store reports that a write did not succeed."""
