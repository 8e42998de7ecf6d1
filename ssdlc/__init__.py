"""SSDLC compliance tracker: security task tracking and compliance reports."""

from .catalog import default_tasks
from .exceptions import (
    EvidenceNotAuthorizedError,
    EvidenceRejectedError,
    InvalidPhaseError,
    NotFoundError,
    ProjectNotFoundError,
    SsdlcError,
    StorageError,
    TaskNotFoundError,
    ValidationError,
)
from .models import OverallStatus, Phase, PhaseStatus, Project, Task
from .phases import PhaseCompletionEngine
from .report import ProjectReport, ReportAggregator
from .service import ComplianceService
from .storage import JsonFileStore, MemoryStore

__all__ = [
    "ComplianceService",
    "EvidenceNotAuthorizedError",
    "EvidenceRejectedError",
    "InvalidPhaseError",
    "JsonFileStore",
    "MemoryStore",
    "NotFoundError",
    "OverallStatus",
    "Phase",
    "PhaseCompletionEngine",
    "PhaseStatus",
    "Project",
    "ProjectNotFoundError",
    "ProjectReport",
    "ReportAggregator",
    "SsdlcError",
    "StorageError",
    "Task",
    "TaskNotFoundError",
    "ValidationError",
    "default_tasks",
]
