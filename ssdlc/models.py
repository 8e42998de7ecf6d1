"""Data models for SSDLC compliance tracking.

This module contains the core data structures of the tracker: the fixed
set of development phases, the completion state shared by tasks and phases,
security tasks, and projects with their per-phase status.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .exceptions import InvalidPhaseError, TaskNotFoundError, ValidationError


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as an ISO-8601 UTC string ending in ``Z``."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp written by :func:`format_timestamp`."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Phase(str, Enum):
    """The five sequential development phases, in report order."""

    PLANNING = "planning"
    DESIGN = "design"
    IMPLEMENTATION = "implementation"
    TESTING = "testing"
    DEPLOYMENT = "deployment"

    @property
    def display_name(self) -> str:
        """Capitalized phase name used in reports."""
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: Union["Phase", str]) -> "Phase":
        """Resolve a phase name, raising InvalidPhaseError for unknown names."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidPhaseError(value) from exc


PHASE_ORDER: Tuple[Phase, ...] = tuple(Phase)


class OverallStatus(str, Enum):
    """Derived project status."""

    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


# ----------------------------------------------------------------------
# Completion state
# ----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Incomplete:
    """Completion state of work that is not finished."""

    @property
    def completed(self) -> bool:
        return False

    @property
    def at(self) -> Optional[datetime]:
        return None


@dataclass(frozen=True, slots=True)
class Completed:
    """Completion state stamped with the moment the work was finished."""

    at: datetime

    @property
    def completed(self) -> bool:
        return True


CompletionState = Union[Incomplete, Completed]

INCOMPLETE = Incomplete()


def completion_state(completed: bool, now: Optional[datetime] = None) -> CompletionState:
    """Build the completion state for a boolean flag."""
    if completed:
        return Completed(now or utcnow())
    return INCOMPLETE


def _state_from_dict(data: Mapping[str, Any], owner: str) -> CompletionState:
    if not data.get("completed"):
        return INCOMPLETE
    completed_at = parse_timestamp(data.get("completed_date"))
    if completed_at is None:
        raise ValidationError(f"{owner} is marked completed without a completion date")
    return Completed(completed_at)


# ----------------------------------------------------------------------
# Tasks
# ----------------------------------------------------------------------


@dataclass(slots=True)
class Task:
    """A single checkable security activity belonging to one phase."""

    task_id: str
    phase: Phase
    title: str
    description: str
    state: CompletionState = INCOMPLETE
    notes: str = ""
    evidence_files: List[str] = field(default_factory=list)

    @classmethod
    def create(cls, phase: Union[Phase, str], title: str, description: str) -> "Task":
        """Create a fresh, incomplete task with a new identity."""
        try:
            resolved = Phase.parse(phase)
        except InvalidPhaseError as exc:
            raise ValidationError(f"Invalid task phase: {phase}") from exc
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Task title is required and must be a non-empty string")
        return cls(
            task_id=str(uuid.uuid4()),
            phase=resolved,
            title=title,
            description=description or "",
        )

    @property
    def completed(self) -> bool:
        return self.state.completed

    @property
    def completed_date(self) -> Optional[datetime]:
        return self.state.at

    def set_completion(self, completed: bool, now: Optional[datetime] = None) -> None:
        """Set completion; every completion stamps the current time."""
        if not isinstance(completed, bool):
            raise ValidationError("Completed field must be a boolean value")
        self.state = completion_state(completed, now)

    def set_notes(self, text: Optional[str]) -> None:
        """Replace notes verbatim, treating None as empty."""
        if text is not None and not isinstance(text, str):
            raise ValidationError("Notes field must be a string")
        self.notes = text or ""

    def add_evidence(self, reference: str) -> bool:
        """Attach an evidence reference; duplicates are ignored."""
        if reference in self.evidence_files:
            return False
        self.evidence_files.append(reference)
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "phase": self.phase.value,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "completed_date": format_timestamp(self.completed_date),
            "notes": self.notes,
            "evidence_files": list(self.evidence_files),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from dictionary representation."""
        return cls(
            task_id=data["task_id"],
            phase=Phase.parse(data["phase"]),
            title=data["title"],
            description=data.get("description", ""),
            state=_state_from_dict(data, f"Task '{data['task_id']}'"),
            notes=data.get("notes") or "",
            evidence_files=list(dict.fromkeys(data.get("evidence_files", []))),
        )


TaskMap = Dict[Phase, List[Task]]


def iter_tasks(tasks: Mapping[Phase, List[Task]]) -> Iterator[Tuple[Phase, Task]]:
    """Yield (phase, task) pairs in phase order, then task order."""
    for phase in PHASE_ORDER:
        for task in tasks.get(phase, []):
            yield phase, task


def find_task(tasks: Mapping[Phase, List[Task]], task_id: str) -> Tuple[Phase, Task]:
    """Locate a task by id within a task map."""
    for phase, task in iter_tasks(tasks):
        if task.task_id == task_id:
            return phase, task
    raise TaskNotFoundError(task_id)


def tasks_to_dict(tasks: Mapping[Phase, List[Task]]) -> Dict[str, List[Dict[str, Any]]]:
    """Serialize a task map keyed by phase name."""
    return {
        phase.value: [task.to_dict() for task in tasks[phase]]
        for phase in PHASE_ORDER
        if phase in tasks
    }


def tasks_from_dict(data: Mapping[str, List[Dict[str, Any]]]) -> TaskMap:
    """Deserialize a task map written by :func:`tasks_to_dict`."""
    parsed = {Phase.parse(name): [Task.from_dict(item) for item in items] for name, items in data.items()}
    return {phase: parsed[phase] for phase in PHASE_ORDER if phase in parsed}


# ----------------------------------------------------------------------
# Projects
# ----------------------------------------------------------------------


@dataclass(slots=True)
class PhaseStatus:
    """Completion status of one phase of a project."""

    state: CompletionState = INCOMPLETE

    @property
    def completed(self) -> bool:
        return self.state.completed

    @property
    def completed_date(self) -> Optional[datetime]:
        return self.state.at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "completed": self.completed,
            "completed_date": format_timestamp(self.completed_date),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PhaseStatus":
        """Create from dictionary representation."""
        return cls(state=_state_from_dict(data, "Phase"))


def _fresh_phases() -> Dict[Phase, PhaseStatus]:
    return {phase: PhaseStatus() for phase in PHASE_ORDER}


def validate_project_name(name: Any) -> str:
    """Return the trimmed project name or raise ValidationError."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Project name is required and must be a non-empty string")
    return name.strip()


@dataclass(slots=True)
class Project:
    """A named project tracked across the five phases."""

    project_id: str
    name: str
    created_date: datetime
    phases: Dict[Phase, PhaseStatus] = field(default_factory=_fresh_phases)

    def __post_init__(self) -> None:
        for key in self.phases:
            if not isinstance(key, Phase):
                raise InvalidPhaseError(key)
        # Exactly one status per phase, in phase order.
        self.phases = {phase: self.phases.get(phase) or PhaseStatus() for phase in PHASE_ORDER}

    @classmethod
    def create(cls, name: Any, now: Optional[datetime] = None) -> "Project":
        """Create a new project; every phase starts incomplete."""
        return cls(
            project_id=str(uuid.uuid4()),
            name=validate_project_name(name),
            created_date=now or utcnow(),
        )

    @property
    def overall_status(self) -> OverallStatus:
        if all(status.completed for status in self.phases.values()):
            return OverallStatus.COMPLETED
        return OverallStatus.IN_PROGRESS

    @property
    def is_completed(self) -> bool:
        return self.overall_status is OverallStatus.COMPLETED

    def phase_status(self, phase: Union[Phase, str]) -> PhaseStatus:
        """Get the status of a phase."""
        return self.phases[Phase.parse(phase)]

    def update_phase_status(
        self,
        phase: Union[Phase, str],
        completed: bool,
        now: Optional[datetime] = None,
    ) -> PhaseStatus:
        """Set a phase's completion; the date is stamped or cleared with it."""
        status = self.phases[Phase.parse(phase)]
        status.state = completion_state(completed, now)
        return status

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "project_id": self.project_id,
            "name": self.name,
            "created_date": format_timestamp(self.created_date),
            "phases": {phase.value: status.to_dict() for phase, status in self.phases.items()},
            "overall_status": self.overall_status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Create from dictionary representation; overall status is recomputed."""
        return cls(
            project_id=data["project_id"],
            name=data["name"],
            created_date=parse_timestamp(data["created_date"]),
            phases={
                Phase.parse(name): PhaseStatus.from_dict(status)
                for name, status in data.get("phases", {}).items()
            },
        )
