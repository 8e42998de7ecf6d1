"""Report aggregation.

Turns a project and its task set into a renderer-agnostic report model:
per-phase statistics, the overall security score, and the completed and
outstanding task listings. Page layout belongs to the document writers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import (
    PHASE_ORDER,
    OverallStatus,
    Phase,
    Project,
    Task,
    format_timestamp,
    utcnow,
)

NOTES_EXCERPT_LIMIT = 80
ELLIPSIS = "..."


class PhaseMarker(str, Enum):
    """Report status marker of a phase."""

    COMPLETE = "Complete"
    IN_PROGRESS = "In Progress"
    NOT_STARTED = "Not Started"


def percentage(part: int, whole: int) -> int:
    """Round part/whole*100 half-up to an integer; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def notes_excerpt(notes: Optional[str], limit: int = NOTES_EXCERPT_LIMIT) -> str:
    """Shorten notes for the report; blank notes yield an empty string."""
    if not notes or not notes.strip():
        return ""
    if len(notes) > limit:
        return notes[:limit] + ELLIPSIS
    return notes


@dataclass(slots=True)
class PhaseSummary:
    """Completion statistics of one phase."""

    phase: Phase
    total: int
    completed_count: int
    percentage: int
    marker: PhaseMarker

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "phase": self.phase.value,
            "total": self.total,
            "completed": self.completed_count,
            "percentage": self.percentage,
            "status": self.marker.value,
        }


@dataclass(slots=True)
class CompletedTaskEntry:
    """A completed task as it appears in the report."""

    phase: Phase
    task_id: str
    title: str
    completed_date: Optional[datetime]
    notes: str
    evidence_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "phase": self.phase.value,
            "task_id": self.task_id,
            "title": self.title,
            "completed_date": format_timestamp(self.completed_date),
            "notes": self.notes,
            "evidence_count": self.evidence_count,
        }


@dataclass(slots=True)
class OutstandingTaskEntry:
    """A task that still has to be done."""

    phase: Phase
    task_id: str
    title: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {"phase": self.phase.value, "task_id": self.task_id, "title": self.title}


@dataclass(slots=True)
class ProjectReport:
    """Structured compliance report for one project."""

    project_id: str
    project_name: str
    overall_status: OverallStatus
    generated_at: datetime
    overall_score: int
    total_tasks: int
    completed_task_count: int
    phases: List[PhaseSummary] = field(default_factory=list)
    completed_tasks: List[CompletedTaskEntry] = field(default_factory=list)
    outstanding_tasks: List[OutstandingTaskEntry] = field(default_factory=list)

    def phase_summary(self, phase: Phase) -> PhaseSummary:
        for summary in self.phases:
            if summary.phase is phase:
                return summary
        raise KeyError(phase)

    def completed_by_phase(self) -> List[Tuple[Phase, List[CompletedTaskEntry]]]:
        """Completed entries grouped by phase, skipping phases with none."""
        return _group(self.completed_tasks)

    def outstanding_by_phase(self) -> List[Tuple[Phase, List[OutstandingTaskEntry]]]:
        """Outstanding entries grouped by phase, skipping phases with none."""
        return _group(self.outstanding_tasks)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "project_id": self.project_id,
            "project_name": self.project_name,
            "overall_status": self.overall_status.value,
            "generated_at": format_timestamp(self.generated_at),
            "overall_score": self.overall_score,
            "total_tasks": self.total_tasks,
            "completed_tasks_count": self.completed_task_count,
            "phases": [summary.to_dict() for summary in self.phases],
            "completed_tasks": [entry.to_dict() for entry in self.completed_tasks],
            "outstanding_tasks": [entry.to_dict() for entry in self.outstanding_tasks],
        }


def _group(entries):
    grouped = []
    for phase in PHASE_ORDER:
        in_phase = [entry for entry in entries if entry.phase is phase]
        if in_phase:
            grouped.append((phase, in_phase))
    return grouped


class ReportAggregator:
    """Compute report statistics from a project and its tasks.

    The aggregator is a pure function of its inputs and assumes a valid
    project/task pair; resolving the project is the caller's job.
    """

    def __init__(self, notes_limit: int = NOTES_EXCERPT_LIMIT):
        self.notes_limit = notes_limit

    def phase_marker(self, project: Project, phase: Phase, completed_count: int) -> PhaseMarker:
        if project.phase_status(phase).completed:
            return PhaseMarker.COMPLETE
        if completed_count > 0:
            return PhaseMarker.IN_PROGRESS
        return PhaseMarker.NOT_STARTED

    def aggregate(
        self,
        project: Project,
        tasks: Mapping[Phase, List[Task]],
        generated_at: Optional[datetime] = None,
    ) -> ProjectReport:
        """Build the report model for a project."""
        summaries: List[PhaseSummary] = []
        completed_entries: List[CompletedTaskEntry] = []
        outstanding_entries: List[OutstandingTaskEntry] = []
        grand_total = 0
        grand_completed = 0

        for phase in PHASE_ORDER:
            phase_tasks = tasks.get(phase, [])
            done = [task for task in phase_tasks if task.completed]
            total = len(phase_tasks)

            summaries.append(
                PhaseSummary(
                    phase=phase,
                    total=total,
                    completed_count=len(done),
                    percentage=percentage(len(done), total),
                    marker=self.phase_marker(project, phase, len(done)),
                )
            )
            grand_total += total
            grand_completed += len(done)

            for task in phase_tasks:
                if task.completed:
                    completed_entries.append(
                        CompletedTaskEntry(
                            phase=phase,
                            task_id=task.task_id,
                            title=task.title,
                            completed_date=task.completed_date,
                            notes=notes_excerpt(task.notes, self.notes_limit),
                            evidence_count=len(task.evidence_files),
                        )
                    )
                else:
                    outstanding_entries.append(
                        OutstandingTaskEntry(phase=phase, task_id=task.task_id, title=task.title)
                    )

        return ProjectReport(
            project_id=project.project_id,
            project_name=project.name,
            overall_status=project.overall_status,
            generated_at=generated_at or utcnow(),
            overall_score=percentage(grand_completed, grand_total),
            total_tasks=grand_total,
            completed_task_count=grand_completed,
            phases=summaries,
            completed_tasks=completed_entries,
            outstanding_tasks=outstanding_entries,
        )
