"""Project compliance service.

Orchestrates each caller request as one read-modify-write over the store:
load the project and its tasks, apply the change through the models and the
phase engine, and save both back. The service holds no data of its own;
everything lives in the store it was given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .catalog import default_tasks
from .config import Settings
from .document import DocumentWriter, PdfReportWriter, report_filename
from .evidence import EvidenceStore, EvidenceUpload, StoredEvidence
from .exceptions import (
    EvidenceNotAuthorizedError,
    NotFoundError,
    ProjectNotFoundError,
    SsdlcError,
    StorageError,
    ValidationError,
)
from .models import Project, Task, TaskMap, find_task, tasks_to_dict, utcnow
from .phases import PhaseCompletionEngine
from .report import ProjectReport, ReportAggregator
from .ssdlc_logging import (
    log_error_with_context,
    log_evidence_added,
    log_operation,
    log_performance,
    log_phase_status_change,
    log_project_created,
    log_report_generated,
    log_task_update,
)
from .storage import JsonFileStore, ProjectStore

logger = logging.getLogger("ssdlc.service")

_CALLER_ERRORS = (ValidationError, NotFoundError, EvidenceNotAuthorizedError)


@dataclass(slots=True)
class TaskUpdate:
    """Outcome of a task update."""

    task: Task
    project: Project

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task": self.task.to_dict(),
            "project": {
                "phases": self.project.to_dict()["phases"],
                "overall_status": self.project.overall_status.value,
            },
        }


@dataclass(slots=True)
class EvidenceUploadResult:
    """Outcome of an evidence upload."""

    task: Task
    stored: List[StoredEvidence]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "message": "Evidence uploaded successfully",
            "task": self.task.to_dict(),
            "uploaded_files": [item.to_dict() for item in self.stored],
        }


@dataclass(slots=True)
class RenderedReport:
    """A report rendered by a document writer."""

    filename: str
    media_type: str
    content: bytes
    report: ProjectReport


def _require_id(value: Any, kind: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {kind} ID")
    return value


def _report_failure(error: Exception, context: Dict[str, Any]) -> None:
    if isinstance(error, _CALLER_ERRORS):
        logger.warning(f"{context.get('operation')} rejected: {error}")
    else:
        log_error_with_context(error, context)


class ComplianceService:
    """Entry point for project, task, evidence and report operations."""

    def __init__(
        self,
        store: ProjectStore,
        evidence_store: EvidenceStore,
        *,
        engine: Optional[PhaseCompletionEngine] = None,
        aggregator: Optional[ReportAggregator] = None,
        writer: Optional[DocumentWriter] = None,
    ):
        self.store = store
        self.evidence_store = evidence_store
        self.engine = engine or PhaseCompletionEngine()
        self.aggregator = aggregator or ReportAggregator()
        self.writer = writer or PdfReportWriter()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ComplianceService":
        """Wire a service backed by JSON files as described by the settings."""
        settings.ensure_directories()
        return cls(
            JsonFileStore(settings.data_dir),
            EvidenceStore(
                settings.uploads_dir,
                max_file_size=settings.max_evidence_bytes,
                max_files=settings.max_evidence_files,
            ),
            engine=PhaseCompletionEngine(empty_phase_complete=settings.empty_phase_complete),
        )

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    @log_performance("create_project")
    def create_project(self, name: Any) -> Project:
        """Create a project together with its default task set."""
        try:
            project = Project.create(name)
            if not self.store.save_project(project):
                raise StorageError("Failed to save project")
            if not self.store.save_tasks(project.project_id, default_tasks()):
                logger.warning(f"Project {project.project_id} created but failed to save default tasks")
            log_project_created(project.project_id, project.name)
            return project
        except SsdlcError as e:
            _report_failure(e, {"operation": "create_project", "name": name})
            raise

    def list_projects(self) -> List[Project]:
        return self.store.list_projects()

    def get_project(self, project_id: str) -> Tuple[Project, TaskMap]:
        """Load a project and its tasks."""
        try:
            return self._load(project_id)
        except SsdlcError as e:
            _report_failure(e, {"operation": "get_project", "project_id": project_id})
            raise

    def _load(self, project_id: str) -> Tuple[Project, TaskMap]:
        _require_id(project_id, "project")
        project = self.store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project, self.store.get_tasks(project_id)

    def _save(self, project: Project, tasks: TaskMap) -> None:
        tasks_saved = self.store.save_tasks(project.project_id, tasks)
        project_saved = self.store.save_project(project)
        if not tasks_saved or not project_saved:
            raise StorageError("Failed to save updates")

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    @log_performance("update_task")
    def update_task(
        self,
        project_id: str,
        task_id: str,
        completed: Optional[bool] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TaskUpdate:
        """Update a task's completion and/or notes, then recompute its phase."""
        try:
            _require_id(project_id, "project")
            _require_id(task_id, "task")
            if completed is not None and not isinstance(completed, bool):
                raise ValidationError("Completed field must be a boolean value")
            if notes is not None and not isinstance(notes, str):
                raise ValidationError("Notes field must be a string")

            project, tasks = self._load(project_id)
            phase, task = find_task(tasks, task_id)
            now = now or utcnow()

            if completed is not None:
                task.set_completion(completed, now)
            if notes is not None:
                task.set_notes(notes)

            was_completed = project.phase_status(phase).completed
            status = self.engine.recompute_phase(project, tasks, phase, now)
            self._save(project, tasks)

            log_task_update(project_id, task_id, task.completed, phase=phase.value)
            if status.completed != was_completed:
                log_phase_status_change(
                    project_id, phase.value, status.completed, project.overall_status.value
                )
            return TaskUpdate(task=task, project=project)
        except SsdlcError as e:
            _report_failure(e, {
                "operation": "update_task",
                "project_id": project_id,
                "task_id": task_id,
                "completed": completed,
            })
            raise

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def add_evidence(self, project_id: str, task_id: str, references: Iterable[str]) -> Task:
        """Attach already stored evidence references to a task."""
        try:
            if isinstance(references, str):
                references = [references]
            references = list(references)
            for reference in references:
                if not isinstance(reference, str) or not reference.strip():
                    raise ValidationError("Evidence references must be non-empty strings")

            project, tasks = self._load(project_id)
            _, task = find_task(tasks, task_id)
            added = [reference for reference in references if task.add_evidence(reference)]
            if not self.store.save_tasks(project.project_id, tasks):
                raise StorageError("Failed to save task updates")

            if added:
                log_evidence_added(project_id, task_id, added)
            return task
        except SsdlcError as e:
            _report_failure(e, {"operation": "add_evidence", "project_id": project_id, "task_id": task_id})
            raise

    @log_performance("upload_evidence")
    def upload_evidence(
        self,
        project_id: str,
        task_id: str,
        uploads: Iterable[EvidenceUpload],
    ) -> EvidenceUploadResult:
        """Store uploaded files and attach their references to the task."""
        try:
            project, tasks = self._load(project_id)
            _, task = find_task(tasks, task_id)

            stored = self.evidence_store.save(project_id, task_id, uploads)
            for item in stored:
                task.add_evidence(item.reference)

            if not self.store.save_tasks(project.project_id, tasks):
                self.evidence_store.discard(stored)
                raise StorageError("Failed to save task updates")

            log_evidence_added(project_id, task_id, [item.reference for item in stored])
            return EvidenceUploadResult(task=task, stored=stored)
        except SsdlcError as e:
            _report_failure(e, {"operation": "upload_evidence", "project_id": project_id, "task_id": task_id})
            raise

    def evidence_path(self, project_id: str, task_id: str, filename: str) -> Path:
        """Resolve an evidence file attached to a task."""
        try:
            _, tasks = self._load(project_id)
            _, task = find_task(tasks, task_id)
            return self.evidence_store.resolve(project_id, task, filename)
        except SsdlcError as e:
            _report_failure(e, {
                "operation": "evidence_path",
                "project_id": project_id,
                "task_id": task_id,
                "filename": filename,
            })
            raise

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    @log_performance("build_report")
    def build_report(self, project_id: str, generated_at: Optional[datetime] = None) -> ProjectReport:
        """Aggregate the report model of a project."""
        try:
            project, tasks = self._load(project_id)
            report = self.aggregator.aggregate(project, tasks, generated_at)
            log_report_generated(project_id, report.overall_score, total_tasks=report.total_tasks)
            return report
        except SsdlcError as e:
            _report_failure(e, {"operation": "build_report", "project_id": project_id})
            raise

    def render_report(
        self,
        project_id: str,
        generated_at: Optional[datetime] = None,
        writer: Optional[DocumentWriter] = None,
    ) -> RenderedReport:
        """Build the report and render it with a document writer."""
        writer = writer or self.writer
        report = self.build_report(project_id, generated_at)
        with log_operation("render_report", project_id=project_id, media_type=writer.media_type):
            content = writer.render(report)
        return RenderedReport(
            filename=report_filename(report.project_name, report.generated_at, writer.extension),
            media_type=writer.media_type,
            content=content,
            report=report,
        )

    def project_payload(self, project: Project, tasks: Optional[TaskMap] = None) -> Dict[str, Any]:
        """Project details in the form returned to callers."""
        payload = project.to_dict()
        if tasks is not None:
            payload["tasks"] = tasks_to_dict(tasks)
        return payload
