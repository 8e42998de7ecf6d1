"""MCP server exposing SSDLC compliance tracking tools."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from ssdlc.config import Settings
from ssdlc.document import PdfReportWriter, TextReportWriter
from ssdlc.evidence import EvidenceUpload
from ssdlc.exceptions import (
    EvidenceNotAuthorizedError,
    NotFoundError,
    SsdlcError,
    StorageError,
    ValidationError,
)
from ssdlc.service import ComplianceService
from ssdlc.ssdlc_logging import log_error_with_context, setup_logging

mcp = FastMCP("ssdlc-tracker")

REPORT_WRITERS = {"pdf": PdfReportWriter, "text": TextReportWriter}


def _service() -> ComplianceService:
    return ComplianceService.from_settings(Settings.from_env())


def _error_payload(error: Exception) -> Dict[str, Any]:
    """Map a tracker error to a tool response."""
    if isinstance(error, ValidationError):
        status = 400
    elif isinstance(error, EvidenceNotAuthorizedError):
        status = 403
    elif isinstance(error, NotFoundError):
        status = 404
    else:
        status = 500
    payload: Dict[str, Any] = {
        "error": str(error),
        "error_type": type(error).__name__,
        "status": status,
    }
    if isinstance(error, StorageError):
        payload["suggestion"] = "Check that the data directory exists and is writable"
    return payload


def _decode_uploads(files: List[Dict[str, str]]) -> List[EvidenceUpload]:
    uploads = []
    for item in files:
        try:
            content = base64.b64decode(item["content_base64"], validate=True)
            uploads.append(EvidenceUpload(
                filename=item["filename"],
                content=content,
                mimetype=item.get("mimetype", "application/octet-stream"),
            ))
        except (KeyError, TypeError, binascii.Error) as exc:
            raise ValidationError(
                "Each file needs 'filename' and base64 'content_base64' fields"
            ) from exc
    return uploads


@mcp.tool()
def health() -> Dict[str, str]:
    """Report that the tracker is running."""
    return {"status": "OK", "message": "SSDLC compliance tracker is running"}


@mcp.tool()
def create_project(name: str) -> Dict[str, Any]:
    """Create a project with the default security tasks for every phase."""
    try:
        project = _service().create_project(name)
    except SsdlcError as e:
        return _error_payload(e)
    return {"project": project.to_dict(), "status": 201}


@mcp.tool()
def list_projects() -> Dict[str, Any]:
    """List all tracked projects."""
    try:
        projects = _service().list_projects()
    except SsdlcError as e:
        return _error_payload(e)
    return {"projects": [project.to_dict() for project in projects]}


@mcp.tool()
def get_project(project_id: str) -> Dict[str, Any]:
    """Return a project's phase status together with its tasks."""
    service = _service()
    try:
        project, tasks = service.get_project(project_id)
    except SsdlcError as e:
        return _error_payload(e)
    return service.project_payload(project, tasks)


@mcp.tool()
def update_task(
    project_id: str,
    task_id: str,
    completed: Optional[bool] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Mark a task complete or incomplete and/or replace its notes.

    The task's phase is recomputed afterwards; completing the last open task of
    a phase completes the phase, and completing every phase completes the
    project.
    """
    try:
        result = _service().update_task(project_id, task_id, completed=completed, notes=notes)
    except SsdlcError as e:
        return _error_payload(e)
    return result.to_dict()


@mcp.tool()
def upload_evidence(project_id: str, task_id: str, files: List[Dict[str, str]]) -> Dict[str, Any]:
    """Attach evidence files to a task.

    Each file is an object with ``filename``, ``mimetype`` and base64 encoded
    ``content_base64``. Up to 5 files of at most 10MB each are accepted.
    """
    try:
        result = _service().upload_evidence(project_id, task_id, _decode_uploads(files))
    except SsdlcError as e:
        return _error_payload(e)
    return result.to_dict()


@mcp.tool()
def get_evidence_path(project_id: str, task_id: str, filename: str) -> Dict[str, Any]:
    """Locate an evidence file attached to a task."""
    try:
        path = _service().evidence_path(project_id, task_id, filename)
        size = path.stat().st_size
    except FileNotFoundError:
        return _error_payload(NotFoundError("File not found"))
    except SsdlcError as e:
        return _error_payload(e)
    return {"path": str(path), "filename": filename, "size": size}


@mcp.tool()
def get_report_summary(project_id: str) -> Dict[str, Any]:
    """Return the security score, phase statistics and task listings of a project."""
    try:
        report = _service().build_report(project_id)
    except SsdlcError as e:
        return _error_payload(e)
    return report.to_dict()


@mcp.tool()
def generate_report(project_id: str, format: str = "pdf") -> Dict[str, Any]:
    """Render the compliance report and save it under the reports directory."""
    writer_cls = REPORT_WRITERS.get(format)
    if writer_cls is None:
        return _error_payload(ValidationError(
            f"Unknown report format '{format}'. Available: {', '.join(REPORT_WRITERS)}"
        ))

    settings = Settings.from_env()
    try:
        rendered = ComplianceService.from_settings(settings).render_report(project_id, writer=writer_cls())
        path = settings.reports_dir / rendered.filename
        path.write_bytes(rendered.content)
    except SsdlcError as e:
        return _error_payload(e)
    except OSError as e:
        log_error_with_context(e, {"operation": "generate_report", "project_id": project_id})
        return _error_payload(StorageError(f"Failed to write report: {e}"))

    return {
        "path": str(path),
        "filename": rendered.filename,
        "media_type": rendered.media_type,
        "size": len(rendered.content),
        "overall_score": rendered.report.overall_score,
    }


@mcp.resource("ssdlc://projects")
def resource_projects() -> str:
    """Resource view listing tracked projects and their status."""
    try:
        projects = _service().list_projects()
    except SsdlcError as e:
        return f"Error: {e}"
    if not projects:
        return "No projects have been created yet."

    lines = ["SSDLC Projects"]
    for project in projects:
        lines.append("")
        lines.append(f"- {project.name} ({project.project_id}): {project.overall_status.value}")
        for phase, status in project.phases.items():
            marker = "x" if status.completed else " "
            lines.append(f"  [{marker}] {phase.display_name}")
    return "\n".join(lines)


if __name__ == "__main__":
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    mcp.run(transport="stdio")
