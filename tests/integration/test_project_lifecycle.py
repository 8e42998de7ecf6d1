"""
Integration tests for the complete project lifecycle:
create a project, work through its security tasks phase by phase, attach
evidence, and produce compliance reports, all backed by JSON files on disk.
"""

import json
import pytest
from datetime import datetime, timezone

from ssdlc.config import Settings
from ssdlc.document import TextReportWriter
from ssdlc.evidence import EvidenceUpload
from ssdlc.models import PHASE_ORDER, OverallStatus, Phase
from ssdlc.service import ComplianceService

NOW = datetime(2026, 6, 30, 8, 15, tzinfo=timezone.utc)


class TestProjectLifecycle:
    """Integration tests running the service against real files."""

    @pytest.fixture
    def settings(self, tmp_path):
        """Settings pointing every directory into a temporary location."""
        return Settings(
            data_dir=tmp_path / "data",
            uploads_dir=tmp_path / "uploads",
            reports_dir=tmp_path / "reports",
        )

    @pytest.fixture
    def service(self, settings):
        return ComplianceService.from_settings(settings)

    def test_acme_project_progress(self, service, settings):
        """
        Integration Test: Track partial progress of a new project.

        Given: A freshly created project "Acme"
        When: Both planning tasks and one design task are completed
        Then: Planning is complete, the project is in progress and the score is 30%
        """
        project = service.create_project("Acme")
        _, tasks = service.get_project(project.project_id)

        for task in tasks[Phase.PLANNING]:
            service.update_task(project.project_id, task.task_id, completed=True, now=NOW)
        service.update_task(
            project.project_id,
            tasks[Phase.DESIGN][0].task_id,
            completed=True,
            notes="Architecture reviewed with the platform team",
            now=NOW,
        )

        stored, _ = service.get_project(project.project_id)
        assert stored.phases[Phase.PLANNING].completed is True
        assert stored.phases[Phase.PLANNING].completed_date == NOW
        assert stored.phases[Phase.DESIGN].completed is False
        assert stored.overall_status is OverallStatus.IN_PROGRESS

        report = service.build_report(project.project_id, generated_at=NOW)
        assert report.overall_score == 30
        assert [summary.marker.value for summary in report.phases] == [
            "Complete", "In Progress", "Not Started", "Not Started", "Not Started",
        ]

        # The documents on disk reflect the same state.
        projects = json.loads((settings.data_dir / "projects.json").read_text())
        assert projects[0]["phases"]["planning"]["completed"] is True
        assert projects[0]["overall_status"] == "In Progress"

    def test_complete_and_reopen_project(self, service):
        """
        Integration Test: Completing every task completes the project, reopening one does not.

        Given: A project with all ten tasks completed
        When: One testing task is reopened
        Then: The testing phase and the project fall back to in progress
        """
        project = service.create_project("Full Run")
        _, tasks = service.get_project(project.project_id)
        for phase in PHASE_ORDER:
            for task in tasks[phase]:
                service.update_task(project.project_id, task.task_id, completed=True, now=NOW)

        completed, _ = service.get_project(project.project_id)
        assert completed.overall_status is OverallStatus.COMPLETED
        assert service.build_report(project.project_id).overall_score == 100

        result = service.update_task(project.project_id, tasks[Phase.TESTING][1].task_id, completed=False)

        assert result.project.phases[Phase.TESTING].completed is False
        assert result.project.overall_status is OverallStatus.IN_PROGRESS
        assert service.build_report(project.project_id).overall_score == 90

    def test_evidence_round_trip(self, service, settings):
        """
        Integration Test: Upload evidence and retrieve it again.

        Given: A project and one of its deployment tasks
        When: Two files are uploaded to the task
        Then: Both are stored on disk, attached to the task and resolvable
        """
        project = service.create_project("Evidence")
        _, tasks = service.get_project(project.project_id)
        task_id = tasks[Phase.DEPLOYMENT][1].task_id

        result = service.upload_evidence(project.project_id, task_id, [
            EvidenceUpload("iam-policy.txt", b"deny *", "text/plain"),
            EvidenceUpload("screenshot.png", b"\x89PNG", "image/png"),
        ])

        _, reloaded = service.get_project(project.project_id)
        assert reloaded[Phase.DEPLOYMENT][1].evidence_files == [item.reference for item in result.stored]
        for item in result.stored:
            path = service.evidence_path(project.project_id, task_id, item.filename)
            assert path.is_relative_to(settings.uploads_dir)
        assert service.evidence_path(project.project_id, task_id, result.stored[0].filename).read_bytes() == b"deny *"

        service.update_task(project.project_id, task_id, completed=True, now=NOW)
        report = service.build_report(project.project_id, generated_at=NOW)
        assert report.completed_tasks[0].evidence_count == 2

    def test_projects_survive_restart(self, settings):
        """
        Integration Test: State persists across service instances.

        Given: A project updated through one service instance
        When: A new service is created from the same settings
        Then: The new service sees the project, its tasks and their progress
        """
        first = ComplianceService.from_settings(settings)
        project = first.create_project("Durable")
        _, tasks = first.get_project(project.project_id)
        first.update_task(project.project_id, tasks[Phase.IMPLEMENTATION][0].task_id, completed=True)

        second = ComplianceService.from_settings(settings)
        restored, restored_tasks = second.get_project(project.project_id)

        assert restored.name == "Durable"
        assert restored_tasks[Phase.IMPLEMENTATION][0].completed is True
        assert [p.project_id for p in second.list_projects()] == [project.project_id]

    def test_text_and_pdf_reports(self, service):
        """
        Integration Test: Render both document formats.

        Given: A project with one completed, annotated task
        When: The report is rendered as PDF and as text
        Then: Both documents are produced with dated file names
        """
        project = service.create_project("Acme Web")
        _, tasks = service.get_project(project.project_id)
        service.update_task(
            project.project_id,
            tasks[Phase.TESTING][1].task_id,
            completed=True,
            notes="Pentest by external vendor; " + "details " * 20,
            now=NOW,
        )

        pdf = service.render_report(project.project_id, generated_at=NOW)
        text = service.render_report(project.project_id, generated_at=NOW, writer=TextReportWriter())

        assert pdf.filename == "SSDLC_Report_Acme_Web_2026-06-30.pdf"
        assert pdf.content.startswith(b"%PDF")
        body = text.content.decode("utf-8")
        assert "Overall Security Score: 10%" in body
        assert "  • Penetration Testing" in body
        notes_line = next(line for line in body.splitlines() if line.startswith("    Notes: "))
        assert notes_line.endswith("...")
        assert len(notes_line) == len("    Notes: ") + 83
