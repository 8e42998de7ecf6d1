"""Document writers for compliance reports.

A writer turns a :class:`~ssdlc.report.ProjectReport` into bytes. The PDF
writer lays the report out with ReportLab, the text writer produces the
same blocks as plain text.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from io import BytesIO
from typing import List, Protocol, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .report import PhaseMarker, ProjectReport

REPORT_TITLE = "SSDLC Security Report"
NO_COMPLETED_TASKS = "No security tasks have been completed yet."

MARKER_LABELS = {
    PhaseMarker.COMPLETE: "Phase Complete",
    PhaseMarker.IN_PROGRESS: "In Progress",
    PhaseMarker.NOT_STARTED: "Not Started",
}

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


def format_date(value: Union[date, datetime]) -> str:
    """Short month/day/year date used throughout reports."""
    return f"{value.month}/{value.day}/{value.year}"


def report_filename(project_name: str, on_date: Union[date, datetime], extension: str = "pdf") -> str:
    """``SSDLC_Report_<name>_<YYYY-MM-DD>.<extension>`` with a filesystem-safe name."""
    safe_name = _UNSAFE_NAME_CHARS.sub("_", project_name)
    return f"SSDLC_Report_{safe_name}_{on_date.strftime('%Y-%m-%d')}.{extension}"


def phase_status_line(report: ProjectReport, index: int) -> str:
    summary = report.phases[index]
    return (
        f"{summary.phase.display_name}: {summary.completed_count}/{summary.total} tasks "
        f"({summary.percentage}%)"
    )


class DocumentWriter(Protocol):
    """Renders a report model into a binary document."""

    media_type: str
    extension: str

    def render(self, report: ProjectReport, title: str = REPORT_TITLE) -> bytes: ...


class TextReportWriter:
    """Render reports as UTF-8 plain text."""

    media_type = "text/plain"
    extension = "txt"

    def render_lines(self, report: ProjectReport, title: str = REPORT_TITLE) -> List[str]:
        lines = [
            title,
            "",
            f"Project: {report.project_name}",
            f"Generated: {format_date(report.generated_at)}",
            f"Overall Security Score: {report.overall_score}%",
            "",
            "Phase Completion Status:",
        ]
        for index, summary in enumerate(report.phases):
            lines.append(f"  {phase_status_line(report, index)} - {MARKER_LABELS[summary.marker]}")

        lines.extend(["", "Completed Security Tasks:"])
        completed = report.completed_by_phase()
        if not completed:
            lines.append(f"  {NO_COMPLETED_TASKS}")
        for phase, entries in completed:
            lines.append(f"{phase.display_name} Phase:")
            for entry in entries:
                lines.append(f"  • {entry.title}")
                if entry.completed_date:
                    lines.append(f"    Completed: {format_date(entry.completed_date)}")
                if entry.notes:
                    lines.append(f"    Notes: {entry.notes}")
                if entry.evidence_count:
                    lines.append(f"    Evidence: {entry.evidence_count} file(s) attached")

        outstanding = report.outstanding_by_phase()
        if outstanding:
            lines.extend(["", "Outstanding Security Tasks:"])
            for phase, entries in outstanding:
                lines.append(f"{phase.display_name} Phase:")
                lines.extend(f"  • {entry.title}" for entry in entries)
        return lines

    def render(self, report: ProjectReport, title: str = REPORT_TITLE) -> bytes:
        return ("\n".join(self.render_lines(report, title)) + "\n").encode("utf-8")


class PdfReportWriter:
    """Render reports as PDF documents with ReportLab."""

    media_type = "application/pdf"
    extension = "pdf"

    def __init__(self, pagesize=A4):
        self.pagesize = pagesize
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self) -> None:
        self.styles.add(ParagraphStyle(
            name="ReportTitle",
            parent=self.styles["Title"],
            fontSize=20,
            textColor=HexColor("#1a1a1a"),
            alignment=TA_LEFT,
            spaceAfter=12,
            fontName="Helvetica-Bold",
        ))
        self.styles.add(ParagraphStyle(
            name="SectionHeading",
            parent=self.styles["Normal"],
            fontSize=14,
            textColor=HexColor("#2c3e50"),
            spaceBefore=12,
            spaceAfter=8,
            fontName="Helvetica-Bold",
            keepWithNext=True,
        ))
        self.styles.add(ParagraphStyle(
            name="PhaseHeading",
            parent=self.styles["Normal"],
            fontSize=12,
            textColor=HexColor("#34495e"),
            spaceBefore=6,
            spaceAfter=4,
            fontName="Helvetica-Bold",
            keepWithNext=True,
        ))
        self.styles.add(ParagraphStyle(
            name="ReportBody",
            parent=self.styles["Normal"],
            fontSize=12,
            spaceAfter=4,
            fontName="Helvetica",
        ))
        self.styles.add(ParagraphStyle(
            name="TaskTitle",
            parent=self.styles["Normal"],
            fontSize=10,
            leftIndent=20,
            fontName="Helvetica",
        ))
        self.styles.add(ParagraphStyle(
            name="TaskDetail",
            parent=self.styles["Normal"],
            fontSize=10,
            leftIndent=32,
            textColor=HexColor("#4a4a4a"),
            fontName="Helvetica",
        ))

    def _paragraph(self, text: str, style: str) -> Paragraph:
        return Paragraph(escape(text), self.styles[style])

    def _phase_table(self, report: ProjectReport) -> Table:
        rows = [
            [phase_status_line(report, index), MARKER_LABELS[summary.marker]]
            for index, summary in enumerate(report.phases)
        ]
        table = Table(rows, colWidths=[4.2 * inch, 1.8 * inch], hAlign="LEFT")
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 11),
            ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.HexColor("#CCCCCC")),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))
        return table

    def build_story(self, report: ProjectReport, title: str = REPORT_TITLE) -> list:
        story: list = [
            self._paragraph(title, "ReportTitle"),
            self._paragraph(f"Project: {report.project_name}", "SectionHeading"),
            self._paragraph(f"Generated: {format_date(report.generated_at)}", "ReportBody"),
            self._paragraph(f"Overall Security Score: {report.overall_score}%", "ReportBody"),
            Spacer(1, 0.15 * inch),
            self._paragraph("Phase Completion Status:", "SectionHeading"),
            self._phase_table(report),
            self._paragraph("Completed Security Tasks:", "SectionHeading"),
        ]

        completed = report.completed_by_phase()
        if not completed:
            story.append(self._paragraph(NO_COMPLETED_TASKS, "TaskTitle"))
        for phase, entries in completed:
            story.append(self._paragraph(f"{phase.display_name} Phase:", "PhaseHeading"))
            for entry in entries:
                block = [self._paragraph(f"• {entry.title}", "TaskTitle")]
                if entry.completed_date:
                    block.append(self._paragraph(f"Completed: {format_date(entry.completed_date)}", "TaskDetail"))
                if entry.notes:
                    block.append(self._paragraph(f"Notes: {entry.notes}", "TaskDetail"))
                if entry.evidence_count:
                    block.append(self._paragraph(
                        f"Evidence: {entry.evidence_count} file(s) attached", "TaskDetail"
                    ))
                block.append(Spacer(1, 4))
                story.append(KeepTogether(block))

        outstanding = report.outstanding_by_phase()
        if outstanding:
            story.append(self._paragraph("Outstanding Security Tasks:", "SectionHeading"))
            for phase, entries in outstanding:
                story.append(self._paragraph(f"{phase.display_name} Phase:", "PhaseHeading"))
                story.extend(self._paragraph(f"• {entry.title}", "TaskTitle") for entry in entries)
        return story

    def render(self, report: ProjectReport, title: str = REPORT_TITLE) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.pagesize,
            title=f"{title} - {report.project_name}",
            leftMargin=0.8 * inch,
            rightMargin=0.8 * inch,
            topMargin=0.8 * inch,
            bottomMargin=0.8 * inch,
        )
        doc.build(self.build_story(report, title))
        return buffer.getvalue()
