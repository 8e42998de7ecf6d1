"""Default security task catalog.

Every new project receives the same two tasks per phase. The catalog is a
pure factory: each call builds fresh :class:`Task` instances with new ids so
projects never share mutable task state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .models import PHASE_ORDER, Phase, Task, TaskMap


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """Template row for a default task."""

    phase: Phase
    title: str
    description: str


DEFAULT_TASK_CATALOG: Tuple[CatalogEntry, ...] = (
    CatalogEntry(
        Phase.PLANNING,
        "Threat Modeling",
        "Conduct threat modeling exercise to identify potential security risks",
    ),
    CatalogEntry(
        Phase.PLANNING,
        "Security Requirements Gathering",
        "Define security requirements and acceptance criteria",
    ),
    CatalogEntry(
        Phase.DESIGN,
        "Security Architecture Review",
        "Review system architecture for security considerations",
    ),
    CatalogEntry(
        Phase.DESIGN,
        "Data Flow Analysis",
        "Analyze data flows and identify sensitive data handling",
    ),
    CatalogEntry(
        Phase.IMPLEMENTATION,
        "Secure Coding Review",
        "Review code for secure coding practices",
    ),
    CatalogEntry(
        Phase.IMPLEMENTATION,
        "Dependency Scanning",
        "Scan dependencies for known vulnerabilities",
    ),
    CatalogEntry(
        Phase.TESTING,
        "Security Testing",
        "Perform security-focused testing scenarios",
    ),
    CatalogEntry(
        Phase.TESTING,
        "Penetration Testing",
        "Conduct penetration testing on the application",
    ),
    CatalogEntry(
        Phase.DEPLOYMENT,
        "Security Configuration Review",
        "Review deployment configuration for security",
    ),
    CatalogEntry(
        Phase.DEPLOYMENT,
        "Access Control Setup",
        "Configure proper access controls and permissions",
    ),
)


def catalog_entries(phase: Phase) -> List[CatalogEntry]:
    """Template rows for one phase, in catalog order."""
    return [entry for entry in DEFAULT_TASK_CATALOG if entry.phase is phase]


def default_tasks() -> TaskMap:
    """Build a fresh default task set covering every phase."""
    tasks: Dict[Phase, List[Task]] = {}
    for phase in PHASE_ORDER:
        tasks[phase] = [
            Task.create(entry.phase, entry.title, entry.description)
            for entry in catalog_entries(phase)
        ]
    return tasks
