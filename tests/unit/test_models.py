"""Unit tests for the tracker data models.

This module tests phases, completion state, tasks and projects, including
their invariants and dictionary serialization.
"""

import pytest
from datetime import datetime, timedelta, timezone

from ssdlc.exceptions import InvalidPhaseError, TaskNotFoundError, ValidationError
from ssdlc.models import (
    INCOMPLETE,
    PHASE_ORDER,
    Completed,
    Incomplete,
    OverallStatus,
    Phase,
    PhaseStatus,
    Project,
    Task,
    completion_state,
    find_task,
    format_timestamp,
    iter_tasks,
    parse_timestamp,
    tasks_from_dict,
    tasks_to_dict,
)

FIXED_NOW = datetime(2026, 3, 14, 9, 26, 53, 589000, tzinfo=timezone.utc)


class TestPhase:
    """Test cases for the Phase enumeration."""

    def test_phase_order(self):
        """Test that phases are ordered planning to deployment."""
        assert [phase.value for phase in PHASE_ORDER] == [
            "planning",
            "design",
            "implementation",
            "testing",
            "deployment",
        ]

    def test_display_name(self):
        """Test capitalized display names."""
        assert Phase.PLANNING.display_name == "Planning"
        assert Phase.IMPLEMENTATION.display_name == "Implementation"

    def test_parse_known_phase(self):
        """Test parsing phase names and phase members."""
        assert Phase.parse("testing") is Phase.TESTING
        assert Phase.parse(Phase.DESIGN) is Phase.DESIGN

    @pytest.mark.parametrize("value", ["invalid-phase", "Planning", "", None])
    def test_parse_unknown_phase(self, value):
        """Test that unknown names raise InvalidPhaseError."""
        with pytest.raises(InvalidPhaseError) as exc_info:
            Phase.parse(value)
        assert "Invalid phase" in str(exc_info.value)


class TestCompletionState:
    """Test cases for the completion state variant."""

    def test_incomplete_has_no_date(self):
        """Test that Incomplete carries no timestamp."""
        assert INCOMPLETE.completed is False
        assert INCOMPLETE.at is None
        assert isinstance(INCOMPLETE, Incomplete)

    def test_completed_carries_date(self):
        """Test that Completed carries its timestamp."""
        state = Completed(FIXED_NOW)
        assert state.completed is True
        assert state.at == FIXED_NOW

    def test_completion_state_factory(self):
        """Test building states from boolean flags."""
        assert completion_state(True, FIXED_NOW) == Completed(FIXED_NOW)
        assert completion_state(False, FIXED_NOW) is INCOMPLETE
        assert completion_state(True).at is not None


class TestTimestamps:
    """Test cases for timestamp serialization."""

    def test_format_uses_z_suffix(self):
        """Test ISO formatting with a trailing Z."""
        assert format_timestamp(FIXED_NOW) == "2026-03-14T09:26:53.589000Z"

    def test_format_none(self):
        """Test that None stays None."""
        assert format_timestamp(None) is None
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_round_trip(self):
        """Test that parsing reverses formatting."""
        assert parse_timestamp(format_timestamp(FIXED_NOW)) == FIXED_NOW

    def test_format_converts_to_utc(self):
        """Test that offsets are normalized to UTC."""
        local = FIXED_NOW.astimezone(timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2026-03-14T09:26:53.589000Z"


class TestTask:
    """Test cases for the Task entity."""

    def test_task_creation(self):
        """Test creating a task with default state."""
        task = Task.create("planning", "Test Task", "Test Description")

        assert task.task_id
        assert task.phase is Phase.PLANNING
        assert task.title == "Test Task"
        assert task.description == "Test Description"
        assert task.completed is False
        assert task.completed_date is None
        assert task.notes == ""
        assert task.evidence_files == []

    def test_unique_ids(self):
        """Test that every task receives its own id."""
        first = Task.create(Phase.DESIGN, "A", "a")
        second = Task.create(Phase.DESIGN, "A", "a")
        assert first.task_id != second.task_id

    def test_create_with_invalid_phase(self):
        """Test that an unknown phase is a validation error."""
        with pytest.raises(ValidationError):
            Task.create("maintenance", "Test Task", "Test Description")

    def test_create_with_empty_title(self):
        """Test that a blank title is rejected."""
        with pytest.raises(ValidationError):
            Task.create("planning", "  ", "Test Description")

    def test_set_completion(self):
        """Test completing and reopening a task."""
        task = Task.create("testing", "Security Testing", "")

        task.set_completion(True, FIXED_NOW)
        assert task.completed is True
        assert task.completed_date == FIXED_NOW

        task.set_completion(False)
        assert task.completed is False
        assert task.completed_date is None

    def test_recompleting_refreshes_date(self):
        """Test that completing an already completed task stamps a new date."""
        task = Task.create("testing", "Security Testing", "")
        later = FIXED_NOW + timedelta(hours=1)

        task.set_completion(True, FIXED_NOW)
        task.set_completion(True, later)

        assert task.completed is True
        assert task.completed_date == later

    def test_set_completion_requires_bool(self):
        """Test that non-boolean completion values are rejected."""
        task = Task.create("testing", "Security Testing", "")
        with pytest.raises(ValidationError):
            task.set_completion("true")

    def test_set_notes(self):
        """Test replacing notes, with None becoming empty."""
        task = Task.create("design", "Data Flow Analysis", "")

        task.set_notes("Reviewed with the platform team")
        assert task.notes == "Reviewed with the platform team"

        task.set_notes(None)
        assert task.notes == ""

    def test_set_notes_requires_string(self):
        """Test that non-string notes are rejected."""
        task = Task.create("design", "Data Flow Analysis", "")
        with pytest.raises(ValidationError):
            task.set_notes(42)

    def test_add_evidence_ignores_duplicates(self):
        """Test that adding the same reference twice keeps one entry."""
        task = Task.create("deployment", "Access Control Setup", "")

        assert task.add_evidence("a.pdf") is True
        assert task.add_evidence("a.pdf") is False

        assert task.evidence_files == ["a.pdf"]

    def test_add_evidence_preserves_order(self):
        """Test that first-seen order is kept."""
        task = Task.create("deployment", "Access Control Setup", "")
        for reference in ["b.png", "a.pdf", "b.png", "c.csv"]:
            task.add_evidence(reference)
        assert task.evidence_files == ["b.png", "a.pdf", "c.csv"]

    def test_task_dict_round_trip(self):
        """Test converting a task to a dictionary and back."""
        task = Task.create("implementation", "Dependency Scanning", "Scan dependencies")
        task.set_completion(True, FIXED_NOW)
        task.set_notes("No critical findings")
        task.add_evidence("p/t/scan.pdf")

        data = task.to_dict()
        assert data["phase"] == "implementation"
        assert data["completed"] is True
        assert data["completed_date"] == "2026-03-14T09:26:53.589000Z"

        restored = Task.from_dict(data)
        assert restored == task

    def test_from_dict_rejects_completed_without_date(self):
        """Test that stored data cannot describe completion without a date."""
        data = Task.create("planning", "Threat Modeling", "").to_dict()
        data["completed"] = True
        data["completed_date"] = None

        with pytest.raises(ValidationError):
            Task.from_dict(data)

    def test_from_dict_ignores_date_of_incomplete_task(self):
        """Test that an incomplete task drops a stray completion date."""
        data = Task.create("planning", "Threat Modeling", "").to_dict()
        data["completed_date"] = "2026-03-14T09:26:53Z"

        assert Task.from_dict(data).completed_date is None


class TestTaskMap:
    """Test cases for task map helpers."""

    def _tasks(self):
        return {
            Phase.DESIGN: [Task.create("design", "Data Flow Analysis", "")],
            Phase.PLANNING: [
                Task.create("planning", "Threat Modeling", ""),
                Task.create("planning", "Security Requirements Gathering", ""),
            ],
        }

    def test_iter_tasks_uses_phase_order(self):
        """Test iteration in phase order regardless of mapping order."""
        titles = [task.title for _, task in iter_tasks(self._tasks())]
        assert titles == ["Threat Modeling", "Security Requirements Gathering", "Data Flow Analysis"]

    def test_find_task(self):
        """Test locating a task and its phase."""
        tasks = self._tasks()
        target = tasks[Phase.DESIGN][0]

        phase, task = find_task(tasks, target.task_id)

        assert phase is Phase.DESIGN
        assert task is target

    def test_find_missing_task(self):
        """Test that an unknown id raises TaskNotFoundError."""
        with pytest.raises(TaskNotFoundError):
            find_task(self._tasks(), "missing")

    def test_task_map_round_trip(self):
        """Test serializing a task map keyed by phase names."""
        tasks = self._tasks()
        data = tasks_to_dict(tasks)

        assert list(data) == ["planning", "design"]
        assert tasks_from_dict(data) == {
            Phase.PLANNING: tasks[Phase.PLANNING],
            Phase.DESIGN: tasks[Phase.DESIGN],
        }

    def test_tasks_from_dict_rejects_unknown_phase(self):
        """Test that an unknown phase key is an invalid phase."""
        with pytest.raises(InvalidPhaseError):
            tasks_from_dict({"maintenance": []})


class TestProject:
    """Test cases for the Project entity."""

    def test_project_creation(self):
        """Test creating a project with every phase incomplete."""
        project = Project.create("Test Project")

        assert project.project_id
        assert project.name == "Test Project"
        assert project.created_date.tzinfo is not None
        assert project.overall_status is OverallStatus.IN_PROGRESS
        assert list(project.phases) == list(PHASE_ORDER)
        for status in project.phases.values():
            assert status.completed is False
            assert status.completed_date is None

    def test_unique_ids(self):
        """Test that projects receive distinct ids."""
        assert Project.create("A").project_id != Project.create("A").project_id

    def test_name_is_trimmed(self):
        """Test that surrounding whitespace is removed from the name."""
        assert Project.create("  Acme  ").name == "Acme"

    @pytest.mark.parametrize("name", [None, "", "   ", 123])
    def test_invalid_names(self, name):
        """Test that missing, blank and non-string names are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Project.create(name)
        assert "Project name is required" in str(exc_info.value)

    def test_update_phase_to_completed(self):
        """Test completing one phase."""
        project = Project.create("Test Project")

        status = project.update_phase_status("planning", True, FIXED_NOW)

        assert status.completed is True
        assert status.completed_date == FIXED_NOW
        assert project.phases[Phase.PLANNING] is status
        assert project.overall_status is OverallStatus.IN_PROGRESS

    def test_update_phase_to_incomplete_clears_date(self):
        """Test that reopening a phase clears its date."""
        project = Project.create("Test Project")
        project.update_phase_status(Phase.PLANNING, True)

        project.update_phase_status(Phase.PLANNING, False)

        assert project.phases[Phase.PLANNING].completed is False
        assert project.phases[Phase.PLANNING].completed_date is None

    def test_overall_status_completed_when_all_phases_done(self):
        """Test that completing every phase completes the project."""
        project = Project.create("Test Project")
        for phase in PHASE_ORDER:
            project.update_phase_status(phase, True)

        assert project.overall_status is OverallStatus.COMPLETED
        assert project.is_completed

        project.update_phase_status(Phase.TESTING, False)
        assert project.overall_status is OverallStatus.IN_PROGRESS

    def test_overall_status_is_not_settable(self):
        """Test that overall status is derived, never assigned."""
        project = Project.create("Test Project")
        with pytest.raises(AttributeError):
            project.overall_status = OverallStatus.COMPLETED

    def test_update_invalid_phase(self):
        """Test that an unknown phase raises InvalidPhaseError."""
        project = Project.create("Test Project")
        with pytest.raises(InvalidPhaseError):
            project.update_phase_status("invalid-phase", True)

    def test_missing_phases_are_filled(self):
        """Test that a project always holds one status per phase."""
        project = Project(
            project_id="p-1",
            name="Partial",
            created_date=FIXED_NOW,
            phases={Phase.TESTING: PhaseStatus(Completed(FIXED_NOW))},
        )
        assert list(project.phases) == list(PHASE_ORDER)
        assert project.phases[Phase.TESTING].completed is True
        assert project.phases[Phase.PLANNING].completed is False

    def test_string_phase_keys_are_rejected(self):
        """Test that phases must be keyed by the enumeration."""
        with pytest.raises(InvalidPhaseError):
            Project(project_id="p-1", name="Bad", created_date=FIXED_NOW, phases={"qa": PhaseStatus()})

    def test_project_dict_round_trip(self):
        """Test converting a project to a dictionary and back."""
        project = Project.create("Acme", now=FIXED_NOW)
        project.update_phase_status(Phase.DESIGN, True, FIXED_NOW)

        data = project.to_dict()
        assert data["created_date"] == "2026-03-14T09:26:53.589000Z"
        assert data["phases"]["design"] == {
            "completed": True,
            "completed_date": "2026-03-14T09:26:53.589000Z",
        }
        assert data["overall_status"] == "In Progress"

        assert Project.from_dict(data) == project

    def test_from_dict_recomputes_overall_status(self):
        """Test that a stored overall status is not trusted."""
        data = Project.create("Acme").to_dict()
        data["overall_status"] = "Completed"

        assert Project.from_dict(data).overall_status is OverallStatus.IN_PROGRESS
