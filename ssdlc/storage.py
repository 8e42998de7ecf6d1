"""Persistence for projects and their task sets.

Two stores share one interface: :class:`JsonFileStore` keeps everything in
two JSON files under a data directory, :class:`MemoryStore` keeps serialized
copies in memory for tests and ephemeral deployments. Stores report I/O
failure by returning ``False`` (writes) or an empty result (reads); they
never interpret the data beyond (de)serializing it. A malformed record is
skipped by listings and raises StorageError when looked up directly.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from .exceptions import SsdlcError, StorageError
from .models import Phase, Project, Task, TaskMap, tasks_from_dict, tasks_to_dict
from .ssdlc_logging import log_error_with_context

logger = logging.getLogger("ssdlc.storage")

PROJECTS_FILENAME = "projects.json"
TASKS_FILENAME = "tasks.json"

_RECORD_ERRORS = (KeyError, TypeError, ValueError, AttributeError, SsdlcError)


def _project_from_record(item: Any) -> Project:
    try:
        return Project.from_dict(item)
    except _RECORD_ERRORS as e:
        raise StorageError(f"Stored project record is malformed: {e}") from e


def _tasks_from_record(project_id: str, data: Any) -> TaskMap:
    try:
        return tasks_from_dict(data)
    except _RECORD_ERRORS as e:
        raise StorageError(f"Stored tasks of project {project_id} are malformed: {e}") from e


def _valid_projects(items: List[Any]) -> List[Project]:
    projects = []
    for item in items:
        try:
            projects.append(_project_from_record(item))
        except StorageError as e:
            log_error_with_context(e, {"operation": "list_projects"})
    return projects


def _record_id(item: Any) -> Any:
    return item.get("project_id") if isinstance(item, dict) else None


@runtime_checkable
class ProjectStore(Protocol):
    """Key-value persistence for projects and task sets."""

    def list_projects(self) -> List[Project]: ...

    def get_project(self, project_id: str) -> Optional[Project]: ...

    def save_project(self, project: Project) -> bool: ...

    def get_tasks(self, project_id: str) -> TaskMap: ...

    def save_tasks(self, project_id: str, tasks: Mapping[Phase, List[Task]]) -> bool: ...


class JsonFileStore:
    """Store projects and tasks as JSON documents on disk."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create data directory {self.data_dir}: {e}")
            raise RuntimeError(f"Could not initialize store at {self.data_dir}: {e}") from e

    @property
    def projects_path(self) -> Path:
        return self.data_dir / PROJECTS_FILENAME

    @property
    def tasks_path(self) -> Path:
        return self.data_dir / TASKS_FILENAME

    # ------------------------------------------------------------------
    # Raw documents
    # ------------------------------------------------------------------

    def _read_document(self, path: Path, empty: Any) -> Any:
        if not path.exists():
            return empty
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            log_error_with_context(e, {"operation": "read_document", "path": str(path)})
            return empty

    def _write_document(self, path: Path, data: Any) -> bool:
        try:
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except (OSError, TypeError) as e:
            log_error_with_context(e, {"operation": "write_document", "path": str(path)})
            return False
        return True

    def read_projects(self) -> List[Dict[str, Any]]:
        """Read the serialized project list."""
        data = self._read_document(self.projects_path, [])
        return data if isinstance(data, list) else []

    def write_projects(self, projects: List[Dict[str, Any]]) -> bool:
        return self._write_document(self.projects_path, projects)

    def read_tasks(self) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
        """Read the serialized task sets of every project."""
        data = self._read_document(self.tasks_path, {})
        return data if isinstance(data, dict) else {}

    def write_tasks(self, tasks: Dict[str, Dict[str, List[Dict[str, Any]]]]) -> bool:
        return self._write_document(self.tasks_path, tasks)

    # ------------------------------------------------------------------
    # ProjectStore interface
    # ------------------------------------------------------------------

    def list_projects(self) -> List[Project]:
        return _valid_projects(self.read_projects())

    def get_project(self, project_id: str) -> Optional[Project]:
        for item in self.read_projects():
            if _record_id(item) == project_id:
                return _project_from_record(item)
        return None

    def save_project(self, project: Project) -> bool:
        """Insert the project, or replace the stored one with the same id."""
        projects = self.read_projects()
        serialized = project.to_dict()
        for index, item in enumerate(projects):
            if _record_id(item) == project.project_id:
                projects[index] = serialized
                break
        else:
            projects.append(serialized)
        saved = self.write_projects(projects)
        if saved:
            logger.debug(f"Saved project {project.project_id} to {self.projects_path}")
        return saved

    def get_tasks(self, project_id: str) -> TaskMap:
        return _tasks_from_record(project_id, self.read_tasks().get(project_id, {}))

    def save_tasks(self, project_id: str, tasks: Mapping[Phase, List[Task]]) -> bool:
        all_tasks = self.read_tasks()
        all_tasks[project_id] = tasks_to_dict(tasks)
        saved = self.write_tasks(all_tasks)
        if saved:
            logger.debug(f"Saved tasks of project {project_id} to {self.tasks_path}")
        return saved


class MemoryStore:
    """In-process store holding serialized copies.

    Each instance is independent; callers create one and pass it along
    explicitly.
    """

    def __init__(self):
        self._projects: Dict[str, Dict[str, Any]] = {}
        self._tasks: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}

    def list_projects(self) -> List[Project]:
        return _valid_projects([copy.deepcopy(item) for item in self._projects.values()])

    def get_project(self, project_id: str) -> Optional[Project]:
        item = self._projects.get(project_id)
        return _project_from_record(copy.deepcopy(item)) if item is not None else None

    def save_project(self, project: Project) -> bool:
        self._projects[project.project_id] = project.to_dict()
        return True

    def get_tasks(self, project_id: str) -> TaskMap:
        return _tasks_from_record(project_id, copy.deepcopy(self._tasks.get(project_id, {})))

    def save_tasks(self, project_id: str, tasks: Mapping[Phase, List[Task]]) -> bool:
        self._tasks[project_id] = tasks_to_dict(tasks)
        return True
