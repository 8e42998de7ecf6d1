"""Phase completion engine.

Recomputes a project's phase status from the state of its tasks. A phase is
complete when every task in it is completed; the project's overall status
follows from its phases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional, Union

from .models import PHASE_ORDER, Phase, PhaseStatus, Project, Task


class PhaseCompletionEngine:
    """Keep project phase status consistent with task completion.

    ``empty_phase_complete`` decides whether a phase without tasks counts as
    complete. It is off by default, so an empty phase never completes a
    project on its own.
    """

    def __init__(self, empty_phase_complete: bool = False):
        self.empty_phase_complete = empty_phase_complete

    def is_phase_complete(self, tasks: Iterable[Task]) -> bool:
        tasks = list(tasks)
        if not tasks:
            return self.empty_phase_complete
        return all(task.completed for task in tasks)

    def recompute_phase(
        self,
        project: Project,
        tasks: Mapping[Phase, list],
        phase: Union[Phase, str],
        now: Optional[datetime] = None,
    ) -> PhaseStatus:
        """Recompute one phase after its task set changed.

        Only the given phase is touched. The project is mutated in place and
        is not persisted here; reporting the transition is the caller's job.
        """
        phase = Phase.parse(phase)
        completed = self.is_phase_complete(tasks.get(phase, []))
        return project.update_phase_status(phase, completed, now)

    def recompute_all(
        self,
        project: Project,
        tasks: Mapping[Phase, list],
        now: Optional[datetime] = None,
    ) -> Dict[Phase, PhaseStatus]:
        """Recompute every phase, e.g. after loading tasks edited outside the tracker."""
        return {phase: self.recompute_phase(project, tasks, phase, now) for phase in PHASE_ORDER}
