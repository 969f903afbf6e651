"""Story read-path — tasks view report and story form contexts.

``StoryReportService.story_tasks`` assembles the story tasks view:

    parallel   role | story | tasks | users | types
    then       phases of the story's project
    then       per-phase durations (PhaseDurationAggregator)
    then       task annotation, localized times, progress

Any failed read aborts the whole report with ``WorkflowError``.

The add/edit form contexts collect the lookup data a story form needs.
"""

import logging
from dataclasses import dataclass, field

from taskboard.core.exceptions import WorkflowError
from taskboard.core.records import Story, Task, TaskType, User, serialize
from taskboard.services.collaborators import AccessControl, DataAccess, TimeFormatter
from taskboard.services.orchestration import run_parallel
from taskboard.services.phase_duration import PhaseDurationAggregator, PhaseTime, PhaseTotals
from taskboard.services.progress import calculate_progress

logger = logging.getLogger(__name__)


def _find(items, item_id):
    return next((item for item in items if item.id == item_id), None)


@dataclass(frozen=True)
class AnnotatedTask:
    task: Task
    type: TaskType | None = None
    user: User | None = None
    phase: PhaseTime | None = None
    time_start_user: object = None
    time_end_user: object = None

    def to_dict(self) -> dict:
        data = serialize(self.task)
        data["type"] = serialize(self.type)
        data["user"] = serialize(self.user)
        data["phase"] = self.phase.to_dict() if self.phase else None
        data["time_start_user"] = self.time_start_user.isoformat() if self.time_start_user else None
        data["time_end_user"] = self.time_end_user.isoformat() if self.time_end_user else None
        return data


@dataclass(frozen=True)
class StoryReport:
    role: str
    story: Story
    tasks: list[AnnotatedTask] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    types: list[TaskType] = field(default_factory=list)
    phases: list[PhaseTime] = field(default_factory=list)
    phase_duration: PhaseTotals = PhaseTotals()
    cnt_task_total: int = 0
    cnt_task_done: int = 0
    progress_task: int = 0

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "story": serialize(self.story),
            "tasks": [t.to_dict() for t in self.tasks],
            "users": [serialize(u) for u in self.users],
            "types": [serialize(t) for t in self.types],
            "phases": [p.to_dict() for p in self.phases],
            "phase_duration": self.phase_duration.to_dict(),
            "cnt_task_total": self.cnt_task_total,
            "cnt_task_done": self.cnt_task_done,
            "progress_task": self.progress_task,
        }


def annotate_tasks(tasks, types, users, phases, formatter: TimeFormatter, timezone_name):
    """Attach type, user, phase and localized times to every task."""
    annotated = []
    for task in tasks:
        phase = next((p for p in phases if p.phase.id == task.phase_id), None)
        annotated.append(AnnotatedTask(
            task=task,
            type=_find(types, task.type_id),
            user=_find(users, task.user_id),
            phase=phase,
            time_start_user=formatter.localize(task.time_start, timezone_name),
            time_end_user=formatter.localize(task.time_end, timezone_name),
        ))
    return annotated


class StoryReportService:
    def __init__(self, data: DataAccess, access: AccessControl, time_formatter: TimeFormatter):
        self.data = data
        self.access = access
        self.time_formatter = time_formatter
        self.aggregator = PhaseDurationAggregator(data)

    async def story_tasks(self, story_id: int, user: User) -> StoryReport:
        """Build the tasks view report for ``story_id`` as seen by ``user``.

        Raises:
            WorkflowError: wrapping the first failed read (or access refusal).
        """
        results, err = await run_parallel({
            "role": lambda: self.access.has_access(user, story_id),
            "story": lambda: self.data.get_story(story_id),
            "tasks": lambda: self.data.get_tasks({"story_id": story_id}),
            "users": lambda: self.data.get_users({}),
            "types": lambda: self.data.get_types({}),
        })
        if err:
            raise WorkflowError("fetch_story_data", err) from err

        story = results["story"]
        try:
            phases = await self.data.get_phases({"project_id": story.project_id})
        except Exception as exc:
            raise WorkflowError("fetch_phases", exc) from exc

        summary, err = await self.aggregator.aggregate(phases, story.id)
        if err:
            raise WorkflowError("phase_duration", err) from err
        phase_times, totals = summary

        tasks = annotate_tasks(
            results["tasks"], results["types"], results["users"], phase_times,
            self.time_formatter, user.timezone,
        )
        progress = calculate_progress(results["tasks"])
        logger.debug("Story %s report: %d task(s), %d%% done",
                     story.id, progress.cnt_task_total, progress.progress_task,
                     extra={"story_id": story.id})

        return StoryReport(
            role=results["role"],
            story=story,
            tasks=tasks,
            users=results["users"],
            types=results["types"],
            phases=phase_times,
            phase_duration=totals,
            cnt_task_total=progress.cnt_task_total,
            cnt_task_done=progress.cnt_task_done,
            progress_task=progress.progress_task,
        )

    async def story_add_context(self, project_id: int, sprint_id: int, form_data=None) -> dict:
        """Lookup data for the "add story" form."""
        results, err = await run_parallel({
            "milestones": lambda: self.data.get_milestones({"project_id": project_id}),
            "types": lambda: self.data.get_types({}),
        })
        if err:
            raise WorkflowError("add_context", err) from err
        return {
            "milestones": [serialize(m) for m in results["milestones"]],
            "types": [serialize(t) for t in results["types"]],
            "project_id": project_id,
            "sprint_id": sprint_id,
            "form_data": form_data or {},
        }

    async def story_edit_context(self, story_id: int) -> dict:
        """Story plus lookup data for the "edit story" form."""
        results, err = await run_parallel({
            "story": lambda: self.data.get_story(story_id),
            "types": lambda: self.data.get_types({}),
        })
        if err:
            raise WorkflowError("edit_context", err) from err
        try:
            milestones = await self.data.get_milestones({"project_id": results["story"].project_id})
        except Exception as exc:
            raise WorkflowError("edit_context", exc) from exc
        return {
            "story": serialize(results["story"]),
            "types": [serialize(t) for t in results["types"]],
            "milestones": [serialize(m) for m in milestones],
        }
