"""Story split workflow.

Splits an in-progress story: a copy is created in the chosen sprint (or the
project backlog, sprint 0) with ``parent_id`` pointing at the source, the
source story's tasks that sit in open phases move to the copy, the source
is closed and the copy's timing is recomputed.

Stages:
    fetch_story      → read the source story
    clone            → strip identity/timing, set sprint and parent
    stage A          → parallel: create the new story | list open phases
    reassign_tasks   → only when open phases exist: fetch tasks, move each
    finalize         → parallel: close source story | reopen new story

Every stage takes a ``SplitState`` and returns a new one. Any failing stage
stops the workflow and surfaces as ``WorkflowError``.

Known limitations:
    - No compensation. If the new story was created but the phase read in
      the same stage failed, the new story stays persisted and announced.
      The same holds for tasks already moved when a sibling move fails.
    - No locking. Two concurrent splits (or edits) of one story can race.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from taskboard.core.exceptions import PersistenceError, ValidationError, WorkflowError
from taskboard.core.records import Phase, Story, Task, serialize
from taskboard.services.collaborators import ChangeNotifier, DataAccess, Persistence
from taskboard.services.orchestration import run_each, run_parallel, run_sequential
from taskboard.services.task_reassignment import TaskReassignment

logger = logging.getLogger(__name__)

# Fields a split copy never inherits from its source story.
CLONE_RESET_FIELDS = ("id", "created_at", "updated_at", "time_start", "time_end")


@dataclass(frozen=True)
class SplitRequest:
    story_id: int
    sprint_id: int
    project_id: int


@dataclass(frozen=True)
class SplitState:
    """Immutable state handed from stage to stage."""

    request: SplitRequest
    source: Story | None = None
    clone: Story | None = None
    new_story: Story | None = None
    old_story: Story | None = None
    phases: tuple[Phase, ...] = ()
    moved_tasks: tuple[Task, ...] = ()


@dataclass(frozen=True)
class StorySplitResult:
    old_story: Story
    new_story: Story
    moved_tasks: list[Task] = field(default_factory=list)
    moved_task_count: int = 0

    def to_dict(self) -> dict:
        return {
            "old_story": serialize(self.old_story),
            "new_story": serialize(self.new_story),
            "moved_tasks": [serialize(t) for t in self.moved_tasks],
            "moved_task_count": self.moved_task_count,
        }


def parse_int(value, key: str, minimum: int = 0) -> int:
    """Strict integer parsing for request parameters.

    Raises:
        ValidationError: when the value is missing, boolean, non-integer or
            below ``minimum``.
    """
    if value is None or value == "":
        raise ValidationError(f"{key} is required", details={key: "required"})
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer", details={key: "not an integer"})
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", details={key: "not an integer"}) from None
    if number < minimum:
        raise ValidationError(f"{key} must be >= {minimum}", details={key: "out of range"})
    return number


def parse_split_request(data: dict) -> SplitRequest:
    """Validate raw split parameters.

    ``story_id`` and ``project_id`` must be positive integers, ``sprint_id``
    a non-negative integer (0 = project backlog). Integer-valued strings
    are accepted.

    Raises:
        ValidationError: on a missing or non-integer value.
    """
    return SplitRequest(
        story_id=parse_int(data.get("story_id"), "story_id", 1),
        sprint_id=parse_int(data.get("sprint_id"), "sprint_id", 0),
        project_id=parse_int(data.get("project_id"), "project_id", 1),
    )


def clone_story(source: Story, request: SplitRequest) -> Story:
    """Copy of ``source`` ready to be created in the destination sprint."""
    reset = {name: None for name in CLONE_RESET_FIELDS}
    return replace(source, sprint_id=request.sprint_id, parent_id=request.story_id, **reset)


def first_phase(phases) -> Phase | None:
    """Lowest-order phase; on ties the first one listed wins."""
    first = None
    for phase in phases:
        if first is None or phase.order < first.order:
            first = phase
    return first


def latest_time_start(tasks) -> datetime | None:
    starts = [task.time_start for task in tasks if task.time_start is not None]
    return max(starts) if starts else None


def _single(rows, record_type, record_id):
    if not rows:
        raise PersistenceError("update", f"{record_type.__name__} id={record_id} (no match)")
    return rows[0]


class StorySplitWorkflow:
    """Splits a story. Collaborators are injected once and reused per call."""

    def __init__(self, data: DataAccess, persistence: Persistence, notifier: ChangeNotifier,
                 clock=None):
        self.data = data
        self.persistence = persistence
        self.notifier = notifier
        self.reassignment = TaskReassignment(data, persistence, notifier)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def split(self, request: SplitRequest) -> StorySplitResult:
        """Run the whole split.

        Raises:
            WorkflowError: wrapping the first error of the failing stage.
        """
        extra = {"story_id": request.story_id, "sprint_id": request.sprint_id,
                 "project_id": request.project_id}
        logger.info("Splitting story %s into sprint %s", request.story_id, request.sprint_id,
                    extra=extra)

        state = SplitState(request=request)
        state = await self._stage("fetch_story", self.fetch_story, state)
        state = self.clone(state)
        state = await self._stage("create_story", self.create_story_and_fetch_phases, state)
        if state.phases:
            state = await self._stage("reassign_tasks", self.reassign_tasks, state)
        else:
            logger.debug("No open phases in project %s; no tasks to move", request.project_id)
        state = await self._stage("finalize", self.finalize, state)

        logger.info("Split story %s into %s, moved %d task(s)",
                    state.old_story.id, state.new_story.id, len(state.moved_tasks), extra=extra)
        return StorySplitResult(
            old_story=state.old_story,
            new_story=state.new_story,
            moved_tasks=list(state.moved_tasks),
            moved_task_count=len(state.moved_tasks),
        )

    async def _stage(self, name, stage, state):
        logger.debug("Split story %s: stage %s", state.request.story_id, name)
        try:
            return await stage(state)
        except Exception as exc:
            logger.warning("Split story %s failed at %s: %s", state.request.story_id, name, exc)
            raise WorkflowError(name, exc) from exc

    # ── Stages ──────────────────────────────────────────────────────────

    async def fetch_story(self, state: SplitState) -> SplitState:
        source = await self.data.get_story(state.request.story_id)
        return replace(state, source=source)

    def clone(self, state: SplitState) -> SplitState:
        return replace(state, clone=clone_story(state.source, state.request))

    async def create_story_and_fetch_phases(self, state: SplitState) -> SplitState:
        async def create_story():
            created = await self.persistence.create(state.clone)
            await self.notifier.publish_create("story", serialize(created))
            return created

        async def open_phases():
            return await self.data.get_phases(
                {"project_id": state.request.project_id, "is_done": False})

        results, err = await run_parallel({"new_story": create_story, "phases": open_phases})
        if err:
            raise err
        return replace(state, new_story=results["new_story"], phases=tuple(results["phases"]))

    async def reassign_tasks(self, state: SplitState) -> SplitState:
        target_phase = first_phase(state.phases)

        async def fetch_tasks(_):
            return await self.data.get_tasks({
                "story_id": state.request.story_id,
                "phase_id": [phase.id for phase in state.phases],
            })

        async def move_tasks(tasks):
            moved, err = await run_each(
                lambda task: self.reassignment.reassign(task, state.new_story, target_phase),
                tasks,
            )
            if err:
                raise err
            return moved

        moved, err = await run_sequential([fetch_tasks, move_tasks])
        if err:
            raise err
        return replace(state, moved_tasks=tuple(moved))

    async def finalize(self, state: SplitState) -> SplitState:
        old_id = state.request.story_id
        new_id = state.new_story.id

        async def close_old_story():
            rows = await self.persistence.update(
                Story, {"id": old_id}, {"is_done": True, "time_end": self.clock()})
            story = _single(rows, Story, old_id)
            await self.notifier.publish_update("story", old_id, serialize(story))
            return story

        async def reopen_new_story():
            patch = {
                "is_done": False,
                "time_start": latest_time_start(state.moved_tasks),
                "time_end": None,
            }
            rows = await self.persistence.update(Story, {"id": new_id}, patch)
            story = _single(rows, Story, new_id)
            await self.notifier.publish_update("story", new_id, serialize(story))
            return story

        results, err = await run_parallel(
            {"old_story": close_old_story, "new_story": reopen_new_story})
        if err:
            raise err
        return replace(state, old_story=results["old_story"], new_story=results["new_story"])
