"""Task reassignment — moving one task into a split-off story.

Policy:
    destination story in a sprint   → task keeps its phase and start time
    destination story in backlog    → task goes to the project's first phase
                                      and its start time is cleared

The move is published as destroy + create for the same task id (the
change feed has no "moved" verb). Both messages describe one move.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from taskboard.core.records import Phase, Story, Task, serialize
from taskboard.services.collaborators import ChangeNotifier, DataAccess, Persistence
from taskboard.services.orchestration import run_sequential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskTarget:
    """Where a task ends up after the move."""

    task_id: int
    story_id: int
    phase_id: int | None
    time_start: datetime | None


def plan_target(task: Task, destination: Story, first_phase: Phase | None) -> TaskTarget:
    """Decide the task's new phase and start time for ``destination``."""
    phase_id = task.phase_id
    time_start = task.time_start
    if destination.in_backlog:
        time_start = None
        phase_id = first_phase.id if first_phase is not None else None
    return TaskTarget(
        task_id=task.id,
        story_id=destination.id,
        phase_id=phase_id,
        time_start=time_start,
    )


class TaskReassignment:
    """Moves tasks between stories and announces each move."""

    def __init__(self, data: DataAccess, persistence: Persistence, notifier: ChangeNotifier):
        self.data = data
        self.persistence = persistence
        self.notifier = notifier

    async def reassign(self, task: Task, destination: Story, first_phase: Phase | None) -> Task:
        """Move one task into ``destination`` and return the saved task.

        Raises the fetch or save error of this task; other tasks are not
        affected.
        """
        target = plan_target(task, destination, first_phase)

        async def fetch_current(_):
            # Re-read right before writing to narrow the window for stale data.
            return await self.data.get_task(target.task_id)

        async def apply_and_save(current):
            moved = replace(
                current,
                story_id=target.story_id,
                phase_id=target.phase_id,
                time_start=target.time_start,
            )
            await self.persistence.save(moved)
            return moved

        async def announce(moved):
            await self.notifier.publish_destroy("task", moved.id)
            await self.notifier.publish_create("task", serialize(moved))
            return moved

        moved, err = await run_sequential([fetch_current, apply_and_save, announce])
        if err:
            logger.warning("Moving task %s to story %s failed: %s",
                           target.task_id, target.story_id, err)
            raise err
        logger.debug("Moved task %s to story %s (phase %s)",
                     moved.id, moved.story_id, moved.phase_id)
        return moved
