"""Task completion ratio for a story."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class TaskProgress:
    cnt_task_total: int = 0
    cnt_task_done: int = 0
    progress_task: int = 0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_progress(tasks) -> TaskProgress:
    """Count done tasks and derive the completion percentage.

    Progress is 0 whenever no task is done, whatever the total; this also
    covers the empty story.
    """
    total = len(tasks)
    done = sum(1 for task in tasks if task.is_done)
    progress = round_half_up(done / total * 100) if done > 0 else 0
    return TaskProgress(cnt_task_total=total, cnt_task_done=done, progress_task=progress)
