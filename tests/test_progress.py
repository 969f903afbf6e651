"""Tests — task completion ratio."""

import pytest

from taskboard.core.records import Task
from taskboard.services.progress import calculate_progress


def _tasks(total, done):
    return [Task(id=i, is_done=i < done) for i in range(total)]


@pytest.mark.parametrize("total, done, expected", [
    (4, 2, 50),
    (0, 0, 0),
    (3, 0, 0),
    (3, 3, 100),
    (3, 1, 33),
    (3, 2, 67),
    (8, 1, 13),   # 12.5 rounds half up
])
def test_progress_task(total, done, expected):
    progress = calculate_progress(_tasks(total, done))
    assert progress.cnt_task_total == total
    assert progress.cnt_task_done == done
    assert progress.progress_task == expected


def test_progress_is_zero_without_done_tasks_whatever_the_total():
    for total in (0, 1, 10, 250):
        assert calculate_progress(_tasks(total, 0)).progress_task == 0
