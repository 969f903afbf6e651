"""Phase duration aggregation for the story tasks view.

Sums the PhaseDuration ledger per phase for one story and derives two
percentage breakdowns:

    duration_percentage        share of the time spent outside the
                               first phase (order 0 phases excluded)
    duration_percentage_total  share of all time spent on the story

Both percentages are 0 whenever the applicable total is 0. Negative ledger
sums (corrections larger than the recorded time) count as no time, so every
percentage stays within 0..100.
"""

import logging
from dataclasses import dataclass

from taskboard.core.records import Phase
from taskboard.services.collaborators import DataAccess
from taskboard.services.orchestration import run_each

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseTime:
    """A phase annotated with the story's time in it."""

    phase: Phase
    duration: float = 0
    duration_percentage: float = 0
    duration_percentage_total: float = 0

    def to_dict(self) -> dict:
        return {
            "id": self.phase.id,
            "project_id": self.phase.project_id,
            "title": self.phase.title,
            "order": self.phase.order,
            "is_done": self.phase.is_done,
            "duration": self.duration,
            "duration_percentage": self.duration_percentage,
            "duration_percentage_total": self.duration_percentage_total,
        }


@dataclass(frozen=True)
class PhaseTotals:
    total_time: float = 0
    total_time_no_first: float = 0

    def to_dict(self) -> dict:
        return {"total_time": self.total_time, "total_time_no_first": self.total_time_no_first}


def _percentage(part, whole):
    if not whole:
        return 0
    return part / whole * 100


def summarize(durations: list[tuple[Phase, float]]) -> tuple[list[PhaseTime], PhaseTotals]:
    """Compute totals and per-phase percentages from (phase, duration) pairs."""
    durations = [(phase, max(duration or 0, 0)) for phase, duration in durations]
    total_time = sum(duration for _, duration in durations)
    total_time_no_first = sum(duration for phase, duration in durations if phase.order != 0)
    totals = PhaseTotals(total_time=total_time, total_time_no_first=total_time_no_first)

    annotated = []
    for phase, duration in durations:
        of_non_first = 0
        if duration > 0 and phase.order != 0:
            of_non_first = _percentage(duration, total_time_no_first)
        of_total = _percentage(duration, total_time) if duration > 0 else 0
        annotated.append(PhaseTime(
            phase=phase,
            duration=duration,
            duration_percentage=of_non_first,
            duration_percentage_total=of_total,
        ))
    return annotated, totals


class PhaseDurationAggregator:
    def __init__(self, data: DataAccess):
        self.data = data

    async def phase_duration(self, phase: Phase, story_id: int) -> float:
        """Sum of every ledger row for (phase, story), floored at 0; 0 when there are none."""
        rows = await self.data.get_phase_durations({"phase_id": phase.id, "story_id": story_id})
        return max(sum(row.duration or 0 for row in rows), 0)

    async def aggregate(self, phases: list[Phase], story_id: int):
        """Fetch durations for every phase concurrently, then summarize.

        Returns:
            ((annotated_phases, totals), None) or (None, error)
        """
        async def with_duration(phase):
            return phase, await self.phase_duration(phase, story_id)

        durations, err = await run_each(with_duration, phases)
        if err:
            return None, err
        return summarize(durations), None
