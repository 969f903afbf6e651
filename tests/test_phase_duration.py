"""
Tests — phase duration aggregation.

Covers:
    - totals over all phases and over non-first phases
    - percentage rules (first phase excluded, zero durations, zero totals)
    - ledger summing per (phase, story) through a DataAccess collaborator
"""

import asyncio
import math

import pytest

from taskboard.core.records import Phase, PhaseDuration
from taskboard.services.phase_duration import PhaseDurationAggregator, summarize


def _phase(pid, order):
    return Phase(id=pid, project_id=1, title=f"Phase {pid}", order=order)


def _by_order(annotated):
    return {p.phase.order: p for p in annotated}


def test_reference_example():
    annotated, totals = summarize([(_phase(1, 0), 100), (_phase(2, 1), 50), (_phase(3, 2), 0)])

    assert totals.total_time == 150
    assert totals.total_time_no_first == 50
    phases = _by_order(annotated)
    assert phases[1].duration_percentage == 100
    assert phases[1].duration_percentage_total == pytest.approx(33.33, abs=0.01)
    assert phases[2].duration_percentage == 0
    assert phases[2].duration_percentage_total == 0


def test_first_phase_never_counts_towards_non_first_share():
    annotated, _ = summarize([(_phase(1, 0), 80), (_phase(2, 1), 20)])
    first = _by_order(annotated)[0]
    assert first.duration_percentage == 0
    assert first.duration_percentage_total == 80


def test_empty_phase_set():
    annotated, totals = summarize([])
    assert annotated == []
    assert totals.total_time == 0
    assert totals.total_time_no_first == 0


def test_only_first_phase_has_time():
    annotated, totals = summarize([(_phase(1, 0), 40), (_phase(2, 1), 0)])
    assert totals.total_time_no_first == 0
    for phase in annotated:
        assert phase.duration_percentage == 0
        assert not math.isnan(phase.duration_percentage_total)


def test_no_time_anywhere_gives_zero_percentages():
    annotated, totals = summarize([(_phase(1, 0), 0), (_phase(2, 1), 0), (_phase(3, 2), 0)])
    assert totals.total_time == 0
    for phase in annotated:
        assert phase.duration_percentage == 0
        assert phase.duration_percentage_total == 0


def test_negative_duration_is_treated_as_no_time():
    annotated, totals = summarize([(_phase(1, 1), -5), (_phase(2, 2), 10)])
    phases = _by_order(annotated)

    assert phases[1].duration == 0
    assert phases[1].duration_percentage == 0
    assert phases[1].duration_percentage_total == 0
    assert phases[2].duration_percentage == 100
    assert phases[2].duration_percentage_total == 100
    assert totals.total_time == 10
    assert totals.total_time_no_first == 10


@pytest.mark.parametrize("durations", [
    [10, 20, 30],
    [0, 0, 7],
    [1, 0, 0, 0],
    [3.5, 2.25, 0, 9],
])
def test_totals_and_percentage_bounds(durations):
    pairs = [(_phase(i + 1, i), d) for i, d in enumerate(durations)]
    annotated, totals = summarize(pairs)

    assert totals.total_time == sum(durations)
    assert totals.total_time_no_first == sum(durations[1:])
    for phase in annotated:
        assert 0 <= phase.duration_percentage_total <= 100
        assert 0 <= phase.duration_percentage <= 100
        assert math.isfinite(phase.duration_percentage)
        assert math.isfinite(phase.duration_percentage_total)


def test_several_zero_order_phases_are_all_excluded():
    annotated, totals = summarize([(_phase(1, 0), 10), (_phase(2, 0), 10), (_phase(3, 1), 5)])
    assert totals.total_time_no_first == 5
    assert [p.duration_percentage for p in annotated] == [0, 0, 100]


class TestAggregator:
    def test_sums_ledger_rows_per_phase_and_story(self, store):
        phases = [store.add(_phase(1, 0)), store.add(_phase(2, 1)), store.add(_phase(3, 2))]
        store.add(PhaseDuration(phase_id=1, story_id=7, duration=60))
        store.add(PhaseDuration(phase_id=1, story_id=7, duration=40))
        store.add(PhaseDuration(phase_id=2, story_id=7, duration=25))
        store.add(PhaseDuration(phase_id=2, story_id=8, duration=999))  # other story

        summary, err = asyncio.run(PhaseDurationAggregator(store).aggregate(phases, 7))

        assert err is None
        annotated, totals = summary
        assert [p.duration for p in annotated] == [100, 25, 0]
        assert totals.total_time == 125
        assert totals.total_time_no_first == 25

    def test_negative_ledger_sum_counts_as_no_time(self, store):
        phases = [store.add(_phase(1, 1)), store.add(_phase(2, 2))]
        store.add(PhaseDuration(phase_id=1, story_id=7, duration=20))
        store.add(PhaseDuration(phase_id=1, story_id=7, duration=-30))  # correction
        store.add(PhaseDuration(phase_id=2, story_id=7, duration=10))

        summary, err = asyncio.run(PhaseDurationAggregator(store).aggregate(phases, 7))

        assert err is None
        annotated, totals = summary
        assert [p.duration for p in annotated] == [0, 10]
        assert [p.duration_percentage for p in annotated] == [0, 100]
        assert totals.total_time == 10

    def test_read_failure_is_returned(self, store):
        from taskboard.core.exceptions import DataAccessError

        store.add(_phase(1, 0))
        store.fail_on("get_phase_durations", DataAccessError("PhaseDuration", {}))

        summary, err = asyncio.run(
            PhaseDurationAggregator(store).aggregate(store.all(Phase), 1))

        assert summary is None
        assert isinstance(err, DataAccessError)
