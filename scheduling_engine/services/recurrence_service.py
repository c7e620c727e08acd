"""
Recurrence synthesizer.

Expands indefinite recurring tasks into virtual occurrences for a date range.
Occurrences are never persisted and never editable; a persisted placement with
the same (task, date, start, end) always wins.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional, Sequence
from uuid import UUID

from scheduling_engine.core.logger import setup_logger
from scheduling_engine.models.completion import TaskCompletion
from scheduling_engine.models.enums import PlacementStatus
from scheduling_engine.models.schedule import (
    ScheduleEntry,
    SchedulePlacement,
    ScheduleView,
    SynthesizedOccurrence,
)
from scheduling_engine.models.task import Task
from scheduling_engine.utils.clock import Clock
from scheduling_engine.utils.time_utils import (
    END_OF_DAY,
    MINUTES_PER_DAY,
    START_OF_DAY,
    day_of_week,
    format_local_date,
    is_cross_day_task,
    iter_dates,
    parse_time_to_minutes,
    should_skip_past_task_instance,
)

logger = setup_logger(__name__)

RangeKey = tuple[str, date, str, str]


def synthetic_id(task_id, occurrence_date: date, start_time: str, end_time: str) -> str:
    return f"synthetic-{task_id}-{format_local_date(occurrence_date)}-{start_time}-{end_time}"


class RecurrenceSynthesizer:
    """Builds virtual occurrences of indefinite recurring tasks."""

    def __init__(self, clock: Clock):
        self.clock = clock

    def synthesize(
        self,
        tasks: Iterable[Task],
        range_start: date,
        range_end: date,
        existing: Iterable[SchedulePlacement] = (),
        completions: Iterable[TaskCompletion] = (),
    ) -> tuple[SynthesizedOccurrence, ...]:
        """Return occurrences for every indefinite task within [range_start, range_end].

        Dates before today are skipped, occurrences that already ended are
        suppressed, and an occurrence whose exact range is already persisted
        is not emitted again.

        Raises:
            PreconditionViolation: An indefinite task is missing days or default times
        """
        indefinite = [task for task in tasks if task.is_indefinite_recurring]
        if not indefinite or range_end < range_start:
            return ()
        for task in indefinite:
            task.recurrence.ensure_complete()

        today, now_time = self.clock.snapshot()
        seen: set[RangeKey] = {
            (str(p.task_id), p.date, p.start_time, p.end_time)
            for p in existing
            if p.start_time and p.end_time
        }
        completed = {(str(c.task_id), c.date) for c in completions}
        occurrences: list[SynthesizedOccurrence] = []

        def ensure(task: Task, occurrence_date: date, start: str, end: str, duration: int) -> None:
            if should_skip_past_task_instance(occurrence_date, end, today, now_time):
                return
            key = (str(task.id), occurrence_date, start, end)
            if key in seen:
                return
            seen.add(key)
            occurrences.append(
                SynthesizedOccurrence(
                    id=synthetic_id(task.id, occurrence_date, start, end),
                    task_id=task.id,
                    plan_id=task.plan_id,
                    name=task.name,
                    date=occurrence_date,
                    start_time=start,
                    end_time=end,
                    duration_minutes=duration,
                    completed=(str(task.id), occurrence_date) in completed,
                )
            )

        for current in iter_dates(range_start, range_end):
            if current < today:
                continue
            dow = day_of_week(current)
            prev_dow = day_of_week(current - timedelta(days=1))
            for task in indefinite:
                rule = task.recurrence
                start = rule.default_start_time
                end = rule.default_end_time
                start_min = parse_time_to_minutes(start)
                end_min = parse_time_to_minutes(end)

                if not is_cross_day_task(start, end):
                    if dow in rule.days_of_week:
                        ensure(task, current, start, end, end_min - start_min)
                    continue

                # Head runs to 23:59 but only while the full span has not ended
                if dow in rule.days_of_week:
                    next_day = current + timedelta(days=1)
                    if not should_skip_past_task_instance(next_day, end, today, now_time):
                        ensure(task, current, start, END_OF_DAY, MINUTES_PER_DAY - start_min)
                if prev_dow in rule.days_of_week:
                    ensure(task, current, START_OF_DAY, end, end_min)

        logger.debug(
            f"Synthesized {len(occurrences)} occurrences for {len(indefinite)} "
            f"indefinite tasks ({range_start} - {range_end})"
        )
        return tuple(occurrences)


def _placement_entry(placement: SchedulePlacement, completed: bool) -> ScheduleEntry:
    return ScheduleEntry(
        id=str(placement.id),
        task_id=placement.task_id,
        plan_id=placement.plan_id,
        date=placement.date,
        start_time=placement.start_time,
        end_time=placement.end_time,
        duration_minutes=placement.duration_minutes,
        status=placement.status,
        is_synthetic=False,
        editable=True,
        completed=completed or placement.status == PlacementStatus.COMPLETED,
    )


def _occurrence_entry(occurrence: SynthesizedOccurrence) -> ScheduleEntry:
    return ScheduleEntry(
        id=occurrence.id,
        task_id=occurrence.task_id,
        plan_id=occurrence.plan_id,
        date=occurrence.date,
        start_time=occurrence.start_time,
        end_time=occurrence.end_time,
        duration_minutes=occurrence.duration_minutes,
        status=PlacementStatus.COMPLETED if occurrence.completed else PlacementStatus.SCHEDULED,
        is_synthetic=True,
        editable=False,
        completed=occurrence.completed,
    )


def _sort_key(entry: ScheduleEntry) -> tuple:
    # All-day entries first within a date
    start = parse_time_to_minutes(entry.start_time) if entry.start_time else -1
    return (entry.date, start, entry.id)


def build_schedule_view(
    range_start: date,
    range_end: date,
    placements: Sequence[SchedulePlacement],
    occurrences: Sequence[SynthesizedOccurrence] = (),
    completions: Iterable[TaskCompletion] = (),
    plan_id: Optional[UUID] = None,
) -> ScheduleView:
    """Merge persisted placements and synthesized occurrences into one ordered view."""
    completed = {(str(c.task_id), c.date) for c in completions}
    entries: list[ScheduleEntry] = []
    for placement in placements:
        if placement.date < range_start or placement.date > range_end:
            continue
        if plan_id is not None and placement.plan_id != plan_id:
            continue
        entries.append(_placement_entry(placement, (str(placement.task_id), placement.date) in completed))
    for occurrence in occurrences:
        if occurrence.date < range_start or occurrence.date > range_end:
            continue
        if plan_id is not None and occurrence.plan_id != plan_id:
            continue
        entries.append(_occurrence_entry(occurrence))
    entries.sort(key=_sort_key)
    return ScheduleView(start_date=range_start, end_date=range_end, entries=tuple(entries))
