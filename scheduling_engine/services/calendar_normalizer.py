"""
Calendar payload normalization.

Turns provider event payloads into BusySlot values, one per local calendar day
the event touches. Nothing past this module looks at provider shapes.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional, Union
from uuid import UUID
from zoneinfo import ZoneInfo

from scheduling_engine.core.exceptions import ValidationError
from scheduling_engine.core.logger import setup_logger
from scheduling_engine.models.calendar import BusySlot
from scheduling_engine.services.time_block_scheduler import TimeBlock, split_cross_day_entry
from scheduling_engine.utils.time_utils import (
    END_OF_DAY,
    START_OF_DAY,
    format_local_date,
    iter_dates,
    parse_local_date,
)

logger = setup_logger(__name__)

# Private extended properties written on events the engine pushes
SYSTEM_TASK_KEY = "scheduler.task_id"
SYSTEM_PLACEMENT_KEY = "scheduler.placement_id"

EventTime = Union[str, dict[str, Any], None]


def _parse_datetime(value: str, tz: ZoneInfo) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid event datetime: {value!r}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def _read_event_time(value: EventTime, tz: ZoneInfo) -> Union[datetime, date]:
    """A datetime for timed events, a date for all-day events."""
    if value is None:
        raise ValidationError("Event is missing start or end")
    if isinstance(value, str):
        if "T" in value:
            return _parse_datetime(value, tz)
        return parse_local_date(value)
    if value.get("dateTime"):
        zone = ZoneInfo(value["timeZone"]) if value.get("timeZone") else tz
        return _parse_datetime(value["dateTime"], zone).astimezone(tz)
    if value.get("date"):
        return parse_local_date(value["date"])
    raise ValidationError(f"Event time has neither dateTime nor date: {value!r}")


def _hhmm(value: datetime) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def _timed_blocks(start: datetime, end: datetime) -> list[TimeBlock]:
    start_day = start.date()
    end_day = end.date()
    if start_day == end_day:
        return [TimeBlock(start_day, _hhmm(start), _hhmm(end), int((end - start).total_seconds() // 60))]
    if end_day == start_day + timedelta(days=1) and end - start < timedelta(days=1):
        return list(split_cross_day_entry(start_day, _hhmm(start), _hhmm(end)))

    blocks = [TimeBlock(start_day, _hhmm(start), END_OF_DAY, 0)]
    for middle in iter_dates(start_day + timedelta(days=1), end_day - timedelta(days=1)):
        blocks.append(TimeBlock(middle, START_OF_DAY, END_OF_DAY, 0))
    if end.hour or end.minute:
        blocks.append(TimeBlock(end_day, START_OF_DAY, _hhmm(end), 0))
    return blocks


def normalize_calendar_event(
    event: dict[str, Any],
    user_id: str,
    calendar_id: Optional[str] = None,
    timezone: str = "UTC",
) -> tuple[BusySlot, ...]:
    """
    Convert one provider event into per-day busy slots.

    Cancelled events produce nothing. All-day events produce slots without
    times; their end date is exclusive.

    Raises:
        ValidationError: Start or end missing or malformed
    """
    if event.get("status") == "cancelled":
        return ()

    tz = ZoneInfo(timezone)
    start = _read_event_time(event.get("start"), tz)
    end = _read_event_time(event.get("end"), tz)

    source_id = event.get("id") or ""
    private = (event.get("extendedProperties") or {}).get("private") or {}
    linked_placement_id: Optional[UUID] = None
    if private.get(SYSTEM_PLACEMENT_KEY):
        try:
            linked_placement_id = UUID(str(private[SYSTEM_PLACEMENT_KEY]))
        except ValueError:
            logger.warning(f"Event {source_id} has a malformed placement link: {private[SYSTEM_PLACEMENT_KEY]!r}")
    is_system_created = SYSTEM_TASK_KEY in private or linked_placement_id is not None
    is_busy = event.get("transparency") != "transparent"

    def make_slot(slot_date: date, start_time: Optional[str], end_time: Optional[str]) -> BusySlot:
        return BusySlot(
            id=f"{calendar_id or 'primary'}:{source_id}:{format_local_date(slot_date)}",
            user_id=user_id,
            calendar_id=calendar_id,
            source_id=source_id or None,
            date=slot_date,
            start_time=start_time,
            end_time=end_time,
            summary=event.get("summary"),
            is_busy=is_busy,
            is_system_created=is_system_created,
            linked_placement_id=linked_placement_id,
        )

    if not isinstance(start, datetime) or not isinstance(end, datetime):
        first = start.date() if isinstance(start, datetime) else start
        last = end.date() if isinstance(end, datetime) else end
        if last <= first:
            last = first + timedelta(days=1)
        return tuple(make_slot(d, None, None) for d in iter_dates(first, last - timedelta(days=1)))

    if end <= start:
        raise ValidationError(
            f"Event {source_id} ends before it starts",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )
    return tuple(
        make_slot(block.date, block.start_time, block.end_time)
        for block in _timed_blocks(start, end)
        if block.start_time != block.end_time
    )
