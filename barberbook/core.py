# barberbook/core.py
"""Availability engine.

Pure functions over plain values: no database, no clock, no I/O. Route
handlers and the scheduling service feed it working hours and occupied
intervals and get back bookable slots or a conflict verdict.

All datetimes are naive shop-local wall-clock times.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class InvalidInterval(ValueError):
    """An interval whose end is not strictly after its start."""


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


OCCUPYING_STATUSES = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED}
)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
}


def can_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    return AppointmentStatus(new) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


class IntervalKind(str, Enum):
    appointment = "appointment"
    blockout = "blockout"


class ConflictKind(str, Enum):
    APPOINTMENT = "APPOINTMENT"
    BLOCKOUT = "BLOCKOUT"


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # half-open: [9:00, 10:00) and [10:00, 11:00) do not overlap
    return a_start < b_end and b_start < a_end


def _require_ordered(start: datetime, end: datetime) -> None:
    if end <= start:
        raise InvalidInterval(f"interval end {end.isoformat()} must be after start {start.isoformat()}")


@dataclass(frozen=True)
class WorkingHours:
    weekday: int  # 0 = Monday ... 6 = Sunday
    start_time: time
    end_time: time
    is_working: bool = True

    def __post_init__(self):
        if not 0 <= self.weekday <= 6:
            raise ValueError("weekday must be between 0 and 6")
        if self.is_working and self.end_time <= self.start_time:
            raise InvalidInterval(
                f"working hours end {self.end_time} must be after start {self.start_time}"
            )


@dataclass(frozen=True)
class OccupiedInterval:
    start: datetime
    end: datetime
    kind: IntervalKind
    status: Optional[AppointmentStatus] = None
    id: Optional[str] = None
    barber_id: Optional[str] = None

    def __post_init__(self):
        _require_ordered(self.start, self.end)

    @property
    def occupies_time(self) -> bool:
        if self.kind == IntervalKind.blockout:
            return True
        # an appointment without a known status still holds its time
        return self.status is None or AppointmentStatus(self.status) in OCCUPYING_STATUSES


def format_slot_label(value: datetime) -> str:
    """Render a slot start the way the booking page shows it, e.g. "9:00 AM"."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def parse_slot_label(day: date, label: str) -> datetime:
    """Inverse of format_slot_label for a given calendar day."""
    try:
        clock, suffix = label.strip().split(" ")
        hour_str, minute_str = clock.split(":")
        hour, minute = int(hour_str), int(minute_str)
    except ValueError:
        raise ValueError(f"invalid time label: {label!r}")
    suffix = suffix.upper()
    if suffix not in ("AM", "PM") or not 1 <= hour <= 12 or not 0 <= minute <= 59:
        raise ValueError(f"invalid time label: {label!r}")
    if suffix == "PM" and hour != 12:
        hour += 12
    elif suffix == "AM" and hour == 12:
        hour = 0
    return datetime.combine(day, time(hour, minute))


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    disabled: bool = False

    @property
    def label(self) -> str:
        return format_slot_label(self.start)

    def to_dict(self) -> dict:
        return {
            "time": self.label,
            "startTimestamp": self.start.isoformat(),
            "disabled": self.disabled,
        }


@dataclass(frozen=True)
class DailySlots:
    is_working_day: bool
    slots: Tuple[Slot, ...] = ()
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = {
            "isWorkingDay": self.is_working_day,
            "slots": [s.to_dict() for s in self.slots],
        }
        if self.is_working_day:
            data["workingHours"] = {
                "start": self.window_start.strftime("%H:%M"),
                "end": self.window_end.strftime("%H:%M"),
            }
        return data


@dataclass(frozen=True)
class ConflictResult:
    available: bool
    conflict_kind: Optional[ConflictKind] = None
    conflicting_ids: Tuple[str, ...] = field(default=())

    def to_dict(self) -> dict:
        data = {"available": self.available}
        if self.conflict_kind is not None:
            data["conflictKind"] = self.conflict_kind.value
        return data


def select_working_hours(rows: Iterable[WorkingHours], day: date) -> Optional[WorkingHours]:
    """Return the row for day's weekday, or None when the barber has none."""
    matches = [r for r in rows if r.weekday == day.weekday()]
    if len(matches) > 1:
        raise ValueError(f"more than one working-hours row for weekday {day.weekday()}")
    return matches[0] if matches else None


def _relevant(
    intervals: Iterable[OccupiedInterval],
    barber_id: Optional[str],
    exclude_interval_id: Optional[str] = None,
) -> List[OccupiedInterval]:
    relevant = []
    for interval in intervals:
        if not interval.occupies_time:
            continue
        if barber_id is not None and interval.barber_id is not None and interval.barber_id != barber_id:
            continue
        if exclude_interval_id is not None and interval.id == exclude_interval_id:
            continue
        relevant.append(interval)
    return relevant


def compute_daily_slots(
    barber_id: Optional[str],
    day: date,
    duration_minutes: int,
    granularity_minutes: int,
    working_hours: Union[WorkingHours, Iterable[WorkingHours], None],
    occupied_intervals: Iterable[OccupiedInterval],
    include_unavailable: bool = False,
) -> DailySlots:
    """Bookable start times for one barber on one day.

    Candidates start at opening time and advance by granularity_minutes; a
    candidate is offered only if start + duration_minutes fits before closing
    time. Cancelled and no-show appointments are ignored here, so callers pass
    every appointment they have for the day.

    With include_unavailable, conflicting candidates are returned as
    disabled slots instead of being dropped.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if granularity_minutes <= 0:
        raise ValueError("granularity_minutes must be positive")

    if working_hours is not None and not isinstance(working_hours, WorkingHours):
        working_hours = select_working_hours(working_hours, day)

    if working_hours is None or not working_hours.is_working:
        logger.debug("Barber %s is not working on %s", barber_id, day)
        return DailySlots(is_working_day=False)

    day_start = datetime.combine(day, working_hours.start_time)
    day_end = datetime.combine(day, working_hours.end_time)

    # anything touching the 24h span of the day, so multi-day blockouts count
    span_start = datetime.combine(day, time.min)
    span_end = span_start + timedelta(days=1)
    busy = [
        i for i in _relevant(occupied_intervals, barber_id)
        if overlaps(i.start, i.end, span_start, span_end)
    ]

    step = timedelta(minutes=granularity_minutes)
    duration = timedelta(minutes=duration_minutes)

    slots = []
    current = day_start
    while current + duration <= day_end:
        slot_end = current + duration
        taken = any(overlaps(current, slot_end, b.start, b.end) for b in busy)
        if not taken:
            slots.append(Slot(start=current, end=slot_end))
        elif include_unavailable:
            slots.append(Slot(start=current, end=slot_end, disabled=True))
        current += step

    logger.debug(
        "Barber %s on %s: %d slots (%d busy intervals)",
        barber_id, day, sum(1 for s in slots if not s.disabled), len(busy),
    )
    return DailySlots(
        is_working_day=True,
        slots=tuple(slots),
        window_start=day_start,
        window_end=day_end,
    )


def check_conflict(
    barber_id: Optional[str],
    proposed_start: datetime,
    proposed_end: datetime,
    existing_intervals: Iterable[OccupiedInterval],
    exclude_interval_id: Optional[str] = None,
) -> ConflictResult:
    """Decide whether [proposed_start, proposed_end) is free for the barber.

    Appointment clashes are reported ahead of blockout clashes. Pass the
    appointment's own id as exclude_interval_id when re-validating an edit.

    This is a read-only check. It only prevents double-booking when run inside
    a transaction that also serializes concurrent writers for the barber.
    """
    _require_ordered(proposed_start, proposed_end)

    clashes = [
        i for i in _relevant(existing_intervals, barber_id, exclude_interval_id)
        if overlaps(proposed_start, proposed_end, i.start, i.end)
    ]
    if not clashes:
        return ConflictResult(available=True)

    appointment_clashes = [i for i in clashes if i.kind == IntervalKind.appointment]
    if appointment_clashes:
        kind, hits = ConflictKind.APPOINTMENT, appointment_clashes
    else:
        kind, hits = ConflictKind.BLOCKOUT, clashes

    logger.debug(
        "Barber %s conflict for %s-%s: %s", barber_id, proposed_start, proposed_end, kind.value
    )
    return ConflictResult(
        available=False,
        conflict_kind=kind,
        conflicting_ids=tuple(i.id for i in hits if i.id is not None),
    )
