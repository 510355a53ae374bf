# barberbook/scheduling.py
"""Glue between the database and the availability engine.

Every booking write goes through ensure_bookable inside the caller's
transaction: the barber row is locked first, so two requests racing for the
same barber run their read-check-write one after the other. On PostgreSQL
that is a real row lock. SQLite ignores FOR UPDATE, so db.py opens every
SQLite transaction with BEGIN IMMEDIATE, which takes the database write lock
before the first read.
"""

import logging
import secrets
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlmodel import Session, select

from barberbook.config import settings
from barberbook.core import (
    AppointmentStatus,
    ConflictKind,
    DailySlots,
    IntervalKind,
    InvalidInterval,
    OccupiedInterval,
    WorkingHours as WorkingHoursValue,
    check_conflict,
    compute_daily_slots,
)
from barberbook.models import Appointment, TimeBlockout, User, WorkingHours

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    pass


class SlotUnavailable(SchedulingError):
    def __init__(self, conflict_kind: ConflictKind):
        self.conflict_kind = conflict_kind
        super().__init__(conflict_kind.value)

    @property
    def message(self) -> str:
        if self.conflict_kind == ConflictKind.APPOINTMENT:
            return "This time slot is already booked"
        return "The barber is not available during this time"


class OutsideWorkingHours(SchedulingError):
    pass


def to_shop_time(value: datetime) -> datetime:
    """Naive shop-local wall-clock time for a client-supplied datetime."""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.SHOP_TIMEZONE)).replace(tzinfo=None)


def appointment_interval(appt: Appointment) -> OccupiedInterval:
    return OccupiedInterval(
        start=appt.starts_at,
        end=appt.ends_at,
        kind=IntervalKind.appointment,
        status=AppointmentStatus(appt.status),
        id=appt.id,
        barber_id=appt.barber_id,
    )


def blockout_interval(block: TimeBlockout) -> OccupiedInterval:
    return OccupiedInterval(
        start=block.starts_at,
        end=block.ends_at,
        kind=IntervalKind.blockout,
        id=f"blockout-{block.id}",
        barber_id=block.user_id,
    )


def working_hours_value(row: WorkingHours) -> WorkingHoursValue:
    return WorkingHoursValue(
        weekday=row.weekday,
        start_time=row.start_time,
        end_time=row.end_time,
        is_working=row.is_working,
    )


def load_working_hours(session: Session, barber_id: str) -> List[WorkingHoursValue]:
    rows = session.exec(
        select(WorkingHours)
        .where(WorkingHours.barber_id == barber_id)
        .order_by(WorkingHours.weekday)
    ).all()
    return [working_hours_value(r) for r in rows]


def load_intervals(
    session: Session,
    barber_id: str,
    window_start: datetime,
    window_end: datetime,
) -> List[OccupiedInterval]:
    # every status on purpose: the engine decides what occupies time
    appts = session.exec(
        select(Appointment)
        .where(Appointment.barber_id == barber_id)
        .where(Appointment.starts_at < window_end)
        .where(Appointment.ends_at > window_start)
    ).all()

    blocks = session.exec(
        select(TimeBlockout)
        .where(TimeBlockout.user_id == barber_id)
        .where(TimeBlockout.starts_at < window_end)
        .where(TimeBlockout.ends_at > window_start)
    ).all()

    return [appointment_interval(a) for a in appts] + [blockout_interval(b) for b in blocks]


def _day_span(day: date):
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def day_availability(
    session: Session,
    barber_id: str,
    day: date,
    duration_minutes: int,
    exclude_appointment_id: Optional[str] = None,
    include_unavailable: bool = False,
) -> DailySlots:
    span_start, span_end = _day_span(day)
    intervals = load_intervals(session, barber_id, span_start, span_end)

    # rescheduling: the appointment being moved must not block itself
    if exclude_appointment_id is not None:
        intervals = [i for i in intervals if i.id != exclude_appointment_id]

    return compute_daily_slots(
        barber_id,
        day,
        duration_minutes,
        settings.SLOT_MINUTES,
        load_working_hours(session, barber_id),
        intervals,
        include_unavailable=include_unavailable,
    )


def lock_barber(session: Session, barber_id: str) -> Optional[User]:
    return session.exec(
        select(User).where(User.id == barber_id).with_for_update()
    ).first()


def ensure_bookable(
    session: Session,
    barber_id: str,
    starts_at: datetime,
    ends_at: datetime,
    exclude_appointment_id: Optional[str] = None,
) -> None:
    """Raise unless [starts_at, ends_at) can be booked for the barber.

    Must run in the same transaction as the insert/update it guards; the
    caller commits after writing.
    """
    if ends_at <= starts_at:
        raise InvalidInterval("appointment must end after it starts")

    lock_barber(session, barber_id)

    # 1) Working hours for that weekday
    day = starts_at.date()
    hours = [h for h in load_working_hours(session, barber_id) if h.weekday == day.weekday()]
    if not hours or not hours[0].is_working:
        raise OutsideWorkingHours("Barber is not scheduled to work that day")
    work_start = datetime.combine(day, hours[0].start_time)
    work_end = datetime.combine(day, hours[0].end_time)
    if starts_at < work_start or ends_at > work_end:
        raise OutsideWorkingHours("Appointment must be within working hours")

    # 2) Appointments and blockouts around the proposed window
    intervals = load_intervals(session, barber_id, starts_at, ends_at)
    result = check_conflict(
        barber_id, starts_at, ends_at, intervals, exclude_interval_id=exclude_appointment_id
    )
    if not result.available:
        logger.warning(
            "Booking rejected for barber %s at %s: %s conflict with %s",
            barber_id, starts_at, result.conflict_kind.value, ", ".join(result.conflicting_ids),
        )
        raise SlotUnavailable(result.conflict_kind)


def generate_reference_number(session: Session) -> str:
    while True:
        reference = "BRB" + str(10000 + secrets.randbelow(90000))
        existing = session.exec(
            select(Appointment).where(Appointment.reference_number == reference)
        ).first()
        if existing is None:
            return reference
