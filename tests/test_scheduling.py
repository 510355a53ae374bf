from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import SQLModel, Session, create_engine, select

from barberbook.config import settings
from barberbook.core import ConflictKind, InvalidInterval
from barberbook.db import use_immediate_transactions
from barberbook.models import Appointment, TimeBlockout, WorkingHours
from barberbook.scheduling import (
    OutsideWorkingHours,
    SlotUnavailable,
    day_availability,
    ensure_bookable,
    generate_reference_number,
    load_intervals,
    to_shop_time,
)
from tests.conftest import at, make_user


def add_appointment(session, barber, start, minutes=60, status="CONFIRMED", reference="BRB10001"):
    appt = Appointment(
        reference_number=reference,
        starts_at=start,
        ends_at=start + timedelta(minutes=minutes),
        barber_id=barber.id,
        customer_name="Sam Client",
        customer_email="sam@example.com",
        service="haircut",
        service_price=1000,
        service_duration=minutes,
        status=status,
    )
    session.add(appt)
    session.commit()
    session.refresh(appt)
    return appt


def test_day_availability_uses_working_hours_and_appointments(session, barber, booking_day):
    add_appointment(session, barber, at(booking_day, 10))

    result = day_availability(session, barber.id, booking_day, 60)

    starts = [s.start for s in result.slots]
    assert result.is_working_day
    assert at(booking_day, 9) in starts
    assert at(booking_day, 9, 30) not in starts
    assert at(booking_day, 10) not in starts
    assert at(booking_day, 10, 30) not in starts
    assert starts[-1] == at(booking_day, 16)


def test_day_availability_on_day_off(session, barber, booking_day):
    sunday = booking_day + timedelta(days=(6 - booking_day.weekday()))

    result = day_availability(session, barber.id, sunday, 60)

    assert not result.is_working_day
    assert result.slots == ()


def test_day_availability_without_any_hours(session, booking_day):
    newcomer = make_user(session, "new@example.com", "New Barber")

    assert not day_availability(session, newcomer.id, booking_day, 60).is_working_day


def test_day_availability_ignores_cancelled(session, barber, booking_day):
    add_appointment(session, barber, at(booking_day, 10), status="CANCELLED")

    result = day_availability(session, barber.id, booking_day, 60)

    assert at(booking_day, 10) in [s.start for s in result.slots]


def test_day_availability_excludes_appointment_being_moved(session, barber, booking_day):
    appt = add_appointment(session, barber, at(booking_day, 10))

    result = day_availability(session, barber.id, booking_day, 60, exclude_appointment_id=appt.id)

    assert at(booking_day, 10) in [s.start for s in result.slots]


def test_load_intervals_includes_multi_day_blockouts(session, barber, booking_day):
    session.add(TimeBlockout(
        user_id=barber.id,
        starts_at=at(booking_day - timedelta(days=1), 12),
        ends_at=at(booking_day + timedelta(days=1), 12),
        reason="Vacation",
    ))
    session.commit()

    intervals = load_intervals(session, barber.id, at(booking_day, 0), at(booking_day + timedelta(days=1), 0))

    assert len(intervals) == 1
    assert day_availability(session, barber.id, booking_day, 30).slots == ()


def test_ensure_bookable_reports_appointment_conflict(session, barber, booking_day):
    add_appointment(session, barber, at(booking_day, 10))

    with pytest.raises(SlotUnavailable) as excinfo:
        ensure_bookable(session, barber.id, at(booking_day, 10, 30), at(booking_day, 11, 30))

    assert excinfo.value.conflict_kind == ConflictKind.APPOINTMENT
    assert excinfo.value.message == "This time slot is already booked"


def test_ensure_bookable_reports_blockout_conflict(session, barber, booking_day):
    session.add(TimeBlockout(user_id=barber.id, starts_at=at(booking_day, 12), ends_at=at(booking_day, 13)))
    session.commit()

    with pytest.raises(SlotUnavailable) as excinfo:
        ensure_bookable(session, barber.id, at(booking_day, 12, 30), at(booking_day, 13, 30))

    assert excinfo.value.conflict_kind == ConflictKind.BLOCKOUT
    assert excinfo.value.message == "The barber is not available during this time"


def test_ensure_bookable_allows_adjacent_booking(session, barber, booking_day):
    add_appointment(session, barber, at(booking_day, 9))

    ensure_bookable(session, barber.id, at(booking_day, 10), at(booking_day, 11))


def test_ensure_bookable_respects_exclude(session, barber, booking_day):
    appt = add_appointment(session, barber, at(booking_day, 10))

    ensure_bookable(
        session, barber.id, at(booking_day, 10, 30), at(booking_day, 11, 30),
        exclude_appointment_id=appt.id,
    )


@pytest.mark.parametrize("start_hour, end_hour", [(8, 9), (16, 18)])
def test_ensure_bookable_outside_working_hours(session, barber, booking_day, start_hour, end_hour):
    with pytest.raises(OutsideWorkingHours):
        ensure_bookable(session, barber.id, at(booking_day, start_hour), at(booking_day, end_hour))


def test_ensure_bookable_on_non_working_day(session, barber, booking_day):
    row = session.exec(
        select(WorkingHours)
        .where(WorkingHours.barber_id == barber.id)
        .where(WorkingHours.weekday == booking_day.weekday())
    ).one()
    row.is_working = False
    session.add(row)
    session.commit()

    with pytest.raises(OutsideWorkingHours):
        ensure_bookable(session, barber.id, at(booking_day, 10), at(booking_day, 11))


def test_ensure_bookable_rejects_inverted_interval(session, barber, booking_day):
    with pytest.raises(InvalidInterval):
        ensure_bookable(session, barber.id, at(booking_day, 11), at(booking_day, 10))


def test_reference_numbers(session, barber, booking_day):
    add_appointment(session, barber, at(booking_day, 10))

    reference = generate_reference_number(session)

    assert reference.startswith("BRB")
    assert len(reference) == 8
    assert reference[3:].isdigit()


def test_naive_times_round_trip(session, barber, booking_day):
    add_appointment(session, barber, at(booking_day, 10))
    session.expire_all()

    stored = session.exec(
        select(Appointment).where(Appointment.starts_at == at(booking_day, 10))
    ).one()

    assert stored.starts_at == at(booking_day, 10)
    assert stored.starts_at.tzinfo is None
    assert stored.ends_at == at(booking_day, 11)


def test_to_shop_time():
    shop = ZoneInfo(settings.SHOP_TIMEZONE)
    local = datetime(2026, 7, 14, 10, 0, tzinfo=shop)

    assert to_shop_time(local.astimezone(timezone.utc)) == datetime(2026, 7, 14, 10, 0)
    assert to_shop_time(datetime(2026, 7, 14, 10, 0)) == datetime(2026, 7, 14, 10, 0)


def test_concurrent_bookings_for_a_barber_are_serialized(tmp_path, booking_day):
    engine = use_immediate_transactions(create_engine(
        f"sqlite:///{tmp_path / 'shop.db'}",
        connect_args={"check_same_thread": False, "timeout": 0.2},
    ))
    SQLModel.metadata.create_all(engine)

    with Session(engine) as setup:
        barber = make_user(setup, "mike@example.com", "Mike")
        setup.add(WorkingHours(
            barber_id=barber.id,
            weekday=booking_day.weekday(),
            start_time=time(9, 0),
            end_time=time(17, 0),
        ))
        setup.commit()
        barber_id = barber.id

    with Session(engine) as first, Session(engine) as second:
        ensure_bookable(first, barber_id, at(booking_day, 10), at(booking_day, 11))
        first.add(Appointment(
            reference_number="BRB10001",
            starts_at=at(booking_day, 10),
            ends_at=at(booking_day, 11),
            barber_id=barber_id,
            customer_name="Sam Client",
            customer_email="sam@example.com",
            service="haircut",
            service_price=1000,
            service_duration=60,
        ))

        # the second booking cannot even read until the first commits
        with pytest.raises(OperationalError):
            ensure_bookable(second, barber_id, at(booking_day, 10, 30), at(booking_day, 11, 30))

        first.commit()

    with Session(engine) as third:
        with pytest.raises(SlotUnavailable):
            ensure_bookable(third, barber_id, at(booking_day, 10, 30), at(booking_day, 11, 30))
        assert len(third.exec(select(Appointment)).all()) == 1

    engine.dispose()
