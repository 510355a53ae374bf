# barberbook/routers/barbers_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import case
from sqlmodel import Session, select

from barberbook.db import get_session
from barberbook.models import User, WorkingHours
from barberbook.schemas import BarberPublic, WorkingHoursDay, WorkingHoursUpdate
from barberbook.auth import get_current_user
from barberbook.deps import require_role, require_self_or_admin
from barberbook.data import STAFF_ROLES

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/barbers",
    tags=["barbers"],
)


def get_active_barber(session: Session, barber_id: str) -> User:
    barber = session.get(User, barber_id)
    if barber is None or not barber.is_active or barber.role not in STAFF_ROLES:
        raise HTTPException(status_code=404, detail="Barber not found or inactive")
    return barber


@router.get("", response_model=List[BarberPublic])
def list_barbers(session: Session = Depends(get_session)):
    # admins first, then alphabetically
    admin_first = case((User.role == "ADMIN", 0), else_=1)
    barbers = session.exec(
        select(User)
        .where(User.role.in_(STAFF_ROLES))
        .where(User.is_active == True)  # noqa: E712
        .order_by(admin_first, User.name)
    ).all()
    return barbers


@router.get("/{barber_id}/working-hours", response_model=List[WorkingHoursDay])
def get_working_hours(
    barber_id: str,
    session: Session = Depends(get_session),
):
    get_active_barber(session, barber_id)
    rows = session.exec(
        select(WorkingHours)
        .where(WorkingHours.barber_id == barber_id)
        .order_by(WorkingHours.weekday)
    ).all()
    return rows


@router.put("/{barber_id}/working-hours", response_model=List[WorkingHoursDay])
def set_working_hours(
    barber_id: str,
    schedule: WorkingHoursUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    require_self_or_admin(current_user, barber_id)
    get_active_barber(session, barber_id)

    weekdays = [d.weekday for d in schedule.days]
    if len(weekdays) != len(set(weekdays)):
        raise HTTPException(status_code=422, detail="weekday cannot contain duplicates")
    for day in schedule.days:
        if day.is_working and day.start_time >= day.end_time:
            raise HTTPException(status_code=422, detail="start_time must be before end_time")

    # Replace the weekly rows: one row per (barber, weekday)
    existing = session.exec(
        select(WorkingHours).where(WorkingHours.barber_id == barber_id)
    ).all()
    for row in existing:
        session.delete(row)
    session.flush()

    for day in schedule.days:
        session.add(WorkingHours(
            barber_id=barber_id,
            weekday=day.weekday,
            start_time=day.start_time,
            end_time=day.end_time,
            is_working=day.is_working,
        ))
    session.commit()
    logger.info("Working hours updated for barber %s (%d days)", barber_id, len(schedule.days))

    return sorted(schedule.days, key=lambda d: d.weekday)
