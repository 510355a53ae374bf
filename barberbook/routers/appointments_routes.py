# barberbook/routers/appointments_routes.py

import logging
from datetime import datetime, timedelta, date
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from barberbook.db import get_session
from barberbook.models import Appointment
from barberbook.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatusUpdate,
    AppointmentUpdate,
)
from barberbook.auth import get_current_user, get_optional_user
from barberbook.core import AppointmentStatus, can_transition
from barberbook.deps import require_role
from barberbook.data import SERVICES, STAFF_ROLES
from barberbook.scheduling import (
    OutsideWorkingHours,
    SlotUnavailable,
    ensure_bookable,
    generate_reference_number,
    to_shop_time,
)
from barberbook.routers.barbers_routes import get_active_barber

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


def _guard_booking(session: Session, barber_id: str, starts_at: datetime, ends_at: datetime,
                   exclude_appointment_id: Optional[str] = None):
    try:
        ensure_bookable(session, barber_id, starts_at, ends_at, exclude_appointment_id)
    except SlotUnavailable as exc:
        session.rollback()
        raise HTTPException(status_code=409, detail=exc.message)
    except OutsideWorkingHours as exc:
        session.rollback()
        raise HTTPException(status_code=422, detail=str(exc))


def _commit(session: Session, appt: Appointment) -> Appointment:
    session.add(appt)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Appointment could not be saved")
    session.refresh(appt)
    return appt


@router.post("", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
):
    # 1) Validate service
    if appt.service not in SERVICES:
        raise HTTPException(status_code=422, detail="Service not available")
    service = SERVICES[appt.service]

    # 2) Build appointment interval
    starts_at = to_shop_time(appt.starts_at)
    ends_at = starts_at + timedelta(minutes=service["duration"])

    # 3) Prevent booking in the past (naive local time)
    if starts_at < datetime.now():
        raise HTTPException(status_code=422, detail="Cannot book an appointment in the past")

    # 4) Barber must exist and be active
    get_active_barber(session, appt.barber_id)

    # 5) Lock, check working hours, appointments and blockouts
    _guard_booking(session, appt.barber_id, starts_at, ends_at)

    # 6) Create and save appointment in the same transaction
    db_appt = Appointment(
        reference_number=generate_reference_number(session),
        starts_at=starts_at,
        ends_at=ends_at,
        barber_id=appt.barber_id,
        customer_name=appt.name,
        customer_email=appt.email,
        customer_phone=appt.phone,
        notes=appt.notes,
        service=appt.service,
        service_price=service["price"],
        service_duration=service["duration"],
        status=AppointmentStatus.CONFIRMED.value,  # auto-confirm
    )
    db_appt = _commit(session, db_appt)
    logger.info(
        "Appointment %s booked with barber %s at %s",
        db_appt.reference_number, db_appt.barber_id, db_appt.starts_at,
    )
    return db_appt


@router.get("", response_model=List[AppointmentPublic])
def list_appointments(
    on_date: Optional[date] = None,
    barber_id: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)

    stmt = select(Appointment)

    if on_date is not None:
        day_start_dt = datetime.combine(on_date, datetime.min.time())
        day_end_dt = day_start_dt + timedelta(days=1)
        stmt = stmt.where(Appointment.starts_at >= day_start_dt).where(Appointment.starts_at < day_end_dt)

    if barber_id is not None:
        stmt = stmt.where(Appointment.barber_id == barber_id)

    stmt = stmt.order_by(Appointment.starts_at)

    return session.exec(stmt).all()


@router.get("/lookup", response_model=AppointmentPublic)
def lookup_appointment(
    reference: str,
    session: Session = Depends(get_session),
):
    appt = session.exec(
        select(Appointment).where(Appointment.reference_number == reference)
    ).first()
    if appt is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appt


@router.patch("/{appt_id}", response_model=AppointmentPublic)
def update_appointment(
    appt_id: str,
    changes: AppointmentUpdate,
    session: Session = Depends(get_session),
):
    # 1) Find the appointment in DB
    target = session.get(Appointment, appt_id)
    if target is None:
        raise HTTPException(status_code=404, detail="Appointment not found")

    if target.starts_at < datetime.now():
        raise HTTPException(status_code=400, detail="Cannot update past appointments")
    if target.status not in (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value):
        raise HTTPException(
            status_code=409,
            detail=f"This appointment is {target.status} and cannot be changed",
        )

    # 2) Customer info
    if changes.name is not None:
        target.customer_name = changes.name
    if changes.email is not None:
        target.customer_email = changes.email
    if changes.phone is not None:
        target.customer_phone = changes.phone
    if changes.notes is not None:
        target.notes = changes.notes

    # 3) Service, barber and time all move the interval
    moved = False
    if changes.service is not None and changes.service != target.service:
        if changes.service not in SERVICES:
            raise HTTPException(status_code=422, detail="Service not available")
        service = SERVICES[changes.service]
        target.service = changes.service
        target.service_price = service["price"]
        target.service_duration = service["duration"]
        moved = True

    if changes.barber_id is not None and changes.barber_id != target.barber_id:
        get_active_barber(session, changes.barber_id)
        target.barber_id = changes.barber_id
        moved = True

    if changes.starts_at is not None:
        starts_at = to_shop_time(changes.starts_at)
        if starts_at < datetime.now():
            raise HTTPException(status_code=422, detail="Cannot book an appointment in the past")
        if starts_at != target.starts_at:
            target.starts_at = starts_at
            moved = True

    if moved:
        target.ends_at = target.starts_at + timedelta(minutes=target.service_duration)
        # 4) Re-validate, ignoring this appointment's own previous interval
        _guard_booking(session, target.barber_id, target.starts_at, target.ends_at,
                       exclude_appointment_id=target.id)

    target = _commit(session, target)
    if moved:
        logger.info("Appointment %s moved to %s with barber %s",
                    target.reference_number, target.starts_at, target.barber_id)
    return target


@router.patch("/{appt_id}/status", response_model=AppointmentPublic)
def update_appointment_status(
    appt_id: str,
    update: AppointmentStatusUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)

    target = session.get(Appointment, appt_id)
    if target is None:
        raise HTTPException(status_code=404, detail="Appointment not found")

    if not can_transition(target.status, update.status):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot change status from {target.status} to {update.status.value}",
        )

    target.status = update.status.value
    target = _commit(session, target)
    logger.info("Appointment %s is now %s", target.reference_number, target.status)
    return target


@router.patch("/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: str,
    reference: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: Optional[dict] = Depends(get_optional_user),
):
    # 1) Find the appointment in DB
    target = session.get(Appointment, appt_id)
    if target is None:
        raise HTTPException(status_code=404, detail="Appointment not found")

    # 2) Authorization: customer holding the reference number OR staff
    is_staff = current_user is not None and current_user["role"] in STAFF_ROLES
    if not is_staff and reference != target.reference_number:
        raise HTTPException(status_code=403, detail="Forbidden")

    # 3) Already cancelled?
    if target.status == AppointmentStatus.CANCELLED.value:
        raise HTTPException(status_code=409, detail="Appointment already cancelled")
    if not can_transition(target.status, AppointmentStatus.CANCELLED):
        raise HTTPException(status_code=409, detail=f"Cannot cancel a {target.status} appointment")

    # 4) Cancel and persist
    target.status = AppointmentStatus.CANCELLED.value
    target = _commit(session, target)
    logger.info("Appointment %s cancelled", target.reference_number)
    return target
