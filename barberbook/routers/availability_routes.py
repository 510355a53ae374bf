# barberbook/routers/availability_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from barberbook.config import settings
from barberbook.db import get_session
from barberbook.data import SERVICES
from barberbook.schemas import AvailabilityResponse, ServicePublic
from barberbook.scheduling import day_availability
from barberbook.routers.barbers_routes import get_active_barber

router = APIRouter(
    tags=["availability"],
)


@router.get(
    "/available-slots",
    response_model=AvailabilityResponse,
    response_model_exclude_none=True,
)
def available_slots(
    date: date,
    barber_id: str,
    duration: int = Query(default=settings.DEFAULT_SERVICE_DURATION, gt=0),
    exclude_appointment_id: Optional[str] = None,
    include_unavailable: bool = False,
    session: Session = Depends(get_session),
):
    get_active_barber(session, barber_id)

    result = day_availability(
        session,
        barber_id,
        date,
        duration,
        exclude_appointment_id=exclude_appointment_id,
        include_unavailable=include_unavailable,
    )
    return result.to_dict()


@router.get("/services", response_model=List[ServicePublic])
def list_services():
    return [
        {"key": key, **service}
        for key, service in sorted(SERVICES.items(), key=lambda item: item[1]["name"])
    ]
