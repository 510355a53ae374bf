# barberbook/schemas.py

from pydantic import BaseModel, Field, EmailStr
from datetime import datetime, time
from typing import List, Optional

from barberbook.core import AppointmentStatus


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class BarberPublic(BaseModel):
    id: str
    name: str
    email: str
    role: str
    bio: Optional[str] = None


class WorkingHoursDay(BaseModel):
    weekday: int = Field(ge=0, le=6)  # 0=Mon, 1=Tues....
    start_time: time
    end_time: time
    is_working: bool = True


class WorkingHoursUpdate(BaseModel):
    days: List[WorkingHoursDay]


class ServicePublic(BaseModel):
    key: str
    name: str
    price: int
    duration: int


class AppointmentCreate(BaseModel):
    barber_id: str
    service: str
    starts_at: datetime
    name: str = Field(min_length=2)
    email: EmailStr
    phone: Optional[str] = None
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    barber_id: Optional[str] = None
    service: Optional[str] = None
    starts_at: Optional[datetime] = None
    name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentPublic(BaseModel):
    id: str
    reference_number: str
    starts_at: datetime
    ends_at: datetime
    barber_id: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    service: str
    service_price: int
    service_duration: int
    status: AppointmentStatus


class BlockoutCreate(BaseModel):
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None
    user_id: Optional[str] = None  # admins may block time for other staff


class BlockoutPublic(BaseModel):
    id: int
    user_id: str
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None


class SlotPublic(BaseModel):
    time: str
    startTimestamp: datetime
    disabled: bool


class WorkingWindow(BaseModel):
    start: str
    end: str


class AvailabilityResponse(BaseModel):
    isWorkingDay: bool
    workingHours: Optional[WorkingWindow] = None
    slots: List[SlotPublic]
