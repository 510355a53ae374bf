# barberbook/models.py

from typing import Optional
from datetime import datetime, time
from uuid import uuid4

from sqlalchemy import Column, DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field


def new_id() -> str:
    return uuid4().hex


class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str
    password_hash: str
    role: str  # ADMIN, BARBER or BEAUTICIAN
    is_active: bool = True
    bio: Optional[str] = None


class WorkingHours(SQLModel, table=True):
    __tablename__ = "working_hours"
    __table_args__ = (
        UniqueConstraint("barber_id", "weekday", name="uq_barber_weekday"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    barber_id: str = Field(foreign_key="user.id", index=True)
    weekday: int  # 0=Mon ... 6=Sun
    start_time: time
    end_time: time
    is_working: bool = True


class Appointment(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    reference_number: str = Field(index=True, unique=True)

    # naive shop-local wall-clock times
    starts_at: datetime = Field(sa_column=Column(DateTime(timezone=False), index=True, nullable=False))
    ends_at: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    barber_id: str = Field(foreign_key="user.id", index=True)

    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    notes: Optional[str] = None

    service: str
    service_price: int  # cents
    service_duration: int  # minutes
    status: str = "CONFIRMED"
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))


class TimeBlockout(SQLModel, table=True):
    __tablename__ = "time_blockout"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    starts_at: datetime = Field(sa_column=Column(DateTime(timezone=False), index=True, nullable=False))
    ends_at: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
