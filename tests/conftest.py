import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool

from barberbook import models  # noqa: F401
from barberbook.auth import create_access_token, hash_password
from barberbook.db import get_session, use_immediate_transactions
from barberbook.main import app
from barberbook.models import User, WorkingHours


@pytest.fixture
def engine():
    engine = use_immediate_transactions(create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session):
    def override_get_session():
        return session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def next_weekday(weekday: int) -> date:
    """First date strictly after today falling on weekday (0=Mon)."""
    today = date.today()
    days_ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


@pytest.fixture
def booking_day() -> date:
    # a Tuesday at least a day away, so nothing is in the past
    return next_weekday(1)


def make_user(session, email, name, role="BARBER", password="password123", is_active=True):
    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def barber(session):
    user = make_user(session, "mike@example.com", "Mike")
    # Mon-Sat 09:00-17:00, Sunday off
    for weekday in range(7):
        session.add(WorkingHours(
            barber_id=user.id,
            weekday=weekday,
            start_time=time(9, 0),
            end_time=time(17, 0),
            is_working=weekday != 6,
        ))
    session.commit()
    return user


@pytest.fixture
def admin(session):
    return make_user(session, "owner@example.com", "Alex Owner", role="ADMIN")


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))
