# barberbook/routers/blockouts_routes.py

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from barberbook.db import get_session
from barberbook.models import TimeBlockout
from barberbook.schemas import BlockoutCreate, BlockoutPublic
from barberbook.auth import get_current_user
from barberbook.deps import require_role, require_self_or_admin
from barberbook.data import STAFF_ROLES
from barberbook.scheduling import to_shop_time
from barberbook.routers.barbers_routes import get_active_barber

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/blockouts",
    tags=["blockouts"],
)


@router.post("", response_model=BlockoutPublic, status_code=201)
def create_blockout(
    block: BlockoutCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    user_id = block.user_id or current_user["id"]
    require_self_or_admin(current_user, user_id)
    get_active_barber(session, user_id)

    starts_at = to_shop_time(block.starts_at)
    ends_at = to_shop_time(block.ends_at)
    if ends_at <= starts_at:
        raise HTTPException(status_code=422, detail="Blocked time must end after it starts")

    # Existing bookings are left alone; blocking only stops new ones
    db_block = TimeBlockout(
        user_id=user_id,
        starts_at=starts_at,
        ends_at=ends_at,
        reason=block.reason,
    )
    session.add(db_block)
    session.commit()
    session.refresh(db_block)
    logger.info("Blocked %s - %s for %s", starts_at, ends_at, user_id)
    return db_block


@router.get("", response_model=List[BlockoutPublic])
def list_blockouts(
    user_id: Optional[str] = None,
    on_date: Optional[date] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)

    stmt = select(TimeBlockout)
    if current_user["role"] != "ADMIN":
        stmt = stmt.where(TimeBlockout.user_id == current_user["id"])
    elif user_id is not None:
        stmt = stmt.where(TimeBlockout.user_id == user_id)

    if on_date is not None:
        # anything touching the day, multi-day blocks included
        day_start_dt = datetime.combine(on_date, datetime.min.time())
        day_end_dt = day_start_dt + timedelta(days=1)
        stmt = stmt.where(TimeBlockout.starts_at < day_end_dt).where(TimeBlockout.ends_at > day_start_dt)

    return session.exec(stmt.order_by(TimeBlockout.starts_at)).all()


@router.delete("/{block_id}", status_code=204)
def delete_blockout(
    block_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)

    target = session.get(TimeBlockout, block_id)
    if target is None:
        raise HTTPException(status_code=404, detail="Blocked time not found")
    owner_id = target.user_id
    require_self_or_admin(current_user, owner_id)

    session.delete(target)
    session.commit()
    logger.info("Removed blocked time %s for %s", block_id, owner_id)
