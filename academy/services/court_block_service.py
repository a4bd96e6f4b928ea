import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from academy.core.errors import SlotConflictError
from academy.models import court_block as court_block_model
from academy.models import profile as profile_model
from academy.schemas import court_block_schemas
from academy.services import booking_service

logger = logging.getLogger(__name__)

CourtBlock = court_block_model.CourtBlock


def create_court_block(
    db: Session, block_in: court_block_schemas.CourtBlockCreate, current_user: profile_model.Profile
) -> court_block_model.CourtBlock:
    start_time = booking_service.to_naive_utc(block_in.start_time)
    end_time = booking_service.to_naive_utc(block_in.end_time)

    booking_service.lock_court(db, block_in.court)
    # Any live booking blocks a closure, confirmed or not
    existing = booking_service.find_conflicts(db, block_in.court, start_time, end_time, confirmed_only=False)
    if existing:
        raise SlotConflictError(
            "Bookings exist in this slot. Cancel them before blocking the court.",
            conflicting_bookings=len(existing),
        )

    db_block = CourtBlock(
        court=block_in.court,
        start_time=start_time,
        end_time=end_time,
        reason=block_in.reason or "Blocco manuale",
        is_recurring=block_in.is_recurring,
        recurrence_pattern=block_in.recurrence_pattern,
        recurrence_end_date=block_in.recurrence_end_date,
        created_by=current_user.id,
    )
    db.add(db_block)
    db.commit()
    db.refresh(db_block)
    logger.info("Court %s blocked from %s to %s by %s", db_block.court, db_block.start_time, db_block.end_time, current_user.id)
    return db_block


def list_court_blocks(
    db: Session,
    court: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> List[court_block_model.CourtBlock]:
    query = db.query(CourtBlock)
    if court:
        query = query.filter(CourtBlock.court == court)
    if date_from:
        query = query.filter(CourtBlock.end_time >= booking_service.to_naive_utc(date_from))
    if date_to:
        query = query.filter(CourtBlock.start_time <= booking_service.to_naive_utc(date_to))
    return query.order_by(CourtBlock.start_time).all()


def delete_court_block(db: Session, block_id: int) -> bool:
    db_block = db.query(CourtBlock).filter(CourtBlock.id == block_id).first()
    if not db_block:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court block not found")
    db.delete(db_block)
    db.commit()
    return True
