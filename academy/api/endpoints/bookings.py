from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from academy.api.dependencies import get_db, get_settings
from academy.core.config import Settings
from academy.models import profile as profile_model
from academy.schemas import booking_schemas
from academy.services import auth_service, booking_service

router = APIRouter()

@router.get("/availability", response_model=booking_schemas.AvailabilityRead)
async def check_availability_endpoint(
    day: date = Query(..., alias="date"),
    court: str = Query(..., min_length=1),
    start_time: str = Query(..., pattern=r"^\d{1,2}:\d{2}$"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return booking_service.check_availability(
        db=db, court=court, day=day, start_time=start_time, slot_minutes=settings.BOOKING_SLOT_MINUTES
    )

@router.get("/", response_model=List[booking_schemas.BookingRead])
async def list_bookings_endpoint(
    user_id: Optional[str] = None,
    coach_id: Optional[str] = None,
    court: Optional[str] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return booking_service.list_bookings(
        db=db, current_user=current_user, user_id=user_id, coach_id=coach_id,
        court=court, date_from=date_from, date_to=date_to,
    )

@router.post("/", response_model=booking_schemas.BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_in: booking_schemas.BookingCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return booking_service.create_booking(
        db=db, booking_in=booking_in, current_user=current_user,
        min_advance_hours=settings.BOOKING_MIN_ADVANCE_HOURS,
    )

@router.post("/batch", response_model=booking_schemas.BatchBookingResult, status_code=status.HTTP_201_CREATED)
async def create_batch_bookings_endpoint(
    batch_in: booking_schemas.BatchBookingRequest,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    bookings = booking_service.create_batch(db=db, batch_in=batch_in, current_user=current_user)
    return booking_schemas.BatchBookingResult(
        success=True,
        bookings=[booking_schemas.BookingRead.model_validate(b) for b in bookings],
        count=len(bookings),
    )

@router.get("/{booking_id}", response_model=booking_schemas.BookingRead)
async def get_booking_endpoint(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return booking_service.get_booking_for_user(db=db, booking_id=booking_id, current_user=current_user)

@router.post("/{booking_id}/confirm", response_model=booking_schemas.BookingRead)
async def confirm_booking_endpoint(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return booking_service.confirm_booking(db=db, booking_id=booking_id)

@router.post("/{booking_id}/cancel", response_model=booking_schemas.BookingRead)
async def cancel_booking_endpoint(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return booking_service.cancel_booking(db=db, booking_id=booking_id, current_user=current_user)
