import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import or_, text
from sqlalchemy.orm import Session

from academy.core.errors import SlotConflictError
from academy.models import booking as booking_model
from academy.models import profile as profile_model
from academy.schemas import booking_schemas
from academy.services import notification_service

logger = logging.getLogger(__name__)

Booking = booking_model.Booking


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """
    Half-open intervals [start1, end1) and [start2, end2) overlap iff start1 < end2 and end1 > start2.
    Back-to-back slots (end1 == start2) do not overlap.
    """
    return start1 < end2 and end1 > start2


def to_naive_utc(value: datetime) -> datetime:
    # Times are stored as naive UTC
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_clock(value: str) -> time:
    """Parses an "HH:mm" string."""
    try:
        hour, minute = value.split(":")
        return time(int(hour), int(minute))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid start_time '{value}', expected HH:mm")


def lock_court(db: Session, court: str) -> None:
    """
    Serializes check-then-insert for one court until the current transaction ends.
    On PostgreSQL this is a transaction-scoped advisory lock keyed by the court label.
    File-backed SQLite engines open every transaction with BEGIN IMMEDIATE
    (see `build_engine`), so the whole database is already locked by this point.
    """
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:court))"), {"court": court})


def find_conflicts(
    db: Session,
    court: str,
    start_time: datetime,
    end_time: datetime,
    confirmed_only: bool = True,
    exclude_id: Optional[int] = None,
) -> List[booking_model.Booking]:
    start_time, end_time = to_naive_utc(start_time), to_naive_utc(end_time)
    query = db.query(Booking).filter(
        Booking.court == court,
        Booking.status != booking_model.CANCELLED,
        Booking.start_time < end_time,
        Booking.end_time > start_time,
    )
    if exclude_id is not None:
        query = query.filter(Booking.id != exclude_id)
    overlapping = query.order_by(Booking.start_time).all()

    if confirmed_only:
        return [b for b in overlapping if b.manager_confirmed]
    return overlapping


def check_availability(db: Session, court: str, day: date, start_time: str, slot_minutes: int = 60) -> booking_schemas.AvailabilityRead:
    slot_start = datetime.combine(day, parse_clock(start_time))
    slot_end = slot_start + timedelta(minutes=slot_minutes)

    conflicts = find_conflicts(db, court, slot_start, slot_end)
    return booking_schemas.AvailabilityRead(
        available=len(conflicts) == 0,
        slot=booking_schemas.AvailabilitySlot(court=court, start_time=slot_start, end_time=slot_end),
        conflicting_bookings=len(conflicts),
    )


def _new_booking(item, user_id: str, can_confirm: bool) -> booking_model.Booking:
    manager_confirmed = can_confirm and (item.manager_confirmed or item.status == booking_model.CONFIRMED)
    return Booking(
        user_id=user_id,
        coach_id=item.coach_id,
        court=item.court,
        type=item.type or "campo",
        start_time=to_naive_utc(item.start_time),
        end_time=to_naive_utc(item.end_time),
        status=booking_model.CONFIRMED if manager_confirmed else booking_model.PENDING,
        coach_confirmed=can_confirm and item.coach_confirmed,
        manager_confirmed=manager_confirmed,
        notes=item.notes,
    )


def create_booking(
    db: Session,
    booking_in: booking_schemas.BookingCreate,
    current_user: profile_model.Profile,
    min_advance_hours: int = 24,
    now: Optional[datetime] = None,
) -> booking_model.Booking:
    user_id = booking_in.user_id or current_user.id
    if user_id != current_user.id and not current_user.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to book on behalf of another user")

    now = now or datetime.utcnow()
    if to_naive_utc(booking_in.start_time) < now + timedelta(hours=min_advance_hours):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Bookings must be made at least {min_advance_hours} hours in advance",
        )

    db_booking = _new_booking(booking_in, user_id, can_confirm=current_user.is_staff)

    lock_court(db, db_booking.court)
    conflicts = find_conflicts(db, db_booking.court, db_booking.start_time, db_booking.end_time)
    if conflicts:
        logger.info("Booking rejected: %s %s-%s overlaps %d confirmed booking(s)",
                    db_booking.court, db_booking.start_time, db_booking.end_time, len(conflicts))
        raise SlotConflictError(
            "Time slot not available",
            conflicts=[{"start_time": db_booking.start_time, "court": db_booking.court, "conflict_count": len(conflicts)}],
        )

    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    return db_booking


def create_batch(
    db: Session,
    batch_in: booking_schemas.BatchBookingRequest,
    current_user: profile_model.Profile,
) -> List[booking_model.Booking]:
    """
    All-or-nothing: every slot is checked before any row is inserted, and a single
    conflict rejects the whole batch. The court locks are held until commit.
    """
    if not current_user.is_staff and any(item.user_id != current_user.id for item in batch_in.bookings):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to book on behalf of another user")

    new_bookings = [_new_booking(item, item.user_id, can_confirm=current_user.is_staff) for item in batch_in.bookings]

    for court in sorted({b.court for b in new_bookings}):
        lock_court(db, court)

    conflicts = []
    for index, booking in enumerate(new_bookings):
        conflict_count = len(find_conflicts(db, booking.court, booking.start_time, booking.end_time))
        # Confirmed entries of the same batch must not overlap each other either
        if booking.manager_confirmed:
            conflict_count += sum(
                1 for earlier in new_bookings[:index]
                if earlier.manager_confirmed and earlier.court == booking.court
                and intervals_overlap(earlier.start_time, earlier.end_time, booking.start_time, booking.end_time)
            )
        if conflict_count:
            conflicts.append({"start_time": booking.start_time, "court": booking.court, "conflict_count": conflict_count})

    if conflicts:
        logger.info("Batch of %d bookings rejected: %d slot(s) unavailable", len(new_bookings), len(conflicts))
        raise SlotConflictError(f"{len(conflicts)} slots not available", conflicts=conflicts)

    db.add_all(new_bookings)
    db.commit()
    for booking in new_bookings:
        db.refresh(booking)
    logger.info("Created batch of %d bookings", len(new_bookings))
    return new_bookings


def get_booking(db: Session, booking_id: int) -> Optional[booking_model.Booking]:
    return db.query(Booking).filter(Booking.id == booking_id).first()


def get_booking_for_user(db: Session, booking_id: int, current_user: profile_model.Profile) -> booking_model.Booking:
    db_booking = get_booking(db, booking_id)
    if not db_booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if not current_user.is_staff and current_user.id not in (db_booking.user_id, db_booking.coach_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this booking")
    return db_booking


def list_bookings(
    db: Session,
    current_user: profile_model.Profile,
    user_id: Optional[str] = None,
    coach_id: Optional[str] = None,
    court: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> List[booking_model.Booking]:
    query = db.query(Booking)
    if not current_user.is_staff:
        # Athletes and coaches only see what concerns them
        query = query.filter(or_(Booking.user_id == current_user.id, Booking.coach_id == current_user.id))
    if user_id:
        query = query.filter(Booking.user_id == user_id)
    if coach_id:
        query = query.filter(Booking.coach_id == coach_id)
    if court:
        query = query.filter(Booking.court == court)
    if date_from:
        query = query.filter(Booking.end_time > to_naive_utc(date_from))
    if date_to:
        query = query.filter(Booking.start_time < to_naive_utc(date_to))
    return query.order_by(Booking.start_time).all()


def confirm_booking(db: Session, booking_id: int) -> booking_model.Booking:
    db_booking = get_booking(db, booking_id)
    if not db_booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if db_booking.status == booking_model.CANCELLED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot confirm a cancelled booking")
    if db_booking.manager_confirmed:
        return db_booking

    lock_court(db, db_booking.court)
    conflicts = find_conflicts(db, db_booking.court, db_booking.start_time, db_booking.end_time, exclude_id=db_booking.id)
    if conflicts:
        raise SlotConflictError(
            "Time slot already taken by a confirmed booking",
            conflicts=[{"start_time": db_booking.start_time, "court": db_booking.court, "conflict_count": len(conflicts)}],
        )

    db_booking.manager_confirmed = True
    db_booking.status = booking_model.CONFIRMED
    db.commit()
    db.refresh(db_booking)
    logger.info("Booking %s confirmed on %s at %s", db_booking.id, db_booking.court, db_booking.start_time)

    notification_service.notify_users(
        db, [db_booking.user_id],
        title="Prenotazione confermata",
        message=f"La tua prenotazione su {db_booking.court} del {db_booking.start_time:%d/%m/%Y %H:%M} è stata confermata.",
        type="booking",
        link=f"/bookings/{db_booking.id}",
    )
    return db_booking


def cancel_booking(db: Session, booking_id: int, current_user: profile_model.Profile) -> booking_model.Booking:
    db_booking = get_booking(db, booking_id)
    if not db_booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if db_booking.user_id != current_user.id and not current_user.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to cancel this booking")
    if db_booking.status == booking_model.CANCELLED:
        return db_booking

    db_booking.status = booking_model.CANCELLED
    db.commit()
    db.refresh(db_booking)

    if db_booking.user_id != current_user.id:
        notification_service.notify_users(
            db, [db_booking.user_id],
            title="Prenotazione annullata",
            message=f"La tua prenotazione su {db_booking.court} del {db_booking.start_time:%d/%m/%Y %H:%M} è stata annullata.",
            type="booking",
            link=f"/bookings/{db_booking.id}",
        )
    return db_booking
