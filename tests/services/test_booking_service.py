import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from academy.core.database import build_engine, build_session_factory
from academy.core.errors import SlotConflictError
from academy.models import Base
from academy.models import booking as booking_model
from academy.models import profile as profile_model
from academy.schemas import booking_schemas
from academy.services import booking_service
from conftest import BOOKING_DAY, at, make_booking, make_profile

COURT = "Campo 1"


class TestIntervalsOverlap:

    def test_overlapping_intervals(self):
        assert booking_service.intervals_overlap(at(10), at(11), at(10, 30), at(11, 30))
        assert booking_service.intervals_overlap(at(10, 30), at(11, 30), at(10), at(11))

    def test_containment_overlaps(self):
        assert booking_service.intervals_overlap(at(9), at(12), at(10), at(11))
        assert booking_service.intervals_overlap(at(10), at(11), at(9), at(12))

    def test_adjacent_intervals_do_not_overlap(self):
        assert not booking_service.intervals_overlap(at(9), at(10), at(10), at(11))
        assert not booking_service.intervals_overlap(at(11), at(12), at(10), at(11))

    def test_disjoint_intervals(self):
        assert not booking_service.intervals_overlap(at(8), at(9), at(10), at(11))


class TestCheckAvailability:

    @pytest.fixture(autouse=True)
    def existing_booking(self, db, athlete):
        return make_booking(db, athlete.id, COURT, at(10), at(11))

    def test_adjacent_slot_is_available(self, db):
        result = booking_service.check_availability(db, COURT, BOOKING_DAY, "09:00")
        assert result.available is True
        assert result.conflicting_bookings == 0
        assert result.slot.start_time == at(9)
        assert result.slot.end_time == at(10)

    def test_overlapping_slot_is_unavailable(self, db):
        result = booking_service.check_availability(db, COURT, BOOKING_DAY, "10:30")
        assert result.available is False
        assert result.conflicting_bookings == 1

    def test_other_court_is_free(self, db):
        assert booking_service.check_availability(db, "Campo 2", BOOKING_DAY, "10:00").available is True

    def test_pending_and_cancelled_bookings_do_not_block(self, db, athlete):
        make_booking(db, athlete.id, COURT, at(14), at(15), confirmed=False)
        cancelled = make_booking(db, athlete.id, COURT, at(16), at(17))
        cancelled.status = booking_model.CANCELLED
        db.commit()

        assert booking_service.check_availability(db, COURT, BOOKING_DAY, "14:00").available is True
        assert booking_service.check_availability(db, COURT, BOOKING_DAY, "16:00").available is True

    def test_slot_length_is_configurable(self, db):
        result = booking_service.check_availability(db, COURT, BOOKING_DAY, "09:00", slot_minutes=90)
        assert result.available is False

    def test_malformed_start_time(self, db):
        with pytest.raises(HTTPException) as exc_info:
            booking_service.check_availability(db, COURT, BOOKING_DAY, "nine")
        assert exc_info.value.status_code == 400


class TestCreateBooking:

    def _booking_in(self, start, end, **kwargs):
        return booking_schemas.BookingCreate(court=COURT, start_time=start, end_time=end, **kwargs)

    def test_athlete_booking_is_pending(self, db, athlete):
        booking = booking_service.create_booking(db, self._booking_in(at(10), at(11), status="confirmed"), athlete)
        assert booking.id is not None
        assert booking.user_id == athlete.id
        assert booking.status == booking_model.PENDING
        assert booking.manager_confirmed is False

    def test_staff_booking_can_be_confirmed(self, db, admin, athlete):
        booking = booking_service.create_booking(
            db, self._booking_in(at(10), at(11), user_id=athlete.id, manager_confirmed=True), admin
        )
        assert booking.user_id == athlete.id
        assert booking.status == booking_model.CONFIRMED
        assert booking.manager_confirmed is True

    def test_conflict_with_confirmed_booking(self, db, athlete):
        make_booking(db, athlete.id, COURT, at(10), at(11))
        with pytest.raises(SlotConflictError) as exc_info:
            booking_service.create_booking(db, self._booking_in(at(10, 30), at(11, 30)), athlete)
        assert exc_info.value.conflicts[0]["conflict_count"] == 1
        assert db.query(booking_model.Booking).count() == 1

    def test_back_to_back_booking_is_accepted(self, db, athlete):
        make_booking(db, athlete.id, COURT, at(10), at(11))
        booking = booking_service.create_booking(db, self._booking_in(at(11), at(12)), athlete)
        assert booking.start_time == at(11)

    def test_minimum_notice(self, db, athlete):
        now = at(9)
        with pytest.raises(HTTPException) as exc_info:
            booking_service.create_booking(db, self._booking_in(at(10), at(11)), athlete, min_advance_hours=24, now=now)
        assert exc_info.value.status_code == 400

    def test_athlete_cannot_book_for_someone_else(self, db, athlete):
        other = make_profile(db, "other")
        with pytest.raises(HTTPException) as exc_info:
            booking_service.create_booking(db, self._booking_in(at(10), at(11), user_id=other.id), athlete)
        assert exc_info.value.status_code == 403

    def test_timezone_aware_times_are_stored_as_utc(self, db, athlete):
        start = at(10).replace(tzinfo=timezone(timedelta(hours=2)))
        booking = booking_service.create_booking(db, self._booking_in(start, start + timedelta(hours=1)), athlete)
        assert booking.start_time == at(8)


class TestCreateBatch:

    def _item(self, user_id, start, end, **kwargs):
        return booking_schemas.BatchBookingItem(user_id=user_id, court=COURT, start_time=start, end_time=end, **kwargs)

    def test_batch_is_all_or_nothing(self, db, admin, athlete):
        make_booking(db, athlete.id, COURT, at(12), at(13))
        batch = booking_schemas.BatchBookingRequest(bookings=[
            self._item(athlete.id, at(9), at(10)),
            self._item(athlete.id, at(12, 30), at(13, 30)),
            self._item(athlete.id, at(15), at(16)),
        ])

        with pytest.raises(SlotConflictError) as exc_info:
            booking_service.create_batch(db, batch, admin)

        conflicts = exc_info.value.conflicts
        assert len(conflicts) == 1
        assert conflicts[0]["start_time"] == at(12, 30)
        assert conflicts[0]["court"] == COURT
        assert conflicts[0]["conflict_count"] == 1
        assert db.query(booking_model.Booking).count() == 1

    def test_batch_inserts_every_booking(self, db, admin, athlete):
        batch = booking_schemas.BatchBookingRequest(bookings=[
            self._item(athlete.id, at(9), at(10), manager_confirmed=True),
            self._item(athlete.id, at(10), at(11), manager_confirmed=True),
        ])
        bookings = booking_service.create_batch(db, batch, admin)
        assert len(bookings) == 2
        assert all(b.status == booking_model.CONFIRMED for b in bookings)
        assert db.query(booking_model.Booking).count() == 2

    def test_confirmed_entries_of_one_batch_cannot_overlap(self, db, admin, athlete):
        batch = booking_schemas.BatchBookingRequest(bookings=[
            self._item(athlete.id, at(9), at(10), manager_confirmed=True),
            self._item(athlete.id, at(9, 30), at(10, 30), manager_confirmed=True),
        ])
        with pytest.raises(SlotConflictError):
            booking_service.create_batch(db, batch, admin)
        assert db.query(booking_model.Booking).count() == 0

    def test_athlete_batch_for_other_user_is_forbidden(self, db, athlete):
        other = make_profile(db, "other")
        batch = booking_schemas.BatchBookingRequest(bookings=[self._item(other.id, at(9), at(10))])
        with pytest.raises(HTTPException) as exc_info:
            booking_service.create_batch(db, batch, athlete)
        assert exc_info.value.status_code == 403


class TestConfirmAndCancel:

    def test_confirm_pending_booking_notifies_user(self, db, athlete):
        booking = make_booking(db, athlete.id, COURT, at(10), at(11), confirmed=False)
        confirmed = booking_service.confirm_booking(db, booking.id)
        assert confirmed.manager_confirmed is True
        assert confirmed.status == booking_model.CONFIRMED
        assert [n.title for n in athlete.notifications] == ["Prenotazione confermata"]

    def test_confirm_conflicting_booking(self, db, athlete):
        make_booking(db, athlete.id, COURT, at(10), at(11))
        pending = make_booking(db, athlete.id, COURT, at(10, 30), at(11, 30), confirmed=False)
        with pytest.raises(SlotConflictError):
            booking_service.confirm_booking(db, pending.id)

    def test_confirm_unknown_booking(self, db):
        with pytest.raises(HTTPException) as exc_info:
            booking_service.confirm_booking(db, 999)
        assert exc_info.value.status_code == 404

    def test_owner_can_cancel(self, db, athlete):
        booking = make_booking(db, athlete.id, COURT, at(10), at(11))
        cancelled = booking_service.cancel_booking(db, booking.id, athlete)
        assert cancelled.status == booking_model.CANCELLED
        assert booking_service.check_availability(db, COURT, BOOKING_DAY, "10:00").available is True

    def test_stranger_cannot_cancel(self, db, athlete):
        booking = make_booking(db, athlete.id, COURT, at(10), at(11))
        other = make_profile(db, "other")
        with pytest.raises(HTTPException) as exc_info:
            booking_service.cancel_booking(db, booking.id, other)
        assert exc_info.value.status_code == 403

    def test_list_bookings_is_scoped_for_athletes(self, db, admin, athlete):
        other = make_profile(db, "other")
        make_booking(db, athlete.id, COURT, at(10), at(11))
        make_booking(db, other.id, COURT, at(12), at(13))

        assert [b.user_id for b in booking_service.list_bookings(db, athlete)] == [athlete.id]
        assert len(booking_service.list_bookings(db, admin)) == 2
        assert len(booking_service.list_bookings(db, admin, court="Campo 2")) == 0


class TestCourtLocking:

    def test_postgres_takes_an_advisory_lock_per_court(self):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "postgresql"

        booking_service.lock_court(session, COURT)

        session.execute.assert_called_once()
        statement, params = session.execute.call_args.args
        assert "pg_advisory_xact_lock" in str(statement)
        assert params == {"court": COURT}

    def test_sqlite_needs_no_advisory_lock(self, db):
        with patch.object(db, "execute") as execute:
            booking_service.lock_court(db, COURT)
        execute.assert_not_called()

    def test_batch_locks_each_court_once_in_sorted_order(self, admin):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "postgresql"
        batch = booking_schemas.BatchBookingRequest(bookings=[
            booking_schemas.BatchBookingItem(user_id=admin.id, court=court, start_time=at(hour), end_time=at(hour + 1))
            for court, hour in (("Campo 2", 9), ("Campo 1", 9), ("Campo 2", 11))
        ])

        with patch.object(booking_service, "find_conflicts", return_value=[]):
            booking_service.create_batch(session, batch, admin)

        locked = [c.args[1]["court"] for c in session.execute.call_args_list]
        assert locked == ["Campo 1", "Campo 2"]

    def test_concurrent_requests_cannot_double_book(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'academy.db'}")
        Base.metadata.create_all(bind=engine)
        SessionLocal = build_session_factory(engine)
        setup = SessionLocal()
        make_profile(setup, "admin", profile_model.ADMIN)
        setup.close()

        real_find_conflicts = booking_service.find_conflicts

        def slow_find_conflicts(*args, **kwargs):
            conflicts = real_find_conflicts(*args, **kwargs)
            # Leave the other request time to run its own check before this one inserts
            time.sleep(0.3)
            return conflicts

        def book(_):
            session = SessionLocal()
            try:
                admin = session.query(profile_model.Profile).filter(profile_model.Profile.id == "admin").first()
                booking_in = booking_schemas.BookingCreate(court=COURT, start_time=at(10), end_time=at(11), manager_confirmed=True)
                return booking_service.create_booking(session, booking_in, admin).id
            except SlotConflictError as e:
                return e
            finally:
                session.close()

        with patch.object(booking_service, "find_conflicts", side_effect=slow_find_conflicts):
            with ThreadPoolExecutor(max_workers=2) as pool:
                outcomes = list(pool.map(book, range(2)))

        check = SessionLocal()
        confirmed = check.query(booking_model.Booking).filter(
            booking_model.Booking.court == COURT,
            booking_model.Booking.manager_confirmed == True,
        ).count()
        check.close()
        engine.dispose()

        assert confirmed == 1
        assert sum(isinstance(outcome, SlotConflictError) for outcome in outcomes) == 1
