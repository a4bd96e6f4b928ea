import random
from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from academy.api.dependencies import get_rng
from academy.core.config import Settings
from academy.core.database import build_engine, build_session_factory
from academy.core.security import create_access_token
from academy.main import create_app
from academy.models import Base
from academy.models import booking as booking_model
from academy.models import participant as participant_model
from academy.models import profile as profile_model
from academy.models import tournament as tournament_model

TEST_SECRET_KEY = "test-secret-key"

# Far enough ahead to satisfy the minimum booking notice
BOOKING_DAY = date.today() + timedelta(days=14)


def at(hour: int, minute: int = 0, day: date = BOOKING_DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite://", SECRET_KEY=TEST_SECRET_KEY, LOG_LEVEL="WARNING")


# --- Service-level fixtures ---

@pytest.fixture
def db():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


# --- Route-level fixtures ---

@pytest.fixture
def app(settings):
    app = create_app(settings)
    app.dependency_overrides[get_rng] = lambda: random.Random(42)
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def client_db(client):
    """Session on the same in-memory database the client talks to."""
    session = client.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def auth_headers(profile_id: str) -> dict:
    token = create_access_token({"sub": profile_id}, TEST_SECRET_KEY)
    return {"Authorization": f"Bearer {token}"}


# --- Factories ---

def make_profile(db, profile_id: str, role: str = profile_model.ATLETA) -> profile_model.Profile:
    profile = profile_model.Profile(id=profile_id, full_name=profile_id.title(), email=f"{profile_id}@academy.test", role=role)
    db.add(profile)
    db.commit()
    return profile


def make_booking(db, user_id: str, court: str, start: datetime, end: datetime, confirmed: bool = True) -> booking_model.Booking:
    booking = booking_model.Booking(
        user_id=user_id,
        court=court,
        type="campo",
        start_time=start,
        end_time=end,
        status=booking_model.CONFIRMED if confirmed else booking_model.PENDING,
        manager_confirmed=confirmed,
    )
    db.add(booking)
    db.commit()
    return booking


def make_tournament(db, tournament_type: str = tournament_model.GIRONE_ELIMINAZIONE, stage: str = tournament_model.REGISTRATION, **kwargs) -> tournament_model.Tournament:
    tournament = tournament_model.Tournament(
        title=kwargs.pop("title", "Torneo Sociale"),
        tournament_type=tournament_type,
        current_stage=stage,
        **kwargs,
    )
    db.add(tournament)
    db.commit()
    return tournament


def make_participants(db, tournament, count: int, status: str = participant_model.CONFIRMED, prefix: str = "player"):
    participants = []
    for i in range(count):
        profile = make_profile(db, f"{prefix}{tournament.id}-{i + 1}")
        participant = participant_model.TournamentParticipant(tournament_id=tournament.id, user_id=profile.id, status=status)
        db.add(participant)
        participants.append(participant)
    db.commit()
    return participants


@pytest.fixture
def admin(db):
    return make_profile(db, "admin", profile_model.ADMIN)


@pytest.fixture
def athlete(db):
    return make_profile(db, "athlete", profile_model.ATLETA)
