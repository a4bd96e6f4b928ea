import random

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from academy.core.config import Settings
from academy.services import standings


def get_db(request: Request):
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rng() -> random.Random:
    # Overridden in tests with a seeded instance
    return random.Random()


def get_standings_strategy(settings: Settings = Depends(get_settings)) -> standings.StandingsStrategy:
    return standings.build_strategy(settings)
