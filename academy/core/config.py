from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./academy.db"
    SECRET_KEY: str = "YOUR_SECRET_KEY_HERE"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    LOG_LEVEL: str = "INFO"

    # Bookings
    BOOKING_MIN_ADVANCE_HOURS: int = 24
    BOOKING_SLOT_MINUTES: int = 60

    # Tournaments
    DEFAULT_ADVANCEMENT_COUNT: int = 2
    POINTS_PER_WIN: int = 2
    STANDINGS_BACKEND: str = "in_process"  # "in_process" or "database"

    class Config:
        env_file = ".env"
