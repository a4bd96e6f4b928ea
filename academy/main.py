import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from academy.api.endpoints import bookings as booking_endpoints
from academy.api.endpoints import court_blocks as court_block_endpoints
from academy.api.endpoints import matches as match_endpoints
from academy.api.endpoints import notifications as notification_endpoints
from academy.api.endpoints import tournaments as tournament_endpoints
from academy.core.config import Settings
from academy.core.database import build_engine, build_session_factory
from academy.core.errors import register_exception_handlers
from academy.core.logging_config import configure_logging
from academy.models import Base

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings.DATABASE_URL)
        Base.metadata.create_all(bind=engine)
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            engine.dispose()

    app = FastAPI(title="Tennis Academy API", lifespan=lifespan)
    app.state.settings = settings
    register_exception_handlers(app)

    # Include routers
    app.include_router(booking_endpoints.router, prefix="/bookings", tags=["Bookings"])
    app.include_router(court_block_endpoints.router, prefix="/court-blocks", tags=["Court blocks"])
    app.include_router(match_endpoints.router, prefix="/tournaments", tags=["Matches"])
    app.include_router(tournament_endpoints.router, prefix="/tournaments", tags=["Tournaments"])
    app.include_router(notification_endpoints.router, prefix="/notifications", tags=["Notifications"])

    return app


def main() -> None:
    settings = Settings()
    uvicorn.run("academy.main:create_app", factory=True, host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
