import logging
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class SlotConflictError(Exception):
    """
    A requested time slot collides with existing reservations.
    Not a server failure: the handler answers 409 so callers can branch on it.
    """

    def __init__(self, message: str, conflicts: Optional[List[dict]] = None, conflicting_bookings: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.conflicts = conflicts
        self.conflicting_bookings = conflicting_bookings

    def to_content(self) -> dict:
        content = {"error": self.message}
        if self.conflicts is not None:
            content["conflicts"] = self.conflicts
        if self.conflicting_bookings is not None:
            content["conflicting_bookings"] = self.conflicting_bookings
        return content


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(SlotConflictError)
    async def slot_conflict_handler(request: Request, exc: SlotConflictError):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=jsonable_encoder(exc.to_content()))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Malformed or missing input is a plain client error
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        message = str(getattr(exc, "orig", None) or exc)
        logger.error("Database error on %s %s: %s", request.method, request.url.path, message)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": message})
