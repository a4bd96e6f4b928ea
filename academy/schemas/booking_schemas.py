from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class BookingBase(BaseModel):
    court: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    coach_id: Optional[str] = None
    type: str = "campo"
    notes: Optional[str] = None

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingCreate(BookingBase):
    # Staff may book on behalf of another user; defaults to the caller
    user_id: Optional[str] = None
    status: Optional[Literal["pending", "confirmed"]] = None
    coach_confirmed: bool = False
    manager_confirmed: bool = False


class BatchBookingItem(BookingBase):
    user_id: str = Field(..., min_length=1)
    status: Optional[Literal["pending", "confirmed"]] = None
    coach_confirmed: bool = False
    manager_confirmed: bool = False


class BatchBookingRequest(BaseModel):
    bookings: List[BatchBookingItem] = Field(..., min_length=1)


class BookingRead(BaseModel):
    id: int
    user_id: str
    coach_id: Optional[str] = None
    court: str
    type: str
    start_time: datetime
    end_time: datetime
    status: str
    coach_confirmed: bool
    manager_confirmed: bool
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BatchBookingResult(BaseModel):
    success: bool = True
    bookings: List[BookingRead]
    count: int


class AvailabilitySlot(BaseModel):
    court: str
    start_time: datetime
    end_time: datetime


class AvailabilityRead(BaseModel):
    available: bool
    slot: AvailabilitySlot
    conflicting_bookings: int
