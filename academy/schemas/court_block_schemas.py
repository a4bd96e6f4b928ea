from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class CourtBlockCreate(BaseModel):
    court: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    reason: Optional[str] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    recurrence_end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class CourtBlockRead(BaseModel):
    id: int
    court: str
    start_time: datetime
    end_time: datetime
    reason: str
    is_recurring: bool
    recurrence_pattern: Optional[str] = None
    recurrence_end_date: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
