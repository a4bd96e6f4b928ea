from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

ParticipantStatus = Literal["pending", "confirmed", "withdrawn", "eliminated"]


class ParticipantCreate(BaseModel):
    # Staff may register another user; defaults to the caller
    user_id: Optional[str] = None
    seed: Optional[int] = Field(None, ge=1)


class ParticipantUpdate(BaseModel):
    status: Optional[ParticipantStatus] = None
    seed: Optional[int] = Field(None, ge=1)


class ParticipantRead(BaseModel):
    id: int
    tournament_id: int
    user_id: str
    status: str
    seed: Optional[int] = None
    group_id: Optional[int] = None
    group_position: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
