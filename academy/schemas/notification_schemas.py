from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class NotificationBase(BaseModel):
    title: str
    message: str
    type: str  # e.g. "booking", "tournament", "general"
    link: Optional[str] = None


class NotificationRead(NotificationBase):
    id: int
    user_id: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
