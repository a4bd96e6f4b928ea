from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean
from sqlalchemy.orm import relationship
from academy.core.database import Base
import datetime


class CourtBlock(Base):
    __tablename__ = "court_blocks"

    id = Column(Integer, primary_key=True, index=True)
    court = Column(String, nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reason = Column(String, default="Blocco manuale")
    is_recurring = Column(Boolean, default=False)
    recurrence_pattern = Column(String, nullable=True)  # e.g. "weekly"
    recurrence_end_date = Column(DateTime, nullable=True)
    created_by = Column(String, ForeignKey("profiles.id"))
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    creator = relationship("Profile")
