from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Index
from sqlalchemy.orm import relationship
from academy.core.database import Base
import datetime

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (Index("ix_bookings_court_start", "court", "start_time"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("profiles.id"), index=True)
    coach_id = Column(String, ForeignKey("profiles.id"), nullable=True)
    court = Column(String, nullable=False)  # e.g. "Campo 1"
    type = Column(String, default="campo")  # e.g. "campo", "lezione_privata", "lezione_gruppo"
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, default=PENDING)  # "pending", "confirmed", "cancelled"
    coach_confirmed = Column(Boolean, default=False)
    manager_confirmed = Column(Boolean, default=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    user = relationship("Profile", back_populates="bookings", foreign_keys=[user_id])
    coach = relationship("Profile", foreign_keys=[coach_id])
