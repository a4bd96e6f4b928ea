from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from academy.core.database import Base
import datetime

PENDING = "pending"
CONFIRMED = "confirmed"
WITHDRAWN = "withdrawn"
ELIMINATED = "eliminated"


class TournamentParticipant(Base):
    __tablename__ = "tournament_participants"
    __table_args__ = (UniqueConstraint("tournament_id", "user_id", name="uq_participant_tournament_user"),)

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), index=True)
    user_id = Column(String, ForeignKey("profiles.id"))
    status = Column(String, default=PENDING)  # "pending", "confirmed", "withdrawn", "eliminated"
    seed = Column(Integer, nullable=True)
    group_id = Column(Integer, ForeignKey("tournament_groups.id"), nullable=True)
    group_position = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    user = relationship("Profile", back_populates="participations")
    tournament = relationship("Tournament", back_populates="participants")
    group = relationship("TournamentGroup", back_populates="participants")
