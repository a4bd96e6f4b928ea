from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from academy.core.database import Base
import datetime


class TournamentGroup(Base):
    __tablename__ = "tournament_groups"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), index=True)
    group_name = Column(String, nullable=False)  # e.g. "Gruppo A"
    group_order = Column(Integer, nullable=False)
    max_participants = Column(Integer, nullable=True)
    advancement_count = Column(Integer, default=2)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    tournament = relationship("Tournament", back_populates="groups")
    participants = relationship("TournamentParticipant", back_populates="group")
