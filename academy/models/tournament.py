from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, JSON
from sqlalchemy.orm import relationship
from academy.core.database import Base
import datetime

ELIMINAZIONE_DIRETTA = "eliminazione_diretta"  # single elimination
GIRONE_ELIMINAZIONE = "girone_eliminazione"  # groups, then knockout
CAMPIONATO = "campionato"  # single round-robin league

REGISTRATION = "registration"
GROUPS = "groups"
KNOCKOUT = "knockout"
COMPLETED = "completed"


class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    tournament_type = Column(String, nullable=False)
    current_stage = Column(String, default=REGISTRATION)
    max_participants = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    match_format = Column(String, default="best_of_3")
    surface_type = Column(String, nullable=True)  # e.g. "terra", "cemento", "erba"
    group_stage_config = Column(JSON, nullable=True)
    knockout_stage_config = Column(JSON, nullable=True)
    created_by = Column(String, ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    participants = relationship("TournamentParticipant", back_populates="tournament")
    groups = relationship("TournamentGroup", back_populates="tournament", order_by="TournamentGroup.group_order")
    matches = relationship("TournamentMatch", back_populates="tournament")
