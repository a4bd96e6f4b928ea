from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, JSON
from sqlalchemy.orm import relationship
from academy.core.database import Base
import datetime

STAGE_GROUPS = "groups"
STAGE_KNOCKOUT = "knockout"

SCHEDULED = "scheduled"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

# Linear lifecycle, index gives the position of each status
STATUS_ORDER = (SCHEDULED, IN_PROGRESS, COMPLETED)


class TournamentMatch(Base):
    __tablename__ = "tournament_matches"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), index=True)
    group_id = Column(Integer, ForeignKey("tournament_groups.id"), nullable=True)
    stage = Column(String, default=STAGE_KNOCKOUT)  # "groups" or "knockout"
    round_name = Column(String, nullable=True)  # e.g. "Gruppo A", "Semifinali"
    round_order = Column(Integer, default=1)
    match_number = Column(Integer, nullable=True)
    player1_id = Column(Integer, ForeignKey("tournament_participants.id"), nullable=True)
    player2_id = Column(Integer, ForeignKey("tournament_participants.id"), nullable=True)  # None for a bye
    scheduled_time = Column(DateTime, nullable=True)
    court = Column(String, nullable=True)
    status = Column(String, default=SCHEDULED)
    player1_score = Column(Integer, nullable=True)  # sets won
    player2_score = Column(Integer, nullable=True)
    score_details = Column(JSON, nullable=True)  # [{"player1_score": 6, "player2_score": 4}, ...]
    winner_id = Column(Integer, ForeignKey("tournament_participants.id"), nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    tournament = relationship("Tournament", back_populates="matches")
    group = relationship("TournamentGroup")
    player1 = relationship("TournamentParticipant", foreign_keys=[player1_id])
    player2 = relationship("TournamentParticipant", foreign_keys=[player2_id])
    winner = relationship("TournamentParticipant", foreign_keys=[winner_id])
