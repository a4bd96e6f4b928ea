from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

MatchStage = Literal["groups", "knockout"]
MatchStatus = Literal["scheduled", "in_progress", "completed"]


class SetScore(BaseModel):
    player1_score: int = Field(..., ge=0)
    player2_score: int = Field(..., ge=0)


class MatchCreate(BaseModel):
    player1_id: Optional[int] = None
    player2_id: Optional[int] = None
    group_id: Optional[int] = None
    round_name: Optional[str] = None
    round_order: int = 1
    match_number: Optional[int] = None
    stage: MatchStage = "knockout"
    scheduled_time: Optional[datetime] = None
    court: Optional[str] = None


class MatchUpdate(BaseModel):
    # Fills the empty slots of later bracket rounds
    player1_id: Optional[int] = None
    player2_id: Optional[int] = None
    player1_score: Optional[int] = Field(None, ge=0)
    player2_score: Optional[int] = Field(None, ge=0)
    score_details: Optional[List[SetScore]] = None
    winner_id: Optional[int] = None
    status: Optional[MatchStatus] = None


class MatchRead(BaseModel):
    id: int
    tournament_id: int
    group_id: Optional[int] = None
    stage: str
    round_name: Optional[str] = None
    round_order: int
    match_number: Optional[int] = None
    player1_id: Optional[int] = None
    player2_id: Optional[int] = None
    scheduled_time: Optional[datetime] = None
    court: Optional[str] = None
    status: str
    player1_score: Optional[int] = None
    player2_score: Optional[int] = None
    score_details: Optional[List[SetScore]] = None
    winner_id: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class KnockoutBracketRead(BaseModel):
    matches: List[MatchRead]
    rounds: Dict[str, List[MatchRead]]


class MatchDeletionResult(BaseModel):
    message: str
    deleted: int
