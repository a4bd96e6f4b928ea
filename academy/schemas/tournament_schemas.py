from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

TournamentType = Literal["eliminazione_diretta", "girone_eliminazione", "campionato"]


class TournamentBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    tournament_type: TournamentType
    max_participants: Optional[int] = Field(None, ge=2)
    start_date: Optional[date] = None
    match_format: str = "best_of_3"
    surface_type: Optional[str] = None


class TournamentCreate(TournamentBase):
    pass


class TournamentRead(TournamentBase):
    id: int
    current_stage: str
    group_stage_config: Optional[Dict[str, Any]] = None
    knockout_stage_config: Optional[Dict[str, Any]] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StageChangeResult(BaseModel):
    message: str
    tournament_id: int
    current_stage: str
    qualified_count: Optional[int] = None


class MatchGenerationResult(BaseModel):
    message: str
    tournament_id: int
    matches_created: int
    rounds: int
