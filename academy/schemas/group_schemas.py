from typing import List, Optional

from pydantic import BaseModel, Field

from .participant_schemas import ParticipantRead


class GroupStageConfig(BaseModel):
    num_groups: int = Field(..., ge=1, le=26)
    participants_per_group: Optional[int] = Field(None, ge=1)
    advancement_count: Optional[int] = Field(None, ge=1)


class GroupRead(BaseModel):
    id: int
    tournament_id: int
    group_name: str
    group_order: int
    max_participants: Optional[int] = None
    advancement_count: int

    class Config:
        from_attributes = True


class GroupStanding(BaseModel):
    participant_id: int
    user_id: Optional[str] = None
    wins: int = 0
    losses: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    points: int = 0

    @property
    def sets_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def games_diff(self) -> int:
        return self.games_won - self.games_lost


class GroupWithStandings(GroupRead):
    participants: List[ParticipantRead] = Field(default_factory=list)
    standings: List[GroupStanding] = Field(default_factory=list)


class GroupGenerationResult(BaseModel):
    success: bool = True
    message: str
    groups: List[GroupWithStandings]
