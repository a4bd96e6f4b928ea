import random
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from academy.api.dependencies import get_db, get_rng, get_settings, get_standings_strategy
from academy.core.config import Settings
from academy.models import profile as profile_model
from academy.schemas import group_schemas, match_schemas, participant_schemas, tournament_schemas
from academy.services import auth_service, bracket_service, group_service, tournament_service
from academy.services.standings import StandingsStrategy

router = APIRouter()

@router.post("/", response_model=tournament_schemas.TournamentRead, status_code=status.HTTP_201_CREATED)
async def create_tournament_endpoint(
    tournament_in: tournament_schemas.TournamentCreate,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return tournament_service.create_tournament(db=db, tournament_in=tournament_in, creator_id=current_user.id)

@router.get("/", response_model=List[tournament_schemas.TournamentRead])
async def list_tournaments_endpoint(
    stage: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return tournament_service.list_tournaments(db=db, stage=stage)

@router.get("/{tournament_id}", response_model=tournament_schemas.TournamentRead)
async def get_tournament_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
):
    return tournament_service.get_tournament_or_404(db=db, tournament_id=tournament_id)

# Participants

@router.post("/{tournament_id}/participants", response_model=participant_schemas.ParticipantRead, status_code=status.HTTP_201_CREATED)
async def register_participant_endpoint(
    tournament_id: int,
    participant_in: participant_schemas.ParticipantCreate,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return tournament_service.register_participant(
        db=db, tournament_id=tournament_id, participant_in=participant_in, current_user=current_user
    )

@router.get("/{tournament_id}/participants", response_model=List[participant_schemas.ParticipantRead])
async def list_participants_endpoint(
    tournament_id: int,
    status_filter: Optional[participant_schemas.ParticipantStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    return tournament_service.list_participants(db=db, tournament_id=tournament_id, status_filter=status_filter)

@router.patch("/{tournament_id}/participants/{participant_id}", response_model=participant_schemas.ParticipantRead)
async def update_participant_endpoint(
    tournament_id: int,
    participant_id: int,
    participant_update: participant_schemas.ParticipantUpdate,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return tournament_service.update_participant(
        db=db, tournament_id=tournament_id, participant_id=participant_id, participant_update=participant_update
    )

# Lifecycle

@router.post("/{tournament_id}/start", response_model=tournament_schemas.StageChangeResult)
async def start_tournament_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return tournament_service.start_tournament(db=db, tournament_id=tournament_id)

@router.post("/{tournament_id}/advance-stage", response_model=tournament_schemas.StageChangeResult)
async def advance_stage_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    strategy: StandingsStrategy = Depends(get_standings_strategy),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return tournament_service.advance_stage(db=db, tournament_id=tournament_id, strategy=strategy)

@router.post("/{tournament_id}/complete", response_model=tournament_schemas.StageChangeResult)
async def complete_tournament_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return tournament_service.complete_tournament(db=db, tournament_id=tournament_id)

# Groups

@router.post("/{tournament_id}/groups", response_model=group_schemas.GroupGenerationResult, status_code=status.HTTP_201_CREATED)
async def generate_groups_endpoint(
    tournament_id: int,
    config: group_schemas.GroupStageConfig,
    db: Session = Depends(get_db),
    rng: random.Random = Depends(get_rng),
    settings: Settings = Depends(get_settings),
    strategy: StandingsStrategy = Depends(get_standings_strategy),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return group_service.generate_groups(
        db=db, tournament_id=tournament_id, config=config, rng=rng, strategy=strategy,
        default_advancement_count=settings.DEFAULT_ADVANCEMENT_COUNT,
    )

@router.get("/{tournament_id}/groups", response_model=List[group_schemas.GroupWithStandings])
async def list_groups_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    strategy: StandingsStrategy = Depends(get_standings_strategy),
):
    return group_service.list_groups_with_standings(db=db, tournament_id=tournament_id, strategy=strategy)

@router.post("/{tournament_id}/group-matches", response_model=List[match_schemas.MatchRead], status_code=status.HTTP_201_CREATED)
async def generate_group_matches_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return group_service.generate_group_matches(db=db, tournament_id=tournament_id)

# Bracket and championship calendar

@router.post("/{tournament_id}/generate-bracket", response_model=tournament_schemas.MatchGenerationResult, status_code=status.HTTP_201_CREATED)
async def generate_bracket_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return bracket_service.generate_bracket(db=db, tournament_id=tournament_id)

@router.post("/{tournament_id}/generate-championship", response_model=tournament_schemas.MatchGenerationResult, status_code=status.HTTP_201_CREATED)
async def generate_championship_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return bracket_service.generate_championship(db=db, tournament_id=tournament_id)
