from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from academy.api.dependencies import get_db
from academy.models import profile as profile_model
from academy.schemas import match_schemas
from academy.services import auth_service, match_service

# Mounted under /tournaments, ahead of the tournament router
router = APIRouter()

@router.get("/matches/{match_id}", response_model=match_schemas.MatchRead)
async def get_match_endpoint(
    match_id: int,
    db: Session = Depends(get_db),
):
    return match_service.get_match_or_404(db=db, match_id=match_id)

@router.put("/matches/{match_id}", response_model=match_schemas.MatchRead)
async def update_match_endpoint(
    match_id: int,
    match_update: match_schemas.MatchUpdate,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_match_editor),
):
    return match_service.update_match(db=db, match_id=match_id, match_update=match_update)

@router.get("/{tournament_id}/matches", response_model=List[match_schemas.MatchRead])
async def list_matches_endpoint(
    tournament_id: int,
    stage: Optional[match_schemas.MatchStage] = None,
    status_filter: Optional[match_schemas.MatchStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    return match_service.list_matches(db=db, tournament_id=tournament_id, stage=stage, status_filter=status_filter)

@router.post("/{tournament_id}/matches", response_model=match_schemas.MatchRead, status_code=status.HTTP_201_CREATED)
async def create_match_endpoint(
    tournament_id: int,
    match_in: match_schemas.MatchCreate,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return match_service.create_match(db=db, tournament_id=tournament_id, match_in=match_in)

@router.delete("/{tournament_id}/matches", response_model=match_schemas.MatchDeletionResult)
async def delete_matches_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return match_service.delete_matches(db=db, tournament_id=tournament_id)

@router.get("/{tournament_id}/knockout", response_model=match_schemas.KnockoutBracketRead)
async def get_knockout_bracket_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
):
    return match_service.knockout_bracket(db=db, tournament_id=tournament_id)
