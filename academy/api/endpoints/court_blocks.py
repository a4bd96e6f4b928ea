from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from academy.api.dependencies import get_db
from academy.models import profile as profile_model
from academy.schemas import court_block_schemas
from academy.services import auth_service, court_block_service

router = APIRouter()

@router.get("/", response_model=List[court_block_schemas.CourtBlockRead])
async def list_court_blocks_endpoint(
    court: Optional[str] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return court_block_service.list_court_blocks(db=db, court=court, date_from=date_from, date_to=date_to)

@router.post("/", response_model=court_block_schemas.CourtBlockRead, status_code=status.HTTP_201_CREATED)
async def create_court_block_endpoint(
    block_in: court_block_schemas.CourtBlockCreate,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    return court_block_service.create_court_block(db=db, block_in=block_in, current_user=current_user)

@router.delete("/{block_id}", response_model=Dict[str, str])
async def delete_court_block_endpoint(
    block_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.require_staff),
):
    court_block_service.delete_court_block(db=db, block_id=block_id)
    return {"message": "Court block deleted successfully"}
