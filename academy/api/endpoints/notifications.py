from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from academy.api.dependencies import get_db
from academy.models import profile as profile_model
from academy.schemas import notification_schemas
from academy.services import auth_service, notification_service

router = APIRouter()

@router.get("/", response_model=List[notification_schemas.NotificationRead])
async def get_user_notifications_endpoint(
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return notification_service.get_user_notifications(
        db=db, user_id=current_user.id, unread_only=unread_only, skip=skip, limit=limit
    )

@router.patch("/{notification_id}/read", response_model=notification_schemas.NotificationRead)
async def mark_notification_as_read_endpoint(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return notification_service.mark_notification_as_read(
        db=db, notification_id=notification_id, current_user_id=current_user.id
    )

@router.post("/read-all", response_model=List[notification_schemas.NotificationRead])
async def mark_all_user_notifications_as_read_endpoint(
    db: Session = Depends(get_db),
    current_user: profile_model.Profile = Depends(auth_service.get_current_user),
):
    return notification_service.mark_all_user_notifications_as_read(db=db, current_user_id=current_user.id)
