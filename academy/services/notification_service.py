import logging
from typing import Iterable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from academy.models import notification as notification_model

logger = logging.getLogger(__name__)


def notify_users(
    db: Session,
    user_ids: Iterable[str],
    title: str,
    message: str,
    type: str = "general",
    link: Optional[str] = None,
) -> List[notification_model.Notification]:
    """
    Creates one in-app notification per user and commits them on their own.
    Call it after the main change is committed: a failure here is logged and
    never undoes or fails the operation that triggered it.
    """
    recipients = [user_id for user_id in dict.fromkeys(user_ids) if user_id]
    if not recipients:
        return []

    notifications = [
        notification_model.Notification(user_id=user_id, title=title, message=message, type=type, link=link)
        for user_id in recipients
    ]
    try:
        db.add_all(notifications)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Could not create '%s' notifications for %s: %s", title, recipients, e)
        return []
    return notifications


def get_user_notifications(
    db: Session, user_id: str, unread_only: bool = False, skip: int = 0, limit: Optional[int] = 100
) -> List[notification_model.Notification]:
    query = db.query(notification_model.Notification).filter(notification_model.Notification.user_id == user_id)
    if unread_only:
        query = query.filter(notification_model.Notification.is_read == False)
    return query\
        .order_by(notification_model.Notification.created_at.desc(), notification_model.Notification.id.desc())\
        .offset(skip)\
        .limit(limit)\
        .all()


def mark_notification_as_read(db: Session, notification_id: int, current_user_id: str) -> notification_model.Notification:
    notification = db.query(notification_model.Notification).filter(notification_model.Notification.id == notification_id).first()
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if notification.user_id != current_user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to mark this notification as read")

    notification.is_read = True
    db.commit()
    return notification


def mark_all_user_notifications_as_read(db: Session, current_user_id: str) -> List[notification_model.Notification]:
    """Returns the notifications that were unread before the call."""
    unread = get_user_notifications(db, current_user_id, unread_only=True, limit=None)
    for notification in unread:
        notification.is_read = True
    db.commit()
    logger.debug("Marked %d notifications as read for %s", len(unread), current_user_id)
    return unread
