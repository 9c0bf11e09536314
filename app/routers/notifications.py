# app/routers/notifications.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.notification_repo import NotificationRepository
from app.schemas.notification import MarkAllReadResult, NotificationRead
from app.services.inbox_service import InboxService

router = APIRouter(prefix="/notifications", tags=["Notifications"])

service = InboxService(NotificationRepository())


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.list_notifications(session, current_user.id, unread_only, skip, limit)


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.mark_read(session, current_user.id, notification_id)


@router.post("/read-all", response_model=MarkAllReadResult)
def mark_all_read(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return MarkAllReadResult(updated=service.mark_all_read(session, current_user.id))
