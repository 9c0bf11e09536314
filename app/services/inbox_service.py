# app/services/inbox_service.py
from sqlmodel import Session

from app.core.errors import NotFound
from app.models.notification import Notification
from app.repositories.notification_repo import NotificationRepository


class InboxService:
    """
    In-app notification inbox (rows written by the "app" channel).
    """

    def __init__(self, repo: NotificationRepository):
        self.repo = repo

    def list_notifications(
        self,
        session: Session,
        user_id: int,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Notification]:
        return self.repo.list_for_user(session, user_id, unread_only, skip, limit)

    def mark_read(self, session: Session, user_id: int, notification_id: int) -> Notification:
        notification = self.repo.get_for_user(session, user_id, notification_id)
        if not notification:
            raise NotFound("Notification not found")
        if notification.read:
            return notification
        return self.repo.mark_read(session, notification)

    def mark_all_read(self, session: Session, user_id: int) -> int:
        return self.repo.mark_all_read(session, user_id)
