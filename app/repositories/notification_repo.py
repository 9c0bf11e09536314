# app/repositories/notification_repo.py
from sqlalchemy import update
from sqlmodel import Session, select

from app.models.notification import Notification
from app.repositories.counter_repo import assign_id


class NotificationRepository:

    def create(self, session: Session, notification: Notification) -> Notification:
        assign_id(session, notification)
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification

    def list_for_user(
        self,
        session: Session,
        user_id: int,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read == False)  # noqa: E712
        stmt = stmt.order_by(Notification.id.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def get_for_user(
        self, session: Session, user_id: int, notification_id: int
    ) -> Notification | None:
        stmt = select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
        return session.exec(stmt).first()

    def mark_read(self, session: Session, notification: Notification) -> Notification:
        notification.read = True
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification

    def mark_all_read(self, session: Session, user_id: int) -> int:
        result = session.exec(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
            .values(read=True)
        )
        session.commit()
        return result.rowcount or 0
