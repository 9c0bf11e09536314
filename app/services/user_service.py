# app/services/user_service.py
import logging

from sqlmodel import Session

from app.core.errors import NotFound, ValidationError
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import AdminUserCreate, AdminUserUpdate, UserUpdate
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)


class UserService:
    """
    Profile edits for customers; account and role management for admins.
    Username and email are fixed once the account exists.
    """

    def __init__(self, repo: UserRepository, auth_service: AuthService):
        self.repo = repo
        self.auth_service = auth_service

    def update_me(self, session: Session, current_user: User, payload: UserUpdate) -> User:
        changes = payload.model_dump(exclude_unset=True)
        for field in ("name", "phone"):
            if field in changes:
                setattr(current_user, field, changes[field])
        return self.repo.update(session, current_user)

    # ----- Admin -----

    def list_users(self, session: Session, role: str | None, skip: int, limit: int) -> list[User]:
        return self.repo.list(session, role=role, skip=skip, limit=limit)

    def get_user(self, session: Session, user_id: int) -> User:
        user = self.repo.get_by_id(session, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def create_user(self, session: Session, payload: AdminUserCreate) -> User:
        """Staff accounts (delivery managers, other admins) are created here."""
        user = self.auth_service.create_user(session, payload, role=payload.role)
        logger.info("Admin created %s account %s", user.role, user.id)
        return user

    def update_user(
        self,
        session: Session,
        user_id: int,
        payload: AdminUserUpdate,
        acting_admin: User | None = None,
    ) -> User:
        """
        Role or profile change by an admin. An admin cannot take the admin
        role away from themselves.
        """
        user = self.get_user(session, user_id)
        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

        new_role = changes.get("role")
        if acting_admin is not None and acting_admin.id == user.id and new_role not in (None, "admin"):
            raise ValidationError("Admins cannot demote themselves")

        for field, value in changes.items():
            setattr(user, field, value)
        user = self.repo.update(session, user)
        if new_role:
            logger.info("User %s role set to %s", user.id, new_role)
        return user
