# app/repositories/user_repo.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import Session, select

from app.models.user import RefreshToken, User
from app.repositories.counter_repo import assign_id


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Basic CRUD -----

    def get_by_id(self, session: Session, user_id: int) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def get_by_username(self, session: Session, username: str) -> User | None:
        stmt = select(User).where(User.username == username)
        return session.exec(stmt).first()

    def get_by_login(self, session: Session, login: str) -> User | None:
        """Login accepts either the username or the email."""
        stmt = select(User).where((User.username == login) | (User.email == login))
        return session.exec(stmt).first()

    def list(
        self,
        session: Session,
        role: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[User]:
        """
        Paginated user listing, newest first.
        """
        stmt = select(User)
        if role:
            stmt = stmt.where(User.role == role)
        stmt = stmt.order_by(User.id.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        assign_id(session, user)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        user.updated_at = datetime.now(timezone.utc)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


class RefreshTokenRepository:
    """
    Single-slot refresh token store (one row per user, overwritten on login/refresh).
    """

    def get(self, session: Session, user_id: int) -> RefreshToken | None:
        return session.get(RefreshToken, user_id)

    def store(
        self,
        session: Session,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
    ) -> None:
        slot = session.get(RefreshToken, user_id)
        if slot is None:
            slot = RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        else:
            slot.token_hash = token_hash
            slot.expires_at = expires_at
        session.add(slot)
        session.commit()

    def clear(self, session: Session, user_id: int) -> None:
        slot = session.get(RefreshToken, user_id)
        if slot is not None:
            session.delete(slot)
            session.commit()
