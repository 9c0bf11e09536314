# app/services/auth_service.py
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.errors import Unauthenticated, ValidationError
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    hash_token,
    verify_password,
)
from app.models.user import User
from app.repositories.user_repo import RefreshTokenRepository, UserRepository
from app.schemas.user import LoginRequest, RegisterRequest, TokenResponse, UserRead

logger = logging.getLogger(__name__)


class AuthService:
    """
    Username/password authentication with rotating refresh tokens.

    Rules:
      - one refresh-token slot per user; login and refresh overwrite it,
        so only the most recently issued refresh token is honoured
      - a refresh token that is not the one in the slot is rejected
      - logout empties the slot
    """

    def __init__(self, repo: UserRepository, token_repo: RefreshTokenRepository):
        self.repo = repo
        self.token_repo = token_repo

    def _issue(self, session: Session, user: User) -> TokenResponse:
        access = create_access_token(user.id, user.role)
        refresh, expires_at = create_refresh_token(user.id)
        self.token_repo.store(session, user.id, hash_token(refresh), expires_at)
        return TokenResponse(
            access_token=access,
            refresh_token=refresh,
            user=UserRead.model_validate(user),
        )

    def create_user(self, session: Session, payload: RegisterRequest, role: str = "user") -> User:
        if self.repo.get_by_username(session, payload.username):
            raise ValidationError("Username already taken")
        if self.repo.get_by_email(session, payload.email):
            raise ValidationError("Email already registered")

        user = User(
            username=payload.username,
            email=payload.email,
            password_hash=hash_password(payload.password),
            name=payload.name,
            phone=payload.phone,
            role=role,
        )
        try:
            return self.repo.create(session, user)
        except IntegrityError:
            session.rollback()
            raise ValidationError("Username or email already registered")

    def register(self, session: Session, payload: RegisterRequest) -> TokenResponse:
        user = self.create_user(session, payload)
        logger.info("Registered user %s (%s)", user.id, user.username)
        return self._issue(session, user)

    def login(self, session: Session, payload: LoginRequest) -> TokenResponse:
        user = self.repo.get_by_login(session, payload.login.strip())
        if not user or not verify_password(payload.password, user.password_hash):
            raise Unauthenticated("Invalid username or password")
        return self._issue(session, user)

    def refresh(self, session: Session, refresh_token: str | None) -> TokenResponse:
        if not refresh_token:
            raise Unauthenticated("Refresh token missing")

        claims = decode_refresh_token(refresh_token)
        try:
            user_id = int(claims["sub"])
        except (KeyError, ValueError):
            raise Unauthenticated("Invalid refresh token")

        slot = self.token_repo.get(session, user_id)
        if slot is None or slot.token_hash != hash_token(refresh_token):
            logger.warning("Refresh token reuse or stale token for user %s", user_id)
            raise Unauthenticated("Refresh token has been revoked")

        expires_at = slot.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= datetime.now(timezone.utc):
            raise Unauthenticated("Refresh token expired")

        user = self.repo.get_by_id(session, user_id)
        if user is None:
            raise Unauthenticated("User no longer exists")
        return self._issue(session, user)

    def logout(self, session: Session, user_id: int) -> None:
        self.token_repo.clear(session, user_id)
