# app/routers/auth.py
from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel import Session

from app.core.auth import ACCESS_COOKIE, REFRESH_COOKIE, require_auth
from app.core.config import get_settings
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import RefreshTokenRepository, UserRepository
from app.schemas.user import (
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])

service = AuthService(UserRepository(), RefreshTokenRepository())


def _set_auth_cookies(response: Response, tokens: TokenResponse) -> None:
    """
    Mirror the tokens into httpOnly cookies for browser clients.
    """
    settings = get_settings()
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path=f"{settings.API_PREFIX}/auth",
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    response: Response,
    session: Session = Depends(get_session),
):
    """
    Create a customer account and log it in.
    """
    tokens = service.register(session, payload)
    _set_auth_cookies(response, tokens)
    return tokens


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    response: Response,
    session: Session = Depends(get_session),
):
    """
    Log in with username or email. Any previously issued refresh token
    stops working.
    """
    tokens = service.login(session, payload)
    _set_auth_cookies(response, tokens)
    return tokens


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    request: Request,
    response: Response,
    payload: RefreshRequest | None = None,
    session: Session = Depends(get_session),
):
    """
    Exchange a refresh token (cookie, or JSON body) for a new pair.
    The presented refresh token is rotated out.
    """
    token = (payload.refresh_token if payload else None) or request.cookies.get(REFRESH_COOKIE)
    tokens = service.refresh(session, token)
    _set_auth_cookies(response, tokens)
    return tokens


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Revoke the refresh token slot and clear auth cookies.
    """
    service.logout(session, current_user.id)
    settings = get_settings()
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE, path=f"{settings.API_PREFIX}/auth")
    return response


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.
    """
    return current_user
