# app/core/auth.py
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from app.core.errors import Forbidden, Unauthenticated
from app.core.security import decode_access_token
from app.database import get_session
from app.models.user import User

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"

STAFF_ROLES = {"manager", "admin"}

# auto_error=False: no Authorization header falls through to the cookie,
# then to anonymous access.
bearer_scheme = HTTPBearer(auto_error=False)


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """
    Bearer header wins; otherwise the httpOnly access_token cookie.
    """
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_COOKIE) or None


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from an access token.

    Flow:
      1. No token at all => guest => return None.
      2. Decode JWT => extract 'sub' (user id).
      3. Load the user row; a token for a deleted user is rejected.

    Returns:
        User instance if authenticated, else None for guests.

    Raises:
        Unauthenticated(401): if token is malformed, expired or orphaned.
    """
    token = _extract_token(request, credentials)
    if token is None:
        return None  # guest mode

    payload = decode_access_token(token)

    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError):
        raise Unauthenticated("Invalid sub in token")

    user = session.get(User, user_id)
    if user is None:
        raise Unauthenticated("User no longer exists")
    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """Any signed-in account; anonymous callers get 401."""
    if user is None:
        raise Unauthenticated()
    return user


def require_manager(user: User = Depends(require_auth)) -> User:
    """
    Enforce staff role (manager or admin).

    Used by the order / subscription / catalogue back office.
    """
    if user.role not in STAFF_ROLES:
        raise Forbidden("Manager access required")
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """User management and analytics; managers are refused with 403."""
    if user.role != "admin":
        raise Forbidden("Admin access required")
    return user


def is_staff(user: User) -> bool:
    return user.role in STAFF_ROLES
