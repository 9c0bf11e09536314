# app/routers/users.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import RefreshTokenRepository, UserRepository
from app.schemas.user import AdminUserCreate, AdminUserUpdate, Role, UserRead, UserUpdate
from app.services.auth_service import AuthService
from app.services.user_service import UserService

router = APIRouter(tags=["Users"])

user_repo = UserRepository()
service = UserService(user_repo, AuthService(user_repo, RefreshTokenRepository()))


@router.put("/profile", response_model=UserRead)
def edit_profile(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    me: User = Depends(require_auth),
):
    """Name and phone only."""
    return service.update_me(session, me, payload)


@router.get("/admin/users", response_model=list[UserRead], dependencies=[Depends(require_admin)])
def admin_list_users(
    role: Role | None = None,
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
):
    return service.list_users(session, role, skip, limit)


@router.get("/admin/users/{user_id}", response_model=UserRead, dependencies=[Depends(require_admin)])
def admin_get_user(user_id: int, session: Session = Depends(get_session)):
    return service.get_user(session, user_id)


@router.post(
    "/admin/users",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def admin_create_user(payload: AdminUserCreate, session: Session = Depends(get_session)):
    """
    Accounts with any role, including delivery managers.
    """
    return service.create_user(session, payload)


@router.patch("/admin/users/{user_id}", response_model=UserRead)
def admin_update_user(
    user_id: int,
    payload: AdminUserUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return service.update_user(session, user_id, payload, acting_admin=admin)
