# marketplace/routers/users.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from marketplace.core.auth import require_auth, require_admin
from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.repositories.user_repo import UserRepository
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.user import UserRead, UserRoleUpdate
from marketplace.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


# -------- Self profile --------


@router.get("/me", response_model=ApiResponse[UserRead])
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.

    The profile row is auto-provisioned as a customer on first request.
    """
    user = service.get_me(current_user)
    return ApiResponse(data=UserRead.model_validate(user))


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=ApiResponse[list[UserRead]],
    dependencies=[Depends(require_admin)],
)
def list_users(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all users (admin only).

    Pagination via skip/limit.
    """
    users = service.list_users(session, skip, limit)
    return ApiResponse(data=[UserRead.model_validate(u) for u in users])


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserRead],
    dependencies=[Depends(require_admin)],
)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    user = service.get_user(session, user_id)
    return ApiResponse(data=UserRead.model_validate(user))


@router.patch("/{user_id}/role", response_model=ApiResponse[UserRead])
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Update a user's role (admin only).

    Allowed roles: customer, merchant, driver, admin.
    """
    user = service.update_role(session, admin, user_id, payload)
    return ApiResponse(data=UserRead.model_validate(user), message="Role updated")
