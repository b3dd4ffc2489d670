"""Account router: registration, login, current user and admin account actions."""

import uuid

from fastapi import APIRouter, Depends, Request, status
from libs.auth.credentials import (
    authenticate_user,
    delete_user_by_email,
    register_user,
    set_admin_role,
)
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import User
from libs.auth.tokens import issue_token
from libs.common.config import get_settings
from libs.common.rate_limit import AUTH_LIMIT, limiter
from libs.db.session import get_async_db
from services.store_service.schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RoleUpdate,
    UserResponse,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        token=issue_token(user.id, user.is_admin),
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
@limiter.limit(AUTH_LIMIT)
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Create an account and return a token for it."""
    user = await register_user(
        db,
        email=payload.email,
        password=payload.password,
        name=payload.name or payload.email.split("@")[0],
        admin_code=payload.admin_code,
        configured_admin_code=get_settings().ADMIN_REGISTRATION_CODE,
    )
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Exchange email and password for a token."""
    user = await authenticate_user(db, email=payload.email, password=payload.password)
    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return current_user


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: uuid.UUID,
    payload: RoleUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Grant or revoke the admin role."""
    return await set_admin_role(db, user_id, payload.is_admin)


@router.delete("/user/{email}", response_model=MessageResponse)
async def delete_user(
    email: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a user by email."""
    await delete_user_by_email(db, email)
    return MessageResponse(message="User deleted successfully")
