"""
Users router — profile management.

    GET  /users/all               — List active users
    GET  /users/user/{user_id}    — Get an active user
    PUT  /users/update/{user_id}  — Admin update (profile, status, role)
    PUT  /users/delete/{user_id}  — Deactivate (soft delete)
    PUT  /users/me                — Update one's own profile
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from banca_api.database import get_db
from banca_api.dependencies import get_caller, require_permission
from banca_api.permissions import Caller
from banca_api.schemas.user import (
    UserResponse,
    UserUpdateRequest,
    UserSelfUpdateRequest,
    UserEnvelope,
    UserListResponse,
)
from banca_api.services import user_service

router = APIRouter()


@router.get("/all", response_model=UserListResponse, summary="List active users")
async def list_users(
    caller: Caller = Depends(require_permission("users:list")),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.list_active_users(db)
    return UserListResponse(users=[UserResponse.model_validate(user) for user in users])


@router.get("/user/{user_id}", response_model=UserEnvelope, summary="Get a user")
async def get_user(
    user_id: uuid.UUID,
    caller: Caller = Depends(require_permission("users:read")),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_active_user(db, user_id)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.put("/update/{user_id}", response_model=UserEnvelope, summary="Update a user")
async def update_user(
    user_id: uuid.UUID,
    request: UserUpdateRequest,
    caller: Caller = Depends(require_permission("users:update")),
    db: AsyncSession = Depends(get_db),
):
    """
    Administrative update. Passwords cannot be changed here; a user changes
    their own through PUT /users/me.
    """
    user = await user_service.update_user(
        db=db,
        caller=caller,
        user_id=user_id,
        updates=request.model_dump(exclude_unset=True, exclude_none=True),
    )
    return UserEnvelope(message="User updated", user=UserResponse.model_validate(user))


@router.put("/delete/{user_id}", response_model=UserEnvelope, summary="Deactivate a user")
async def deactivate_user(
    user_id: uuid.UUID,
    caller: Caller = Depends(require_permission("users:deactivate")),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.deactivate_user(db=db, caller=caller, user_id=user_id)
    return UserEnvelope(message="User deactivated", user=UserResponse.model_validate(user))


@router.put("/me", response_model=UserEnvelope, summary="Update my profile")
async def update_me(
    request: UserSelfUpdateRequest,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Any authenticated user may change their own email, phone, address,
    monthly income, username and password."""
    user = await user_service.update_me(
        db=db,
        caller=caller,
        updates=request.model_dump(exclude_unset=True, exclude_none=True),
    )
    return UserEnvelope(message="Profile updated", user=UserResponse.model_validate(user))
