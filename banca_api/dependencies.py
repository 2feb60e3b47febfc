"""
FastAPI dependencies for authentication and authorization (the access gate).

Dependencies are reusable functions that FastAPI injects into route handlers.
They form a chain that runs before any banking operation:

  get_current_user (JWT -> active User)
      └── get_caller (User -> Caller)
              └── require_permission("op") (Caller -> Caller, role-checked)

Rejections:
  - 401: missing/invalid/expired token, unknown user, deactivated user
  - 403: authenticated user whose role is not allowed for the operation

Every protected endpoint declares one of these as a parameter. If the chain
fails, the request is rejected before the route handler (and therefore any
service code) runs.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from banca_api.database import get_db
from banca_api.models.user import User
from banca_api.permissions import PERMISSIONS, Caller
from banca_api.security import decode_access_token


# Reads "Authorization: Bearer <token>"; tokenUrl feeds the docs' Authorize button
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is invalid, or the user doesn't exist
                           or has been deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.status:
        raise credentials_exception

    return user


async def get_caller(user: User = Depends(get_current_user)) -> Caller:
    """The authenticated user as an explicit capability object."""
    return Caller.from_user(user)


def require_permission(operation: str):
    """
    Build a dependency that admits only roles listed for `operation`.

    Usage:
        @router.post("/deposit")
        async def deposit(caller: Caller = Depends(require_permission("transactions:deposit"))):
            ...

    Raises:
        KeyError: At import time, if `operation` is not in the role table.
    """
    allowed = PERMISSIONS[operation]

    async def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if not caller.can(operation):
            roles = ", ".join(sorted(role.value for role in allowed))
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied: this resource requires one of the roles {roles}",
            )
        return caller

    return dependency
