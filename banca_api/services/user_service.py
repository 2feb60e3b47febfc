"""
User service — profile management and default-user provisioning.

Users are never hard-deleted: deactivation sets status=False, which locks
the user out (login and token checks both reject inactive users) while
keeping their data and account on file.
"""

import logging
import secrets
import uuid
from decimal import Decimal

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from banca_api.config import settings
from banca_api.exceptions import UserNotFoundError
from banca_api.models.user import User, UserRole
from banca_api.permissions import Caller
from banca_api.security import hash_password
from banca_api.services.auth_service import ensure_unique_user_fields


logger = logging.getLogger(__name__)


# Provisioned at startup, one per role
DEFAULT_USERS = [
    (UserRole.ADMIN_GLOBAL, "Super Admin Global", "admin_global@banca.com", "admin_global"),
    (UserRole.GERENTE_SUCURSAL, "Gerente de Sucursal", "gerente_sucursal@banca.com", "gerente_sucursal"),
    (UserRole.CAJERO, "Cajero Principal", "cajero@banca.com", "cajero"),
    (UserRole.CLIENTE, "Cliente Base", "cliente@banca.com", "cliente"),
]


async def list_active_users(db: AsyncSession) -> list[User]:
    result = await db.execute(
        select(User).where(User.status.is_(True)).order_by(User.surname, User.name)
    )
    return list(result.scalars().all())


async def get_active_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    """
    Raises:
        UserNotFoundError: If the user doesn't exist or is inactive.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.status:
        raise UserNotFoundError(user_id)
    return user


async def _apply_profile_updates(db: AsyncSession, user: User, updates: dict) -> None:
    if "email" in updates:
        updates["email"] = updates["email"].lower()
    await ensure_unique_user_fields(
        db,
        email=updates.get("email"),
        username=updates.get("username"),
        exclude_user_id=user.id,
    )
    for field, value in updates.items():
        setattr(user, field, value)
    await db.flush()


async def update_user(
    db: AsyncSession,
    caller: Caller,
    user_id: uuid.UUID,
    updates: dict,
) -> User:
    """
    Apply an administrative update (profile fields, status or role).

    The user is found whether active or not, so an admin can reactivate one.

    Raises:
        UserNotFoundError: If the user doesn't exist.
        DuplicateUserError: If the new email or username is taken.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id, f"User {user_id} not found")

    await _apply_profile_updates(db, user, updates)
    logger.info("User %s updated by %s: %s", user.username, caller, sorted(updates))
    return user


async def deactivate_user(
    db: AsyncSession,
    caller: Caller,
    user_id: uuid.UUID,
) -> User:
    """
    Soft-delete a user.

    Raises:
        UserNotFoundError: If the user doesn't exist or is already inactive.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.status:
        raise UserNotFoundError(user_id, f"User {user_id} not found or already deactivated")

    user.status = False
    await db.flush()
    logger.info("User %s deactivated by %s", user.username, caller)
    return user


async def update_me(db: AsyncSession, caller: Caller, updates: dict) -> User:
    """
    Update the caller's own profile. A new password is re-hashed.

    Raises:
        UserNotFoundError: If the caller has been deactivated meanwhile.
        DuplicateUserError: If the new email or username is taken.
    """
    user = await get_active_user(db, caller.user_id)

    if "password" in updates:
        updates["hashed_password"] = hash_password(updates.pop("password"))

    await _apply_profile_updates(db, user, updates)
    logger.info("User %s updated own profile: %s", user.username, sorted(updates))
    return user


async def create_default_users(db: AsyncSession) -> list[User]:
    """
    Provision one user per role with DEFAULT_USER_PASSWORD.

    A role is skipped when any user already holds it or already uses its
    email or username, so running this on every startup is safe. Default
    users get no account.
    """
    created = []
    for role, name, email, username in DEFAULT_USERS:
        result = await db.execute(
            select(User.id).where(
                or_(User.role == role, User.email == email, User.username == username)
            ).limit(1)
        )
        if result.scalar_one_or_none() is not None:
            logger.debug("Default %s user already exists", role.value)
            continue

        user = User(
            name=name,
            surname="Default",
            username=username,
            email=email,
            hashed_password=hash_password(settings.DEFAULT_USER_PASSWORD),
            phone="00000000",
            # Random 13-digit DPI, leading digit nonzero
            dpi=str(10**12 + secrets.randbelow(9 * 10**12)),
            address="N/A",
            job_name=f"{role.value} Default",
            monthly_income=Decimal("100"),
            role=role,
        )
        db.add(user)
        await db.flush()
        created.append(user)
        logger.info("Created default %s user %s", role.value, username)

    return created
