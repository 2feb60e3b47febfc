"""
Authentication service — registration and login business logic.

This module contains the core auth logic, separated from HTTP concerns.
The router calls these functions and translates the results into HTTP
responses, so the logic can be tested without spinning up a web server.

Registration flow:
  1. Reject an email, username or DPI that is already registered
  2. Hash the password with Argon2id
  3. Create the User (role CLIENTE) and its Account in the request's transaction
  4. Return a JWT token so the user is immediately logged in

Login flow:
  1. Look up the user by email or username
  2. Verify the password against the stored hash
  3. Return a JWT token

Security notes:
  - Passwords are hashed before storage (never stored in plaintext)
  - Login returns the same error for "unknown user", "wrong password" and
    "deactivated user" to prevent user enumeration
  - Registration never grants a role other than CLIENTE; staff roles are
    assigned by an administrator
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from banca_api.exceptions import DuplicateUserError, InvalidCredentialsError
from banca_api.models.account import Account
from banca_api.models.user import User, UserRole
from banca_api.security import hash_password, verify_password, create_user_token
from banca_api.services.account_service import open_account


logger = logging.getLogger(__name__)


async def ensure_unique_user_fields(
    db: AsyncSession,
    email: str | None = None,
    username: str | None = None,
    dpi: str | None = None,
    exclude_user_id=None,
) -> None:
    """
    Raise DuplicateUserError if any of the given values belongs to another user.

    `exclude_user_id` skips the user being updated, so re-submitting one's
    own email is not a conflict.
    """
    for field, column, value in (
        ("email", User.email, email),
        ("username", User.username, username),
        ("dpi", User.dpi, dpi),
    ):
        if value is None:
            continue
        query = select(User.id).where(column == value)
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        result = await db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise DuplicateUserError(field, value)


async def register(
    db: AsyncSession,
    name: str,
    surname: str,
    username: str,
    email: str,
    password: str,
    phone: str,
    dpi: str,
    address: str,
    job_name: str,
    monthly_income: Decimal,
) -> tuple[User, Account, str]:
    """
    Register a new customer and open their account.

    Both records are written through the same session, so if either fails
    neither is persisted.

    Returns:
        Tuple of (User, Account, JWT token string).

    Raises:
        DuplicateUserError: If the email, username or DPI is already registered.
    """
    email = email.lower()
    await ensure_unique_user_fields(db, email=email, username=username, dpi=dpi)

    user = User(
        name=name,
        surname=surname,
        username=username,
        email=email,
        hashed_password=hash_password(password),
        phone=phone,
        dpi=dpi,
        address=address,
        job_name=job_name,
        monthly_income=monthly_income,
        role=UserRole.CLIENTE,
    )
    db.add(user)
    # Flush to get the user.id assigned (needed for the account FK)
    await db.flush()

    account = await open_account(db, user)

    logger.info("Registered user %s with account %s", user.username, account.account_number)
    return user, account, create_user_token(user)


async def login(
    db: AsyncSession,
    password: str,
    email: str | None = None,
    username: str | None = None,
) -> tuple[User, str]:
    """
    Authenticate a user by email or username and return a JWT token.

    Raises:
        InvalidCredentialsError: If the user doesn't exist, the password is
                                 wrong, or the user has been deactivated.
    """
    if email:
        query = select(User).where(User.email == email.lower())
    else:
        query = select(User).where(User.username == username)

    result = await db.execute(query)
    user = result.scalar_one_or_none()

    # Same error for every case so valid usernames cannot be enumerated
    if not user or not verify_password(password, user.hashed_password):
        logger.warning("Failed login for %s", email or username)
        raise InvalidCredentialsError()

    if not user.status:
        logger.warning("Login attempt by deactivated user %s", user.username)
        raise InvalidCredentialsError()

    return user, create_user_token(user)
