"""
Account service — business logic for bank account operations.

This module handles:
  - Account creation (one per user, unique account number generation)
  - Account retrieval (single or list, with the owner joined for display)
  - Admin updates (currency, status) and soft deletion
  - Loading accounts for the transaction service, locked for update

Lifecycle:
  Accounts are opened at registration or by an admin, changed by money
  movements or admin updates, and never hard-deleted: deactivation sets
  status=False, after which every money movement treats the account as
  missing.
"""

import logging
import secrets
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from banca_api.config import settings
from banca_api.exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    StorageError,
    UserNotFoundError,
)
from banca_api.models.account import Account
from banca_api.models.user import User
from banca_api.permissions import Caller


logger = logging.getLogger(__name__)


def _generate_account_number() -> str:
    """Generate a random account number: 12 uppercase hex characters."""
    return secrets.token_hex(6).upper()


async def open_account(
    db: AsyncSession,
    user: User,
    currency: str | None = None,
) -> Account:
    """
    Open the account for `user` with a zero balance.

    Used by registration (the user was just created) and by the admin
    endpoint (after create_account's checks).

    Raises:
        StorageError: If no unused account number could be allocated.
    """
    # Retry on collision; 48 random bits make this extremely unlikely
    for _ in range(10):
        account_number = _generate_account_number()
        existing = await db.execute(
            select(Account.id).where(Account.account_number == account_number)
        )
        if existing.scalar_one_or_none() is None:
            break
    else:
        raise StorageError("Failed to generate a unique account number")

    account = Account(
        user_id=user.id,
        account_number=account_number,
        currency=currency or settings.DEFAULT_CURRENCY,
    )
    db.add(account)
    await db.flush()
    return account


async def create_account(
    db: AsyncSession,
    caller: Caller,
    user_id: uuid.UUID,
    currency: str | None = None,
) -> Account:
    """
    Open an account for an existing user (admin operation).

    Raises:
        UserNotFoundError: If the user doesn't exist or is inactive.
        DuplicateAccountError: If the user already owns an account.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.status:
        raise UserNotFoundError(user_id)

    existing = await db.execute(select(Account.id).where(Account.user_id == user_id))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateAccountError(user_id)

    account = await open_account(db, user, currency)
    logger.info(
        "Account %s opened for user %s by %s", account.account_number, user_id, caller
    )
    return account


async def get_all_accounts(db: AsyncSession) -> list[Account]:
    """List every account, owners joined, oldest first."""
    result = await db.execute(
        select(Account)
        .options(selectinload(Account.user))
        .order_by(Account.created_at)
    )
    return list(result.scalars().all())


async def get_account(db: AsyncSession, account_id: uuid.UUID) -> Account:
    """
    Get a single account with its owner, active or not.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    result = await db.execute(
        select(Account)
        .options(selectinload(Account.user))
        .where(Account.id == account_id)
    )
    account = result.scalar_one_or_none()

    if account is None:
        raise AccountNotFoundError(account_id, f"Account {account_id} not found")

    return account


async def get_active_account_for_update(
    db: AsyncSession,
    account_id: uuid.UUID,
) -> Account:
    """
    Load an account for a balance change, locking its row.

    The row lock (SELECT ... FOR UPDATE) serializes concurrent movements on
    the same account so no balance update is lost. SQLite does not support
    row locks; there the engine opens each transaction with BEGIN IMMEDIATE
    (see database.enable_sqlite_write_locking), so this read already happens
    under the database write lock.

    Raises:
        AccountNotFoundError: If the account doesn't exist or is inactive.
    """
    result = await db.execute(
        select(Account)
        .where(Account.id == account_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()

    if account is None or not account.status:
        raise AccountNotFoundError(account_id)

    return account


async def update_account(
    db: AsyncSession,
    caller: Caller,
    account_id: uuid.UUID,
    updates: dict,
) -> Account:
    """
    Apply an admin update (currency and/or status) to an account.

    Only keys present in `updates` are written (PATCH semantics).
    """
    account = await get_account(db, account_id)

    for field, value in updates.items():
        setattr(account, field, value)

    await db.flush()
    logger.info("Account %s updated by %s: %s", account_id, caller, sorted(updates))
    return account


async def deactivate_account(
    db: AsyncSession,
    caller: Caller,
    account_id: uuid.UUID,
) -> Account:
    """
    Soft-delete an account (status=False).

    Raises:
        AccountNotFoundError: If the account doesn't exist or is already inactive.
    """
    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()

    if account is None or not account.status:
        raise AccountNotFoundError(
            account_id, f"Account {account_id} not found or already deactivated"
        )

    account.status = False
    await db.flush()
    logger.info("Account %s deactivated by %s", account_id, caller)
    return account
