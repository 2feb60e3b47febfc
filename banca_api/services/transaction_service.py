"""
Transaction service — the core money-movement logic.

It handles:
  - Deposits, purchases and credits against a single account
  - Transfers between two accounts
  - Balance enforcement (no purchase or transfer may overdraw an account)
  - Admin corrections of ledger records (patch and hard delete)
  - Ledger reads with the referenced accounts joined for display

Atomicity:
  Every balance change and its ledger record(s) are written through the
  request's session and committed together by get_db(). For a transfer this
  means both balance updates and both records land in one database
  transaction: either all four writes commit or none do.

Concurrency:
  Accounts are loaded with SELECT ... FOR UPDATE before their balance is
  read, so two concurrent movements on the same account cannot both start
  from the same stale balance. A transfer locks its two accounts in a
  consistent order (sorted by UUID) so opposite transfers between the same
  pair cannot deadlock. SQLite has no row locks; the SQLite engine starts
  every transaction with BEGIN IMMEDIATE instead, so a concurrent movement
  waits for the first one to commit before it reads the balance.

Corrections:
  update_transaction and delete_transaction edit the ledger only. They never
  adjust a balance, and the `reversed` flag they may set is advisory. An
  admin who deletes a deposit record has not taken the money back.

Authorization:
  The access gate has already checked the caller's role. The Caller passed
  in here only attributes the log lines.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from banca_api.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidTransferError,
    TransactionNotFoundError,
)
from banca_api.models.account import Account
from banca_api.models.transaction import Transaction, TransactionType
from banca_api.permissions import Caller
from banca_api.services.account_service import get_active_account_for_update


logger = logging.getLogger(__name__)


async def _add_funds(
    db: AsyncSession,
    caller: Caller,
    account_id: uuid.UUID,
    amount: Decimal,
    txn_type: TransactionType,
) -> tuple[Account, Transaction]:
    """Credit an active account and file one record of `txn_type`."""
    account = await get_active_account_for_update(db, account_id)

    account.balance += amount
    txn = Transaction(
        account_id=account.id,
        type=txn_type.value,
        amount=amount,
    )
    db.add(txn)
    await db.flush()

    logger.info(
        "%s of %s on account %s by %s, balance now %s",
        txn_type.value, amount, account.account_number, caller, account.balance,
    )
    return account, txn


async def deposit(
    db: AsyncSession,
    caller: Caller,
    account_id: uuid.UUID,
    amount: Decimal,
) -> tuple[Account, Transaction]:
    """
    Deposit `amount` into an account.

    The API rejects non-positive amounts before this point; called directly,
    a zero deposit is accepted and recorded.

    Returns:
        Tuple of (account with its new balance, DEPOSITO transaction).

    Raises:
        AccountNotFoundError: If the account doesn't exist or is inactive.
    """
    return await _add_funds(db, caller, account_id, amount, TransactionType.DEPOSITO)


async def credit(
    db: AsyncSession,
    caller: Caller,
    account_id: uuid.UUID,
    amount: Decimal,
) -> tuple[Account, Transaction]:
    """
    Credit `amount` to an account (a cashier-side deposit, filed as CREDITO).

    Raises:
        AccountNotFoundError: If the account doesn't exist or is inactive.
    """
    return await _add_funds(db, caller, account_id, amount, TransactionType.CREDITO)


async def purchase(
    db: AsyncSession,
    caller: Caller,
    account_id: uuid.UUID,
    amount: Decimal,
) -> tuple[Account, Transaction]:
    """
    Charge a purchase of `amount` to an account.

    Nothing is written when the balance is too low.

    Returns:
        Tuple of (account with its new balance, COMPRA transaction).

    Raises:
        AccountNotFoundError: If the account doesn't exist or is inactive.
        InsufficientFundsError: If the balance is lower than `amount`.
    """
    account = await get_active_account_for_update(db, account_id)

    if account.balance < amount:
        logger.warning(
            "Purchase of %s declined on account %s for %s: balance %s",
            amount, account.account_number, caller, account.balance,
        )
        raise InsufficientFundsError(
            account_id=account.id,
            requested=amount,
            available=account.balance,
        )

    account.balance -= amount
    txn = Transaction(
        account_id=account.id,
        type=TransactionType.COMPRA.value,
        amount=amount,
    )
    db.add(txn)
    await db.flush()

    logger.info(
        "COMPRA of %s on account %s by %s, balance now %s",
        amount, account.account_number, caller, account.balance,
    )
    return account, txn


async def transfer(
    db: AsyncSession,
    caller: Caller,
    from_account_id: uuid.UUID,
    to_account_id: uuid.UUID,
    amount: Decimal,
) -> tuple[Account, Account, Transaction, Transaction]:
    """
    Move `amount` from one account to another.

    Files two TRANSFERENCIA records, one per side, each pointing at the other
    account through related_account_id. The source is debited before the
    destination is credited; both commit together.

    Returns:
        Tuple of (source account, destination account,
                  outgoing transaction, incoming transaction).

    Raises:
        AccountNotFoundError: If either account doesn't exist or is inactive.
        InvalidTransferError: If both ids name the same account.
        InsufficientFundsError: If the source balance is lower than `amount`.
    """
    if from_account_id == to_account_id:
        raise InvalidTransferError(from_account_id)

    # Lock accounts in consistent order (sorted by UUID) to prevent deadlocks
    first_id, second_id = sorted([from_account_id, to_account_id])
    first = await get_active_account_for_update(db, first_id)
    second = await get_active_account_for_update(db, second_id)

    source = first if first.id == from_account_id else second
    dest = second if second.id == to_account_id else first

    if source.balance < amount:
        logger.warning(
            "Transfer of %s from %s to %s declined for %s: balance %s",
            amount, source.account_number, dest.account_number, caller, source.balance,
        )
        raise InsufficientFundsError(
            account_id=source.id,
            requested=amount,
            available=source.balance,
        )

    source.balance -= amount
    dest.balance += amount

    txn_out = Transaction(
        account_id=source.id,
        type=TransactionType.TRANSFERENCIA.value,
        amount=amount,
        related_account_id=dest.id,
    )
    txn_in = Transaction(
        account_id=dest.id,
        type=TransactionType.TRANSFERENCIA.value,
        amount=amount,
        related_account_id=source.id,
    )
    db.add_all([txn_out, txn_in])
    await db.flush()

    logger.info(
        "TRANSFERENCIA of %s from %s to %s by %s",
        amount, source.account_number, dest.account_number, caller,
    )
    return source, dest, txn_out, txn_in


# ---------------------------------------------------------------------------
# Ledger reads
# ---------------------------------------------------------------------------

def _with_accounts(query):
    return query.options(
        selectinload(Transaction.account),
        selectinload(Transaction.related_account),
    )


async def get_all_transactions(db: AsyncSession) -> list[Transaction]:
    """List every ledger record, newest first, with both accounts joined."""
    result = await db.execute(
        _with_accounts(select(Transaction)).order_by(Transaction.date.desc())
    )
    return list(result.scalars().all())


async def get_transaction(
    db: AsyncSession,
    transaction_id: uuid.UUID,
) -> Transaction:
    """
    Get one ledger record with both accounts joined. Read-only.

    Raises:
        TransactionNotFoundError: If the id does not resolve.
    """
    result = await db.execute(
        _with_accounts(select(Transaction)).where(Transaction.id == transaction_id)
    )
    txn = result.scalar_one_or_none()

    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    return txn


# ---------------------------------------------------------------------------
# Admin corrections (ledger only, balances untouched)
# ---------------------------------------------------------------------------

async def update_transaction(
    db: AsyncSession,
    caller: Caller,
    transaction_id: uuid.UUID,
    updates: dict,
) -> Transaction:
    """
    Overwrite the given fields of a ledger record.

    Accepted keys: type, amount, related_account_id, reversed. No balance is
    re-derived from the new values.

    Raises:
        TransactionNotFoundError: If the id does not resolve.
        AccountNotFoundError: If related_account_id names no account.
    """
    result = await db.execute(
        select(Transaction).where(Transaction.id == transaction_id)
    )
    txn = result.scalar_one_or_none()
    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    related_id = updates.get("related_account_id")
    if related_id is not None:
        related = await db.execute(select(Account.id).where(Account.id == related_id))
        if related.scalar_one_or_none() is None:
            raise AccountNotFoundError(related_id, f"Account {related_id} not found")

    for field, value in updates.items():
        if isinstance(value, TransactionType):
            value = value.value
        setattr(txn, field, value)

    await db.flush()
    logger.info(
        "Transaction %s edited by %s (%s); balances not adjusted",
        transaction_id, caller, ", ".join(sorted(updates)) or "no fields",
    )
    return txn


async def delete_transaction(
    db: AsyncSession,
    caller: Caller,
    transaction_id: uuid.UUID,
) -> Transaction:
    """
    Hard-delete a ledger record and return it as it was.

    Raises:
        TransactionNotFoundError: If the id does not resolve.
    """
    result = await db.execute(
        select(Transaction).where(Transaction.id == transaction_id)
    )
    txn = result.scalar_one_or_none()
    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    await db.delete(txn)
    await db.flush()
    logger.info(
        "Transaction %s (%s %s) deleted by %s; balances not adjusted",
        transaction_id, txn.type, txn.amount, caller,
    )
    return txn
