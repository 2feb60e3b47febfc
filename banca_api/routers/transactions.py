"""
Transactions router — money movements and the ledger.

Money movements:
  POST   /transactions/deposit        — DEPOSITO into one account
  POST   /transactions/transfer       — TRANSFERENCIA between two accounts
  POST   /transactions/purchase       — COMPRA charged to one account
  POST   /transactions/credit         — CREDITO into one account

Ledger:
  GET    /transactions/all            — every record, both accounts joined
  GET    /transactions/{id}           — one record, both accounts joined
  PUT    /transactions/update/{id}    — patch a record (balances untouched)
  DELETE /transactions/delete/{id}    — hard-delete a record (balances untouched)

Every route passes through the access gate: require_permission() rejects
unauthenticated callers (401) and disallowed roles (403) before the service
runs, and hands the route the Caller the service logs against.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from banca_api.database import get_db
from banca_api.dependencies import require_permission
from banca_api.permissions import Caller
from banca_api.schemas.transaction import (
    AccountMovementRequest,
    TransferRequest,
    TransactionUpdateRequest,
    TransactionResponse,
    TransactionDetail,
    MovementResponse,
    TransferTransactions,
    TransferBalances,
    TransferResponse,
    TransactionEnvelope,
    TransactionDetailEnvelope,
    TransactionListResponse,
)
from banca_api.services import transaction_service

router = APIRouter()


def _movement_response(message: str, account, txn) -> MovementResponse:
    return MovementResponse(
        message=message,
        transaction=TransactionResponse.model_validate(txn),
        balance=account.balance,
    )


# /all is declared before /{transaction_id} so it is not parsed as an id
@router.get(
    "/all",
    response_model=TransactionListResponse,
    summary="List all transactions",
)
async def list_transactions(
    caller: Caller = Depends(require_permission("transactions:read")),
    db: AsyncSession = Depends(get_db),
):
    """List every ledger record, newest first."""
    txns = await transaction_service.get_all_transactions(db)
    return TransactionListResponse(
        transactions=[TransactionDetail.model_validate(txn) for txn in txns],
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionDetailEnvelope,
    summary="Get a single transaction",
)
async def get_transaction(
    transaction_id: uuid.UUID,
    caller: Caller = Depends(require_permission("transactions:read")),
    db: AsyncSession = Depends(get_db),
):
    txn = await transaction_service.get_transaction(db, transaction_id)
    return TransactionDetailEnvelope(transaction=TransactionDetail.model_validate(txn))


@router.post(
    "/deposit",
    response_model=MovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Deposit into an account",
)
async def deposit(
    request: AccountMovementRequest,
    caller: Caller = Depends(require_permission("transactions:deposit")),
    db: AsyncSession = Depends(get_db),
):
    """
    Deposit money into an active account.

    - **accountId**: The account to deposit into
    - **amount**: Positive amount with at most two decimals
    """
    account, txn = await transaction_service.deposit(
        db=db,
        caller=caller,
        account_id=request.account_id,
        amount=request.amount,
    )
    return _movement_response("Deposit completed", account, txn)


@router.post(
    "/transfer",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer between two accounts",
)
async def transfer(
    request: TransferRequest,
    caller: Caller = Depends(require_permission("transactions:transfer")),
    db: AsyncSession = Depends(get_db),
):
    """
    Move money from one active account to another.

    Both balance updates and both ledger records are committed together.
    Rejected with 400 if the source balance is lower than the amount.
    """
    source, dest, txn_out, txn_in = await transaction_service.transfer(
        db=db,
        caller=caller,
        from_account_id=request.from_account_id,
        to_account_id=request.to_account_id,
        amount=request.amount,
    )
    return TransferResponse(
        message="Transfer completed",
        transactions=TransferTransactions(
            outgoing=TransactionResponse.model_validate(txn_out),
            incoming=TransactionResponse.model_validate(txn_in),
        ),
        balances=TransferBalances(
            from_balance=source.balance,
            to_balance=dest.balance,
        ),
    )


@router.post(
    "/purchase",
    response_model=MovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Charge a purchase to an account",
)
async def purchase(
    request: AccountMovementRequest,
    caller: Caller = Depends(require_permission("transactions:purchase")),
    db: AsyncSession = Depends(get_db),
):
    """Debit an active account. Rejected with 400 if the balance is too low."""
    account, txn = await transaction_service.purchase(
        db=db,
        caller=caller,
        account_id=request.account_id,
        amount=request.amount,
    )
    return _movement_response("Purchase completed", account, txn)


@router.post(
    "/credit",
    response_model=MovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Credit an account",
)
async def credit(
    request: AccountMovementRequest,
    caller: Caller = Depends(require_permission("transactions:credit")),
    db: AsyncSession = Depends(get_db),
):
    account, txn = await transaction_service.credit(
        db=db,
        caller=caller,
        account_id=request.account_id,
        amount=request.amount,
    )
    return _movement_response("Credit completed", account, txn)


@router.put(
    "/update/{transaction_id}",
    response_model=TransactionEnvelope,
    summary="Edit a ledger record",
)
async def update_transaction(
    transaction_id: uuid.UUID,
    request: TransactionUpdateRequest,
    caller: Caller = Depends(require_permission("transactions:update")),
    db: AsyncSession = Depends(get_db),
):
    """
    Overwrite type, amount, relatedAccount and/or reversed on a record.

    Only the fields present in the body are written. Account balances are
    NOT recalculated.
    """
    updates = request.model_dump(exclude_unset=True)
    if "related_account" in updates:
        updates["related_account_id"] = updates.pop("related_account")

    txn = await transaction_service.update_transaction(
        db=db,
        caller=caller,
        transaction_id=transaction_id,
        updates=updates,
    )
    return TransactionEnvelope(
        message="Transaction updated",
        transaction=TransactionResponse.model_validate(txn),
    )


@router.delete(
    "/delete/{transaction_id}",
    response_model=TransactionEnvelope,
    summary="Delete a ledger record",
)
async def delete_transaction(
    transaction_id: uuid.UUID,
    caller: Caller = Depends(require_permission("transactions:delete")),
    db: AsyncSession = Depends(get_db),
):
    """Hard-delete a record. Account balances are NOT recalculated."""
    txn = await transaction_service.delete_transaction(
        db=db,
        caller=caller,
        transaction_id=transaction_id,
    )
    return TransactionEnvelope(
        message="Transaction deleted",
        transaction=TransactionResponse.model_validate(txn),
    )
