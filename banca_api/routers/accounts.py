"""
Accounts router — bank account management endpoints.

    POST   /accounts/create               — Open an account for a user
    GET    /accounts/all                  — List all accounts with owners
    GET    /accounts/{account_id}         — Get one account with its owner
    PUT    /accounts/update/{account_id}  — Change currency and/or status
    PUT    /accounts/delete/{account_id}  — Deactivate (soft delete)

Balances are never edited here: they change only through the
transaction endpoints.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from banca_api.database import get_db
from banca_api.dependencies import require_permission
from banca_api.permissions import Caller
from banca_api.schemas.account import (
    AccountCreateRequest,
    AccountUpdateRequest,
    AccountResponse,
    AccountDetail,
    AccountEnvelope,
    AccountDetailEnvelope,
    AccountListResponse,
)
from banca_api.services import account_service

router = APIRouter()


@router.post(
    "/create",
    response_model=AccountEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Open a bank account for a user",
)
async def create_account(
    request: AccountCreateRequest,
    caller: Caller = Depends(require_permission("accounts:create")),
    db: AsyncSession = Depends(get_db),
):
    """
    Open an account with a zero balance and a random 12-character account
    number. Each user may own a single account.

    - **userId**: An existing, active user
    - **currency**: Optional 3-letter code (defaults to GTQ)
    """
    account = await account_service.create_account(
        db=db,
        caller=caller,
        user_id=request.user_id,
        currency=request.currency,
    )
    return AccountEnvelope(
        message="Account created",
        account=AccountResponse.model_validate(account),
    )


@router.get(
    "/all",
    response_model=AccountListResponse,
    summary="List all accounts",
)
async def list_accounts(
    caller: Caller = Depends(require_permission("accounts:list")),
    db: AsyncSession = Depends(get_db),
):
    accounts = await account_service.get_all_accounts(db)
    return AccountListResponse(
        accounts=[AccountDetail.model_validate(account) for account in accounts],
    )


@router.get(
    "/{account_id}",
    response_model=AccountDetailEnvelope,
    summary="Get account details",
)
async def get_account(
    account_id: uuid.UUID,
    caller: Caller = Depends(require_permission("accounts:read")),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.get_account(db, account_id)
    return AccountDetailEnvelope(account=AccountDetail.model_validate(account))


@router.put(
    "/update/{account_id}",
    response_model=AccountEnvelope,
    summary="Update an account",
)
async def update_account(
    account_id: uuid.UUID,
    request: AccountUpdateRequest,
    caller: Caller = Depends(require_permission("accounts:update")),
    db: AsyncSession = Depends(get_db),
):
    """Change the currency and/or reactivate or deactivate an account."""
    account = await account_service.update_account(
        db=db,
        caller=caller,
        account_id=account_id,
        updates=request.model_dump(exclude_unset=True, exclude_none=True),
    )
    return AccountEnvelope(
        message="Account updated",
        account=AccountResponse.model_validate(account),
    )


@router.put(
    "/delete/{account_id}",
    response_model=AccountEnvelope,
    summary="Deactivate an account",
)
async def deactivate_account(
    account_id: uuid.UUID,
    caller: Caller = Depends(require_permission("accounts:deactivate")),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete: the account is kept but every money movement rejects it."""
    account = await account_service.deactivate_account(
        db=db,
        caller=caller,
        account_id=account_id,
    )
    return AccountEnvelope(
        message="Account deactivated",
        account=AccountResponse.model_validate(account),
    )
