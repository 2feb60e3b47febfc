"""
Pydantic schemas for the transaction endpoints.

Amounts are decimal.Decimal with at most two decimal places and must be
strictly positive at the API boundary (the database only requires >= 0).
Decimals are serialized as JSON strings so no precision is lost on the wire.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import Field, model_validator

from banca_api.models.transaction import TransactionType
from banca_api.schemas.common import ApiModel, Envelope


PositiveAmount = Annotated[
    Decimal,
    Field(gt=0, max_digits=18, decimal_places=2, description="Positive amount, at most 2 decimals"),
]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class AccountMovementRequest(ApiModel):
    """Request body for deposit, purchase and credit."""
    account_id: uuid.UUID
    amount: PositiveAmount


class TransferRequest(ApiModel):
    """Request body for POST /transactions/transfer."""
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount: PositiveAmount

    @model_validator(mode="after")
    def accounts_must_differ(self):
        """Cannot transfer money to the same account."""
        if self.from_account_id == self.to_account_id:
            raise ValueError("Cannot transfer to the same account")
        return self


class TransactionUpdateRequest(ApiModel):
    """Request body for PUT /transactions/update/{id} (all fields optional)."""
    type: TransactionType | None = None
    amount: PositiveAmount | None = None
    related_account: uuid.UUID | None = None
    reversed: bool | None = None

    @model_validator(mode="after")
    def non_nullable_fields(self):
        """Only relatedAccount may be cleared with an explicit null."""
        for field in ("type", "amount", "reversed"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class TransactionResponse(ApiModel):
    """A ledger record with its account references as plain ids."""
    id: uuid.UUID
    account_id: uuid.UUID
    type: TransactionType
    amount: Decimal
    related_account_id: uuid.UUID | None
    date: datetime
    reversed: bool
    created_at: datetime
    updated_at: datetime


class AccountBalanceRef(ApiModel):
    """The filing account as shown next to a transaction."""
    id: uuid.UUID
    account_number: str
    balance: Decimal


class AccountRef(ApiModel):
    """The counterparty account as shown next to a transaction."""
    id: uuid.UUID
    account_number: str


class TransactionDetail(TransactionResponse):
    """A ledger record with both account references resolved."""
    account: AccountBalanceRef
    related_account: AccountRef | None


class MovementResponse(Envelope):
    """Deposit, purchase and credit: the new record plus the resulting balance."""
    transaction: TransactionResponse
    balance: Decimal


class TransferTransactions(ApiModel):
    outgoing: TransactionResponse = Field(alias="out")
    incoming: TransactionResponse = Field(alias="in")


class TransferBalances(ApiModel):
    from_balance: Decimal = Field(alias="from")
    to_balance: Decimal = Field(alias="to")


class TransferResponse(Envelope):
    """Transfer: both sibling records plus both resulting balances."""
    transactions: TransferTransactions
    balances: TransferBalances


class TransactionEnvelope(Envelope):
    transaction: TransactionResponse


class TransactionDetailEnvelope(Envelope):
    transaction: TransactionDetail


class TransactionListResponse(Envelope):
    transactions: list[TransactionDetail]
