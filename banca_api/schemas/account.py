"""
Pydantic schemas for Account endpoints.

Balances are decimal.Decimal; the currency is a 3-letter alphabetic code,
normalized to upper case.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import Field, field_validator

from banca_api.schemas.common import ApiModel, Envelope


def _normalize_currency(value: str | None) -> str | None:
    if value is None:
        return value
    if not value.isalpha():
        raise ValueError("Currency may only contain letters")
    return value.upper()


class AccountCreateRequest(ApiModel):
    """Request body for POST /accounts/create."""
    user_id: uuid.UUID
    currency: str | None = Field(None, min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def currency_letters_only(cls, value: str | None) -> str | None:
        return _normalize_currency(value)


class AccountUpdateRequest(ApiModel):
    """Request body for PUT /accounts/update/{id} (all fields optional)."""
    currency: str | None = Field(None, min_length=3, max_length=3)
    status: bool | None = None

    @field_validator("currency")
    @classmethod
    def currency_letters_only(cls, value: str | None) -> str | None:
        return _normalize_currency(value)


class AccountOwner(ApiModel):
    """The owning user as shown next to an account."""
    id: uuid.UUID
    name: str
    surname: str
    email: str


class AccountResponse(ApiModel):
    """Public representation of a bank account."""
    id: uuid.UUID
    user_id: uuid.UUID
    account_number: str
    balance: Decimal
    currency: str
    status: bool
    created_at: datetime
    updated_at: datetime


class AccountDetail(AccountResponse):
    user: AccountOwner


class AccountEnvelope(Envelope):
    account: AccountResponse


class AccountDetailEnvelope(Envelope):
    account: AccountDetail


class AccountListResponse(Envelope):
    accounts: list[AccountDetail]
