"""
Pydantic schemas for authentication endpoints (register and login).

Pydantic validates incoming data automatically: if a required field is
missing or malformed, the request is answered with a 400 before any service
code runs.
"""

import uuid
from decimal import Decimal

from pydantic import EmailStr, model_validator

from banca_api.models.user import UserRole
from banca_api.schemas.common import ApiModel, Envelope
from banca_api.schemas.user import Name, Phone, Dpi, Password, RawPassword, Address, MonthlyIncome


class UserRegisterRequest(ApiModel):
    """Request body for POST /auth/register."""
    name: Name
    surname: Name
    username: Name
    email: EmailStr
    password: Password
    phone: Phone
    dpi: Dpi
    address: Address
    job_name: Name
    monthly_income: MonthlyIncome


class UserLoginRequest(ApiModel):
    """Request body for POST /auth/login: email or username, plus password."""
    email: EmailStr | None = None
    username: str | None = None
    password: RawPassword

    @model_validator(mode="after")
    def email_or_username(self):
        if not self.email and not self.username:
            raise ValueError("Provide an email or a username")
        return self


class UserSummary(ApiModel):
    id: uuid.UUID
    name: str
    surname: str
    username: str
    email: str
    role: UserRole


class RegisteredAccount(ApiModel):
    id: uuid.UUID
    account_number: str
    balance: Decimal
    currency: str


class RegisterResponse(Envelope):
    """Response body for a successful registration: user, account and JWT."""
    user: UserSummary
    account: RegisteredAccount
    token: str
    token_type: str = "bearer"


class LoginDetails(ApiModel):
    token: str
    token_type: str = "bearer"
    user: UserSummary


class LoginResponse(Envelope):
    user_details: LoginDetails
