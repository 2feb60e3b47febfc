"""
Pydantic schemas for User endpoints.

hashed_password is NEVER part of a response schema. Field rules mirror the
columns: 8-digit phone, 13-digit DPI, monthly income of at least Q100.
"""

import re
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import EmailStr, Field, AfterValidator, StringConstraints

from banca_api.models.user import UserRole
from banca_api.schemas.common import ApiModel, Envelope


def _check_phone(value: str) -> str:
    if not re.fullmatch(r"\d{8}", value):
        raise ValueError("Phone number must have 8 digits")
    return value


def _check_dpi(value: str) -> str:
    if not re.fullmatch(r"\d{13}", value):
        raise ValueError("DPI must be a 13-digit number")
    return value


def _check_password_strength(value: str) -> str:
    if not (re.search(r"[a-z]", value) and re.search(r"\d", value)):
        raise ValueError("Password must include at least one lowercase letter and one number")
    return value


Name = Annotated[str, Field(min_length=1, max_length=50)]
Phone = Annotated[str, AfterValidator(_check_phone)]
Dpi = Annotated[str, AfterValidator(_check_dpi)]
# Passwords are kept exactly as sent; ApiModel strips every other string
RawPassword = Annotated[str, StringConstraints(strip_whitespace=False)]
Password = Annotated[RawPassword, Field(min_length=8), AfterValidator(_check_password_strength)]
Address = Annotated[str, Field(min_length=1, max_length=100)]
MonthlyIncome = Annotated[Decimal, Field(ge=100, max_digits=18, decimal_places=2)]


class UserResponse(ApiModel):
    """Public representation of a User (never includes the password hash)."""
    id: uuid.UUID
    name: str
    surname: str
    username: str
    email: str
    phone: str
    dpi: str
    address: str
    job_name: str
    monthly_income: Decimal
    role: UserRole
    status: bool
    created_at: datetime
    updated_at: datetime


class UserUpdateRequest(ApiModel):
    """Request body for PUT /users/update/{id} (admin; all fields optional)."""
    name: Name | None = None
    surname: Name | None = None
    username: Name | None = None
    email: EmailStr | None = None
    phone: Phone | None = None
    address: Address | None = None
    job_name: Name | None = None
    monthly_income: MonthlyIncome | None = None
    status: bool | None = None
    role: UserRole | None = None


class UserSelfUpdateRequest(ApiModel):
    """Request body for PUT /users/me (all fields optional)."""
    email: EmailStr | None = None
    phone: Phone | None = None
    address: Address | None = None
    monthly_income: MonthlyIncome | None = None
    username: Name | None = None
    password: Password | None = None


class UserEnvelope(Envelope):
    user: UserResponse


class UserListResponse(Envelope):
    users: list[UserResponse]
